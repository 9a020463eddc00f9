"""Async HTTP client for the TradeMaster API"""

import logging
from typing import Any, Dict, Optional

import httpx

from trademaster.client.errors import (
    ApiError,
    AuthApiError,
    InputApiError,
    ServerApiError,
    ServiceUnavailableError,
)
from trademaster.client.interceptor import AuthInterceptor
from trademaster.client.storage import TokenSet, TokenStorage

logger = logging.getLogger(__name__)


def _error_from_response(response: httpx.Response) -> ApiError:
    if response.status_code >= 500:
        logger.warning("Server error %s on %s", response.status_code, response.request.url)
        return ServerApiError(response.status_code)

    message, code = response.reason_phrase or "Request failed", None
    try:
        body = response.json()
        if isinstance(body, dict):
            message = body.get("error") or body.get("message") or message
            code = body.get("code")
    except ValueError:
        pass

    if response.status_code == 401:
        return AuthApiError(message, status_code=401, code=code)
    return InputApiError(message, status_code=response.status_code, code=code)


class TradeMasterClient:
    """
    API client that keeps the session alive.

    Usage::

        async with TradeMasterClient("http://localhost:8000") as api:
            await api.sign_in("a@b.com", "secret1")
            me = await api.me()
    """

    def __init__(
        self,
        base_url: str,
        storage: Optional[TokenStorage] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self._http_client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = http_client is None
        self.interceptor = AuthInterceptor(self._exchange_refresh_token, storage)

    async def __aenter__(self) -> "TradeMasterClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def is_authenticated(self) -> bool:
        return self.interceptor.is_authenticated

    async def _send(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self._http_client.send(request)
        except httpx.TimeoutException as e:
            raise ServiceUnavailableError(f"Timeout accessing {request.url}") from e
        except httpx.RequestError as e:
            raise ServiceUnavailableError(f"Network error accessing {request.url}: {e!s}") from e

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request with the current access token

        A 401 triggers one refresh and one retry. A second 401 is returned
        to the caller as AuthApiError.
        """
        retried = False
        while True:
            request = self._http_client.build_request(method, url, **kwargs)
            sent_token = self.interceptor.prepare(request)
            response = await self._send(request)
            if not self.interceptor.should_refresh(request, response, retried):
                break
            retried = True
            logger.debug("401 on %s %s; refreshing session", method, url)
            await self.interceptor.refresh(sent_token)

        if response.is_error:
            raise _error_from_response(response)
        return response

    async def _exchange_refresh_token(self, refresh_token: str) -> TokenSet:
        data = (await self.request("POST", "/auth/refresh-token", json={"refreshToken": refresh_token})).json()["data"]
        return TokenSet(access_token=data["accessToken"], refresh_token=data["refreshToken"])

    def _store_session(self, data: Dict[str, Any]) -> None:
        self.interceptor.set_tokens(
            TokenSet(access_token=data["accessToken"], refresh_token=data["refreshToken"])
        )

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        response = await self.request("POST", "/auth/signin", json={"email": email, "password": password})
        data = response.json()["data"]
        self._store_session(data)
        return data["user"]

    async def sign_up(self, firstname: str, lastname: str, email: str, password: str) -> Dict[str, Any]:
        payload = {"firstname": firstname, "lastname": lastname, "email": email, "password": password}
        data = (await self.request("POST", "/auth/signup", json=payload)).json()["data"]
        self._store_session(data)
        return {k: v for k, v in data.items() if k not in ("accessToken", "refreshToken", "expiresIn")}

    async def forgot_password(self, email: str) -> str:
        response = await self.request("POST", "/auth/forgot-password", json={"email": email})
        return response.json()["message"]

    async def reset_password(self, token: str, new_password: str) -> str:
        response = await self.request(
            "POST", "/auth/reset-password", json={"token": token, "newPassword": new_password}
        )
        return response.json()["message"]

    async def verify_token(self) -> Dict[str, Any]:
        return (await self.request("GET", "/auth/verify-token")).json()["data"]

    async def me(self) -> Dict[str, Any]:
        return (await self.request("GET", "/users/me")).json()["data"]

    def sign_out(self) -> None:
        """Tokens are stateless, so signing out is purely local"""
        self.interceptor.sign_out()

    async def close(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()
