"""Bearer-token handling for outgoing requests.

The interceptor attaches the current access token, and on a 401 exchanges the
refresh token for a new pair exactly once per request. Concurrent 401s share
one in-flight refresh. Signing out while a refresh is in flight wins: the late
refresh result is dropped.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from trademaster.client.errors import ApiError, AuthApiError, InputApiError, SessionExpiredError
from trademaster.client.storage import MemoryTokenStorage, TokenSet, TokenStorage

logger = logging.getLogger(__name__)

# Endpoints that never carry a bearer token and never trigger a refresh.
UNAUTHENTICATED_PATHS = (
    "/auth/signin",
    "/auth/signup",
    "/auth/forgot-password",
    "/auth/reset-password",
    "/auth/refresh-token",
)

RefreshCall = Callable[[str], Awaitable[TokenSet]]


def is_unauthenticated(path: str) -> bool:
    return any(path.rstrip("/").endswith(p) for p in UNAUTHENTICATED_PATHS)


def refresh_token_rejected(error: ApiError) -> bool:
    """True when the server refused the refresh token itself.

    A 429 or another 4xx leaves the session in place.
    """
    if error.status_code == 401:
        return True
    if error.status_code == 400:
        return error.code == "TOKEN_INVALID" or "token" in (error.message or "").lower()
    return False


class AuthInterceptor:
    def __init__(self, refresh_call: RefreshCall, storage: Optional[TokenStorage] = None) -> None:
        self._refresh_call = refresh_call
        self._storage = storage if storage is not None else MemoryTokenStorage()
        self._tokens = self._storage.load()
        self._generation = 0
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def tokens(self) -> Optional[TokenSet]:
        return self._tokens

    @property
    def access_token(self) -> Optional[str]:
        return self._tokens.access_token if self._tokens else None

    @property
    def is_authenticated(self) -> bool:
        return self._tokens is not None

    def set_tokens(self, tokens: TokenSet) -> None:
        self._tokens = tokens
        self._storage.save(tokens)

    def sign_out(self) -> None:
        """Forget the session. Any refresh still in flight is ignored when it lands."""
        self._generation += 1
        self._tokens = None
        self._refresh_task = None
        self._storage.clear()

    def prepare(self, request: httpx.Request) -> Optional[str]:
        """Attach the bearer header; returns the token that was attached"""
        if is_unauthenticated(request.url.path):
            return None
        token = self.access_token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        return token

    def should_refresh(self, request: httpx.Request, response: httpx.Response, retried: bool) -> bool:
        return (
            response.status_code == 401
            and not retried
            and not is_unauthenticated(request.url.path)
        )

    async def refresh(self, stale_token: Optional[str] = None) -> TokenSet:
        """
        Get a usable token pair after a 401

        ``stale_token`` is the access token the failed request carried. If the
        session already moved past it, no new exchange is made.

        Raises:
            SessionExpiredError: No refresh token, or the server rejected it
            ApiError: Any other failed exchange; the stored tokens are kept
        """
        current = self._tokens
        if current is not None and stale_token and current.access_token != stale_token:
            return current

        if self._refresh_task is None:
            task = asyncio.ensure_future(self._run_refresh(self._generation))
            task.add_done_callback(self._forget_task)
            self._refresh_task = task
        # Shielded so one cancelled waiter does not cancel the shared exchange.
        return await asyncio.shield(self._refresh_task)

    def _forget_task(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _run_refresh(self, generation: int) -> TokenSet:
        tokens = self._tokens
        if tokens is None or not tokens.refresh_token:
            logger.info("No refresh token held; ending session")
            self.sign_out()
            raise SessionExpiredError()

        try:
            new_tokens = await self._refresh_call(tokens.refresh_token)
        except (AuthApiError, InputApiError) as exc:
            if not refresh_token_rejected(exc):
                logger.warning("Refresh failed (%s); keeping session", exc.message)
                raise
            logger.info("Refresh rejected (%s); ending session", exc.message)
            if generation == self._generation:
                self.sign_out()
            raise SessionExpiredError() from exc

        if generation != self._generation:
            logger.info("Discarding refresh result that arrived after sign-out")
            raise SessionExpiredError()

        self.set_tokens(new_tokens)
        logger.debug("Access token refreshed")
        return new_tokens
