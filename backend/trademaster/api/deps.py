"""API dependencies - services, bearer authentication, rate limiting"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from trademaster.core.database import get_db
from trademaster.core.exceptions import (
    InvalidAuthHeaderError,
    RateLimitExceededError,
    TokenMissingError,
)
from trademaster.models.user import User
from trademaster.services.auth_service import AuthService
from trademaster.services.notifier import ResetNotifier, reset_notifier
from trademaster.services.rate_limiter import rate_limiter
from trademaster.services.reset_token_registry import (
    ResetTokenRegistry,
    get_reset_token_registry,
)

BEARER_PREFIX = "Bearer "


def get_reset_notifier() -> ResetNotifier:
    return reset_notifier


def get_auth_service(
    reset_tokens: ResetTokenRegistry = Depends(get_reset_token_registry),
    notifier: ResetNotifier = Depends(get_reset_notifier),
) -> AuthService:
    return AuthService(reset_tokens=reset_tokens, notifier=notifier)


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """
    Extract the token from ``Authorization: Bearer <token>``

    Raises:
        TokenMissingError: No Authorization header
        InvalidAuthHeaderError: Header present but not a bearer credential
    """
    if not authorization:
        raise TokenMissingError()
    if not authorization.startswith(BEARER_PREFIX):
        raise InvalidAuthHeaderError()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise InvalidAuthHeaderError()
    return token


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """
    Get current authenticated user from the access token

    Raises:
        TokenInvalidError: If the token does not verify
        UserNotFoundError: If the user was deleted after issuance
    """
    user, _ = auth.verify(db, token)
    return user


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(key: str, limit: int, window_seconds: int, message: str) -> None:
    if not rate_limiter.allow(key, limit, window_seconds):
        raise RateLimitExceededError(message)
