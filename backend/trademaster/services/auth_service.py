"""Authentication flows: sign-in, sign-up, password reset, verify, refresh"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Tuple

from prometheus_client import Counter
from sqlalchemy.orm import Session

from trademaster.core.exceptions import (
    AuthenticationError,
    InvalidCredentialsError,
    InvalidResetTokenError,
)
from trademaster.core.security import TokenPair, get_password_hash, verify_password
from trademaster.models.user import User
from trademaster.schemas.user import SignUpRequest
from trademaster.services.notifier import ResetNotifier
from trademaster.services.reset_token_registry import ResetTokenRegistry
from trademaster.services.token_service import token_service
from trademaster.services.user_service import user_service

logger = logging.getLogger(__name__)

AUTH_EVENTS = Counter(
    "trademaster_auth_events_total",
    "Authentication events by outcome",
    ["event", "outcome"],
)

FORGOT_PASSWORD_MESSAGE = "If the email exists, a reset link has been sent"


@lru_cache()
def _dummy_hash() -> str:
    return get_password_hash("timing-equalizer")


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: TokenPair


class AuthService:
    """Composes credential store, tokens and the reset registry"""

    def __init__(self, reset_tokens: ResetTokenRegistry, notifier: ResetNotifier) -> None:
        self.reset_tokens = reset_tokens
        self.notifier = notifier

    def sign_in(self, db: Session, email: str, password: str) -> AuthResult:
        """
        Authenticate by email and password

        Unknown email and wrong password produce the same error. A hash is
        checked in both cases so response time does not tell them apart.

        Raises:
            InvalidCredentialsError: On any mismatch
        """
        user = user_service.get_user_by_email(db, email)
        if user is None:
            verify_password(password, _dummy_hash())
            AUTH_EVENTS.labels("signin", "failure").inc()
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            AUTH_EVENTS.labels("signin", "failure").inc()
            logger.info("Sign-in failed for user id=%s", user.id)
            raise InvalidCredentialsError()

        AUTH_EVENTS.labels("signin", "success").inc()
        logger.info("User signed in: id=%s", user.id)
        return AuthResult(user=user, tokens=token_service.issue_for(user))

    def sign_up(self, db: Session, data: SignUpRequest) -> AuthResult:
        """Create the account and sign it in"""
        user = user_service.create_user(db, data)
        AUTH_EVENTS.labels("signup", "success").inc()
        return AuthResult(user=user, tokens=token_service.issue_for(user))

    def forgot_password(self, db: Session, email: str) -> str:
        """
        Start a password reset

        Returns the same message whether or not the account exists.
        """
        user = user_service.get_user_by_email(db, email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return FORGOT_PASSWORD_MESSAGE

        token = self.reset_tokens.create(user.id)
        self.notifier.send_reset_link(user.email, token)
        AUTH_EVENTS.labels("reset_requested", "success").inc()
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, db: Session, token: str, new_password: str) -> User:
        """
        Spend a reset token and set a new password

        Raises:
            InvalidResetTokenError: Token unknown, already spent or expired,
                or its user no longer exists
        """
        user_id = self.reset_tokens.consume(token)
        if user_id is None:
            AUTH_EVENTS.labels("reset", "failure").inc()
            raise InvalidResetTokenError()

        user = user_service.get_user_by_id(db, user_id)
        if user is None:
            AUTH_EVENTS.labels("reset", "failure").inc()
            raise InvalidResetTokenError()

        user_service.update_password(db, user, new_password)
        revoked = self.reset_tokens.invalidate_all(user.id)
        AUTH_EVENTS.labels("reset", "success").inc()
        logger.info("Password reset for user id=%s (%d other reset tokens revoked)", user.id, revoked)
        return user

    def change_password(self, db: Session, user: User, current_password: str, new_password: str) -> None:
        """Authenticated password change; also voids outstanding reset tokens"""
        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")
        user_service.update_password(db, user, new_password)
        self.reset_tokens.invalidate_all(user.id)

    def delete_account(self, db: Session, user: User) -> None:
        user_service.soft_delete(db, user)
        self.reset_tokens.invalidate_all(user.id)

    def verify(self, db: Session, access_token: str) -> Tuple[User, datetime]:
        return token_service.authenticate_access_token(db, access_token)

    def refresh(self, db: Session, refresh_token: str) -> AuthResult:
        try:
            user, tokens = token_service.rotate(db, refresh_token)
        except AuthenticationError:
            AUTH_EVENTS.labels("refresh", "failure").inc()
            raise
        AUTH_EVENTS.labels("refresh", "success").inc()
        return AuthResult(user=user, tokens=tokens)
