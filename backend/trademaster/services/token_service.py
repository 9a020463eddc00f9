"""Access/refresh token issuance and rotation service."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Tuple

from sqlalchemy.orm import Session

from trademaster.core.exceptions import (
    InvalidRefreshTokenError,
    TokenInvalidError,
    UserNotFoundError,
)
from trademaster.core.security import (
    TokenPair,
    issue_token_pair,
    verify_access_token,
    verify_refresh_token,
)
from trademaster.models.user import User
from trademaster.services.user_service import user_service

logger = logging.getLogger(__name__)


class TokenService:
    """Stateless token lifecycle. Nothing is persisted; validity is signature plus claims."""

    @staticmethod
    def issue_for(user: User) -> TokenPair:
        return issue_token_pair(user.id, user.email)

    @staticmethod
    def authenticate_access_token(db: Session, token: str) -> Tuple[User, datetime]:
        """
        Resolve an access token to a live user

        Raises:
            TokenInvalidError: Signature, expiry, audience or kind check failed
            UserNotFoundError: Subject was deleted after the token was issued
        """
        claims = verify_access_token(token)
        if claims is None:
            raise TokenInvalidError()

        user = user_service.get_user_by_id(db, claims.subject_id)
        if user is None:
            raise UserNotFoundError()
        return user, claims.expires_at

    @staticmethod
    def rotate(db: Session, refresh_token: str) -> Tuple[User, TokenPair]:
        """
        Exchange a refresh token for a new access and refresh pair

        Raises:
            InvalidRefreshTokenError: Token rejected or its subject is gone
        """
        claims = verify_refresh_token(refresh_token)
        if claims is None:
            raise InvalidRefreshTokenError()

        user = user_service.get_user_by_id(db, claims.subject_id)
        if user is None:
            logger.info("Refresh rejected: subject %s no longer exists", claims.subject_id)
            raise InvalidRefreshTokenError()

        return user, TokenService.issue_for(user)


token_service = TokenService()
