"""User service - credential records"""

from datetime import datetime, timezone
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trademaster.core.exceptions import DuplicateEmailError
from trademaster.core.security import get_password_hash
from trademaster.models.user import User
from trademaster.schemas.user import SignUpRequest

logger = logging.getLogger(__name__)


class UserService:
    """Service for credential records. Soft-deleted users are invisible to lookups."""

    @staticmethod
    def _active(db: Session):
        return db.query(User).filter(User.deleted_at.is_(None))

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get active user by ID"""
        return UserService._active(db).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get active user by exact email"""
        return UserService._active(db).filter(User.email == email).first()

    @staticmethod
    def email_taken(db: Session, email: str) -> bool:
        # Soft-deleted rows still hold the unique email.
        return db.query(User.id).filter(User.email == email).first() is not None

    @staticmethod
    def create_user(db: Session, user_data: SignUpRequest) -> User:
        """
        Create new user

        Args:
            db: Database session
            user_data: Validated sign-up data

        Returns:
            Created user

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        if UserService.email_taken(db, user_data.email):
            raise DuplicateEmailError()

        user = User(
            firstname=user_data.firstname,
            lastname=user_data.lastname,
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent sign-up for the same email.
            db.rollback()
            raise DuplicateEmailError()
        db.refresh(user)

        logger.info("Created user id=%s", user.id)
        return user

    @staticmethod
    def update_password(db: Session, user: User, new_password: str) -> None:
        user.password_hash = get_password_hash(new_password)
        db.commit()
        logger.info("Password updated for user id=%s", user.id)

    @staticmethod
    def soft_delete(db: Session, user: User) -> None:
        """Mark the user deleted; the row is retained"""
        user.deleted_at = datetime.now(timezone.utc)
        db.commit()
        logger.info("Soft-deleted user id=%s", user.id)


# Singleton instance
user_service = UserService()
