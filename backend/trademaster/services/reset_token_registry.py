"""Single-use password reset tokens.

Two backends share one interface:

* ``DatabaseResetTokenRegistry`` keeps tokens in ``password_reset_tokens`` and
  is safe across several API processes. Only the SHA-256 digest of a token is
  stored.
* ``InMemoryResetTokenRegistry`` keeps them in a dict behind a lock. It only
  works while a single process serves every request (local runs, tests).

``consume`` is at-most-once on both: the entry is removed by the same
operation that reads it, so two concurrent consumers of one token cannot
both get a user id back.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session, sessionmaker

from trademaster.config import settings
from trademaster.core.security import generate_reset_token
from trademaster.models.password_reset import PasswordResetToken

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC, matching the ``expires_at`` column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class ResetTokenRegistry(ABC):
    """Short-lived, single-use, revocable token store"""

    def __init__(self, ttl: Optional[timedelta] = None, clock: Clock = utcnow) -> None:
        self.ttl = ttl if ttl is not None else timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
        self._clock = clock

    @abstractmethod
    def create(self, user_id: int) -> str:
        """Issue a token for ``user_id`` and purge expired entries."""

    @abstractmethod
    def consume(self, token: str) -> Optional[int]:
        """Return the user id for a live token and remove it, else None."""

    @abstractmethod
    def invalidate_all(self, user_id: int) -> int:
        """Drop every outstanding token for ``user_id``; returns how many."""


@dataclass
class _Entry:
    user_id: int
    expires_at: datetime


class InMemoryResetTokenRegistry(ResetTokenRegistry):
    """Process-local registry. Not shared between server instances."""

    def __init__(self, ttl: Optional[timedelta] = None, clock: Clock = utcnow) -> None:
        super().__init__(ttl, clock)
        self._lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    def create(self, user_id: int) -> str:
        token = generate_reset_token()
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            self._entries[token] = _Entry(user_id=user_id, expires_at=now + self.ttl)
        return token

    def consume(self, token: str) -> Optional[int]:
        if not token:
            return None
        with self._lock:
            entry = self._entries.pop(token, None)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            return None
        return entry.user_id

    def invalidate_all(self, user_id: int) -> int:
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.user_id == user_id]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def _purge_expired(self, now: datetime) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class DatabaseResetTokenRegistry(ResetTokenRegistry):
    """Registry backed by the ``password_reset_tokens`` table.

    Uses its own short sessions so a consumed token stays consumed even if the
    caller's transaction is rolled back afterwards.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        ttl: Optional[timedelta] = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(ttl, clock)
        self._session_factory = session_factory

    def create(self, user_id: int) -> str:
        token = generate_reset_token()
        now = self._clock()
        db: Session = self._session_factory()
        try:
            purged = (
                db.query(PasswordResetToken)
                .filter(PasswordResetToken.expires_at <= now)
                .delete(synchronize_session=False)
            )
            db.add(
                PasswordResetToken(
                    user_id=user_id,
                    token_hash=hash_reset_token(token),
                    expires_at=now + self.ttl,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        if purged:
            logger.debug("Purged %d expired reset tokens", purged)
        return token

    def consume(self, token: str) -> Optional[int]:
        if not token:
            return None
        digest = hash_reset_token(token)
        db: Session = self._session_factory()
        try:
            record = (
                db.query(PasswordResetToken)
                .filter(PasswordResetToken.token_hash == digest)
                .first()
            )
            if record is None:
                return None
            user_id, expires_at = record.user_id, record.expires_at

            # The DELETE row count decides which concurrent consumer wins.
            deleted = (
                db.query(PasswordResetToken)
                .filter(PasswordResetToken.id == record.id)
                .delete(synchronize_session=False)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        if deleted != 1:
            return None
        if expires_at <= self._clock():
            return None
        return user_id

    def invalidate_all(self, user_id: int) -> int:
        db: Session = self._session_factory()
        try:
            count = (
                db.query(PasswordResetToken)
                .filter(PasswordResetToken.user_id == user_id)
                .delete(synchronize_session=False)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        return count


@lru_cache()
def get_reset_token_registry() -> ResetTokenRegistry:
    """Registry selected by RESET_TOKEN_BACKEND"""
    if settings.RESET_TOKEN_BACKEND == "memory":
        logger.warning(
            "Using in-memory reset token registry; tokens are lost on restart "
            "and not shared between server instances."
        )
        return InMemoryResetTokenRegistry()

    from trademaster.core.database import SessionLocal

    return DatabaseResetTokenRegistry(SessionLocal)
