"""Security utilities - password hashing, JWT issuance and verification"""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from trademaster.config import settings
from trademaster.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity carried by an access or refresh token"""
    subject_id: int
    subject_email: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Stored bcrypt hash

    Returns:
        bool: True if password matches. A malformed hash never matches.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt with a fresh salt

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    ).decode('utf-8')


async def hash_password_async(password: str) -> str:
    """Hash in a worker thread so the event loop is not blocked"""
    return await asyncio.to_thread(get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)


def _signing_key(kind: str) -> str:
    key = settings.JWT_SECRET if kind == ACCESS else settings.JWT_REFRESH_SECRET
    if not key:
        name = "JWT_SECRET" if kind == ACCESS else "JWT_REFRESH_SECRET"
        raise ConfigurationError(f"{name} is not set; refusing to use a default secret")
    return key


def _default_lifetime(kind: str) -> timedelta:
    if kind == ACCESS:
        return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


def _create_token(
    kind: str,
    user_id: int,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else _default_lifetime(kind))

    to_encode: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "typ": kind,
        "iat": now,
        "exp": expire,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(to_encode, _signing_key(kind), algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: int, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token

    Args:
        user_id: Subject id
        email: Subject email
        expires_delta: Token lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        str: Encoded JWT token
    """
    return _create_token(ACCESS, user_id, email, expires_delta)


def create_refresh_token(user_id: int, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT refresh token, signed with the refresh secret"""
    return _create_token(REFRESH, user_id, email, expires_delta)


def issue_token_pair(user_id: int, email: str) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id, email),
        refresh_token=create_refresh_token(user_id, email),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _verify_token(token: str, kind: str) -> Optional[TokenClaims]:
    # Zero leeway: a token is accepted up to and including its exp second.
    key = _signing_key(kind)
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"leeway": 0},
        )
    except JWTError as exc:
        logger.debug("%s token rejected: %s", kind, exc)
        return None

    if payload.get("typ") != kind:
        return None

    try:
        subject_id = int(payload["sub"])
        email = str(payload["email"])
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError):
        return None

    return TokenClaims(subject_id=subject_id, subject_email=email, expires_at=expires_at)


def verify_access_token(token: str) -> Optional[TokenClaims]:
    """
    Verify an access token

    Returns:
        TokenClaims, or None when the signature, expiry, issuer, audience
        or token kind does not check out
    """
    return _verify_token(token, ACCESS)


def verify_refresh_token(token: str) -> Optional[TokenClaims]:
    """Verify a refresh token; same contract as verify_access_token"""
    return _verify_token(token, REFRESH)


def generate_reset_token() -> str:
    """256-bit opaque token for password resets"""
    return secrets.token_hex(32)
