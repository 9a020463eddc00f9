"""Custom exception classes for the application"""

from typing import Optional, Dict, Any


class ConfigurationError(RuntimeError):
    """Raised at startup (or first use) when required configuration is missing"""


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.code = code
        super().__init__(self.message)


# Input Errors
class InputError(BaseAPIException):
    """The client must fix the request"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


class InvalidResetTokenError(InputError):
    """Reset token unknown, already used or expired"""
    def __init__(self):
        super().__init__("Invalid or expired reset token")


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    def __init__(self, message: str = "Authentication failed", code: Optional[str] = None):
        super().__init__(message, status_code=401, code=code)


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password; the two are indistinguishable"""
    def __init__(self):
        super().__init__("Invalid email or password")


class TokenMissingError(AuthenticationError):
    def __init__(self):
        super().__init__("Access token required", code="TOKEN_MISSING")


class InvalidAuthHeaderError(AuthenticationError):
    def __init__(self):
        super().__init__("Invalid authorization header format", code="INVALID_AUTH_HEADER")


class TokenInvalidError(AuthenticationError):
    """Token is malformed, expired, or of the wrong kind"""
    def __init__(self):
        super().__init__("Invalid or expired token", code="TOKEN_INVALID")


class InvalidRefreshTokenError(AuthenticationError):
    def __init__(self):
        super().__init__("Invalid or expired refresh token", code="TOKEN_INVALID")


class UserNotFoundError(AuthenticationError):
    """Token subject no longer exists"""
    def __init__(self):
        super().__init__("User not found", code="USER_NOT_FOUND")


# Resource Errors
class ResourceAlreadyExistsError(BaseAPIException):
    """Resource already exists"""
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class DuplicateEmailError(ResourceAlreadyExistsError):
    """Email already registered"""
    def __init__(self):
        super().__init__("A user with this email already exists")


# System Errors
class InternalError(BaseAPIException):
    """Unexpected failure; details are logged, never returned"""
    def __init__(self, message: str = "An unexpected error occurred. Please try again later."):
        super().__init__(message, status_code=500)


class DatabaseError(InternalError):
    """Database operation failed"""
    def __init__(self, message: str = "A database error occurred. Please try again later."):
        super().__init__(message)


class RateLimitExceededError(BaseAPIException):
    """Rate limit exceeded"""
    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message, status_code=429)
