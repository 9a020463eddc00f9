"""Errors raised by the API client"""

from typing import Optional


class ApiError(Exception):
    """Non-success answer from the API, or no answer at all"""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class InputApiError(ApiError):
    """4xx the caller can fix; show the message in the form"""


class AuthApiError(ApiError):
    """401: credentials or token rejected"""


class SessionExpiredError(AuthApiError):
    """Refresh was impossible or rejected; the session has been cleared"""

    def __init__(self, message: str = "Your session has expired. Please sign in again."):
        super().__init__(message, status_code=401, code="SESSION_EXPIRED")


class ServerApiError(ApiError):
    """5xx; details stay on the server"""

    def __init__(self, status_code: int):
        super().__init__("Something went wrong. Please try again.", status_code=status_code)


class ServiceUnavailableError(ApiError):
    """Network failure or timeout before any response"""
