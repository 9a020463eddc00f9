"""Python client for the TradeMaster API"""

from trademaster.client.client import TradeMasterClient
from trademaster.client.errors import (
    ApiError,
    AuthApiError,
    InputApiError,
    ServerApiError,
    ServiceUnavailableError,
    SessionExpiredError,
)
from trademaster.client.interceptor import AuthInterceptor
from trademaster.client.storage import FileTokenStorage, MemoryTokenStorage, TokenSet, TokenStorage

__all__ = [
    "TradeMasterClient", "AuthInterceptor",
    "TokenSet", "TokenStorage", "MemoryTokenStorage", "FileTokenStorage",
    "ApiError", "AuthApiError", "InputApiError", "ServerApiError",
    "ServiceUnavailableError", "SessionExpiredError",
]
