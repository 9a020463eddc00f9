"""Pydantic schemas for API validation"""

from trademaster.schemas.user import (
    SignInRequest,
    SignUpRequest,
    RefreshTokenRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    UserResponse,
    AuthData,
    AuthResponse,
    SignUpData,
    SignUpResponse,
    VerifyTokenData,
    VerifyTokenResponse,
    UserEnvelope,
)
from trademaster.schemas.response import MessageResponse, ErrorResponse, HealthResponse

__all__ = [
    "SignInRequest", "SignUpRequest", "RefreshTokenRequest", "ForgotPasswordRequest",
    "ResetPasswordRequest", "ChangePasswordRequest",
    "UserResponse", "AuthData", "AuthResponse", "SignUpData", "SignUpResponse",
    "VerifyTokenData", "VerifyTokenResponse", "UserEnvelope",
    "MessageResponse", "ErrorResponse", "HealthResponse",
]
