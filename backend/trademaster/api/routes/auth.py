"""Authentication routes"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from trademaster.api.deps import (
    client_ip,
    enforce_rate_limit,
    get_auth_service,
    get_bearer_token,
)
from trademaster.config import settings
from trademaster.core.database import get_db
from trademaster.schemas.response import ErrorResponse, MessageResponse
from trademaster.schemas.user import (
    AuthData,
    AuthResponse,
    ForgotPasswordRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpData,
    SignUpRequest,
    SignUpResponse,
    UserResponse,
    VerifyTokenData,
    VerifyTokenResponse,
)
from trademaster.services.auth_service import AuthResult, AuthService

router = APIRouter()

_errors = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
}


def _auth_data(result: AuthResult) -> AuthData:
    return AuthData(
        user=UserResponse.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.tokens.expires_in,
    )


@router.post("/signin", response_model=AuthResponse, responses=_errors)
def signin(
    credentials: SignInRequest,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Sign in with email and password

    Returns the user together with a fresh access and refresh token.
    """
    ip = client_ip(request)
    enforce_rate_limit(
        f"signin:min:{ip}", settings.SIGNIN_RATE_LIMIT_PER_MINUTE, 60,
        "Too many sign-in attempts. Please wait a minute.",
    )
    enforce_rate_limit(
        f"signin:hour:{ip}", settings.SIGNIN_RATE_LIMIT_PER_HOUR, 3600,
        "Too many sign-in attempts. Please try again later.",
    )

    result = auth.sign_in(db, credentials.email, credentials.password)
    return AuthResponse(data=_auth_data(result), message="Signin successful")


@router.post(
    "/signup",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_errors, 409: {"model": ErrorResponse}},
)
def signup(
    user_data: SignUpRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Create an account. Tokens are issued right away, as on sign-in."""
    result = auth.sign_up(db, user_data)
    user = UserResponse.model_validate(result.user)
    data = SignUpData(
        **user.model_dump(),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.tokens.expires_in,
    )
    return SignUpResponse(data=data, message="User created successfully")


@router.post("/refresh-token", response_model=AuthResponse, responses=_errors)
def refresh_token(
    req: RefreshTokenRequest,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Exchange a refresh token for a new access and refresh pair"""
    enforce_rate_limit(
        f"refresh:min:{client_ip(request)}", settings.REFRESH_RATE_LIMIT_PER_MINUTE, 60,
        "Too many refresh attempts. Slow down.",
    )
    result = auth.refresh(db, req.refresh_token)
    return AuthResponse(data=_auth_data(result), message="Token refreshed successfully")


@router.get("/verify-token", response_model=VerifyTokenResponse, responses=_errors)
def verify_token(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Check a bearer access token and that its user still exists"""
    user, expires_at = auth.verify(db, token)
    return VerifyTokenResponse(
        data=VerifyTokenData(user=UserResponse.model_validate(user), valid=True, expires_at=expires_at),
        message="Token is valid",
    )


@router.post("/forgot-password", response_model=MessageResponse, responses=_errors)
def forgot_password(
    req: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Always answers 200 with the same message; existence is never revealed"""
    enforce_rate_limit(
        f"forgot:hour:{client_ip(request)}", settings.FORGOT_PASSWORD_RATE_LIMIT_PER_HOUR, 3600,
        "Too many password reset requests. Please try again later.",
    )
    return MessageResponse(message=auth.forgot_password(db, req.email))


@router.post("/reset-password", response_model=MessageResponse, responses=_errors)
def reset_password(
    req: ResetPasswordRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    auth.reset_password(db, req.token, req.new_password)
    return MessageResponse(message="Password has been reset successfully")
