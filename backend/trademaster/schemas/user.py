"""User and authentication schemas"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from trademaster.config import settings

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _required(value: Optional[str], info: ValidationInfo) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{info.field_name} is required")
    return value


def _check_email(value: str) -> str:
    # Stored and matched as given; email is case-sensitive.
    value = value.strip()
    if not EMAIL_RE.match(value):
        raise ValueError("Invalid email format")
    return value


def _check_password_length(value: str) -> str:
    if len(value) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
        )
    return value


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SignInRequest(_Request):
    """Sign-in schema"""
    email: str
    password: str

    @field_validator("email", "password", mode="before")
    @classmethod
    def _present(cls, v, info: ValidationInfo):
        return _required(v, info)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)


class SignUpRequest(_Request):
    """Sign-up schema"""
    firstname: str = Field(..., max_length=100)
    lastname: str = Field(..., max_length=100)
    email: str
    password: str

    @field_validator("firstname", "lastname", "email", "password", mode="before")
    @classmethod
    def _present(cls, v, info: ValidationInfo):
        return _required(v, info)

    @field_validator("firstname", "lastname")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password_length(v)


class RefreshTokenRequest(_Request):
    refresh_token: str = Field(..., alias="refreshToken", max_length=4096)

    @field_validator("refresh_token", mode="before")
    @classmethod
    def _present(cls, v, info: ValidationInfo):
        return _required(v, info)


class ForgotPasswordRequest(_Request):
    email: str

    @field_validator("email", mode="before")
    @classmethod
    def _present(cls, v, info: ValidationInfo):
        return _required(v, info)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)


class ResetPasswordRequest(_Request):
    token: str
    new_password: str = Field(..., alias="newPassword")

    @field_validator("token", "new_password", mode="before")
    @classmethod
    def _present(cls, v, info: ValidationInfo):
        return _required(v, info)

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password_length(v)


class ChangePasswordRequest(_Request):
    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    @field_validator("current_password", "new_password", mode="before")
    @classmethod
    def _present(cls, v, info: ValidationInfo):
        return _required(v, info)

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password_length(v)


class UserResponse(BaseModel):
    """Outward representation of a user. Has no password field."""
    id: int
    firstname: str
    lastname: str
    email: str
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)


class AuthData(BaseModel):
    user: UserResponse
    access_token: str = Field(..., serialization_alias="accessToken")
    refresh_token: str = Field(..., serialization_alias="refreshToken")
    expires_in: int = Field(..., serialization_alias="expiresIn")


class AuthResponse(BaseModel):
    """Sign-in and refresh response"""
    data: AuthData
    message: str


class SignUpData(UserResponse):
    """Created user with the token pair issued alongside it"""
    access_token: str = Field(..., serialization_alias="accessToken")
    refresh_token: str = Field(..., serialization_alias="refreshToken")
    expires_in: int = Field(..., serialization_alias="expiresIn")


class SignUpResponse(BaseModel):
    data: SignUpData
    message: str


class VerifyTokenData(BaseModel):
    user: UserResponse
    valid: bool = True
    expires_at: datetime = Field(..., serialization_alias="expiresAt")


class VerifyTokenResponse(BaseModel):
    data: VerifyTokenData
    message: str


class UserEnvelope(BaseModel):
    data: UserResponse
    message: str
