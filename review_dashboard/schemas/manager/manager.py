"""
Manager profile and authentication schemas.
"""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from review_dashboard.schemas.common.base import BaseCreateSchema, BaseResponseSchema

__all__ = [
    "ManagerProfile",
    "LoginRequest",
    "SetupRequest",
    "TokenResponse",
]


class ManagerProfile(BaseResponseSchema):
    """Manager as exposed by the API; never carries the password hash."""

    id: int
    name: str
    email: EmailStr
    is_first_user: bool = False
    created_at: datetime


class LoginRequest(BaseCreateSchema):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class SetupRequest(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    # minimum length is SecuritySettings.PASSWORD_MIN_LENGTH, checked by the route
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not any(c.isalpha() for c in v) or not any(c.isdigit() for c in v):
            raise ValueError("Password must contain letters and digits")
        return v


class TokenResponse(BaseResponseSchema):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    manager: ManagerProfile
