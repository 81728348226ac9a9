"""
Auth Schemas

Accounts are students or instructors when self-registered; admins are
provisioned out of band.
"""

import re
from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from lms_quiz.schemas.base import CamelModel

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
)


# ============================================================
# Requests
# ============================================================

class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    full_name: str = Field(..., min_length=2, max_length=100)
    role: Literal["student", "instructor"] = "student"

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(v)]
        if missing:
            raise ValueError(f"Password must contain {', '.join(missing)}")
        return v

    @field_validator("full_name")
    @classmethod
    def collapse_whitespace(cls, v: str) -> str:
        return " ".join(v.split())


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(CamelModel):
    refresh_token: str


# ============================================================
# Responses
# ============================================================

class UserResponse(CamelModel):
    id: UUID
    email: str
    full_name: str
    role: Literal["student", "instructor", "admin"]
    avatar_url: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class TokenRefreshResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Seconds until the access token expires")


class TokenResponse(TokenRefreshResponse):
    refresh_token: str
    user: UserResponse
