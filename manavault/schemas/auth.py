"""
Pydantic schemas for authentication endpoints (register, login and refresh).

Password strength beyond the minimum length (upper, lower, digit) is
checked by a validator so the API returns a 422 before any hashing runs.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from manavault.schemas.user import PublicUserView


class UserRegisterRequest(BaseModel):
    """Request body for POST /auth/register."""
    email: EmailStr
    password: str = Field(min_length=8)
    username: str | None = Field(default=None, max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not (
            re.search(r"[A-Z]", value)
            and re.search(r"[a-z]", value)
            and re.search(r"[0-9]", value)
        ):
            raise ValueError(
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number"
            )
        return value


class UserLoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Response body for register/login — the user view plus the bearer token."""
    user: PublicUserView
    token: str
    token_type: str = "bearer"


class TokenResponse(BaseModel):
    """Response body for POST /auth/refresh."""
    token: str
    token_type: str = "bearer"
