"""Auth request and response models with validation."""

import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

PASSWORD_MIN_LENGTH = 8
SPECIAL_CHARACTERS = r"!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?"

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "at least one uppercase letter"),
    (re.compile(r"[a-z]"), "at least one lowercase letter"),
    (re.compile(r"\d"), "at least one number"),
    (re.compile(f"[{SPECIAL_CHARACTERS}]"), "at least one special character"),
)


def password_policy_errors(password: str) -> list[str]:
    """Return every password policy rule the given password breaks."""
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    for pattern, requirement in _PASSWORD_RULES:
        if not pattern.search(password):
            errors.append(f"Password must contain {requirement}")
    return errors


def _enforce_password_policy(password: str) -> str:
    errors = password_policy_errors(password)
    if errors:
        raise ValueError("; ".join(errors))
    return password


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class RegisterRequest(BaseModel):
    """New account credentials.

    Attributes:
        email: Account email, stored lower-cased
        password: Password satisfying the password policy
        confirm_password: Must equal password
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Store and compare emails case-insensitively."""
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        """Apply the password policy."""
        return _enforce_password_policy(v)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        """Ensure the confirmation matches the password."""
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Passwords do not match")
        return v


class LoginRequest(BaseModel):
    """Login credentials."""

    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Store and compare emails case-insensitively."""
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class ChangePasswordRequest(BaseModel):
    """Request to replace the current user's password."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")
    confirm_new_password: str = Field(..., alias="confirmNewPassword")

    @field_validator("current_password")
    @classmethod
    def current_password_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Current password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def new_password_strength(cls, v: str) -> str:
        return _enforce_password_policy(v)

    @field_validator("confirm_new_password")
    @classmethod
    def new_passwords_match(cls, v: str, info: ValidationInfo) -> str:
        new_password = info.data.get("new_password")
        if new_password is not None and v != new_password:
            raise ValueError("Passwords do not match")
        return v


class UserSummary(BaseModel):
    """Compact user representation for API responses."""

    id: UUID
    email: str
    created_at: datetime


class UserData(BaseModel):
    user: UserSummary


class TokenPair(BaseModel):
    """Access and refresh tokens issued together.

    Attributes:
        access_token: JWT for ordinary API access
        refresh_token: JWT accepted only by the refresh endpoint
        expires_in: Access token lifetime in seconds
    """

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
    expires_in: int = Field(..., alias="expiresIn", ge=1)


class AuthData(TokenPair):
    """Payload returned by register and login."""

    user: UserSummary
