"""Schemas for authentication endpoints."""

import re
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from certauth.models import AccountStatus
from certauth.schemas.common import CamelModel
from certauth.services.auth_service import BCRYPT_MAX_BYTES

# e.g. 25TYBSCIT006: admission year, FY/SY/TY, department, roll number
STUDENT_ID_PATTERN = re.compile(r"^\d{2}(FY|SY|TY)[A-Z]{2,10}\d{3}$")


def _validate_password_strength(v: str) -> str:
    """Shared password validation logic."""
    if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")

    errors = []
    if not re.search(r"[a-z]", v):
        errors.append("lowercase letter")
    if not re.search(r"[A-Z]", v):
        errors.append("uppercase letter")
    if not re.search(r"\d", v):
        errors.append("number")

    if errors:
        raise ValueError(f"Password must contain at least one: {', '.join(errors)}")
    return v


class RegisterRequest(CamelModel):
    """Schema for student registration."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    full_name: str | None = Field(None, max_length=255)
    student_id_number: str | None = Field(None, max_length=20)
    course_name: str | None = Field(None, max_length=100)
    year: str | None = Field(None, max_length=10)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _validate_password_strength(v)

    @field_validator("student_id_number")
    @classmethod
    def normalize_student_id(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = re.sub(r"\s+", "", v).upper()
        if not STUDENT_ID_PATTERN.match(v):
            raise ValueError("Student ID must look like 25TYBSCIT006")
        return v

    @field_validator("course_name")
    @classmethod
    def normalize_course(cls, v: str | None) -> str | None:
        return v.strip().upper() if v else None

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return v.strip() or None if v else None


class RegisterResponse(CamelModel):
    message: str
    user_id: str
    status: AccountStatus


class LoginRequest(CamelModel):
    """Schema for login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=100)


class UserInfo(CamelModel):
    """Schema for user info in auth responses."""

    id: str
    email: str
    full_name: str | None = None
    role: str = "student"
    has_passkeys: bool = False


class LoginResponse(CamelModel):
    """Either a session (token + user) or a 2FA prompt (requires2FA + tempToken)."""

    message: str
    token: str | None = None
    token_type: str | None = None
    user: UserInfo | None = None
    requires_2fa: bool | None = Field(None, alias="requires2FA")
    temp_token: str | None = None


class VerifyEmailResponse(CamelModel):
    message: str
    next_step: str = "APPROVAL"


class ResendVerificationRequest(CamelModel):
    """Schema for resending verification email."""

    email: EmailStr


class ChangePasswordRequest(CamelModel):
    """Schema for changing password while logged in."""

    old_password: str = Field(min_length=1, max_length=100)
    new_password: str = Field(min_length=8, max_length=100)

    @field_validator("new_password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _validate_password_strength(v)


class ForgotPasswordRequest(CamelModel):
    """Schema for requesting password reset."""

    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """Schema for resetting password with token."""

    token: str = Field(min_length=1, max_length=200)
    new_password: str = Field(min_length=8, max_length=100)

    @field_validator("new_password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _validate_password_strength(v)


class AccountProfile(CamelModel):
    """The signed-in account as returned by /auth/me."""

    id: str
    email: str
    full_name: str | None = None
    student_id_number: str | None = None
    course_name: str | None = None
    year: str | None = None
    role: str
    status: AccountStatus
    two_factor_enabled: bool = False
    has_passkeys: bool = False
    created_at: datetime | None = None
