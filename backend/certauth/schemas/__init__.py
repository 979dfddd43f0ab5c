"""Pydantic schemas for API validation."""

from certauth.schemas.admin import (
    AccountDecisionResponse,
    ActivityLogEntry,
    PendingAccount,
    RejectAccountRequest,
)
from certauth.schemas.auth import (
    AccountProfile,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    ResetPasswordRequest,
    UserInfo,
    VerifyEmailResponse,
)
from certauth.schemas.common import CamelModel, ErrorResponse, MessageResponse
from certauth.schemas.passkey import (
    PasskeyInfo,
    PasskeyLoginVerifyRequest,
    PasskeyRegisterResponse,
    PasskeyRegisterVerifyRequest,
)
from certauth.schemas.two_factor import (
    RecoveryCodesResponse,
    TotpCodeRequest,
    TotpSetupResponse,
    TwoFactorDisableRequest,
    TwoFactorStatusResponse,
    TwoFactorValidateRequest,
)

__all__ = [
    "AccountDecisionResponse",
    "AccountProfile",
    "ActivityLogEntry",
    "CamelModel",
    "ChangePasswordRequest",
    "ErrorResponse",
    "ForgotPasswordRequest",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "PasskeyInfo",
    "PasskeyLoginVerifyRequest",
    "PasskeyRegisterResponse",
    "PasskeyRegisterVerifyRequest",
    "PendingAccount",
    "RecoveryCodesResponse",
    "RegisterRequest",
    "RegisterResponse",
    "RejectAccountRequest",
    "ResendVerificationRequest",
    "ResetPasswordRequest",
    "TotpCodeRequest",
    "TotpSetupResponse",
    "TwoFactorDisableRequest",
    "TwoFactorStatusResponse",
    "TwoFactorValidateRequest",
    "UserInfo",
    "VerifyEmailResponse",
]
