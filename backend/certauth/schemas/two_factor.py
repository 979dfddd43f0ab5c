"""Schemas for two-factor endpoints."""

from pydantic import Field

from certauth.schemas.common import CamelModel


class TotpSetupResponse(CamelModel):
    """Response for TOTP setup initiation."""

    message: str
    secret: str
    otpauth_url: str
    qr_code: str


class TotpCodeRequest(CamelModel):
    """A current code from the authenticator app."""

    code: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")


class RecoveryCodesResponse(CamelModel):
    """Response with recovery codes. They are only ever shown here."""

    message: str
    recovery_codes: list[str]


class TwoFactorValidateRequest(CamelModel):
    """Second step of login: temp token plus a TOTP or recovery code."""

    temp_token: str = Field(min_length=1)
    code: str = Field(min_length=1, max_length=32)


class TwoFactorDisableRequest(CamelModel):
    password: str = Field(min_length=1, max_length=100)


class TwoFactorStatusResponse(CamelModel):
    enabled: bool
    recovery_codes_remaining: int
