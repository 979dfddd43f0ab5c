"""Schemas for passkey endpoints."""

from datetime import datetime
from typing import Any

from pydantic import Field

from certauth.schemas.common import CamelModel


class PasskeyRegisterVerifyRequest(CamelModel):
    """Browser attestation (PublicKeyCredential JSON) and an optional label."""

    attestation_response: dict[str, Any]
    friendly_name: str | None = Field(None, max_length=100)


class PasskeyLoginVerifyRequest(CamelModel):
    """Browser assertion (PublicKeyCredential JSON)."""

    assertion_response: dict[str, Any]


class PasskeyRegisterResponse(CamelModel):
    message: str
    credential_id: str


class PasskeyInfo(CamelModel):
    id: str
    friendly_name: str
    device_type: str
    backed_up: bool
    transports: list[str] = []
    created_at: datetime | None = None
    last_used_at: datetime | None = None
