"""Schemas for admin account review endpoints."""

from datetime import datetime

from pydantic import Field

from certauth.models import AccountStatus
from certauth.schemas.common import CamelModel


class PendingAccount(CamelModel):
    """Account awaiting admin review."""

    id: str
    email: str
    full_name: str | None = None
    student_id_number: str | None = None
    course_name: str | None = None
    year: str | None = None
    status: AccountStatus
    created_at: datetime | None = None


class RejectAccountRequest(CamelModel):
    reason: str | None = Field(None, max_length=500)


class AccountDecisionResponse(CamelModel):
    message: str
    user_id: str
    status: AccountStatus


class ActivityLogEntry(CamelModel):
    """One activity log row as shown in the admin console."""

    id: str
    action: str
    details: str | None = None
    ip_address: str | None = None
    created_at: datetime | None = None
    user: str  # who the entry concerns
    auth_method: str | None = None  # "passkey" | "password" for login events
