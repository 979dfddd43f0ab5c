"""Service for logging account and admin activity."""

import json
import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from certauth.models.account import Account
from certauth.models.activity_log import ActivityLog
from certauth.services.repositories.activity_log_repository import (
    DEFAULT_RECENT_LIMIT,
    ActivityLogRepository,
)

logger = logging.getLogger(__name__)


class ActivityAction:
    """Constants for activity log actions."""

    REGISTER = "REGISTER"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    BREAK_GLASS_LOGIN = "BREAK_GLASS_LOGIN"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET = "PASSWORD_RESET"
    TWO_FACTOR_SETUP = "2FA_SETUP"
    TWO_FACTOR_ENABLED = "2FA_ENABLED"
    TWO_FACTOR_DISABLED = "2FA_DISABLED"
    TWO_FACTOR_FAILED = "2FA_FAILED"
    RECOVERY_CODE_USED = "RECOVERY_CODE_USED"
    RECOVERY_CODES_REGENERATED = "RECOVERY_CODES_REGENERATED"
    PASSKEY_REGISTERED = "PASSKEY_REGISTERED"
    PASSKEY_LOGIN = "PASSKEY_LOGIN"
    PASSKEY_REJECTED = "PASSKEY_REJECTED"
    PASSKEY_DELETED = "PASSKEY_DELETED"
    ACCOUNT_APPROVED = "ACCOUNT_APPROVED"
    ACCOUNT_REJECTED = "ACCOUNT_REJECTED"


@dataclass(frozen=True)
class RequestContext:
    """Client address and agent of the request that triggered an event."""

    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request: Request | None) -> "RequestContext":
        """Extract IP address and user agent from a FastAPI request."""
        if request is None:
            return cls()

        # Get IP from proxy headers (if behind proxy) or client host
        ip_address = None
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            ip_address = forwarded_for.split(",")[0].strip()
        elif request.headers.get("X-Real-IP"):
            ip_address = request.headers["X-Real-IP"].strip()
        elif request.client:
            ip_address = request.client.host

        if ip_address in ("::1", "::ffff:127.0.0.1"):
            ip_address = "127.0.0.1"

        user_agent = request.headers.get("User-Agent", "")[:500] or None
        return cls(ip_address=ip_address, user_agent=user_agent)


class ActivityLogger:
    """Writes activity entries and reads them back for admins.

    Write failures are logged and never raised.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def log(
        self,
        action: str,
        *,
        user_id: str | None = None,
        admin_id: str | None = None,
        details: str | dict | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """Record an event in its own commit, after the caller's own commit."""
        context = context or RequestContext()
        if isinstance(details, dict):
            details = json.dumps(details)

        try:
            self._db.add(
                ActivityLog(
                    user_id=user_id,
                    admin_id=admin_id,
                    action=action,
                    details=details,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                )
            )
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            logger.exception(f"Failed to write activity log entry {action}")
            return

        # Also log to application logger for monitoring
        actor = f"admin_id={admin_id}" if admin_id else f"user_id={user_id}"
        logger.info(f"Activity: {action} | {actor} | ip={context.ip_address}")

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[dict]:
        """Latest entries for the admin console, newest first."""
        return [
            {
                "id": entry.id,
                "action": entry.action,
                "details": entry.details,
                "ip_address": entry.ip_address,
                "created_at": entry.created_at,
                "user": actor_label(entry, subject, admin),
                "auth_method": auth_method_for(entry.action),
            }
            for entry, subject, admin in ActivityLogRepository(self._db).find_recent(limit)
        ]


def actor_label(entry: ActivityLog, subject: Account | None, admin: Account | None) -> str:
    """Who an entry is about, as shown in the admin console."""
    if subject is not None:
        return f"{subject.full_name} ({subject.email})" if subject.full_name else subject.email
    if admin is not None:
        return f"Admin: {admin.email}"
    if entry.admin_id:
        return f"Admin: {entry.admin_id}"
    return "System/Guest"


def auth_method_for(action: str) -> str | None:
    if "PASSKEY" in action:
        return "passkey"
    if action == ActivityAction.LOGIN:
        return "password"
    return None
