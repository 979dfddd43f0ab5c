"""Activity log data access layer."""

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from certauth.models import Account, ActivityLog

DEFAULT_RECENT_LIMIT = 100


class ActivityLogRepository:
    """Read access to the activity log for the admin console."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_recent(
        self, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[tuple[ActivityLog, Account | None, Account | None]]:
        """Newest entries first, each with its subject account and acting admin if known."""
        subject = aliased(Account)
        admin = aliased(Account)
        rows = self._db.execute(
            select(ActivityLog, subject, admin)
            .outerjoin(subject, ActivityLog.user_id == subject.id)
            .outerjoin(admin, ActivityLog.admin_id == admin.id)
            .order_by(ActivityLog.created_at.desc())
            .limit(limit)
        ).all()
        return [tuple(row) for row in rows]
