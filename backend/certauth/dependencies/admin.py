"""Admin authentication dependency."""

from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.orm import Session

from certauth.config import settings
from certauth.database import get_db
from certauth.dependencies.auth import get_current_claims
from certauth.errors import AuthorizationError
from certauth.models import AccountRole, AccountStatus
from certauth.services.password_auth import BREAK_GLASS_SUBJECT
from certauth.services.repositories import AccountRepository


@dataclass(frozen=True)
class AdminPrincipal:
    id: str
    email: str


def require_admin(
    claims: dict = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> AdminPrincipal:
    """Require admin privileges.

    Break-glass sessions qualify only while break-glass login is enabled.

    Raises:
        AuthorizationError: If the caller is not an active admin.
    """
    if claims["sub"] == BREAK_GLASS_SUBJECT:
        if settings.break_glass_enabled and claims.get("role") == AccountRole.ADMIN:
            return AdminPrincipal(id=BREAK_GLASS_SUBJECT, email=claims.get("email", ""))
        raise AuthorizationError("Admin access required.")

    account = AccountRepository(db).find_by_id(claims["sub"])
    if account is None or not account.is_admin or account.status != AccountStatus.ACTIVE:
        raise AuthorizationError("Admin access required.")
    return AdminPrincipal(id=account.id, email=account.email)
