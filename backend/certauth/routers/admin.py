"""Admin router for reviewing student registrations and the activity log."""

import logging

from fastapi import APIRouter, Depends, Query

from certauth.dependencies.admin import AdminPrincipal, require_admin
from certauth.dependencies.services import (
    get_account_service,
    get_activity_logger,
    get_request_context,
)
from certauth.schemas.admin import (
    AccountDecisionResponse,
    ActivityLogEntry,
    PendingAccount,
    RejectAccountRequest,
)
from certauth.services.account_service import AccountService
from certauth.services.activity_logger import ActivityLogger, RequestContext
from certauth.services.repositories.activity_log_repository import DEFAULT_RECENT_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/pending-accounts", response_model=list[PendingAccount])
def list_pending_accounts(
    admin: AdminPrincipal = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
) -> list:
    """Accounts that verified their email and await approval, oldest first."""
    return accounts.list_pending()


@router.post("/accounts/{account_id}/approve", response_model=AccountDecisionResponse)
def approve_account(
    account_id: str,
    admin: AdminPrincipal = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    account = accounts.approve(account_id, admin.id, context)
    logger.info(f"Admin {admin.email} approved account {account.email}")
    return {"message": "Account approved.", "user_id": account.id, "status": account.status}


@router.post("/accounts/{account_id}/reject", response_model=AccountDecisionResponse)
def reject_account(
    account_id: str,
    data: RejectAccountRequest | None = None,
    admin: AdminPrincipal = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    reason = data.reason if data else None
    account = accounts.reject(account_id, admin.id, reason, context)
    logger.info(f"Admin {admin.email} rejected account {account.email}")
    return {"message": "Account rejected.", "user_id": account.id, "status": account.status}


@router.get("/logs", response_model=list[ActivityLogEntry])
def list_activity_logs(
    limit: int = Query(DEFAULT_RECENT_LIMIT, ge=1, le=500),
    admin: AdminPrincipal = Depends(require_admin),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> list:
    """Most recent activity, newest first."""
    return activity.recent(limit)
