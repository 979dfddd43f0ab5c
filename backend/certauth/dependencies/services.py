"""Wiring for flows and the process-wide ephemeral stores."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from certauth.config import settings
from certauth.database import get_db
from certauth.services.account_service import AccountService
from certauth.services.activity_logger import ActivityLogger, RequestContext
from certauth.services.challenge_store import ChallengeStore
from certauth.services.ephemeral_store import build_store
from certauth.services.lockout_service import LockoutTracker
from certauth.services.passkey_flow import PasskeyFlow
from certauth.services.password_auth import PasswordAuthFlow
from certauth.services.reset_token_store import ResetTokenStore
from certauth.services.two_factor import TwoFactorFlow

# Shared across requests; swept from the application lifespan
lockout_tracker = LockoutTracker(
    build_store("lockout"),
    max_attempts=settings.lockout_max_attempts,
    lock_duration_seconds=settings.lockout_duration_minutes * 60,
    idle_window_seconds=settings.lockout_idle_eviction_minutes * 60,
)
challenge_store = ChallengeStore(build_store("challenge"), ttl_seconds=settings.challenge_ttl_seconds)
reset_token_store = ResetTokenStore(
    build_store("reset"), ttl_seconds=settings.reset_token_expire_minutes * 60
)


def get_lockout_tracker() -> LockoutTracker:
    return lockout_tracker


def get_challenge_store() -> ChallengeStore:
    return challenge_store


def get_reset_token_store() -> ResetTokenStore:
    return reset_token_store


def get_request_context(request: Request) -> RequestContext:
    return RequestContext.from_request(request)


def get_activity_logger(db: Session = Depends(get_db)) -> ActivityLogger:
    return ActivityLogger(db)


def get_password_auth(
    db: Session = Depends(get_db),
    lockout: LockoutTracker = Depends(get_lockout_tracker),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> PasswordAuthFlow:
    return PasswordAuthFlow(db, lockout, activity)


def get_account_service(
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
    lockout: LockoutTracker = Depends(get_lockout_tracker),
    resets: ResetTokenStore = Depends(get_reset_token_store),
) -> AccountService:
    return AccountService(db, activity, lockout, resets)


def get_two_factor_flow(
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
    lockout: LockoutTracker = Depends(get_lockout_tracker),
) -> TwoFactorFlow:
    return TwoFactorFlow(db, activity, lockout)


def get_passkey_flow(
    db: Session = Depends(get_db),
    challenges: ChallengeStore = Depends(get_challenge_store),
    lockout: LockoutTracker = Depends(get_lockout_tracker),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> PasskeyFlow:
    return PasskeyFlow(db, challenges, lockout, activity)
