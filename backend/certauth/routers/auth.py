"""Authentication router."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from certauth.dependencies.auth import get_current_account
from certauth.dependencies.services import (
    get_account_service,
    get_password_auth,
    get_request_context,
)
from certauth.models import Account
from certauth.rate_limiter import limiter
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
    VerifyEmailResponse,
)
from certauth.schemas.common import MessageResponse
from certauth.services.account_service import AccountService, Registration
from certauth.services.activity_logger import RequestContext
from certauth.services.password_auth import PasswordAuthFlow
from certauth.services.session_service import LoginOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def login_response(outcome: LoginOutcome) -> dict:
    """Shape a LoginOutcome for the wire. Shared by password, 2FA and passkey login."""
    if outcome.requires_2fa:
        return {
            "message": outcome.message,
            "requires_2fa": True,
            "temp_token": outcome.temp_token,
        }

    if outcome.user is not None:
        user = outcome.user
    else:
        account = outcome.account
        user = {
            "id": account.id,
            "email": account.email,
            "full_name": account.full_name,
            "role": account.role,
            "has_passkeys": outcome.has_passkeys,
        }
    return {
        "message": outcome.message,
        "token": outcome.token,
        "token_type": "bearer",
        "user": user,
    }


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(
    request: Request,
    data: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Register a student and send the verification email."""
    account = accounts.register(Registration(**data.model_dump()), context)
    logger.info(f"Account registered (pending verification): {account.email}")
    return {
        "message": "Registration successful. Please check your email to verify your account.",
        "user_id": account.id,
        "status": account.status,
    }


@router.get("/verify-email", response_model=VerifyEmailResponse)
def verify_email(
    token: str = Query(""),
    accounts: AccountService = Depends(get_account_service),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Redeem the emailed link. The account then waits for admin approval."""
    accounts.verify_email(token, context)
    return {
        "message": "Email verified successfully! Your account is now pending administrator approval.",
        "next_step": "APPROVAL",
    }


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit("3/minute")
def resend_verification(
    request: Request,
    data: ResendVerificationRequest,
    background_tasks: BackgroundTasks,
    accounts: AccountService = Depends(get_account_service),
) -> dict:
    """Same reply whether or not a link was sent; the email goes out after the response."""
    return {"message": accounts.resend_verification(data.email, background_tasks)}


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
)
@limiter.limit("10/minute")
def login(
    request: Request,
    data: LoginRequest,
    flow: PasswordAuthFlow = Depends(get_password_auth),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Password login. Returns a session, or a temp token when 2FA is on."""
    return login_response(flow.login(data.email, data.password, context))


@router.get("/me", response_model=AccountProfile)
def me(
    account: Account = Depends(get_current_account),
) -> dict:
    """Profile of the signed-in account."""
    return {
        "id": account.id,
        "email": account.email,
        "full_name": account.full_name,
        "student_id_number": account.student_id_number,
        "course_name": account.course_name,
        "year": account.year,
        "role": account.role,
        "status": account.status,
        "two_factor_enabled": account.totp_enabled,
        "has_passkeys": bool(account.passkeys),
        "created_at": account.created_at,
    }


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    accounts: AccountService = Depends(get_account_service),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    accounts.change_password(account, data.old_password, data.new_password, context)
    return {"message": "Password changed successfully."}


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    accounts: AccountService = Depends(get_account_service),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Always the same reply, whether or not the email is registered."""
    return {"message": accounts.forgot_password(data.email, context, background_tasks)}


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    accounts.reset_password(data.token, data.new_password, context)
    return {"message": "Password has been reset. You can now log in with your new password."}
