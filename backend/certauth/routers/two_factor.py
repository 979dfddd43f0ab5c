"""Two-factor authentication router."""

import logging

from fastapi import APIRouter, Depends, Request

from certauth.dependencies.auth import get_current_account
from certauth.dependencies.services import get_request_context, get_two_factor_flow
from certauth.models import Account
from certauth.rate_limiter import limiter
from certauth.routers.auth import login_response
from certauth.schemas.auth import LoginResponse
from certauth.schemas.common import MessageResponse
from certauth.schemas.two_factor import (
    RecoveryCodesResponse,
    TotpCodeRequest,
    TotpSetupResponse,
    TwoFactorDisableRequest,
    TwoFactorStatusResponse,
    TwoFactorValidateRequest,
)
from certauth.services.activity_logger import RequestContext
from certauth.services.two_factor import TwoFactorFlow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/2fa", tags=["two-factor"])


@router.post("/setup", response_model=TotpSetupResponse)
def setup(
    account: Account = Depends(get_current_account),
    flow: TwoFactorFlow = Depends(get_two_factor_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Start TOTP setup. 2FA stays off until verify-setup succeeds."""
    result = flow.setup(account, context)
    return {
        "message": "Scan the QR code with your authenticator app, then verify a code.",
        "secret": result.secret,
        "otpauth_url": result.otpauth_url,
        "qr_code": result.qr_code,
    }


@router.post("/verify-setup", response_model=RecoveryCodesResponse)
def verify_setup(
    data: TotpCodeRequest,
    account: Account = Depends(get_current_account),
    flow: TwoFactorFlow = Depends(get_two_factor_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Enable 2FA. The recovery codes in the response cannot be fetched again."""
    codes = flow.verify_setup(account, data.code, context)
    return {
        "message": "Two-factor authentication enabled. Save these recovery codes somewhere safe.",
        "recovery_codes": codes,
    }


@router.post("/validate", response_model=LoginResponse, response_model_exclude_none=True)
@limiter.limit("10/minute")
def validate(
    request: Request,
    data: TwoFactorValidateRequest,
    flow: TwoFactorFlow = Depends(get_two_factor_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Second login step: exchange the temp token and a code for a session."""
    return login_response(flow.validate(data.temp_token, data.code, context))


@router.post("/disable", response_model=MessageResponse)
def disable(
    data: TwoFactorDisableRequest,
    account: Account = Depends(get_current_account),
    flow: TwoFactorFlow = Depends(get_two_factor_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    flow.disable(account, data.password, context)
    return {"message": "Two-factor authentication disabled."}


@router.get("/status", response_model=TwoFactorStatusResponse)
def two_factor_status(
    account: Account = Depends(get_current_account),
    flow: TwoFactorFlow = Depends(get_two_factor_flow),
) -> dict:
    enabled, remaining = flow.status(account)
    return {"enabled": enabled, "recovery_codes_remaining": remaining}


@router.post("/recovery-codes", response_model=RecoveryCodesResponse)
def regenerate_recovery_codes(
    data: TotpCodeRequest,
    account: Account = Depends(get_current_account),
    flow: TwoFactorFlow = Depends(get_two_factor_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Replace all recovery codes. Previous codes stop working."""
    codes = flow.regenerate_recovery_codes(account, data.code, context)
    return {"message": "New recovery codes generated.", "recovery_codes": codes}
