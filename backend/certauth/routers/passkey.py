"""Passkey (WebAuthn) router."""

import logging

from fastapi import APIRouter, Depends, Request, status

from certauth.dependencies.auth import get_current_account
from certauth.dependencies.services import get_passkey_flow, get_request_context
from certauth.models import Account
from certauth.rate_limiter import limiter
from certauth.routers.auth import login_response
from certauth.schemas.auth import LoginResponse
from certauth.schemas.common import MessageResponse
from certauth.schemas.passkey import (
    PasskeyInfo,
    PasskeyLoginVerifyRequest,
    PasskeyRegisterResponse,
    PasskeyRegisterVerifyRequest,
)
from certauth.services.activity_logger import RequestContext
from certauth.services.passkey_flow import PasskeyFlow
from certauth.services.passkey_service import PasskeyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/passkey", tags=["passkey"])


def _request_origin(request: Request) -> str | None:
    return PasskeyService.origin_from_headers(
        request.headers.get("Origin"), request.headers.get("Referer")
    )


@router.post("/register-options")
def register_options(
    account: Account = Depends(get_current_account),
    flow: PasskeyFlow = Depends(get_passkey_flow),
) -> dict:
    """PublicKeyCredentialCreationOptions for navigator.credentials.create()."""
    return flow.registration_options(account)


@router.post(
    "/register-verify",
    response_model=PasskeyRegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_verify(
    request: Request,
    data: PasskeyRegisterVerifyRequest,
    account: Account = Depends(get_current_account),
    flow: PasskeyFlow = Depends(get_passkey_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    credential = flow.verify_registration(
        account, data.attestation_response, data.friendly_name, _request_origin(request), context
    )
    return {"message": "Passkey registered successfully.", "credential_id": credential.id}


@router.post("/login-options")
@limiter.limit("10/minute")
def login_options(
    request: Request,
    flow: PasskeyFlow = Depends(get_passkey_flow),
) -> dict:
    """PublicKeyCredentialRequestOptions for a discoverable-credential login."""
    return flow.login_options()


@router.post("/login-verify", response_model=LoginResponse, response_model_exclude_none=True)
@limiter.limit("10/minute")
def login_verify(
    request: Request,
    data: PasskeyLoginVerifyRequest,
    flow: PasskeyFlow = Depends(get_passkey_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    outcome = flow.verify_login(data.assertion_response, _request_origin(request), context)
    return login_response(outcome)


@router.get("/list", response_model=list[PasskeyInfo])
def list_passkeys(
    account: Account = Depends(get_current_account),
    flow: PasskeyFlow = Depends(get_passkey_flow),
) -> list:
    return flow.list_credentials(account)


@router.delete("/{credential_id}", response_model=MessageResponse)
def delete_passkey(
    credential_id: str,
    account: Account = Depends(get_current_account),
    flow: PasskeyFlow = Depends(get_passkey_flow),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    flow.delete_credential(account, credential_id, context)
    return {"message": "Passkey deleted successfully."}
