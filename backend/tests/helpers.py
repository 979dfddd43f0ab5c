"""Helpers shared by the API tests."""

from unittest.mock import patch

import pyotp
from fastapi.testclient import TestClient

from certauth.models import Account, AccountStatus
from certauth.services.email_service import NotificationResult

DEFAULT_PASSWORD = "Password123"


def register_account(
    test_client: TestClient, email: str, password: str = DEFAULT_PASSWORD, **fields
) -> str:
    """Register through the API and return the emailed verification token."""
    with patch(
        "certauth.services.email_service.EmailService.send_verification_email"
    ) as mock_send:
        mock_send.return_value = NotificationResult(success=True)
        response = test_client.post(
            "/api/auth/register",
            json={"email": email, "password": password, **fields},
        )
    assert response.status_code == 201, response.text
    return mock_send.call_args.args[1]


def set_status(db_session_maker, email: str, status: AccountStatus, role: str | None = None) -> str:
    """Force an account into a status (and optionally a role); returns its id."""
    db = db_session_maker()
    account = db.query(Account).filter(Account.email == email).first()
    account.status = status
    if role:
        account.role = role
    db.commit()
    account_id = account.id
    db.close()
    return account_id


def register_and_activate(
    test_client: TestClient,
    db_session_maker,
    email: str,
    password: str = DEFAULT_PASSWORD,
    role: str | None = None,
) -> str:
    """Register, then mark the account approved. Returns the account id."""
    register_account(test_client, email, password)
    return set_status(db_session_maker, email, AccountStatus.ACTIVE, role)


def login(test_client: TestClient, email: str, password: str = DEFAULT_PASSWORD):
    return test_client.post("/api/auth/login", json={"email": email, "password": password})


def session_headers(
    test_client: TestClient, db_session_maker, email: str, password: str = DEFAULT_PASSWORD
) -> dict:
    """Active account with a bearer header ready to use."""
    register_and_activate(test_client, db_session_maker, email, password)
    token = login(test_client, email, password).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def enable_totp(test_client: TestClient, headers: dict) -> tuple[str, list[str]]:
    """Run 2FA setup end to end. Returns (secret, recovery codes)."""
    secret = test_client.post("/api/auth/2fa/setup", headers=headers).json()["secret"]
    response = test_client.post(
        "/api/auth/2fa/verify-setup",
        json={"code": pyotp.TOTP(secret).now()},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return secret, response.json()["recoveryCodes"]
