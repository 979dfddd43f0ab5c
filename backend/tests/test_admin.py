"""Tests for admin account review and the activity log view."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from certauth.models import AccountRole, AccountStatus, ActivityLog
from tests.helpers import login, register_account, register_and_activate, set_status


def admin_headers(test_client, db_session_maker, email="admin@x.com") -> dict:
    register_and_activate(test_client, db_session_maker, email, role=AccountRole.ADMIN)
    token = login(test_client, email).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def pending_account(test_client, db_session_maker, email="student@x.com") -> str:
    register_account(test_client, email, fullName="Ada Student")
    return set_status(db_session_maker, email, AccountStatus.PENDING_APPROVAL)


def add_log(db_session_maker, action: str, created_at: datetime, **fields) -> None:
    db = db_session_maker()
    db.add(ActivityLog(action=action, created_at=created_at, **fields))
    db.commit()
    db.close()


class TestPendingAccounts:
    def test_lists_only_pending_approval(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        pending_id = pending_account(test_client, db_session_maker)
        register_account(test_client, "unverified@x.com")

        response = test_client.get("/api/admin/pending-accounts", headers=headers)

        assert response.status_code == 200
        accounts = response.json()
        assert [a["id"] for a in accounts] == [pending_id]
        assert accounts[0]["fullName"] == "Ada Student"
        assert accounts[0]["status"] == "PENDING_APPROVAL"

    def test_students_are_forbidden(self, auth_client):
        test_client, db_session_maker = auth_client
        register_and_activate(test_client, db_session_maker, "student@x.com")
        token = login(test_client, "student@x.com").json()["token"]

        response = test_client.get(
            "/api/admin/pending-accounts", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required."

    def test_requires_session(self, auth_client):
        test_client, _ = auth_client

        response = test_client.get("/api/admin/pending-accounts")
        assert response.status_code == 401

    def test_demoted_admin_loses_access(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        set_status(db_session_maker, "admin@x.com", AccountStatus.ACTIVE, role=AccountRole.STUDENT)

        response = test_client.get("/api/admin/pending-accounts", headers=headers)
        assert response.status_code == 403


class TestApproveAccount:
    def test_approve_activates_and_notifies(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        account_id = pending_account(test_client, db_session_maker)

        with patch(
            "certauth.services.email_service.EmailService.send_account_activated"
        ) as mock_send:
            response = test_client.post(f"/api/admin/accounts/{account_id}/approve", headers=headers)

        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"
        mock_send.assert_called_once_with("student@x.com", "Ada Student")
        assert login(test_client, "student@x.com").status_code == 200

    def test_approve_is_logged_with_admin(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        account_id = pending_account(test_client, db_session_maker)
        admin_id = login(test_client, "admin@x.com").json()["user"]["id"]

        test_client.post(f"/api/admin/accounts/{account_id}/approve", headers=headers)

        db = db_session_maker()
        entry = db.query(ActivityLog).filter(ActivityLog.action == "ACCOUNT_APPROVED").one()
        assert entry.user_id == account_id
        assert entry.admin_id == admin_id
        db.close()

    def test_approve_unknown_account(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)

        response = test_client.post("/api/admin/accounts/missing/approve", headers=headers)
        assert response.status_code == 404

    def test_approve_requires_verified_email(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        register_account(test_client, "unverified@x.com")
        account_id = set_status(db_session_maker, "unverified@x.com", AccountStatus.PENDING_EMAIL)

        response = test_client.post(f"/api/admin/accounts/{account_id}/approve", headers=headers)

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STATUS"


class TestRejectAccount:
    def test_reject_keeps_record_with_reason(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        account_id = pending_account(test_client, db_session_maker)

        with patch(
            "certauth.services.email_service.EmailService.send_account_rejected"
        ) as mock_send:
            response = test_client.post(
                f"/api/admin/accounts/{account_id}/reject",
                json={"reason": "Student ID does not match records"},
                headers=headers,
            )

        assert response.status_code == 200
        assert response.json()["status"] == "REJECTED"
        mock_send.assert_called_once_with(
            "student@x.com", "Student ID does not match records", "Ada Student"
        )

        db = db_session_maker()
        entry = db.query(ActivityLog).filter(ActivityLog.action == "ACCOUNT_REJECTED").one()
        assert json.loads(entry.details)["reason"] == "Student ID does not match records"
        db.close()

        login_response = login(test_client, "student@x.com")
        assert login_response.status_code == 403
        assert login_response.json()["code"] == "ACCOUNT_REJECTED"

    def test_reject_without_body(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        account_id = pending_account(test_client, db_session_maker)

        response = test_client.post(f"/api/admin/accounts/{account_id}/reject", headers=headers)

        assert response.status_code == 200

    def test_cannot_reject_active_account(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        account_id = register_and_activate(test_client, db_session_maker, "student@x.com")

        response = test_client.post(f"/api/admin/accounts/{account_id}/reject", headers=headers)

        assert response.status_code == 409


class TestActivityLogs:
    def test_newest_first_with_actor_labels(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        admin_id = login(test_client, "admin@x.com").json()["user"]["id"]
        student_id = pending_account(test_client, db_session_maker)
        base = datetime.now(UTC) + timedelta(days=1)
        add_log(db_session_maker, "PASSKEY_LOGIN", base, user_id=student_id)
        add_log(db_session_maker, "ACCOUNT_LOCKED", base + timedelta(minutes=1), admin_id=admin_id)
        add_log(
            db_session_maker, "BREAK_GLASS_LOGIN", base + timedelta(minutes=2), admin_id="break-glass"
        )
        add_log(db_session_maker, "LOGIN_FAILED", base + timedelta(minutes=3), ip_address="10.0.0.9")

        response = test_client.get("/api/admin/logs", headers=headers)

        assert response.status_code == 200
        entries = response.json()
        assert [e["user"] for e in entries[:4]] == [
            "System/Guest",
            "Admin: break-glass",
            "Admin: admin@x.com",
            "Ada Student (student@x.com)",
        ]
        assert [e["authMethod"] for e in entries[:4]] == [None, None, None, "passkey"]
        assert entries[0]["ipAddress"] == "10.0.0.9"
        password_logins = [e for e in entries if e["action"] == "LOGIN"]
        assert password_logins
        assert all(e["authMethod"] == "password" for e in password_logins)

    def test_limit(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)
        base = datetime.now(UTC) + timedelta(days=1)
        for minutes, action in enumerate(["REGISTER", "EMAIL_VERIFIED", "PASSWORD_CHANGED"]):
            add_log(db_session_maker, action, base + timedelta(minutes=minutes))

        response = test_client.get("/api/admin/logs?limit=2", headers=headers)

        assert response.status_code == 200
        assert [e["action"] for e in response.json()] == ["PASSWORD_CHANGED", "EMAIL_VERIFIED"]

    def test_limit_out_of_range(self, auth_client):
        test_client, db_session_maker = auth_client
        headers = admin_headers(test_client, db_session_maker)

        response = test_client.get("/api/admin/logs?limit=0", headers=headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_students_are_forbidden(self, auth_client):
        test_client, db_session_maker = auth_client
        register_and_activate(test_client, db_session_maker, "student@x.com")
        token = login(test_client, "student@x.com").json()["token"]

        response = test_client.get("/api/admin/logs", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403
