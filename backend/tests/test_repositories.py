"""Tests for the repository layer."""

from datetime import UTC, datetime, timedelta

import pytest

from certauth.models import Account, AccountStatus, PasskeyCredential
from certauth.services.repositories import (
    AccountRepository,
    DuplicateError,
    NotFoundError,
    PasskeyRepository,
    RecoveryCodeRepository,
)


def make_account(db, email="a@x.com", **fields) -> Account:
    account = AccountRepository(db).insert(Account(email=email, password_hash="hash", **fields))
    db.commit()
    return account


def make_passkey(db, account_id: str, credential_id="cred-1") -> PasskeyCredential:
    credential = PasskeyRepository(db).insert(
        PasskeyCredential(id=credential_id, account_id=account_id, public_key="pk", counter=0)
    )
    db.commit()
    return credential


class TestAccountRepository:
    def test_find_by_email_normalizes_lookup(self, db):
        account = make_account(db)

        assert AccountRepository(db).find_by_email("  A@X.COM ").id == account.id

    def test_get_by_id_raises_when_missing(self, db):
        with pytest.raises(NotFoundError) as exc_info:
            AccountRepository(db).get_by_id("missing")

        assert exc_info.value.entity_type == "Account"

    def test_duplicate_email(self, db):
        make_account(db)

        with pytest.raises(DuplicateError) as exc_info:
            make_account(db)

        assert exc_info.value.field == "email"

    def test_duplicate_student_id(self, db):
        make_account(db, student_id_number="S-1")

        with pytest.raises(DuplicateError) as exc_info:
            make_account(db, email="b@x.com", student_id_number="S-1")

        assert exc_info.value.field == "student_id_number"

    def test_find_by_status(self, db):
        make_account(db, status=AccountStatus.PENDING_APPROVAL)
        make_account(db, email="b@x.com", status=AccountStatus.ACTIVE)

        pending = AccountRepository(db).find_by_status(AccountStatus.PENDING_APPROVAL)

        assert [a.email for a in pending] == ["a@x.com"]

    def test_verification_tokens_invalidated(self, db):
        repo = AccountRepository(db)
        account = make_account(db)
        expires = datetime.now(UTC) + timedelta(hours=24)
        repo.add_verification_token(account.id, "hash-1", expires)
        repo.add_verification_token(account.id, "hash-2", expires)
        db.commit()

        assert repo.find_verification_token("hash-1") is not None
        assert repo.invalidate_verification_tokens(account.id) == 2
        db.commit()

        assert repo.find_verification_token("hash-1") is None
        assert repo.find_verification_token("hash-2") is None


    def test_claim_totp_step_only_moves_forward(self, db):
        repo = AccountRepository(db)
        account = make_account(db)

        assert repo.claim_totp_step(account.id, 10) is True
        assert repo.claim_totp_step(account.id, 10) is False
        assert repo.claim_totp_step(account.id, 9) is False
        assert repo.claim_totp_step(account.id, 11) is True
        db.commit()

        db.expire_all()
        assert repo.get_by_id(account.id).totp_last_step == 11


class TestRecoveryCodeRepository:
    def test_consume_succeeds_once(self, db):
        repo = RecoveryCodeRepository(db)
        account = make_account(db)
        repo.replace_all(account.id, ["h1", "h2", "h3"])
        db.commit()

        assert repo.consume(account.id, "h2") is True
        assert repo.consume(account.id, "h2") is False
        assert repo.count_remaining(account.id) == 2

    def test_codes_scoped_to_account(self, db):
        repo = RecoveryCodeRepository(db)
        owner = make_account(db)
        other = make_account(db, email="b@x.com")
        repo.replace_all(owner.id, ["h1"])
        db.commit()

        assert repo.consume(other.id, "h1") is False

    def test_replace_all_discards_previous_batch(self, db):
        repo = RecoveryCodeRepository(db)
        account = make_account(db)
        repo.replace_all(account.id, ["old"])
        repo.replace_all(account.id, ["new-1", "new-2"])
        db.commit()

        assert repo.consume(account.id, "old") is False
        assert repo.count_remaining(account.id) == 2


class TestPasskeyRepository:
    def test_duplicate_credential_id(self, db):
        account = make_account(db)
        make_passkey(db, account.id)

        with pytest.raises(DuplicateError):
            make_passkey(db, account.id)

    def test_advance_counter_compare_and_set(self, db):
        repo = PasskeyRepository(db)
        account = make_account(db)
        make_passkey(db, account.id)

        assert repo.advance_counter("cred-1", expected=0, new_counter=3) is True
        assert repo.advance_counter("cred-1", expected=0, new_counter=4) is False
        db.commit()

        db.expire_all()
        credential = repo.find_by_id("cred-1")
        assert credential.counter == 3
        assert credential.last_used_at is not None

    def test_delete_owned_only(self, db):
        repo = PasskeyRepository(db)
        owner = make_account(db)
        other = make_account(db, email="b@x.com")
        make_passkey(db, owner.id)

        assert repo.delete_owned("cred-1", other.id) is False
        assert repo.delete_owned("cred-1", owner.id) is True
        db.commit()

        assert repo.has_any(owner.id) is False
