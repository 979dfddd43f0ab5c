"""Passkey registration, discoverable login, listing and removal."""

import logging

from sqlalchemy.orm import Session

from certauth.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from certauth.models import Account, PasskeyCredential
from certauth.services.activity_logger import ActivityAction, ActivityLogger, RequestContext
from certauth.services.challenge_store import ChallengeStore
from certauth.services.lockout_service import LockoutTracker
from certauth.services.passkey_service import PasskeyService
from certauth.services.repositories import AccountRepository, DuplicateError, PasskeyRepository
from certauth.services.session_service import LoginOutcome, ensure_can_log_in, start_session

logger = logging.getLogger(__name__)


class PasskeyFlow:
    """WebAuthn ceremonies tied to accounts, challenges and sessions."""

    def __init__(
        self,
        db: Session,
        challenges: ChallengeStore,
        lockout: LockoutTracker,
        activity: ActivityLogger,
    ) -> None:
        self._db = db
        self._accounts = AccountRepository(db)
        self._passkeys = PasskeyRepository(db)
        self._challenges = challenges
        self._lockout = lockout
        self._activity = activity

    # Registration (requires a session)

    def registration_options(self, account: Account) -> dict:
        existing = [c.id for c in self._passkeys.find_by_account(account.id)]
        options, challenge = PasskeyService.registration_options(
            account_id=account.id,
            email=account.email,
            display_name=account.display_name,
            exclude_credential_ids=existing,
        )
        self._challenges.save(ChallengeStore.registration_key(account.id), challenge)
        return options

    def verify_registration(
        self,
        account: Account,
        credential: dict,
        friendly_name: str | None,
        request_origin: str | None,
        context: RequestContext,
    ) -> PasskeyCredential:
        """Verify an attestation and store the new credential.

        Raises:
            ValidationError: no pending challenge, bad origin or failed attestation
            ConflictError: credential already registered
        """
        expected_challenge = self._challenges.consume(ChallengeStore.registration_key(account.id))
        if expected_challenge is None:
            raise ValidationError(
                "Registration challenge expired or not found. Please try again.",
                code="CHALLENGE_EXPIRED",
            )

        origins = PasskeyService.expected_origins(request_origin)
        registered = PasskeyService.verify_registration(credential, expected_challenge, origins)

        record = PasskeyCredential(
            id=registered.credential_id,
            account_id=account.id,
            public_key=registered.public_key,
            counter=registered.sign_count,
            device_type=registered.device_type,
            backed_up=registered.backed_up,
            transports=registered.transports,
            friendly_name=(friendly_name or "My Passkey").strip()[:100] or "My Passkey",
        )
        try:
            self._passkeys.insert(record)
            self._db.commit()
        except DuplicateError as e:
            raise ConflictError("This passkey is already registered.", code="PASSKEY_EXISTS") from e

        self._activity.log(
            ActivityAction.PASSKEY_REGISTERED,
            user_id=account.id,
            details=f"Passkey registered: {record.friendly_name}",
            context=context,
        )
        return record

    # Discoverable login (public)

    def login_options(self) -> dict:
        options, challenge = PasskeyService.authentication_options()
        self._challenges.save(ChallengeStore.authentication_key(challenge), challenge)
        return options

    def verify_login(
        self, credential: dict, request_origin: str | None, context: RequestContext
    ) -> LoginOutcome:
        """Verify an assertion and branch to a session or to 2FA.

        Raises:
            ValidationError: malformed assertion or bad origin
            AuthenticationError: unknown challenge or credential, counter
                regression, or bad signature
            AccountStatusError: owning account is not active
        """
        assertion = PasskeyService.parse_assertion(credential)
        expected_challenge = self._challenges.consume(
            ChallengeStore.authentication_key(assertion.challenge)
        )
        if expected_challenge is None:
            raise AuthenticationError(
                "Challenge expired or not found. Please try again.", code="CHALLENGE_EXPIRED"
            )

        origins = PasskeyService.expected_origins(request_origin)

        stored = self._passkeys.find_by_id(assertion.credential_id)
        if stored is None:
            raise AuthenticationError("Passkey not recognized.", code="PASSKEY_NOT_RECOGNIZED")

        if not PasskeyService.counter_advances(assertion.sign_count, stored.counter):
            logger.warning(
                f"Passkey counter did not advance for {stored.id[:8]}... "
                f"(stored {stored.counter}, presented {assertion.sign_count})"
            )
            self._activity.log(
                ActivityAction.PASSKEY_REJECTED,
                user_id=stored.account_id,
                details="Signature counter did not advance; possible cloned authenticator",
                context=context,
            )
            raise AuthenticationError("Passkey verification failed.", code="PASSKEY_COUNTER_INVALID")

        new_count = PasskeyService.verify_assertion(
            assertion,
            expected_challenge,
            public_key=stored.public_key,
            current_sign_count=stored.counter,
            expected_origins=origins,
        )
        if not self._passkeys.advance_counter(stored.id, stored.counter, new_count):
            self._db.rollback()
            raise AuthenticationError("Passkey verification failed.", code="PASSKEY_COUNTER_INVALID")
        self._db.commit()

        account = self._accounts.get_by_id(stored.account_id)
        ensure_can_log_in(account)
        self._lockout.reset_attempts(account.email)

        outcome = start_session(account, has_passkeys=True, method="Passkey")
        self._activity.log(
            ActivityAction.PASSKEY_LOGIN,
            user_id=account.id,
            details="Passkey verified, awaiting 2FA" if outcome.requires_2fa else "Passkey login",
            context=context,
        )
        return outcome

    # Management (requires a session)

    def list_credentials(self, account: Account) -> list[PasskeyCredential]:
        return list(self._passkeys.find_by_account(account.id))

    def delete_credential(self, account: Account, credential_id: str, context: RequestContext) -> None:
        """Remove one of the caller's credentials. Other accounts' ids read as missing."""
        if not self._passkeys.delete_owned(credential_id, account.id):
            raise NotFoundError("Passkey not found.")
        self._db.commit()

        self._activity.log(
            ActivityAction.PASSKEY_DELETED,
            user_id=account.id,
            details="Passkey removed",
            context=context,
        )
