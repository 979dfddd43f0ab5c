"""WebAuthn ceremony helpers built on py_webauthn."""

import base64
import json
import logging
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import (
    base64url_to_bytes,
    bytes_to_base64url,
    parse_authentication_credential_json,
    parse_authenticator_data,
    parse_client_data_json,
)
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import (
    AuthenticationCredential,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from certauth.config import settings
from certauth.errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

_KNOWN_TRANSPORTS = {t.value for t in AuthenticatorTransport}


@dataclass(frozen=True)
class RegisteredCredential:
    credential_id: str  # base64url
    public_key: str  # base64
    sign_count: int
    device_type: str
    backed_up: bool
    transports: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ParsedAssertion:
    """Fields read from an assertion before its signature is checked."""

    credential: AuthenticationCredential
    credential_id: str
    challenge: bytes
    sign_count: int


class PasskeyService:
    """Stateless wrapper around the WebAuthn relying-party operations."""

    @staticmethod
    def origin_from_headers(origin: str | None, referer: str | None) -> str | None:
        """Caller origin from the Origin header, falling back to Referer."""
        if origin:
            return origin.rstrip("/")
        if referer:
            parts = urlsplit(referer)
            if parts.scheme and parts.netloc:
                return f"{parts.scheme}://{parts.netloc}"
        return None

    @staticmethod
    def expected_origins(request_origin: str | None) -> list[str]:
        """Origins a ceremony may claim.

        A request origin outside the allow-list is logged. In strict mode it
        fails the ceremony; otherwise it is accepted for this request only.
        """
        allowed = list(settings.webauthn_allowed_origins)
        if request_origin is None or request_origin in allowed:
            return allowed

        logger.warning(f"WebAuthn origin mismatch: {request_origin} not in allowed origins")
        if settings.webauthn_strict_origin:
            raise ValidationError("Request origin is not allowed.", code="ORIGIN_NOT_ALLOWED")
        return [*allowed, request_origin]

    @staticmethod
    def registration_options(
        account_id: str,
        email: str,
        display_name: str,
        exclude_credential_ids: list[str],
    ) -> tuple[dict, bytes]:
        """Creation options for a new passkey and the challenge to remember."""
        options = generate_registration_options(
            rp_id=settings.webauthn_rp_id,
            rp_name=settings.webauthn_rp_name,
            user_id=account_id.encode("utf-8"),
            user_name=email,
            user_display_name=display_name,
            exclude_credentials=[
                PublicKeyCredentialDescriptor(id=base64url_to_bytes(cid))
                for cid in exclude_credential_ids
            ],
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
        )
        return json.loads(options_to_json(options)), options.challenge

    @staticmethod
    def verify_registration(
        credential: dict, expected_challenge: bytes, expected_origins: list[str]
    ) -> RegisteredCredential:
        """Check an attestation against the stored challenge.

        Raises:
            ValidationError: malformed payload or failed verification
        """
        try:
            verification = verify_registration_response(
                credential=credential,
                expected_challenge=expected_challenge,
                expected_rp_id=settings.webauthn_rp_id,
                expected_origin=expected_origins,
            )
        except WebAuthnException as e:
            logger.warning(f"Passkey registration verification failed: {e}")
            raise ValidationError("Passkey verification failed.", code="PASSKEY_VERIFICATION_FAILED") from e

        response = credential.get("response") or {}
        transports = [t for t in response.get("transports") or [] if t in _KNOWN_TRANSPORTS]
        return RegisteredCredential(
            credential_id=bytes_to_base64url(verification.credential_id),
            public_key=base64.b64encode(verification.credential_public_key).decode("ascii"),
            sign_count=verification.sign_count,
            device_type=verification.credential_device_type.value,
            backed_up=verification.credential_backed_up,
            transports=transports,
        )

    @staticmethod
    def authentication_options() -> tuple[dict, bytes]:
        """Request options for a discoverable-credential login."""
        options = generate_authentication_options(
            rp_id=settings.webauthn_rp_id,
            user_verification=UserVerificationRequirement.PREFERRED,
        )
        return json.loads(options_to_json(options)), options.challenge

    @staticmethod
    def parse_assertion(credential: dict) -> ParsedAssertion:
        """Pull the credential id, challenge and counter out of an assertion."""
        try:
            parsed = parse_authentication_credential_json(credential)
            client_data = parse_client_data_json(parsed.response.client_data_json)
            auth_data = parse_authenticator_data(parsed.response.authenticator_data)
        except (WebAuthnException, ValueError) as e:
            logger.debug(f"Malformed passkey assertion: {e}")
            raise ValidationError("Invalid passkey response.") from e

        return ParsedAssertion(
            credential=parsed,
            credential_id=bytes_to_base64url(parsed.raw_id),
            challenge=client_data.challenge,
            sign_count=auth_data.sign_count,
        )

    @staticmethod
    def counter_advances(presented: int, stored: int) -> bool:
        """Whether a presented signature counter is acceptable.

        Counters must strictly increase. Authenticators that never count
        (both zero) pass only when explicitly allowed.
        """
        if presented > stored:
            return True
        return settings.webauthn_allow_counterless and presented == 0 and stored == 0

    @staticmethod
    def verify_assertion(
        assertion: ParsedAssertion,
        expected_challenge: bytes,
        public_key: str,
        current_sign_count: int,
        expected_origins: list[str],
    ) -> int:
        """Verify an assertion signature and return the new sign count."""
        try:
            verification = verify_authentication_response(
                credential=assertion.credential,
                expected_challenge=expected_challenge,
                expected_rp_id=settings.webauthn_rp_id,
                expected_origin=expected_origins,
                credential_public_key=base64.b64decode(public_key),
                credential_current_sign_count=current_sign_count,
            )
        except WebAuthnException as e:
            logger.warning(f"Passkey assertion rejected for {assertion.credential_id[:8]}...: {e}")
            raise AuthenticationError("Passkey verification failed.") from e
        return verification.new_sign_count
