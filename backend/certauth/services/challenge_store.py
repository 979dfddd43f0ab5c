"""Pending WebAuthn challenges, consumed exactly once."""

from webauthn.helpers import base64url_to_bytes, bytes_to_base64url

from certauth.services.ephemeral_store import KeyValueStore


class ChallengeStore:
    """Challenges keyed by ceremony purpose and subject.

    Registration challenges are keyed per account, so a second options request
    replaces the first. Discoverable login challenges are keyed by the
    challenge itself because the caller is anonymous until verification.
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: int = 300) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def registration_key(account_id: str) -> str:
        return f"reg:{account_id}"

    @staticmethod
    def authentication_key(challenge: bytes | str) -> str:
        if isinstance(challenge, bytes):
            challenge = bytes_to_base64url(challenge)
        return f"auth:discoverable:{challenge}"

    def save(self, key: str, challenge: bytes) -> None:
        self._store.put(key, bytes_to_base64url(challenge), self.ttl_seconds)

    def consume(self, key: str) -> bytes | None:
        """Read-once. Expired, replayed and unknown keys all return None."""
        encoded = self._store.pop(key)
        if encoded is None:
            return None
        return base64url_to_bytes(encoded)

    def sweep(self) -> int:
        return self._store.sweep()
