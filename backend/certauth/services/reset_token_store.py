"""Password-reset grants held in the ephemeral store."""

from dataclasses import dataclass

from certauth.services.auth_service import AuthService
from certauth.services.ephemeral_store import KeyValueStore


@dataclass(frozen=True)
class ResetGrant:
    account_id: str
    email: str
    full_name: str | None = None


class ResetTokenStore:
    """Maps the SHA-256 of a reset token to the account it resets."""

    def __init__(self, store: KeyValueStore, ttl_seconds: int = 60 * 60) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds

    def issue(self, account_id: str, email: str, full_name: str | None = None) -> str:
        """Create a grant and return the plaintext token for the reset link."""
        token = AuthService.generate_token()
        self._store.put(
            AuthService.hash_token(token),
            {"account_id": account_id, "email": email, "full_name": full_name},
            self.ttl_seconds,
        )
        return token

    def redeem(self, token: str) -> ResetGrant | None:
        """Consume a grant. A token can be redeemed once."""
        data = self._store.pop(AuthService.hash_token(token))
        if data is None:
            return None
        return ResetGrant(**data)

    def sweep(self) -> int:
        return self._store.sweep()
