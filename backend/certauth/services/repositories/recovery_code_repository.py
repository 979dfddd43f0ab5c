"""Recovery code data access layer."""

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from certauth.models import RecoveryCode


class RecoveryCodeRepository:
    """Keyed storage for hashed two-factor recovery codes."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def replace_all(self, account_id: str, code_hashes: list[str]) -> None:
        """Drop existing codes for the account and store a fresh batch."""
        self.delete_all(account_id)
        for position, code_hash in enumerate(code_hashes):
            self._db.add(RecoveryCode(account_id=account_id, code_hash=code_hash, position=position))
        self._db.flush()

    def consume(self, account_id: str, code_hash: str) -> bool:
        """Delete a matching code; True only for the caller whose delete hit a row."""
        result = self._db.execute(
            delete(RecoveryCode).where(
                RecoveryCode.account_id == account_id,
                RecoveryCode.code_hash == code_hash,
            )
        )
        return result.rowcount == 1

    def count_remaining(self, account_id: str) -> int:
        return self._db.scalar(
            select(func.count()).select_from(RecoveryCode).where(RecoveryCode.account_id == account_id)
        ) or 0

    def delete_all(self, account_id: str) -> int:
        result = self._db.execute(delete(RecoveryCode).where(RecoveryCode.account_id == account_id))
        return result.rowcount
