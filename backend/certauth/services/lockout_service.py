"""Per-email login lockout.

Clean -> Counting -> Locked -> (lock elapses) -> Clean. Records live in a
``KeyValueStore`` and expire after an idle window so memory stays bounded.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from certauth.services.ephemeral_store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockoutStatus:
    locked: bool
    remaining_seconds: int = 0
    attempts: int = 0

    @property
    def remaining_minutes(self) -> int:
        return math.ceil(self.remaining_seconds / 60)


@dataclass(frozen=True)
class FailedAttemptResult:
    locked: bool
    attempts_remaining: int
    lockout_minutes: int = 0


class LockoutTracker:
    """Counts failed logins per identifier and locks at the threshold."""

    def __init__(
        self,
        store: KeyValueStore,
        max_attempts: int = 5,
        lock_duration_seconds: int = 15 * 60,
        idle_window_seconds: int = 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self.max_attempts = max_attempts
        self.lock_duration_seconds = lock_duration_seconds
        self.idle_window_seconds = idle_window_seconds
        self._clock = clock

    @staticmethod
    def _key(identifier: str) -> str:
        return identifier.strip().lower()

    @property
    def lockout_minutes(self) -> int:
        return math.ceil(self.lock_duration_seconds / 60)

    def check_lockout(self, identifier: str) -> LockoutStatus:
        """Report lock state without changing anything."""
        record = self._store.get(self._key(identifier))
        if not record:
            return LockoutStatus(locked=False)

        locked_until = record.get("locked_until")
        if locked_until is not None:
            remaining = locked_until - self._clock()
            if remaining > 0:
                return LockoutStatus(
                    locked=True,
                    remaining_seconds=math.ceil(remaining),
                    attempts=record["attempts"],
                )
            # Lock has elapsed; the next failure starts a fresh count
            return LockoutStatus(locked=False)

        return LockoutStatus(locked=False, attempts=record["attempts"])

    def record_failed_attempt(self, identifier: str) -> FailedAttemptResult:
        """Count a failure, locking exactly when the threshold is reached."""
        now = self._clock()

        def _bump(current: dict | None) -> dict:
            if current is None or (
                current.get("locked_until") is not None and current["locked_until"] <= now
            ):
                current = {"attempts": 0, "locked_until": None}
            attempts = current["attempts"] + 1
            locked_until = current.get("locked_until")
            if locked_until is None and attempts >= self.max_attempts:
                locked_until = now + self.lock_duration_seconds
            return {"attempts": attempts, "locked_until": locked_until, "last_attempt": now}

        ttl = max(self.idle_window_seconds, self.lock_duration_seconds)
        record = self._store.update(self._key(identifier), _bump, ttl)

        if record["locked_until"] is not None:
            if record["attempts"] == self.max_attempts:
                logger.warning(
                    f"Login locked for {self._key(identifier)} after {record['attempts']} failed attempts"
                )
            return FailedAttemptResult(
                locked=True, attempts_remaining=0, lockout_minutes=self.lockout_minutes
            )
        return FailedAttemptResult(
            locked=False, attempts_remaining=self.max_attempts - record["attempts"]
        )

    def reset_attempts(self, identifier: str) -> None:
        """Clear all state for the identifier."""
        self._store.delete(self._key(identifier))

    def sweep(self) -> int:
        return self._store.sweep()
