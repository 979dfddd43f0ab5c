"""Short-lived key-value state shared by the auth flows.

Lockout records, pending WebAuthn challenges and password-reset grants all
live behind ``KeyValueStore``. A single process uses the in-memory store;
setting ``REDIS_URL`` swaps in Redis so several instances share the state.

Values are JSON-compatible. Callers must treat values read from a store as
immutable and return new objects from ``update`` callbacks.
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from redis import Redis

from certauth.config import settings

logger = logging.getLogger(__name__)

Updater = Callable[[Any | None], Any | None]


class KeyValueStore(ABC):
    """Namespaced store with per-entry expiry and atomic single-key updates."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the live value for key, or None."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store value, replacing any previous one."""

    @abstractmethod
    def pop(self, key: str) -> Any | None:
        """Atomically read and delete. Only one caller ever receives a value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    def update(self, key: str, fn: Updater, ttl_seconds: float) -> Any | None:
        """Atomically replace the value with ``fn(current)``.

        ``fn`` receives None when the key is missing or expired. Returning None
        deletes the key. The new value is returned.
        """

    @abstractmethod
    def sweep(self) -> int:
        """Evict expired entries. Returns the number removed."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry in this namespace."""


@dataclass
class _Entry:
    value: Any
    expires_at: float


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Every operation holds the lock for one step only."""

    def __init__(self, namespace: str, clock: Callable[[], float] = time.time) -> None:
        super().__init__(namespace)
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._live(key, self._clock())
            return entry.value if entry else None

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + ttl_seconds)

    def pop(self, key: str) -> Any | None:
        with self._lock:
            entry = self._live(key, self._clock())
            if entry is None:
                return None
            del self._entries[key]
            return entry.value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def update(self, key: str, fn: Updater, ttl_seconds: float) -> Any | None:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            new_value = fn(entry.value if entry else None)
            if new_value is None:
                self._entries.pop(key, None)
            else:
                self._entries[key] = _Entry(new_value, now + ttl_seconds)
            return new_value

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired {self.namespace} entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store. Expiry is native TTL, so ``sweep`` has nothing to do."""

    KEY_PREFIX = "certauth"

    def __init__(self, client: Redis, namespace: str) -> None:
        super().__init__(namespace)
        self._client = client

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{self.namespace}:{key}"

    @staticmethod
    def _ttl(ttl_seconds: float) -> int:
        # Redis rejects zero or negative expiries
        return max(1, int(ttl_seconds))

    @staticmethod
    def _load(raw: str | None) -> Any | None:
        return json.loads(raw) if raw is not None else None

    def get(self, key: str) -> Any | None:
        return self._load(self._client.get(self._key(key)))

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._client.set(self._key(key), json.dumps(value), ex=self._ttl(ttl_seconds))

    def pop(self, key: str) -> Any | None:
        return self._load(self._client.getdel(self._key(key)))

    def delete(self, key: str) -> None:
        self._client.delete(self._key(key))

    def update(self, key: str, fn: Updater, ttl_seconds: float) -> Any | None:
        full_key = self._key(key)

        def _apply(pipe) -> Any | None:
            current = self._load(pipe.get(full_key))
            new_value = fn(current)
            pipe.multi()
            if new_value is None:
                pipe.delete(full_key)
            else:
                pipe.set(full_key, json.dumps(new_value), ex=self._ttl(ttl_seconds))
            return new_value

        # WATCH/MULTI: retried automatically if the key changes underneath us
        return self._client.transaction(_apply, full_key, value_from_callable=True)

    def sweep(self) -> int:
        return 0

    def clear(self) -> None:
        keys = list(self._client.scan_iter(match=self._key("*")))
        if keys:
            self._client.delete(*keys)


_redis_client: Redis | None = None


def _get_redis_client() -> Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=5.0,
            socket_connect_timeout=5.0,
        )
    return _redis_client


def build_store(namespace: str) -> KeyValueStore:
    """Create the configured store for a namespace."""
    if settings.redis_url:
        logger.info(f"Using Redis for {namespace} state")
        return RedisKeyValueStore(_get_redis_client(), namespace)
    return InMemoryKeyValueStore(namespace)
