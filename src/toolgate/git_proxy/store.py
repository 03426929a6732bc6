"""Key-value storage for OAuth state and tokens.

The service only talks to the ``KeyValueStore`` protocol, so the in-memory
store here can be swapped for a persistent backend without touching request
handling.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Minimal store interface: get/set/delete/expire by key."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float | None = None) -> None: ...

    def delete(self, key: str) -> bool: ...

    def expire(self, key: str, ttl: float) -> bool: ...


class InMemoryStore:
    """Process-local store with lazy TTL eviction.

    Not shared between processes and lost on restart.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._values: dict[str, Any] = {}
        self._expires_at: dict[str, float] = {}

    def get(self, key: str) -> Any | None:
        if self._is_expired(key):
            self._evict(key)
            return None
        return self._values.get(key)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        self._values[key] = value
        if ttl is None:
            self._expires_at.pop(key, None)
        else:
            self._expires_at[key] = self._clock() + ttl

    def delete(self, key: str) -> bool:
        existed = key in self._values and not self._is_expired(key)
        self._evict(key)
        return existed

    def expire(self, key: str, ttl: float) -> bool:
        """Set a TTL on an existing key. Returns False if the key is absent."""
        if key not in self._values or self._is_expired(key):
            self._evict(key)
            return False
        self._expires_at[key] = self._clock() + ttl
        return True

    def __len__(self) -> int:
        for key in [k for k in self._values if self._is_expired(k)]:
            self._evict(key)
        return len(self._values)

    def _is_expired(self, key: str) -> bool:
        expires_at = self._expires_at.get(key)
        return expires_at is not None and self._clock() >= expires_at

    def _evict(self, key: str) -> None:
        self._values.pop(key, None)
        self._expires_at.pop(key, None)
