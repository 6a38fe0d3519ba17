"""In-memory key/value store for development."""

from __future__ import annotations

import time
from typing import Optional

from lineauth.stores.base import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """In-memory key/value store with TTL expiry.

    :meth:`verify` pops the entry without awaiting in between, so concurrent
    verifies on one event loop can never both see a value.

    Warning:
        This store is not suitable for production use in multi-process
        or distributed environments. Use a persistent store instead.
    """

    def __init__(self, ttl_seconds: int = 600) -> None:
        """Initialize memory store.

        Args:
            ttl_seconds: Time-to-live for entries in seconds.
        """
        self._entries: dict[str, tuple[str, float]] = {}
        self._ttl = ttl_seconds

    async def store(self, key: str, value: str) -> None:
        self._cleanup_expired()
        self._entries[key] = (value, time.monotonic() + self._ttl)

    async def verify(self, key: str) -> Optional[str]:
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            return None
        return value

    def __len__(self) -> int:
        self._cleanup_expired()
        return len(self._entries)

    def _cleanup_expired(self) -> None:
        """Remove expired entries."""
        now = time.monotonic()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
