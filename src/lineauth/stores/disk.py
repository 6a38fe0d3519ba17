"""Disk-backed key/value store using :mod:`diskcache`.

Entries are written with ``expire=ttl_seconds`` so diskcache drops them on
its own, and :meth:`DiskKeyValueStore.verify` relies on
:meth:`diskcache.Cache.pop`, which reads and deletes inside one SQLite
transaction. Several worker processes on one host can therefore share a
directory and still see every verifier at most once.

diskcache is synchronous; calls run in a worker thread so a slow disk never
blocks the event loop.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import diskcache

from lineauth.stores.base import KeyValueStore


class DiskKeyValueStore(KeyValueStore):
    """Key/value store persisted in a :class:`diskcache.Cache` directory.

    Args:
        directory: Cache directory. A ``pkce/`` subdirectory is created
            inside it.
        ttl_seconds: Lifetime of each entry in seconds.

    Example::

        store = DiskKeyValueStore(get_cache_dir())
        strategy = LineStrategy(config, verify, pkce_store=store)
    """

    def __init__(self, directory: str | Path, ttl_seconds: int = 600) -> None:
        self._directory = Path(directory)
        self._ttl = ttl_seconds
        self._cache = diskcache.Cache(str(self._directory / "pkce"))

    async def store(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._cache.set, key, value, expire=self._ttl)

    async def verify(self, key: str) -> Optional[str]:
        value = await asyncio.to_thread(self._cache.pop, key, None)
        if value is None:
            return None
        return str(value)

    def close(self) -> None:
        """Close the underlying cache connection."""
        self._cache.close()
