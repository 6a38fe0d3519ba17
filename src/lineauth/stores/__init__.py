"""Verifier stores for PKCE.

:class:`SessionVerifierStore` and :class:`ExternalVerifierStore` are the two
adapters the strategy selects between. :class:`MemoryKeyValueStore`,
:class:`DiskKeyValueStore` and :class:`~lineauth.stores.redis_store.RedisKeyValueStore`
are ready-made :class:`KeyValueStore` backends for the latter; the Redis one
needs the ``redis`` extra and is imported from its own module.
"""

from lineauth.stores.base import KeyValueStore, VerifierStore
from lineauth.stores.disk import DiskKeyValueStore
from lineauth.stores.external import ExternalVerifierStore
from lineauth.stores.memory import MemoryKeyValueStore
from lineauth.stores.session import SessionStateStore, SessionVerifierStore

__all__ = [
    "DiskKeyValueStore",
    "ExternalVerifierStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SessionStateStore",
    "SessionVerifierStore",
    "VerifierStore",
]
