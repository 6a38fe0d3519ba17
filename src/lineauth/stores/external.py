"""Verifier storage backed by an injected key/value store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from lineauth.exceptions import StoreOperationError
from lineauth.stores.base import KeyValueStore, VerifierStore

if TYPE_CHECKING:
    from lineauth.strategy import AuthRequest

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "line:pkce:"


class ExternalVerifierStore(VerifierStore):
    """Keeps verifiers in a :class:`~lineauth.stores.KeyValueStore` keyed by state.

    The verifier's lifetime is decoupled from any single process, so any
    instance can serve the callback. Expiry is the backend's job.
    """

    def __init__(self, backend: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._backend = backend
        self._key_prefix = key_prefix

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    async def save(self, request: "AuthRequest", state: str, code_verifier: str) -> None:
        try:
            await self._backend.store(self._key_prefix + state, code_verifier)
        except StoreOperationError:
            raise
        except Exception as exc:
            raise StoreOperationError(f"Failed to store PKCE verifier: {exc}", original=exc) from exc
        logger.debug("PKCE verifier stored", extra={"state": state[:8] + "..."})

    async def take(self, request: "AuthRequest", state: str) -> Optional[str]:
        try:
            verifier = await self._backend.verify(self._key_prefix + state)
        except StoreOperationError:
            raise
        except Exception as exc:
            raise StoreOperationError(f"Failed to verify PKCE state: {exc}", original=exc) from exc

        if not verifier:
            logger.warning("PKCE state not found or already used", extra={"state": state[:8] + "..."})
            return None
        return verifier
