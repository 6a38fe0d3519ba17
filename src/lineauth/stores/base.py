"""Abstract base classes for verifier storage.

Two layers are involved when PKCE is enabled:

- :class:`KeyValueStore` -- the capability an application injects for
  store-backed PKCE (Redis, a disk cache, ...). It only knows opaque string
  keys and values and owns expiry.
- :class:`VerifierStore` -- the adapter :class:`~lineauth.strategy.LineStrategy`
  talks to. It binds a state token to a verifier and hands the verifier back
  exactly once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from lineauth.strategy import AuthRequest


class KeyValueStore(ABC):
    """Short-lived key/value storage with single-use reads.

    Implementations decide how long entries live (typically 10 minutes,
    the lifetime of a LINE authorization code).

    Note:
        :meth:`verify` must be atomic: once one caller has received a value,
        every concurrent or later call for the same key returns ``None``.
        A backend without an atomic read-and-delete has to serialise calls
        per key itself.
    """

    @abstractmethod
    async def store(self, key: str, value: str) -> None:
        """Save *value* under *key*, replacing any previous value.

        Raises:
            Exception: Any backend failure. Callers treat every exception
                as a store failure.
        """

    @abstractmethod
    async def verify(self, key: str) -> Optional[str]:
        """Return the value stored under *key* and delete it.

        Returns:
            The stored value, or ``None`` if the key is unknown, expired or
            already consumed. A missing key is never an error.
        """


class VerifierStore(ABC):
    """Binds state tokens to PKCE verifiers across the redirect round-trip."""

    @abstractmethod
    async def save(self, request: "AuthRequest", state: str, code_verifier: str) -> None:
        """Persist *code_verifier* for the authorization attempt named by *state*.

        Args:
            request: The inbound request (gives access to its session).
            state: The state token sent in the redirect.
            code_verifier: The PKCE verifier to hand back at callback time.
        """

    @abstractmethod
    async def take(self, request: "AuthRequest", state: str) -> Optional[str]:
        """Return the verifier bound to *state* and invalidate it.

        Returns:
            The verifier, or ``None`` when no live record matches *state*.
        """
