"""Session-backed storage for state tokens and verifiers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, MutableMapping, Optional

from lineauth.exceptions import PKCESessionUnavailable
from lineauth.models import VerifierRecord
from lineauth.stores.base import VerifierStore

if TYPE_CHECKING:
    from lineauth.strategy import AuthRequest

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "line:pkce"
DEFAULT_STATE_SESSION_KEY = "line:state"


class _SessionRecords:
    """Per-state records kept under one session key.

    Records older than the TTL are pruned on every write and treated as
    missing on read.
    """

    def __init__(self, key: str, state_ttl_seconds: int) -> None:
        self.key = key
        self._state_ttl = timedelta(seconds=state_ttl_seconds)

    def put(self, request: "AuthRequest", state: str, record: dict[str, Any]) -> None:
        session = _require_session(request)
        now = datetime.now(timezone.utc)
        records = {
            s: r for s, r in (session.get(self.key) or {}).items() if not self._expired(r, now)
        }
        records[state] = {**record, "created_at": now.isoformat()}
        session[self.key] = records

    def pop(self, request: "AuthRequest", state: str) -> Optional[dict[str, Any]]:
        session = _require_session(request)
        records = dict(session.get(self.key) or {})
        entry = records.pop(state, None)

        if records:
            session[self.key] = records
        else:
            session.pop(self.key, None)

        if entry is None:
            return None
        if self._expired(entry, datetime.now(timezone.utc)):
            logger.info("Expired session record discarded", extra={"state": state[:8] + "..."})
            return None
        return entry

    def _expired(self, record: dict[str, Any], now: datetime) -> bool:
        return now - datetime.fromisoformat(record["created_at"]) > self._state_ttl


def _require_session(request: "AuthRequest") -> MutableMapping[str, Any]:
    if request.session is None:
        raise PKCESessionUnavailable(
            "LINE login state is kept in the session, but the request has none. "
            "Enable session support or configure a PKCE store."
        )
    return request.session


class SessionVerifierStore(VerifierStore):
    """Keeps verifiers in the request's session.

    Records live under one namespaced session key as a mapping of
    ``state -> {"code_verifier", "created_at"}`` so that several tabs of the
    same browser can log in concurrently. Saving under an existing state
    replaces its record.

    Warning:
        The session must follow the user from the redirect to the callback.
        Use :class:`~lineauth.stores.ExternalVerifierStore` when sessions are
        not shared between the instances serving the two phases.
    """

    def __init__(self, key: str = DEFAULT_SESSION_KEY, state_ttl_seconds: int = 600) -> None:
        """Initialize session verifier store.

        Args:
            key: Session key the records are kept under.
            state_ttl_seconds: Records older than this are pruned or treated
                as missing.
        """
        self._records = _SessionRecords(key, state_ttl_seconds)

    @property
    def key(self) -> str:
        return self._records.key

    async def save(self, request: "AuthRequest", state: str, code_verifier: str) -> None:
        record = VerifierRecord(state=state, code_verifier=code_verifier)
        self._records.put(request, state, {"code_verifier": record.code_verifier})
        logger.debug("PKCE verifier stored in session", extra={"state": state[:8] + "..."})

    async def take(self, request: "AuthRequest", state: str) -> Optional[str]:
        entry = self._records.pop(request, state)
        if entry is None:
            return None
        return entry["code_verifier"]


class SessionStateStore:
    """Binds bare state tokens to the session when PKCE is disabled."""

    def __init__(self, key: str = DEFAULT_STATE_SESSION_KEY, state_ttl_seconds: int = 600) -> None:
        self._records = _SessionRecords(key, state_ttl_seconds)

    async def save(self, request: "AuthRequest", state: str) -> None:
        self._records.put(request, state, {})

    async def verify(self, request: "AuthRequest", state: str) -> bool:
        """Consume *state*; ``True`` if it was issued to this session and is live."""
        return self._records.pop(request, state) is not None
