"""Tests for SessionVerifierStore and SessionStateStore."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from lineauth.exceptions import PKCESessionUnavailable
from lineauth.stores import SessionStateStore, SessionVerifierStore
from lineauth.stores.session import DEFAULT_SESSION_KEY, DEFAULT_STATE_SESSION_KEY
from lineauth.strategy import AuthRequest


@pytest.fixture()
def store() -> SessionVerifierStore:
    return SessionVerifierStore()


@pytest.fixture()
def request_with_session() -> AuthRequest:
    return AuthRequest(session={})


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_take_returns_saved_verifier(self, store, request_with_session) -> None:
        await store.save(request_with_session, "state-1", "verifier-1")
        assert await store.take(request_with_session, "state-1") == "verifier-1"

    @pytest.mark.asyncio
    async def test_second_take_returns_none(self, store, request_with_session) -> None:
        await store.save(request_with_session, "state-1", "verifier-1")
        await store.take(request_with_session, "state-1")
        assert await store.take(request_with_session, "state-1") is None

    @pytest.mark.asyncio
    async def test_unknown_state_returns_none(self, store, request_with_session) -> None:
        assert await store.take(request_with_session, "never-issued") is None

    @pytest.mark.asyncio
    async def test_records_kept_under_namespaced_key(self, store, request_with_session) -> None:
        await store.save(request_with_session, "state-1", "verifier-1")
        records = request_with_session.session[DEFAULT_SESSION_KEY]
        assert records["state-1"]["code_verifier"] == "verifier-1"
        assert "created_at" in records["state-1"]

    @pytest.mark.asyncio
    async def test_key_removed_when_last_record_taken(self, store, request_with_session) -> None:
        await store.save(request_with_session, "state-1", "verifier-1")
        await store.take(request_with_session, "state-1")
        assert DEFAULT_SESSION_KEY not in request_with_session.session

    @pytest.mark.asyncio
    async def test_resave_same_state_replaces_verifier(self, store, request_with_session) -> None:
        await store.save(request_with_session, "state-1", "verifier-old")
        await store.save(request_with_session, "state-1", "verifier-new")

        assert len(request_with_session.session[DEFAULT_SESSION_KEY]) == 1
        assert await store.take(request_with_session, "state-1") == "verifier-new"
        assert await store.take(request_with_session, "state-1") is None

    @pytest.mark.asyncio
    async def test_other_session_keys_untouched(self, store) -> None:
        request = AuthRequest(session={"user": "alice"})
        await store.save(request, "state-1", "verifier-1")
        await store.take(request, "state-1")
        assert request.session == {"user": "alice"}


class TestConcurrentAttempts:
    @pytest.mark.asyncio
    async def test_two_tabs_keep_independent_records(self, store, request_with_session) -> None:
        await store.save(request_with_session, "state-a", "verifier-a")
        await store.save(request_with_session, "state-b", "verifier-b")

        assert await store.take(request_with_session, "state-b") == "verifier-b"
        assert await store.take(request_with_session, "state-a") == "verifier-a"

    @pytest.mark.asyncio
    async def test_taking_one_keeps_the_other(self, store, request_with_session) -> None:
        await store.save(request_with_session, "state-a", "verifier-a")
        await store.save(request_with_session, "state-b", "verifier-b")
        await store.take(request_with_session, "state-a")
        assert list(request_with_session.session[DEFAULT_SESSION_KEY]) == ["state-b"]


class TestExpiry:
    @pytest.mark.asyncio
    async def test_expired_record_returns_none(self, request_with_session) -> None:
        store = SessionVerifierStore(state_ttl_seconds=600)
        await store.save(request_with_session, "state-1", "verifier-1")

        old = datetime.now(timezone.utc) - timedelta(seconds=601)
        request_with_session.session[DEFAULT_SESSION_KEY]["state-1"]["created_at"] = old.isoformat()

        assert await store.take(request_with_session, "state-1") is None

    @pytest.mark.asyncio
    async def test_expired_record_is_still_removed(self, request_with_session) -> None:
        store = SessionVerifierStore(state_ttl_seconds=600)
        await store.save(request_with_session, "state-1", "verifier-1")

        old = datetime.now(timezone.utc) - timedelta(hours=1)
        request_with_session.session[DEFAULT_SESSION_KEY]["state-1"]["created_at"] = old.isoformat()
        await store.take(request_with_session, "state-1")

        assert DEFAULT_SESSION_KEY not in request_with_session.session


    @pytest.mark.asyncio
    async def test_save_prunes_expired_records(self, request_with_session) -> None:
        store = SessionVerifierStore(state_ttl_seconds=600)
        for i in range(50):
            await store.save(request_with_session, f"stale-{i}", f"verifier-{i}")

        old = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        for record in request_with_session.session[DEFAULT_SESSION_KEY].values():
            record["created_at"] = old

        await store.save(request_with_session, "fresh", "verifier-fresh")

        assert list(request_with_session.session[DEFAULT_SESSION_KEY]) == ["fresh"]

    @pytest.mark.asyncio
    async def test_save_keeps_live_records(self, request_with_session) -> None:
        store = SessionVerifierStore(state_ttl_seconds=600)
        await store.save(request_with_session, "state-a", "verifier-a")
        await store.save(request_with_session, "state-b", "verifier-b")

        assert set(request_with_session.session[DEFAULT_SESSION_KEY]) == {"state-a", "state-b"}


class TestMissingSession:
    @pytest.mark.asyncio
    async def test_save_without_session_raises(self, store) -> None:
        with pytest.raises(PKCESessionUnavailable, match="session"):
            await store.save(AuthRequest(), "state-1", "verifier-1")

    @pytest.mark.asyncio
    async def test_take_without_session_raises(self, store) -> None:
        with pytest.raises(PKCESessionUnavailable):
            await store.take(AuthRequest(), "state-1")

    def test_custom_key(self) -> None:
        store = SessionVerifierStore(key="custom")
        assert store.key == "custom"


# ------------------------------------------------------------------ #
# SessionStateStore
# ------------------------------------------------------------------ #


class TestSessionStateStore:
    @pytest.mark.asyncio
    async def test_issued_state_verifies_once(self, request_with_session) -> None:
        states = SessionStateStore()
        await states.save(request_with_session, "state-1")

        assert await states.verify(request_with_session, "state-1") is True
        assert await states.verify(request_with_session, "state-1") is False
        assert DEFAULT_STATE_SESSION_KEY not in request_with_session.session

    @pytest.mark.asyncio
    async def test_unknown_state_fails(self, request_with_session) -> None:
        states = SessionStateStore()
        await states.save(request_with_session, "state-1")

        assert await states.verify(request_with_session, "bogus") is False
        assert list(request_with_session.session[DEFAULT_STATE_SESSION_KEY]) == ["state-1"]

    @pytest.mark.asyncio
    async def test_expired_state_fails(self, request_with_session) -> None:
        states = SessionStateStore(state_ttl_seconds=600)
        await states.save(request_with_session, "state-1")

        old = datetime.now(timezone.utc) - timedelta(seconds=601)
        request_with_session.session[DEFAULT_STATE_SESSION_KEY]["state-1"]["created_at"] = old.isoformat()

        assert await states.verify(request_with_session, "state-1") is False

    @pytest.mark.asyncio
    async def test_separate_from_verifier_records(self, store, request_with_session) -> None:
        await SessionStateStore().save(request_with_session, "state-1")
        assert await store.take(request_with_session, "state-1") is None

    @pytest.mark.asyncio
    async def test_requires_session(self) -> None:
        with pytest.raises(PKCESessionUnavailable):
            await SessionStateStore().save(AuthRequest(), "state-1")
