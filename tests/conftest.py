"""Shared test fixtures for lineauth.

Provides a fake LINE API served through :class:`httpx.MockTransport`, a
key/value store that records the calls it receives, isolated config
directories, and CLI helpers. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from lineauth.models import PKCEMode, StrategyConfig
from lineauth.output import OutputFormat, OutputManager, reset_output, set_output
from lineauth.stores import MemoryKeyValueStore


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    Typer's CliRunner swaps sys.stdout/sys.stderr during a test; a manager
    created then would keep references to closed streams.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake LINE API
# ---------------------------------------------------------------------------


class FakeLineAPI:
    """Minimal stand-in for LINE's token and profile endpoints.

    Every request is appended to :attr:`requests`. Status codes and bodies
    can be changed per test.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body: Any = {
            "access_token": "line-access-token",
            "token_type": "Bearer",
            "refresh_token": "line-refresh-token",
            "expires_in": 2592000,
            "scope": "profile openid",
            "id_token": "header.payload.signature",
        }
        self.profile_status = 200
        self.profile_body: Any = {
            "userId": "U4af4980629",
            "displayName": "Brown",
            "pictureUrl": "https://profile.line-scdn.net/abcdefghijklmn",
            "statusMessage": "Hello, LINE!",
        }

    @property
    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/oauth2/v2.1/token"]

    @property
    def profile_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/v2/profile"]

    def last_token_form(self) -> dict[str, str]:
        """Decode the form body of the most recent token request."""
        request = self.token_requests[-1]
        return dict(httpx.QueryParams(request.content.decode("utf-8")))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth2/v2.1/token":
            return _response(self.token_status, self.token_body)
        if request.url.path == "/v2/profile":
            return _response(self.profile_status, self.profile_body)
        return httpx.Response(404, json={"message": "Not found"})


def _response(status: int, body: Any) -> httpx.Response:
    if isinstance(body, str):
        return httpx.Response(status, text=body)
    return httpx.Response(status, content=json.dumps(body).encode("utf-8"))


@pytest.fixture
def line_api() -> FakeLineAPI:
    return FakeLineAPI()


@pytest.fixture
def http_client(line_api: FakeLineAPI) -> httpx.AsyncClient:
    """An AsyncClient routed to :class:`FakeLineAPI`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(line_api.handler))


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class RecordingStore(MemoryKeyValueStore):
    """MemoryKeyValueStore that records every call it receives."""

    def __init__(self, fail_with: Optional[BaseException] = None) -> None:
        super().__init__()
        self.store_calls: list[tuple[str, str]] = []
        self.verify_calls: list[str] = []
        self.fail_with = fail_with

    @property
    def call_count(self) -> int:
        return len(self.store_calls) + len(self.verify_calls)

    async def store(self, key: str, value: str) -> None:
        self.store_calls.append((key, value))
        if self.fail_with is not None:
            raise self.fail_with
        await super().store(key, value)

    async def verify(self, key: str) -> Optional[str]:
        self.verify_calls.append(key)
        if self.fail_with is not None:
            raise self.fail_with
        return await super().verify(key)


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def base_options() -> dict[str, Any]:
    """Raw strategy options for the ``abc``/``xyz`` test channel."""
    return {
        "channel_id": "abc",
        "channel_secret": "xyz",
        "callback_url": "https://app.example.com/auth/line/callback",
    }


@pytest.fixture
def store_config(base_options: dict[str, Any]) -> StrategyConfig:
    return StrategyConfig(**base_options, pkce_mode=PKCEMode.STORE)


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME into tmp_path, clears all LINEAUTH_* environment
    variables and changes the working directory to tmp_path.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in [
        "LINEAUTH_CONFIG",
        "LINEAUTH_CHANNEL_ID",
        "LINEAUTH_CHANNEL_SECRET",
        "LINEAUTH_CALLBACK_URL",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("lineauth.config.platform.system", lambda: "Linux")
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output / CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def json_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
