"""Canonical Pydantic models shared across lineauth modules.

Every other module imports its data shapes from here. The models fall into
two groups:

**Configuration** -- :class:`PKCEMode` and :class:`StrategyConfig`, the
fully resolved, immutable settings of one strategy instance. Build them
through :func:`lineauth.config.resolve_strategy_config` so defaults and
provider quirks are applied in one place.

**Flow data** -- :class:`PKCEPair`, :class:`VerifierRecord`,
:class:`TokenSet` and :class:`LineProfile`, produced and consumed while a
single login is in flight.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lineauth.exceptions import ConfigurationError

DEFAULT_AUTHORIZATION_URL = "https://access.line.me/oauth2/v2.1/authorize"
DEFAULT_TOKEN_URL = "https://api.line.me/oauth2/v2.1/token"
DEFAULT_PROFILE_URL = "https://api.line.me/v2/profile"
DEFAULT_SCOPE = ("profile", "openid")


# --- Configuration ---


class PKCEMode(str, enum.Enum):
    """Where (and whether) the strategy keeps PKCE verifiers between phases.

    ``SESSION`` needs no infrastructure but ties the login to one process's
    session; ``STORE`` keeps verifiers in an injected
    :class:`~lineauth.stores.KeyValueStore` and is required whenever the
    redirect and the callback may be served by different instances.
    """

    DISABLED = "disabled"
    SESSION = "session"
    STORE = "store"


class StrategyConfig(BaseModel):
    """Resolved configuration of a :class:`~lineauth.strategy.LineStrategy`.

    Immutable after construction. ``channel_id`` and ``channel_secret`` are
    the LINE Login channel's client credentials. Invalid values raise
    :class:`~lineauth.exceptions.ConfigurationError`.

    Example::

        StrategyConfig(
            channel_id="1234567890",
            channel_secret="s3cr3t",
            callback_url="https://example.com/auth/line/callback",
            pkce_mode=PKCEMode.STORE,
        )
    """

    model_config = ConfigDict(frozen=True)

    channel_id: str = Field(min_length=1, description="LINE Login channel ID")
    channel_secret: str = Field(min_length=1, description="LINE Login channel secret")
    callback_url: Optional[str] = Field(
        default=None, description="redirect_uri registered for the channel"
    )
    scope: tuple[str, ...] = DEFAULT_SCOPE
    bot_prompt: Optional[Literal["normal", "aggressive"]] = Field(
        default=None, description="Offer to add the channel's LINE Official Account"
    )
    ui_locales: Optional[str] = None
    prompt: Optional[Literal["consent"]] = Field(
        default=None, description="Force the consent screen"
    )
    authorization_url: str = DEFAULT_AUTHORIZATION_URL
    token_url: str = DEFAULT_TOKEN_URL
    profile_url: str = DEFAULT_PROFILE_URL
    pkce_mode: PKCEMode = PKCEMode.DISABLED
    state_ttl_seconds: int = Field(
        default=600, gt=0, description="Maximum age of a session-backed record"
    )
    use_authorization_header_for_get: bool = True
    timeout: float = Field(default=30.0, gt=0)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid strategy configuration: {exc}") from exc

    @property
    def pkce_enabled(self) -> bool:
        return self.pkce_mode is not PKCEMode.DISABLED


# --- Flow data ---


class PKCEPair(BaseModel):
    """A PKCE verifier and its S256 challenge.

    Only ``code_verifier`` is ever persisted; ``code_challenge`` travels once
    in the authorization redirect.
    """

    model_config = ConfigDict(frozen=True)

    code_verifier: str = Field(min_length=43, max_length=128)
    code_challenge: str
    code_challenge_method: Literal["S256"] = "S256"


class VerifierRecord(BaseModel):
    """A verifier bound to the state token of one authorization attempt."""

    state: str
    code_verifier: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TokenSet(BaseModel):
    """Parsed token endpoint response.

    LINE returns ``id_token`` when the ``openid`` scope was granted. Unknown
    keys are kept and reachable through ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None


class LineProfile(BaseModel):
    """Normalised LINE user profile.

    Attributes:
        provider: Always ``"line"``.
        id: The LINE ``userId``.
        display_name: The user's display name.
        picture_url: Profile image URL, when the user has one.
        status_message: The user's status message, when set.
        raw: The undecoded response body.
    """

    provider: Literal["line"] = "line"
    id: str
    display_name: str
    picture_url: Optional[str] = None
    status_message: Optional[str] = None
    raw: str = ""
