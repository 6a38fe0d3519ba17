"""LINE Login strategy with optional PKCE.

:class:`LineStrategy` drives one LINE Login channel through the OAuth2
authorization-code flow. Every inbound request is handed to
:meth:`LineStrategy.authenticate`, which decides which leg of the flow it
belongs to:

1. **Denial** -- LINE redirected back with ``error_code``/``error_message``
   (or a generic ``error``): raise :class:`~lineauth.exceptions.AuthorizationError`
   before anything else happens.
2. **Authorization phase** -- no ``code`` parameter: mint a state token (and,
   with PKCE, a verifier pair), bind it, and return a :class:`Redirect` to LINE.
3. **Callback phase** -- ``code`` present: check ``state`` against what was
   bound (exactly once), exchange the code, fetch the profile, and hand
   both to the application's verify callback.

The strategy itself is stateless between requests; everything that must
survive the redirect lives in a :class:`~lineauth.stores.VerifierStore`, or
in the session when PKCE is disabled.

Example::

    strategy = LineStrategy(
        {
            "channel_id": "1234567890",
            "channel_secret": "s3cr3t",
            "callback_url": "https://example.com/auth/line/callback",
            "pkce": "store",
        },
        PlainVerify(find_or_create_user),
        pkce_store=RedisKeyValueStore(redis_client),
    )

    outcome = await strategy.authenticate(AuthRequest(query=dict(request.query_params)))
    if isinstance(outcome, Redirect):
        return RedirectResponse(outcome.url)
    login(outcome.user)
"""

from __future__ import annotations

import hmac
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, MutableMapping, Optional, Union

import httpx
from pydantic import ValidationError

from lineauth.config import resolve_strategy_config
from lineauth.exceptions import (
    AuthorizationError,
    ConfigurationError,
    InternalProviderError,
    InvalidStateError,
    PKCEVerifierNotFound,
    VerificationError,
)
from lineauth.models import LineProfile, PKCEMode, StrategyConfig, TokenSet
from lineauth.oauth2 import OAuth2Client
from lineauth.pkce import generate_pkce_pair, generate_state
from lineauth.stores.base import KeyValueStore, VerifierStore
from lineauth.stores.external import ExternalVerifierStore
from lineauth.stores.session import SessionStateStore, SessionVerifierStore

logger = logging.getLogger(__name__)


# --- Request context ---


@dataclass
class AuthRequest:
    """The parts of an inbound HTTP request the strategy looks at.

    Attributes:
        query: Query string parameters.
        session: The request's mutable session, if the web layer provides
            one. Read by session-backed PKCE, and by state binding when
            PKCE is disabled.
    """

    query: Mapping[str, str] = field(default_factory=dict)
    session: Optional[MutableMapping[str, Any]] = None


@dataclass
class AuthOptions:
    """Per-request overrides.

    ``state``, ``code_challenge`` and ``code_verifier`` are for manual mode:
    with PKCE disabled in the config, the caller can manage its own state and
    pair. At authorization time they are forwarded untouched; at callback
    time ``state`` is the value the returned ``state`` must equal. Without a
    caller-supplied ``state`` the strategy generates one and binds it to the
    request's session.
    """

    callback_url: Optional[str] = None
    scope: Optional[tuple[str, ...]] = None
    state: Optional[str] = None
    code_challenge: Optional[str] = None
    code_challenge_method: str = "S256"
    code_verifier: Optional[str] = None


# --- Outcomes ---


@dataclass(frozen=True)
class Redirect:
    """Send the user agent to ``url``."""

    url: str
    state: str


@dataclass(frozen=True)
class AuthSuccess:
    """The callback completed and the verify callback accepted the user."""

    user: Any
    profile: LineProfile
    tokens: TokenSet


# --- Verify callbacks ---


@dataclass(frozen=True)
class PlainVerify:
    """Verify callback receiving ``(tokens, profile)``."""

    func: Callable[[TokenSet, LineProfile], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class RequestVerify:
    """Verify callback receiving ``(request, tokens, profile)``."""

    func: Callable[[AuthRequest, TokenSet, LineProfile], Union[Any, Awaitable[Any]]]


VerifyCallback = Union[PlainVerify, RequestVerify]


class LineStrategy:
    """OAuth2 strategy for LINE Login.

    Args:
        config: A resolved :class:`~lineauth.models.StrategyConfig` or a raw
            option mapping for :func:`~lineauth.config.resolve_strategy_config`.
        verify: The application's verify callback, wrapped in
            :class:`PlainVerify` or :class:`RequestVerify`.
        pkce_store: Key/value backend for store-backed PKCE. Required when
            ``pkce_mode`` is ``store``, rejected otherwise.
        http_client: Optional shared :class:`httpx.AsyncClient`.

    Raises:
        ConfigurationError: If the configuration is invalid or does not
            match the supplied store.
    """

    name = "line"

    def __init__(
        self,
        config: Union[StrategyConfig, Mapping[str, Any]],
        verify: VerifyCallback,
        pkce_store: Optional[KeyValueStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not isinstance(config, StrategyConfig):
            config = resolve_strategy_config(config)
        if not isinstance(verify, (PlainVerify, RequestVerify)):
            raise ConfigurationError("verify must be wrapped in PlainVerify or RequestVerify")

        self._config = config
        self._verify = verify
        self._verifier_store = _build_verifier_store(config, pkce_store)
        self._state_store = (
            SessionStateStore(state_ttl_seconds=config.state_ttl_seconds)
            if self._verifier_store is None
            else None
        )
        self._oauth2 = OAuth2Client(
            client_id=config.channel_id,
            client_secret=config.channel_secret,
            authorization_url=config.authorization_url,
            token_url=config.token_url,
            http_client=http_client,
            timeout=config.timeout,
            use_authorization_header_for_get=config.use_authorization_header_for_get,
        )

    @property
    def config(self) -> StrategyConfig:
        return self._config

    @property
    def verifier_store(self) -> Optional[VerifierStore]:
        return self._verifier_store

    async def authenticate(
        self, request: AuthRequest, options: Optional[AuthOptions] = None
    ) -> Union[Redirect, AuthSuccess]:
        """Process one inbound request.

        Returns:
            :class:`Redirect` during the authorization phase,
            :class:`AuthSuccess` at the end of a successful callback.

        Raises:
            AuthorizationError: LINE reported a denial.
            PKCESessionUnavailable: State or verifiers live in the session and
                the request has none.
            InvalidStateError: The callback's state is missing or was not
                issued for this login (:class:`PKCEVerifierNotFound` when a
                verifier store is in use).
            StoreOperationError: The verifier store failed.
            InternalProviderError: Token exchange or profile fetch failed.
            VerificationError: The verify callback returned no user.
        """
        options = options or AuthOptions()
        query = request.query

        # LINE's own denial format, checked before any other processing.
        if query.get("error_code") and not query.get("error"):
            raise AuthorizationError(
                query.get("error_message") or "Authorization failed",
                code=_parse_error_code(query["error_code"]),
            )
        if query.get("error"):
            raise AuthorizationError(
                query.get("error_description") or query["error"],
                error=query["error"],
            )

        code = query.get("code")
        if not code:
            return await self._authorization_phase(request, options)
        return await self._callback_phase(request, code, options)

    def authorization_params(self, options: AuthOptions) -> dict[str, str]:
        """Return LINE-specific authorization parameters.

        ``bot_prompt`` is only sent for ``normal``/``aggressive`` and
        ``prompt`` only for ``consent``; anything else never reaches LINE.
        """
        params: dict[str, str] = {}
        if self._config.bot_prompt in ("normal", "aggressive"):
            params["bot_prompt"] = self._config.bot_prompt
        if self._config.ui_locales:
            params["ui_locales"] = self._config.ui_locales
        if self._config.prompt == "consent":
            params["prompt"] = self._config.prompt
        return params

    async def user_profile(self, access_token: str) -> LineProfile:
        """Fetch and normalise the LINE profile for *access_token*.

        Raises:
            InternalProviderError: If the request fails or the body is not a
                usable profile.
        """
        try:
            body = await self._oauth2.get(self._config.profile_url, access_token)
        except InternalProviderError as exc:
            raise InternalProviderError("Failed to fetch user profile", original=exc) from exc

        try:
            data = json.loads(body)
            return LineProfile(
                id=data["userId"],
                display_name=data["displayName"],
                picture_url=data.get("pictureUrl"),
                status_message=data.get("statusMessage"),
                raw=body,
            )
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            raise InternalProviderError("Failed to parse user profile", original=exc) from exc

    # ------------------------------------------------------------------ #
    # Phases
    # ------------------------------------------------------------------ #

    async def _authorization_phase(self, request: AuthRequest, options: AuthOptions) -> Redirect:
        params = self.authorization_params(options)
        params.update(
            {
                "response_type": "code",
                "client_id": self._config.channel_id,
                "scope": " ".join(options.scope or self._config.scope),
            }
        )
        redirect_uri = options.callback_url or self._config.callback_url
        if redirect_uri:
            params["redirect_uri"] = redirect_uri

        if self._verifier_store is not None:
            pair = generate_pkce_pair()
            state = generate_state()
            # Nothing is redirected unless the verifier was stored.
            await self._verifier_store.save(request, state, pair.code_verifier)
            params["code_challenge"] = pair.code_challenge
            params["code_challenge_method"] = pair.code_challenge_method
        else:
            if options.state:
                state = options.state
            else:
                state = generate_state()
                await self._state_store.save(request, state)
            if options.code_challenge:
                params["code_challenge"] = options.code_challenge
                params["code_challenge_method"] = options.code_challenge_method

        params["state"] = state

        logger.debug("Redirecting to LINE authorization endpoint (pkce=%s)", self._config.pkce_mode.value)
        return Redirect(url=self._oauth2.authorize_url(params), state=state)

    async def _callback_phase(self, request: AuthRequest, code: str, options: AuthOptions) -> AuthSuccess:
        token_params: dict[str, str] = {}
        redirect_uri = options.callback_url or self._config.callback_url
        if redirect_uri:
            token_params["redirect_uri"] = redirect_uri

        if self._verifier_store is not None:
            state = request.query.get("state")
            if not state:
                raise PKCEVerifierNotFound("Callback is missing the state parameter")
            code_verifier = await self._verifier_store.take(request, state)
            if code_verifier is None:
                raise PKCEVerifierNotFound(
                    "No PKCE verifier for this state; it expired, was already used, "
                    "or was never issued. Restart the login."
                )
            token_params["code_verifier"] = code_verifier
        else:
            await self._check_state(request, options)
            if options.code_verifier:
                token_params["code_verifier"] = options.code_verifier

        tokens = await self._oauth2.exchange_code(code, token_params)
        profile = await self.user_profile(tokens.access_token)

        user = await self._call_verify(request, tokens, profile)
        if not user:
            raise VerificationError(f"Verify callback rejected LINE user {profile.id}")

        logger.info("LINE login succeeded for user %s", profile.id)
        return AuthSuccess(user=user, profile=profile, tokens=tokens)

    async def _check_state(self, request: AuthRequest, options: AuthOptions) -> None:
        returned = request.query.get("state")
        if not returned:
            raise InvalidStateError("Callback is missing the state parameter")

        if options.state:
            valid = hmac.compare_digest(returned.encode(), options.state.encode())
        else:
            valid = await self._state_store.verify(request, returned)

        if not valid:
            raise InvalidStateError(
                "State does not match this login; it expired, was already used, "
                "or was never issued. Restart the login."
            )

    async def _call_verify(self, request: AuthRequest, tokens: TokenSet, profile: LineProfile) -> Any:
        if isinstance(self._verify, RequestVerify):
            result = self._verify.func(request, tokens, profile)
        else:
            result = self._verify.func(tokens, profile)
        if inspect.isawaitable(result):
            result = await result
        return result


def _build_verifier_store(
    config: StrategyConfig, pkce_store: Optional[KeyValueStore]
) -> Optional[VerifierStore]:
    """Pick the verifier store for *config*'s PKCE mode."""
    if config.pkce_mode is PKCEMode.STORE:
        if pkce_store is None:
            raise ConfigurationError("Store-backed PKCE requires a pkce_store")
        return ExternalVerifierStore(pkce_store)
    if pkce_store is not None:
        raise ConfigurationError(
            f"pkce_store was given but PKCE mode is '{config.pkce_mode.value}'; set pkce to 'store'"
        )
    if config.pkce_mode is PKCEMode.SESSION:
        return SessionVerifierStore(state_ttl_seconds=config.state_ttl_seconds)
    return None


def _parse_error_code(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
