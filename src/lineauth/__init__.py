"""lineauth -- LINE Login (OAuth 2.0 authorization code) with PKCE.

The package provides :class:`~lineauth.strategy.LineStrategy`, a
framework-agnostic strategy that redirects users to LINE, handles the
callback, and hands the resulting profile to an application-supplied
verify callback. PKCE verifiers can be kept in the request session or in
an external key/value store (Redis, a disk cache) so that any instance can
serve the callback.

Typical usage::

    from lineauth import AuthRequest, LineStrategy, PlainVerify, Redirect

    strategy = LineStrategy(options, PlainVerify(find_or_create_user))
    outcome = await strategy.authenticate(AuthRequest(query=query, session=session))

Modules:
    strategy: The strategy, request context, outcomes and verify wrappers.
    stores: Verifier store adapters and key/value backends.
    oauth2: Generic OAuth2 client (token exchange, authenticated GET).
    pkce: PKCE pair and state token generation.
    config: Option resolution, credential sources and config files.
    models: Pydantic models shared across the package.
    exceptions: Exception hierarchy with exit-code mapping.
    app: The ``lineauth`` developer CLI.
"""

__version__ = "0.1.0"

from lineauth.exceptions import (  # noqa: E402
    AuthorizationError,
    ConfigurationError,
    InternalProviderError,
    InvalidStateError,
    LineAuthError,
    PKCESessionUnavailable,
    PKCEVerifierNotFound,
    StoreOperationError,
    TokenExchangeError,
    VerificationError,
)
from lineauth.models import LineProfile, PKCEMode, PKCEPair, StrategyConfig, TokenSet  # noqa: E402
from lineauth.strategy import (  # noqa: E402
    AuthOptions,
    AuthRequest,
    AuthSuccess,
    LineStrategy,
    PlainVerify,
    Redirect,
    RequestVerify,
)

__all__ = [
    "AuthOptions",
    "AuthRequest",
    "AuthSuccess",
    "AuthorizationError",
    "ConfigurationError",
    "InternalProviderError",
    "InvalidStateError",
    "LineAuthError",
    "LineProfile",
    "LineStrategy",
    "PKCEMode",
    "PKCEPair",
    "PKCESessionUnavailable",
    "PKCEVerifierNotFound",
    "PlainVerify",
    "Redirect",
    "RequestVerify",
    "StoreOperationError",
    "StrategyConfig",
    "TokenExchangeError",
    "TokenSet",
    "VerificationError",
    "__version__",
]
