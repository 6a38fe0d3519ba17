"""Exception hierarchy for lineauth.

All exceptions inherit from :class:`LineAuthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`lineauth.exit_codes`.
:meth:`lineauth.strategy.LineStrategy.authenticate` reports every failure
of the login flow by raising one of these, so a web handler only needs a
single ``except LineAuthError`` to route the user to its failure page.

Subclass hierarchy::

    LineAuthError                 (exit 1)
    +-- ConfigurationError        (exit 4)
    +-- AuthorizationError        (exit 3)
    +-- PKCESessionUnavailable    (exit 4)
    +-- InvalidStateError         (exit 3)
    |   +-- PKCEVerifierNotFound  (exit 3)
    +-- VerificationError         (exit 3)
    +-- StoreOperationError       (exit 6)
    +-- InternalProviderError     (exit 5)
        +-- TokenExchangeError    (exit 5)
"""

from __future__ import annotations

from typing import Optional

from lineauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_PROVIDER_ERROR,
    EXIT_STORE_ERROR,
)


class LineAuthError(Exception):
    """Base exception for all lineauth errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(LineAuthError):
    """Raised at construction time when the channel configuration is unusable."""

    exit_code = EXIT_CONFIG_ERROR


class AuthorizationError(LineAuthError):
    """LINE redirected back with a denial instead of an authorization code.

    LINE reports denials as ``error_code``/``error_message`` query parameters
    rather than the generic OAuth ``error`` parameter; both forms end up
    here. Not retryable.

    Args:
        message: The provider's message.
        code: The provider's numeric error code, if one was given.
        error: The generic OAuth ``error`` value, if that form was used.
    """

    exit_code = EXIT_AUTH_FAILURE
    status = 500

    def __init__(self, message: str, code: Optional[int] = None, error: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.error = error


class PKCESessionUnavailable(LineAuthError):
    """The strategy keeps state in the session but the request carries none.

    Raised for session-backed PKCE, and for state binding when PKCE is
    disabled and the caller manages no state of its own. Enable session
    support in the web layer or switch the strategy to store-backed PKCE.
    """

    exit_code = EXIT_CONFIG_ERROR


class InvalidStateError(LineAuthError):
    """The callback's ``state`` is missing or does not match one that was issued.

    This is the CSRF check on the callback. The flow must be restarted from
    the authorization redirect.
    """

    exit_code = EXIT_AUTH_FAILURE


class PKCEVerifierNotFound(InvalidStateError):
    """No verifier is bound to the callback's ``state``.

    The state is unknown, expired, or was already consumed. The flow must be
    restarted from the authorization redirect; retrying the same callback
    will never succeed.
    """

    exit_code = EXIT_AUTH_FAILURE


class VerificationError(LineAuthError):
    """The application's verify callback did not return a user."""

    exit_code = EXIT_AUTH_FAILURE


class StoreOperationError(LineAuthError):
    """The verifier store backend failed.

    Args:
        message: Description of the failed operation.
        original: The exception raised by the backend, when wrapped.
    """

    exit_code = EXIT_STORE_ERROR

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class InternalProviderError(LineAuthError):
    """Token exchange or profile fetch against LINE failed.

    Args:
        message: Description of the failed step.
        original: The underlying transport or parse error.
    """

    exit_code = EXIT_PROVIDER_ERROR

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class TokenExchangeError(InternalProviderError):
    """The token endpoint answered with an OAuth error body.

    Args:
        message: The ``error_description`` (or a generic message).
        error: The OAuth ``error`` code, e.g. ``"invalid_grant"``.
        status_code: The HTTP status of the token response.
    """

    def __init__(
        self,
        message: str,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
        original: Optional[BaseException] = None,
    ):
        super().__init__(message, original)
        self.error = error
        self.status_code = status_code
