"""Generic OAuth2 authorization-code client.

:class:`OAuth2Client` covers the provider-agnostic half of the flow that
:class:`~lineauth.strategy.LineStrategy` builds on: composing the
authorization URL, exchanging an authorization code at the token endpoint,
and issuing authenticated GET requests with the resulting access token.

All HTTP goes through :class:`httpx.AsyncClient`. Pass one in to share a
connection pool (or a mock transport in tests); otherwise a short-lived
client is opened per call.

See Also:
    :mod:`lineauth.strategy` for the LINE-specific flow on top of this.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional
from urllib.parse import urlencode, urlsplit

import httpx
from pydantic import ValidationError

from lineauth.exceptions import InternalProviderError, TokenExchangeError
from lineauth.models import TokenSet

logger = logging.getLogger(__name__)


class OAuth2Client:
    """Client for one OAuth2 provider registration.

    Args:
        client_id: The registered client identifier.
        client_secret: The client secret, sent in the token request body.
        authorization_url: The provider's authorization endpoint.
        token_url: The provider's token endpoint.
        http_client: Optional shared :class:`httpx.AsyncClient`.
        timeout: Request timeout in seconds when no client is supplied.
        use_authorization_header_for_get: Send the access token as a
            ``Bearer`` header on :meth:`get` (otherwise as the
            ``access_token`` query parameter).
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        authorization_url: str,
        token_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        use_authorization_header_for_get: bool = True,
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.authorization_url = authorization_url
        self.token_url = token_url
        self._http_client = http_client
        self._timeout = timeout
        self._use_authorization_header_for_get = use_authorization_header_for_get

    def authorize_url(self, params: dict[str, str]) -> str:
        """Return the authorization endpoint URL with *params* appended.

        Existing query parameters on the configured endpoint are preserved.
        """
        separator = "&" if urlsplit(self.authorization_url).query else "?"
        return f"{self.authorization_url}{separator}{urlencode(params)}"

    async def exchange_code(self, code: str, params: Optional[dict[str, str]] = None) -> TokenSet:
        """Exchange an authorization code for tokens.

        Args:
            code: The authorization code from the callback.
            params: Extra form fields, e.g. ``redirect_uri`` and
                ``code_verifier``.

        Returns:
            The parsed :class:`~lineauth.models.TokenSet`.

        Raises:
            TokenExchangeError: The token endpoint returned an error
                response.
            InternalProviderError: On network failures or an unusable
                response body.
        """
        data: dict[str, str] = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
            "client_secret": self._client_secret,
        }
        data.update(params or {})

        try:
            async with self._client() as client:
                response = await client.post(
                    self.token_url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise InternalProviderError(f"Failed to obtain access token: {exc}", original=exc) from exc

        if response.status_code >= 400:
            raise _token_error(response)

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise InternalProviderError("Token response is not valid JSON", original=exc) from exc

        if not isinstance(payload, dict) or "access_token" not in payload:
            raise InternalProviderError("Token response missing 'access_token' field")

        try:
            tokens = TokenSet.model_validate(payload)
        except ValidationError as exc:
            raise InternalProviderError(f"Malformed token response: {exc}", original=exc) from exc

        logger.debug("Exchanged authorization code for tokens (scope=%s)", tokens.scope)
        return tokens

    async def get(self, url: str, access_token: str) -> str:
        """GET *url* on behalf of the token holder and return the body text.

        Raises:
            InternalProviderError: On network failures or a non-2xx status.
        """
        headers: dict[str, str] = {"Accept": "application/json"}
        params: dict[str, str] = {}
        if self._use_authorization_header_for_get:
            headers["Authorization"] = f"Bearer {access_token}"
        else:
            params["access_token"] = access_token

        try:
            async with self._client() as client:
                response = await client.get(url, headers=headers, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise InternalProviderError(
                f"Request to {url} failed with status {exc.response.status_code}: "
                f"{exc.response.text}",
                original=exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise InternalProviderError(f"Request to {url} failed: {exc}", original=exc) from exc

        return response.text

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client


def _token_error(response: httpx.Response) -> TokenExchangeError:
    """Build a :class:`TokenExchangeError` from an error response."""
    error: Optional[str] = None
    description = f"Token exchange failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        description = body.get("error_description") or error or description
    return TokenExchangeError(description, error=error, status_code=response.status_code)
