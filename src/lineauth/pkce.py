"""PKCE (:rfc:`7636`) pair generation and state tokens.

Both helpers draw from :mod:`secrets` on every call; nothing is cached, so
no two authorization attempts ever share a verifier or a state.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from lineauth.models import PKCEPair

# 64 random bytes encode to 86 URL-safe characters, inside RFC 7636's 43-128.
_VERIFIER_BYTES = 64
_STATE_BYTES = 24


def derive_code_challenge(code_verifier: str) -> str:
    """Return ``BASE64URL(SHA256(code_verifier))`` without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce_pair() -> PKCEPair:
    """Generate a PKCE ``code_verifier`` and its S256 ``code_challenge``.

    Returns:
        A fresh :class:`~lineauth.models.PKCEPair`.
    """
    code_verifier = secrets.token_urlsafe(_VERIFIER_BYTES)
    return PKCEPair(
        code_verifier=code_verifier,
        code_challenge=derive_code_challenge(code_verifier),
    )


def generate_state() -> str:
    """Generate an unguessable state token for CSRF protection.

    The token is independent of any verifier; it only names the stored
    record.
    """
    return secrets.token_urlsafe(_STATE_BYTES)
