"""Tests for PKCE pair and state generation.

Covers:
- S256 challenge derivation against the RFC 7636 appendix B vector
- Verifier length and alphabet bounds
- Freshness of every generated verifier and state
- Independence of state tokens from verifiers
"""

from __future__ import annotations

import re

import pytest
from pydantic import ValidationError

from lineauth.models import PKCEPair
from lineauth.pkce import derive_code_challenge, generate_pkce_pair, generate_state

_UNRESERVED = re.compile(r"^[A-Za-z0-9\-._~]+$")


class TestDeriveCodeChallenge:
    def test_rfc7636_appendix_b_vector(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert derive_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_no_padding(self) -> None:
        assert "=" not in derive_code_challenge("a" * 43)

    def test_deterministic(self) -> None:
        verifier = generate_pkce_pair().code_verifier
        assert derive_code_challenge(verifier) == derive_code_challenge(verifier)


class TestGeneratePkcePair:
    def test_challenge_matches_verifier(self) -> None:
        pair = generate_pkce_pair()
        assert pair.code_challenge == derive_code_challenge(pair.code_verifier)
        assert pair.code_challenge_method == "S256"

    def test_verifier_length_within_bounds(self) -> None:
        for _ in range(100):
            verifier = generate_pkce_pair().code_verifier
            assert 43 <= len(verifier) <= 128

    def test_verifier_uses_unreserved_characters(self) -> None:
        assert _UNRESERVED.match(generate_pkce_pair().code_verifier)

    def test_no_collisions_across_many_pairs(self) -> None:
        verifiers = {generate_pkce_pair().code_verifier for _ in range(10_000)}
        assert len(verifiers) == 10_000

    def test_pair_is_immutable(self) -> None:
        pair = generate_pkce_pair()
        with pytest.raises(ValidationError):
            pair.code_verifier = "x" * 43  # type: ignore[misc]

    def test_short_verifier_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PKCEPair(code_verifier="too-short", code_challenge="c")


class TestGenerateState:
    def test_states_are_unique(self) -> None:
        states = {generate_state() for _ in range(10_000)}
        assert len(states) == 10_000

    def test_state_carries_at_least_16_random_bytes(self) -> None:
        # 16 bytes base64url-encode to 22 characters.
        assert len(generate_state()) >= 22

    def test_state_is_url_safe(self) -> None:
        assert _UNRESERVED.match(generate_state())

    def test_state_independent_of_verifier(self) -> None:
        pair = generate_pkce_pair()
        state = generate_state()
        assert state != pair.code_verifier
        assert state != pair.code_challenge
