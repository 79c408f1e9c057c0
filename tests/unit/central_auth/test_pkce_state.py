"""
Unit tests for PKCE helpers and relay-state helpers.

These tests are CI-safe (no network), cover:
* Code-verifier / S256 challenge generation and verification
* Relay state build / parse happy-path
* Signature tamper detection and expiry
"""

from __future__ import annotations

import base64
import re
from hashlib import sha256

import pytest

from todoist_mcp.central_auth.pkce import (
    code_challenge_s256,
    generate_code_verifier,
    verify_code_challenge,
)
from todoist_mcp.central_auth.state import (
    InvalidStateError,
    build_relay_state,
    new_transaction_id,
    parse_relay_state,
)

ALLOWED_CHARS_RE = re.compile(r"^[A-Za-z0-9\-._~]+$")  # RFC-7636
SECRET = "unit-test-secret"


# --------------------------------------------------------------------------- #
# PKCE                                                                        #
# --------------------------------------------------------------------------- #
def test_generate_code_verifier_default_length() -> None:
    verifier = generate_code_verifier()
    assert 43 <= len(verifier) <= 128
    assert ALLOWED_CHARS_RE.match(verifier), "Verifier contains non-RFC chars"


def test_generate_code_verifier_invalid_len() -> None:
    with pytest.raises(ValueError):
        generate_code_verifier(20)
    with pytest.raises(ValueError):
        generate_code_verifier(200)


def test_code_challenge_s256_matches_reference() -> None:
    verifier = "test_verifier_1234567890"
    digest = sha256(verifier.encode("ascii")).digest()
    expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    assert code_challenge_s256(verifier) == expected
    assert "=" not in expected


def test_code_challenge_rfc7636_appendix_b() -> None:
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert code_challenge_s256(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_verify_code_challenge() -> None:
    verifier = generate_code_verifier()
    challenge = code_challenge_s256(verifier)
    assert verify_code_challenge(verifier, challenge) is True
    assert verify_code_challenge(verifier + "x", challenge) is False
    assert verify_code_challenge("vérifier-non-ascii", challenge) is False


# --------------------------------------------------------------------------- #
# Relay state                                                                 #
# --------------------------------------------------------------------------- #
def test_relay_state_round_trip(clock) -> None:
    txn_id = new_transaction_id()
    state = build_relay_state(txn_id, SECRET, clock=clock)
    parsed_txn, issued_at = parse_relay_state(state, SECRET, clock=clock)
    assert parsed_txn == txn_id
    assert issued_at == int(clock())


def test_relay_state_rejects_wrong_secret(clock) -> None:
    state = build_relay_state("txn-1", SECRET, clock=clock)
    with pytest.raises(InvalidStateError, match="signature"):
        parse_relay_state(state, "other-secret", clock=clock)


def test_relay_state_tamper_detection(clock) -> None:
    state = build_relay_state("txn-1", SECRET, clock=clock)
    decoded = base64.urlsafe_b64decode(state + "=" * (-len(state) % 4)).decode()
    txn, ts, sig = decoded.split(":")
    forged = base64.urlsafe_b64encode(f"txn-2:{ts}:{sig}".encode()).rstrip(b"=").decode()
    with pytest.raises(InvalidStateError):
        parse_relay_state(forged, SECRET, clock=clock)


@pytest.mark.parametrize("garbage", ["", "not base64 !!", "Zm9v"])
def test_relay_state_rejects_garbage(garbage: str) -> None:
    with pytest.raises(InvalidStateError):
        parse_relay_state(garbage, SECRET)


def test_relay_state_expiry(clock) -> None:
    state = build_relay_state("txn-1", SECRET, clock=clock)
    clock.advance(60)
    parse_relay_state(state, SECRET, max_age_seconds=120, clock=clock)
    clock.advance(61)
    with pytest.raises(InvalidStateError, match="expired"):
        parse_relay_state(state, SECRET, max_age_seconds=120, clock=clock)
