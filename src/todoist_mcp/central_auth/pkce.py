"""PKCE (Proof Key for Code Exchange) helpers.

RFC 7636 binds an authorization code to a secret held by a public client: the
client sends ``code_challenge = BASE64URL(SHA256(code_verifier))`` to the
authorize endpoint and proves possession of the verifier at the token
endpoint.

Only the S256 transformation is accepted; ``plain`` challenges are rejected by
the authorization flow.

This module intentionally performs **no logging** of verifiers or challenges.
"""

from __future__ import annotations

import base64
import hmac
import secrets
from hashlib import sha256
from typing import Final

S256: Final[str] = "S256"

# RFC-7636 §4.1 mandates the verifier length between 43 and 128 characters.
_VERIFIER_LEN: Final[int] = 64
_ALLOWED_CHARS: Final[str] = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "-._~"
)


def _random_urlsafe_string(length: int) -> str:
    """Return a cryptographically secure, URL-safe random string."""
    return "".join(secrets.choice(_ALLOWED_CHARS) for _ in range(length))


def generate_code_verifier(length: int = _VERIFIER_LEN) -> str:
    """Generate a high-entropy code verifier.

    Parameters
    ----------
    length:
        Desired length between 43 and 128 characters (default 64).

    Returns
    -------
    str
        The generated code verifier.
    """
    if not 43 <= length <= 128:
        raise ValueError("code verifier length must be 43-128 characters")
    return _random_urlsafe_string(length)


def code_challenge_s256(verifier: str) -> str:
    """Compute the *S256* PKCE code challenge for a given verifier.

    Parameters
    ----------
    verifier:
        The code verifier string.

    Returns
    -------
    str
        Base64url-encoded SHA-256 hash without padding.
    """
    digest = sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_code_challenge(verifier: str, challenge: str) -> bool:
    """Return *True* if *verifier* hashes to *challenge* (constant-time compare).

    Verifiers containing non-ASCII characters can never match.
    """
    try:
        computed = code_challenge_s256(verifier)
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(computed, challenge)
