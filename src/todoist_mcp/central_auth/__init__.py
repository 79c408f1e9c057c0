"""Central authentication core package.

This namespace hosts the **HTTP-agnostic** building blocks of the OAuth 2.0
gateway placed in front of the MCP endpoint.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
pkce
    Proof-Key for Code Exchange helpers.
state
    HMAC-signed relay ``state`` encoding / validation.
models
    Immutable dataclasses for clients, pending states, codes and tokens.
errors
    Exception types used by the central auth logic.
store
    In-memory storage of every auth record.
registry
    Dynamic client registration and auto-registration.
tokens
    Bearer token minting and validation.
identity
    GitHub as upstream identity provider.
service
    The authorization flows tying all of the above together.
metadata
    Discovery documents.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, default_clock  # noqa: F401
from .errors import IdentityProviderError, OAuthError, UnsupportedAuthMethodError  # noqa: F401
from .identity import GitHubIdentityProvider  # noqa: F401
from .log_utils import get_auth_logger  # noqa: F401
from .models import (  # noqa: F401
    AuthorizationCodeRecord,
    IssuedAccessToken,
    ManualAuthorization,
    RegisteredClient,
    RelayAuthorization,
    TokenInfo,
)
from .pkce import code_challenge_s256, generate_code_verifier, verify_code_challenge  # noqa: F401
from .registry import ClientRegistry  # noqa: F401
from .service import AuthorizationService, ClientRedirect, ManualTokenIssued  # noqa: F401
from .state import InvalidStateError, build_relay_state, parse_relay_state  # noqa: F401
from .store import AuthStore, MemoryAuthStore  # noqa: F401
from .tokens import BearerTokenValidator  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "default_clock",
    # pkce
    "generate_code_verifier",
    "code_challenge_s256",
    "verify_code_challenge",
    # state
    "build_relay_state",
    "parse_relay_state",
    "InvalidStateError",
    # models
    "AuthorizationCodeRecord",
    "IssuedAccessToken",
    "ManualAuthorization",
    "RegisteredClient",
    "RelayAuthorization",
    "TokenInfo",
    # errors
    "OAuthError",
    "UnsupportedAuthMethodError",
    "IdentityProviderError",
    # components
    "AuthStore",
    "MemoryAuthStore",
    "ClientRegistry",
    "BearerTokenValidator",
    "GitHubIdentityProvider",
    "AuthorizationService",
    "ClientRedirect",
    "ManualTokenIssued",
    # logging helpers
    "get_auth_logger",
]
