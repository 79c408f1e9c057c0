"""Typed, immutable records used by the OAuth gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, Literal, Union

from todoist_mcp.central_auth.clock import Clock, default_clock, now_seconds

PENDING_TTL_SECONDS: Final[int] = 15 * 60
CODE_TTL_SECONDS: Final[int] = 10 * 60
TOKEN_TTL_SECONDS: Final[int] = 24 * 60 * 60

STATIC_TOKEN_USER: Final[str] = "static-token"


def _now() -> int:
    return now_seconds()


@dataclass(frozen=True, slots=True)
class RegisteredClient:
    """A public OAuth client known to the registry."""

    client_id: str
    redirect_uris: frozenset[str]
    scope: str
    registration_access_token: str
    client_name: str | None = None
    token_endpoint_auth_method: str = "none"
    client_id_issued_at: int = field(default_factory=_now)
    client_secret_expires_at: int = 0
    auto_registered: bool = False

    def allows_redirect(self, redirect_uri: str) -> bool:
        return redirect_uri in self.redirect_uris

    def to_payload(self) -> dict[str, Any]:
        """Return the RFC 7591 registration response body."""
        payload: dict[str, Any] = {
            "client_id": self.client_id,
            "redirect_uris": sorted(self.redirect_uris),
            "scope": self.scope,
            "token_endpoint_auth_method": self.token_endpoint_auth_method,
            "grant_types": ["authorization_code"],
            "response_types": ["code"],
            "client_id_issued_at": self.client_id_issued_at,
            "client_secret_expires_at": self.client_secret_expires_at,
            "registration_access_token": self.registration_access_token,
        }
        if self.client_name:
            payload["client_name"] = self.client_name
        return payload


@dataclass(frozen=True, slots=True)
class ManualAuthorization:
    """Pending state of the operator-facing direct token flow."""

    scope: str
    created_at: int = field(default_factory=_now)
    ttl_seconds: int = PENDING_TTL_SECONDS

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        """Return *True* if the pending state exceeded its TTL."""
        return (clock() - self.created_at) > self.ttl_seconds


@dataclass(frozen=True, slots=True)
class RelayAuthorization:
    """Pending state of a client authorization request relayed upstream."""

    client_id: str
    redirect_uri: str
    code_challenge: str
    scope: str
    original_state: str
    code_challenge_method: Literal["S256"] = "S256"
    created_at: int = field(default_factory=_now)
    ttl_seconds: int = PENDING_TTL_SECONDS

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        """Return *True* if the pending state exceeded its TTL."""
        return (clock() - self.created_at) > self.ttl_seconds


PendingAuthorization = Union[ManualAuthorization, RelayAuthorization]


@dataclass(frozen=True, slots=True)
class AuthorizationCodeRecord:
    """Single-use authorization code bound to a client and PKCE challenge."""

    client_id: str
    redirect_uri: str
    code_challenge: str
    scope: str
    user: str
    created_at: int
    expires_at: int
    code_challenge_method: Literal["S256"] = "S256"

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        return clock() >= self.expires_at


@dataclass(frozen=True, slots=True)
class IssuedAccessToken:
    """Bearer token minted by the gateway.

    ``expires_at`` is ``None`` for tokens minted by the manual flow, which
    never expire.
    """

    user: str
    scope: str
    created_at: int
    expires_at: int | None = None
    client_id: str | None = None

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        return self.expires_at is not None and clock() >= self.expires_at


@dataclass(frozen=True, slots=True)
class TokenInfo:
    """What the validator knows about an accepted bearer token."""

    user: str
    scope: str
    expires_at: int | None
    source: Literal["issued", "static"]
    client_id: str | None = None
