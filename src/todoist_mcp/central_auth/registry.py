"""Dynamic client registration (RFC 7591) for public PKCE clients.

The registry is the single owner of client records in the
:class:`~todoist_mcp.central_auth.store.AuthStore`.  It also hosts the
*auto-registration* decision point: an authorize request naming an unknown
client may synthesize a registration on the fly.  That convenience trusts any
well-formed redirect URI, so it can be disabled per deployment with
``auto_register=False``.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlsplit

from todoist_mcp.central_auth.clock import Clock, default_clock, now_seconds
from todoist_mcp.central_auth.errors import OAuthError, UnsupportedAuthMethodError
from todoist_mcp.central_auth.models import RegisteredClient
from todoist_mcp.central_auth.store import AuthStore
from todoist_mcp.utils.logging import mask_sensitive

_LOG = logging.getLogger("todoist-mcp.central_auth.registry")

_SUPPORTED_AUTH_METHODS = frozenset({"none"})


# --------------------------------------------------------------------------- #
# Helpers                                                                     #
# --------------------------------------------------------------------------- #
def parse_scope(scope: str | Iterable[str] | None) -> list[str]:
    """Split a space-delimited scope string into ordered, unique tokens."""
    if scope is None:
        return []
    tokens = scope.split() if isinstance(scope, str) else list(scope)
    seen: dict[str, None] = {}
    for token in tokens:
        token = str(token).strip()
        if token:
            seen.setdefault(token, None)
    return list(seen)


def is_valid_redirect_uri(uri: object) -> bool:
    """Return *True* for absolute URIs with a scheme, an authority and no fragment."""
    if not isinstance(uri, str) or not uri or uri != uri.strip():
        return False
    try:
        parts = urlsplit(uri)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc and not parts.fragment)


# --------------------------------------------------------------------------- #
# Registry                                                                    #
# --------------------------------------------------------------------------- #
class ClientRegistry:
    """In-memory registry of OAuth clients."""

    def __init__(
        self,
        store: AuthStore,
        *,
        allowed_scopes: Iterable[str],
        auto_register: bool = True,
        clock: Clock = default_clock,
    ) -> None:
        self._store = store
        self.allowed_scopes: tuple[str, ...] = tuple(parse_scope(list(allowed_scopes)))
        if not self.allowed_scopes:
            raise ValueError("at least one allowed scope is required")
        self.auto_register = auto_register
        self._clock = clock

    @property
    def default_scope(self) -> str:
        return " ".join(self.allowed_scopes)

    def sanitize_scope(self, scope: str | Iterable[str] | None) -> str:
        """Keep only allowed scopes; fall back to the full set when none survive."""
        kept = [s for s in parse_scope(scope) if s in self.allowed_scopes]
        return " ".join(kept) if kept else self.default_scope

    # ------------------------------------------------------------------ #
    # Registration                                                       #
    # ------------------------------------------------------------------ #
    def register(self, metadata: Mapping[str, Any]) -> RegisteredClient:
        """Validate RFC 7591 *metadata* and store a new public client.

        Raises
        ------
        OAuthError
            ``invalid_client_metadata`` (or its :class:`UnsupportedAuthMethodError`
            subclass) when the metadata cannot be accepted.
        """
        redirect_uris = metadata.get("redirect_uris")
        if not isinstance(redirect_uris, list) or not redirect_uris:
            raise OAuthError.invalid_client_metadata(
                "redirect_uris must be a non-empty array"
            )
        invalid = [u for u in redirect_uris if not is_valid_redirect_uri(u)]
        if invalid:
            raise OAuthError.invalid_client_metadata(
                f"redirect_uris contains an invalid URI: {invalid[0]!r}"
            )

        method = metadata.get("token_endpoint_auth_method") or "none"
        if method not in _SUPPORTED_AUTH_METHODS:
            raise UnsupportedAuthMethodError(str(method))

        grant_types = metadata.get("grant_types")
        if grant_types is not None and "authorization_code" not in (grant_types or []):
            raise OAuthError.invalid_client_metadata(
                "grant_types must include authorization_code"
            )

        client_name = metadata.get("client_name")
        if client_name is not None and not isinstance(client_name, str):
            raise OAuthError.invalid_client_metadata("client_name must be a string")

        raw_scope = metadata.get("scope")
        client = RegisteredClient(
            client_id=self._new_client_id(),
            client_name=client_name or None,
            redirect_uris=frozenset(redirect_uris),
            scope=self.sanitize_scope(raw_scope if isinstance(raw_scope, str) else None),
            registration_access_token=secrets.token_urlsafe(32),
            client_id_issued_at=now_seconds(self._clock),
        )
        self._store.put_client(client)
        _LOG.info(
            "Registered client client_id=%s redirect_uris=%d scope=%s",
            client.client_id,
            len(client.redirect_uris),
            client.scope,
        )
        return client

    def lookup(self, client_id: str) -> RegisteredClient | None:
        return self._store.get_client(client_id)

    # ------------------------------------------------------------------ #
    # Auto-registration decision point                                   #
    # ------------------------------------------------------------------ #
    def resolve_for_authorization(
        self,
        client_id: str,
        *,
        redirect_uri: str,
        scope: str | None,
    ) -> RegisteredClient:
        """Return the client behind an authorize request, registering it if allowed.

        Raises
        ------
        OAuthError
            ``invalid_client`` when the client is unknown and cannot be
            auto-registered, ``invalid_request`` when the redirect URI is not
            acceptable.
        """
        client = self._store.get_client(client_id)
        if client is not None:
            return client

        if not self.auto_register:
            raise OAuthError.invalid_client(f"Unknown client_id '{client_id}'")
        if not is_valid_redirect_uri(redirect_uri):
            raise OAuthError.invalid_request("redirect_uri is not a valid absolute URI")

        client = RegisteredClient(
            client_id=client_id,
            redirect_uris=frozenset({redirect_uri}),
            scope=self.sanitize_scope(scope),
            registration_access_token=secrets.token_urlsafe(32),
            client_id_issued_at=now_seconds(self._clock),
            auto_registered=True,
        )
        self._store.put_client(client)
        _LOG.warning(
            "Auto-registered unknown client client_id=%s redirect_uri=%s",
            mask_sensitive(client_id, 6),
            redirect_uri,
        )
        return client

    @staticmethod
    def _new_client_id() -> str:
        return f"mcp-{secrets.token_urlsafe(16)}"
