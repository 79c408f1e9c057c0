"""AuthorizationService – the OAuth 2.0 authorization flow state machine.

Two entry points converge on one upstream identity redirect and callback:

* **manual flow** – an operator opens the login route, signs in with GitHub
  and is shown a non-expiring bearer token;
* **relay flow** – an MCP client runs authorization-code + PKCE against this
  gateway, which relays the user through GitHub and then issues its own code
  and (24h) bearer token.

Lifecycle of the relay flow::

    authorize ──► pending state (15 min) ──► callback ──► code (10 min)
                                                          │
                                    token exchange ◄──────┘ ──► bearer (24h)

Pending states and codes are single-use: they are deleted before any further
check, on success and failure alike, so a failed attempt can never be
replayed.

Handlers in :mod:`todoist_mcp.servers.auth` call the methods below and only
translate results into HTTP responses.  **Secrets are never logged.**
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import anyio.to_thread

from todoist_mcp.central_auth.clock import Clock, default_clock, now_seconds
from todoist_mcp.central_auth.errors import IdentityProviderError, OAuthError
from todoist_mcp.central_auth.identity import GitHubIdentityProvider
from todoist_mcp.central_auth.log_utils import get_auth_logger
from todoist_mcp.central_auth.models import (
    CODE_TTL_SECONDS,
    PENDING_TTL_SECONDS,
    TOKEN_TTL_SECONDS,
    AuthorizationCodeRecord,
    ManualAuthorization,
    PendingAuthorization,
    RelayAuthorization,
)
from todoist_mcp.central_auth.pkce import S256, verify_code_challenge
from todoist_mcp.central_auth.registry import ClientRegistry, parse_scope
from todoist_mcp.central_auth.state import (
    InvalidStateError,
    build_relay_state,
    new_transaction_id,
    parse_relay_state,
)
from todoist_mcp.central_auth.store import AuthStore
from todoist_mcp.central_auth.tokens import BearerTokenValidator
from todoist_mcp.utils.logging import mask_sensitive

_LOG = logging.getLogger("todoist-mcp.central_auth.service")


# --------------------------------------------------------------------------- #
# Callback outcomes                                                           #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class ManualTokenIssued:
    """The manual flow finished: show *access_token* to the operator."""

    access_token: str
    user: str
    scope: str


@dataclass(frozen=True, slots=True)
class ClientRedirect:
    """The relay flow finished: send the user agent to *location*."""

    location: str
    client_id: str


CallbackOutcome = Union[ManualTokenIssued, ClientRedirect]


def _with_query(url: str, params: Mapping[str, str]) -> str:
    """Append *params* to *url*, keeping any query it already carries."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def _param(params: Mapping[str, Any], name: str) -> str | None:
    value = params.get(name)
    if value is None:
        return None
    value = str(value)
    return value if value else None


# --------------------------------------------------------------------------- #
# Public service                                                              #
# --------------------------------------------------------------------------- #
class AuthorizationService:
    """Application service orchestrating both authorization flows."""

    def __init__(
        self,
        *,
        store: AuthStore,
        registry: ClientRegistry,
        validator: BearerTokenValidator,
        identity: GitHubIdentityProvider,
        state_secret: str | None = None,
        clock: Clock = default_clock,
    ) -> None:
        self.store = store
        self.registry = registry
        self.validator = validator
        self.identity = identity
        self._clock = clock
        if not state_secret:
            state_secret = uuid.uuid4().hex
            _LOG.warning(
                "MCP_STATE_HMAC_SECRET not set – generated transient secret. "
                "Relay states will not survive a process restart."
            )
        self._state_secret: str = state_secret

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #
    def _now(self) -> int:
        return now_seconds(self._clock)

    def _stash_pending(self, record: PendingAuthorization) -> str:
        """Store *record* and return the relay state that points to it.

        Raises
        ------
        IdentityProviderError
            If GitHub is not configured; nothing is stored in that case.
        """
        if not self.identity.configured:
            raise IdentityProviderError("GitHub OAuth environment not configured")
        txn_id = new_transaction_id()
        self.store.put_pending(txn_id, record)
        return build_relay_state(txn_id, self._state_secret, clock=self._clock)

    def _consume_pending(self, state: str) -> PendingAuthorization:
        """Look up and delete the pending record behind *state*.

        Raises
        ------
        InvalidStateError
            If the state is forged, unknown, already used or expired.
        """
        txn_id, _ = parse_relay_state(
            state,
            self._state_secret,
            max_age_seconds=PENDING_TTL_SECONDS,
            clock=self._clock,
        )
        record = self.store.pop_pending(txn_id)
        if record is None:
            raise InvalidStateError("invalid state")
        if record.is_expired(clock=self._clock):
            raise InvalidStateError("invalid state")
        return record

    # ------------------------------------------------------------------ #
    # Manual flow                                                        #
    # ------------------------------------------------------------------ #
    def start_manual_login(self) -> str:
        """Stash a manual pending state and return the GitHub authorize URL."""
        record = ManualAuthorization(scope=self.registry.default_scope, created_at=self._now())
        state = self._stash_pending(record)
        url = self.identity.build_authorize_url(state)
        get_auth_logger(flow="manual").info("Starting manual GitHub login")
        return url

    # ------------------------------------------------------------------ #
    # Relay flow – authorize                                             #
    # ------------------------------------------------------------------ #
    def authorize(self, params: Mapping[str, Any]) -> str:
        """Validate an authorization request and return the GitHub URL.

        Raises
        ------
        OAuthError
            ``unsupported_response_type``, ``invalid_request``,
            ``invalid_client`` or ``invalid_scope``.
        IdentityProviderError
            If GitHub is not configured.
        """
        response_type = _param(params, "response_type")
        if response_type != "code":
            raise OAuthError.unsupported_response_type(
                "response_type must be 'code'"
            )

        client_id = _param(params, "client_id")
        redirect_uri = _param(params, "redirect_uri")
        state = _param(params, "state")
        code_challenge = _param(params, "code_challenge")
        missing = [
            name
            for name, value in (
                ("client_id", client_id),
                ("redirect_uri", redirect_uri),
                ("state", state),
                ("code_challenge", code_challenge),
            )
            if value is None
        ]
        if missing:
            raise OAuthError.invalid_request(
                f"Missing required parameter(s): {', '.join(missing)}"
                + (" (PKCE with S256 is required)" if "code_challenge" in missing else "")
            )

        method = _param(params, "code_challenge_method") or "plain"
        if method != S256:
            raise OAuthError.invalid_request(
                "code_challenge_method must be S256; plain PKCE is not supported"
            )

        requested_scope = _param(params, "scope")
        client = self.registry.resolve_for_authorization(
            client_id, redirect_uri=redirect_uri, scope=requested_scope
        )
        if not client.allows_redirect(redirect_uri):
            raise OAuthError.invalid_request(
                "redirect_uri is not registered for this client"
            )

        client_scopes = parse_scope(client.scope)
        if requested_scope is None:
            scope = client.scope
        else:
            wanted = parse_scope(requested_scope)
            if not wanted:
                scope = client.scope
            elif any(
                s not in client_scopes or s not in self.registry.allowed_scopes
                for s in wanted
            ):
                raise OAuthError.invalid_scope(
                    f"Requested scope exceeds what client '{client_id}' may request"
                )
            else:
                scope = " ".join(wanted)

        record = RelayAuthorization(
            client_id=client.client_id,
            redirect_uri=redirect_uri,
            code_challenge=code_challenge,
            scope=scope,
            original_state=state,
            created_at=self._now(),
        )
        relay_state = self._stash_pending(record)
        url = self.identity.build_authorize_url(relay_state)
        get_auth_logger(flow="relay", client_id=client.client_id).info(
            "Relaying authorization request scope=%s", scope
        )
        return url

    # ------------------------------------------------------------------ #
    # Shared callback                                                    #
    # ------------------------------------------------------------------ #
    async def handle_callback(self, *, code: str, state: str) -> CallbackOutcome:
        """Finish either flow once GitHub redirects back with *code*.

        Raises
        ------
        InvalidStateError
            Unknown, reused, forged or expired *state*.
        IdentityProviderError
            GitHub rejected the code or the user lookup.
        """
        pending = self._consume_pending(state)
        login = await anyio.to_thread.run_sync(self.identity.resolve_identity, code)

        if isinstance(pending, ManualAuthorization):
            token, _ = self.validator.mint(
                user=login, scope=pending.scope, ttl_seconds=None
            )
            get_auth_logger(flow="manual").info("Manual token issued for user=%s", login)
            return ManualTokenIssued(access_token=token, user=login, scope=pending.scope)

        now = self._now()
        auth_code = secrets.token_urlsafe(32)
        self.store.put_code(
            auth_code,
            AuthorizationCodeRecord(
                client_id=pending.client_id,
                redirect_uri=pending.redirect_uri,
                code_challenge=pending.code_challenge,
                code_challenge_method=pending.code_challenge_method,
                scope=pending.scope,
                user=login,
                created_at=now,
                expires_at=now + CODE_TTL_SECONDS,
            ),
        )
        location = _with_query(
            pending.redirect_uri, {"code": auth_code, "state": pending.original_state}
        )
        get_auth_logger(flow="relay", client_id=pending.client_id).info(
            "Authorization code %s issued for user=%s",
            mask_sensitive(auth_code, 4),
            login,
        )
        return ClientRedirect(location=location, client_id=pending.client_id)

    # ------------------------------------------------------------------ #
    # Relay flow – token exchange                                        #
    # ------------------------------------------------------------------ #
    def exchange_token(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Redeem an authorization code for a bearer token.

        Raises
        ------
        OAuthError
            ``unsupported_grant_type``, ``invalid_request``, ``invalid_grant``
            or ``invalid_client``.
        """
        grant_type = _param(params, "grant_type")
        if grant_type != "authorization_code":
            raise OAuthError.unsupported_grant_type(
                "Only grant_type=authorization_code is supported"
            )

        code = _param(params, "code")
        if code is None:
            raise OAuthError.invalid_request("Missing required parameter: code")

        # single-use: the code is gone whatever happens next
        record = self.store.pop_code(code)
        if record is None:
            raise OAuthError.invalid_grant("Authorization code is invalid or was already used")

        client_id = _param(params, "client_id")
        redirect_uri = _param(params, "redirect_uri")
        verifier = _param(params, "code_verifier")

        if record.is_expired(clock=self._clock):
            raise OAuthError.invalid_grant("Authorization code has expired")
        if client_id != record.client_id:
            raise OAuthError.invalid_grant("client_id does not match the authorization code")
        if redirect_uri != record.redirect_uri:
            raise OAuthError.invalid_grant("redirect_uri does not match the authorization code")
        if verifier is None:
            raise OAuthError.invalid_grant("code_verifier is required (PKCE)")
        if not verify_code_challenge(verifier, record.code_challenge):
            raise OAuthError.invalid_grant("PKCE verification failed: code_verifier does not match code_challenge")
        if self.registry.lookup(record.client_id) is None:
            raise OAuthError.invalid_client("Client is no longer registered")

        token, issued = self.validator.mint(
            user=record.user,
            scope=record.scope,
            ttl_seconds=TOKEN_TTL_SECONDS,
            client_id=record.client_id,
        )
        get_auth_logger(flow="relay", client_id=record.client_id).info(
            "Exchanged authorization code for bearer token user=%s", record.user
        )
        return {
            "access_token": token,
            "token_type": "Bearer",
            "expires_in": TOKEN_TTL_SECONDS,
            "scope": issued.scope,
        }


__all__ = [
    "AuthorizationService",
    "CallbackOutcome",
    "ClientRedirect",
    "IdentityProviderError",
    "InvalidStateError",
    "ManualTokenIssued",
]
