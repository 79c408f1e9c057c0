"""Process-scoped, in-memory storage for the OAuth gateway.

:class:`AuthStore` is the narrow storage contract used by the registry, the
authorization flow and the bearer validator.  :class:`MemoryAuthStore` is the
only implementation: every registration, pending state, authorization code
and token lives in this object and disappears with the process.

Each map has exactly one owning component:

* clients        – :class:`~todoist_mcp.central_auth.registry.ClientRegistry`
* pending states – :class:`~todoist_mcp.central_auth.service.AuthorizationService`
* codes          – :class:`~todoist_mcp.central_auth.service.AuthorizationService`
* tokens         – :class:`~todoist_mcp.central_auth.tokens.BearerTokenValidator`

Pending states and codes are held in :class:`cachetools.TTLCache` instances
driven by the injected clock, so stale entries vanish on their own; callers
still check ``is_expired`` on what they read.  Tokens are plain dict entries
removed lazily by the validator.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from cachetools import TTLCache

from todoist_mcp.central_auth.clock import Clock, default_clock
from todoist_mcp.central_auth.models import (
    CODE_TTL_SECONDS,
    PENDING_TTL_SECONDS,
    AuthorizationCodeRecord,
    IssuedAccessToken,
    PendingAuthorization,
    RegisteredClient,
)

_LOG = logging.getLogger("todoist-mcp.central_auth.store")

_MAX_PENDING = 10_000
_MAX_CODES = 10_000


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class AuthStore(Protocol):
    """Minimal storage contract for the OAuth gateway."""

    # ----- clients --------------------------------------------------------- #
    def put_client(self, client: RegisteredClient) -> None: ...
    def get_client(self, client_id: str) -> RegisteredClient | None: ...

    # ----- pending authorizations ----------------------------------------- #
    def put_pending(self, txn_id: str, record: PendingAuthorization) -> None: ...
    def pop_pending(self, txn_id: str) -> PendingAuthorization | None: ...

    # ----- authorization codes -------------------------------------------- #
    def put_code(self, code: str, record: AuthorizationCodeRecord) -> None: ...
    def pop_code(self, code: str) -> AuthorizationCodeRecord | None: ...

    # ----- bearer tokens --------------------------------------------------- #
    def put_token(self, token: str, record: IssuedAccessToken) -> None: ...
    def get_token(self, token: str) -> IssuedAccessToken | None: ...
    def delete_token(self, token: str) -> None: ...

    # ----- maintenance ----------------------------------------------------- #
    def sweep_expired(self) -> int: ...


# --------------------------------------------------------------------------- #
# Memory implementation                                                       #
# --------------------------------------------------------------------------- #


class MemoryAuthStore(AuthStore):
    """Dictionary-backed implementation of :class:`AuthStore`."""

    def __init__(self, *, clock: Clock = default_clock) -> None:
        self._clock = clock
        self._clients: dict[str, RegisteredClient] = {}
        self._pending: TTLCache[str, PendingAuthorization] = TTLCache(
            maxsize=_MAX_PENDING, ttl=PENDING_TTL_SECONDS, timer=clock
        )
        self._codes: TTLCache[str, AuthorizationCodeRecord] = TTLCache(
            maxsize=_MAX_CODES, ttl=CODE_TTL_SECONDS, timer=clock
        )
        self._tokens: dict[str, IssuedAccessToken] = {}

    # ---------------- clients -------------------------------------------- #
    def put_client(self, client: RegisteredClient) -> None:
        self._clients[client.client_id] = client

    def get_client(self, client_id: str) -> RegisteredClient | None:
        return self._clients.get(client_id)

    # ---------------- pending authorizations ----------------------------- #
    def put_pending(self, txn_id: str, record: PendingAuthorization) -> None:
        self._pending[txn_id] = record

    def pop_pending(self, txn_id: str) -> PendingAuthorization | None:
        """Return and delete the pending record (single-use)."""
        return self._pending.pop(txn_id, None)

    # ---------------- authorization codes -------------------------------- #
    def put_code(self, code: str, record: AuthorizationCodeRecord) -> None:
        self._codes[code] = record

    def pop_code(self, code: str) -> AuthorizationCodeRecord | None:
        """Return and delete the code record (single-use)."""
        return self._codes.pop(code, None)

    # ---------------- bearer tokens -------------------------------------- #
    def put_token(self, token: str, record: IssuedAccessToken) -> None:
        self._tokens[token] = record

    def get_token(self, token: str) -> IssuedAccessToken | None:
        return self._tokens.get(token)

    def delete_token(self, token: str) -> None:
        self._tokens.pop(token, None)

    # ---------------- maintenance ---------------------------------------- #
    def sweep_expired(self) -> int:
        """Drop expired pending states and codes; return how many were removed."""
        removed = len(self._pending.expire()) + len(self._codes.expire())
        if removed:
            _LOG.debug("Swept %d expired pending states/codes", removed)
        return removed

    def counts(self) -> dict[str, int]:
        """Return entry counts per map (diagnostics only, no secrets)."""
        return {
            "clients": len(self._clients),
            "pending": len(self._pending),
            "codes": len(self._codes),
            "tokens": len(self._tokens),
        }
