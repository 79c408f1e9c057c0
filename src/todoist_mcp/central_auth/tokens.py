"""Bearer token issuance and validation."""

from __future__ import annotations

import hmac
import logging
import secrets
from collections.abc import Iterable

from todoist_mcp.central_auth.clock import Clock, default_clock, now_seconds
from todoist_mcp.central_auth.models import (
    STATIC_TOKEN_USER,
    IssuedAccessToken,
    TokenInfo,
)
from todoist_mcp.central_auth.store import AuthStore
from todoist_mcp.utils.logging import mask_sensitive

_LOG = logging.getLogger("todoist-mcp.central_auth.tokens")


class BearerTokenValidator:
    """Owns issued bearer tokens and checks inbound ones.

    Lookup order: issued tokens (expired ones are deleted on sight), then the
    static pre-shared allow-list, which maps to a synthetic identity.
    """

    def __init__(
        self,
        store: AuthStore,
        *,
        allowed_tokens: Iterable[str] = (),
        static_scope: str = "",
        clock: Clock = default_clock,
    ) -> None:
        self._store = store
        self._allowed = frozenset(t for t in allowed_tokens if t)
        self._static_scope = static_scope
        self._clock = clock

    def mint(
        self,
        *,
        user: str,
        scope: str,
        ttl_seconds: int | None,
        client_id: str | None = None,
    ) -> tuple[str, IssuedAccessToken]:
        """Create and store a new token; ``ttl_seconds=None`` never expires."""
        now = now_seconds(self._clock)
        token = secrets.token_urlsafe(32)
        record = IssuedAccessToken(
            user=user,
            scope=scope,
            created_at=now,
            expires_at=None if ttl_seconds is None else now + ttl_seconds,
            client_id=client_id,
        )
        self._store.put_token(token, record)
        _LOG.info(
            "Issued bearer token %s for user=%s client_id=%s expires_at=%s",
            mask_sensitive(token, 4),
            user,
            client_id or "-",
            record.expires_at if record.expires_at is not None else "never",
        )
        return token, record

    def info(self, token: str | None) -> TokenInfo | None:
        if not token:
            return None

        record = self._store.get_token(token)
        if record is not None:
            if record.is_expired(clock=self._clock):
                self._store.delete_token(token)
                _LOG.info("Dropped expired bearer token %s", mask_sensitive(token, 4))
                return None
            return TokenInfo(
                user=record.user,
                scope=record.scope,
                expires_at=record.expires_at,
                source="issued",
                client_id=record.client_id,
            )

        if any(hmac.compare_digest(token, allowed) for allowed in self._allowed):
            return TokenInfo(
                user=STATIC_TOKEN_USER,
                scope=self._static_scope,
                expires_at=None,
                source="static",
            )
        return None

    def is_authorized(self, token: str | None) -> bool:
        return self.info(token) is not None
