"""Relay-state tokens for the upstream identity redirect.

When a client's authorization request is relayed through the identity
provider, the gateway never forwards the client's own ``state``.  It mints a
fresh *relay state* instead, keyed to a pending-authorization record, and
recovers the original context when the provider calls back.

A relay state is the base64-url encoding of::

    <txn_id>:<issued_at>:<sig>

where ``sig`` is a truncated HMAC-SHA256 over the first two fields.  The
signature lets the callback reject forged or corrupted values before touching
the pending store; the timestamp lets it reject stale ones.

Logging
-------
Only a short prefix of ``txn_id`` is ever logged; the full state and the HMAC
secret never are.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
import secrets
from hashlib import sha256
from typing import Final

from todoist_mcp.central_auth.clock import Clock, default_clock, now_seconds

_LOG = logging.getLogger("todoist-mcp.central_auth.state")

_SIG_LEN: Final[int] = 16  # characters kept from hex digest


class InvalidStateError(Exception):
    """Raised when a relay state is malformed, forged, unknown or expired."""


def new_transaction_id() -> str:
    """Return a fresh, URL-safe pending-authorization identifier."""
    return secrets.token_urlsafe(18)


def _b64e(data: str) -> str:
    return base64.urlsafe_b64encode(data.encode("utf-8")).rstrip(b"=").decode("ascii")


def _b64d(data: str) -> str:
    pad_len = (-len(data)) % 4
    return base64.urlsafe_b64decode(data + "=" * pad_len).decode("utf-8")


def _sign(message: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), msg=message.encode(), digestmod=sha256).hexdigest()
    return digest[:_SIG_LEN]


def build_relay_state(txn_id: str, secret: str, *, clock: Clock = default_clock) -> str:
    """Return the opaque relay state for pending authorization *txn_id*."""
    payload = f"{txn_id}:{now_seconds(clock)}"
    encoded = _b64e(f"{payload}:{_sign(payload, secret)}")
    _LOG.debug("Built relay state for txn=%s****", txn_id[:6])
    return encoded


def parse_relay_state(
    state: str,
    secret: str,
    *,
    max_age_seconds: int | None = None,
    clock: Clock = default_clock,
) -> tuple[str, int]:
    """Validate *state* and return ``(txn_id, issued_at)``.

    Raises
    ------
    InvalidStateError
        If the value cannot be decoded, the signature does not match, or it is
        older than *max_age_seconds*.
    """
    try:
        decoded = _b64d(state)
    except (ValueError, binascii.Error):
        raise InvalidStateError("state cannot be decoded") from None

    parts = decoded.split(":")
    if len(parts) != 3:
        raise InvalidStateError("state has an unexpected format")

    txn_id, ts_str, sig = parts
    if not txn_id or not ts_str.isdigit():
        raise InvalidStateError("state missing fields")

    if not hmac.compare_digest(sig, _sign(f"{txn_id}:{ts_str}", secret)):
        raise InvalidStateError("state signature mismatch")

    issued_at = int(ts_str)
    if max_age_seconds is not None and (clock() - issued_at) > max_age_seconds:
        raise InvalidStateError("state expired")

    _LOG.debug("Parsed relay state for txn=%s****", txn_id[:6])
    return txn_id, issued_at
