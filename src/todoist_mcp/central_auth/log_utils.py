"""Structured logging helpers for the OAuth gateway.

This module restricts **which** contextual attributes are attached to log
records so secrets cannot leak by accident.  The adapter ONLY injects:

- ``flow``           – ``manual`` or ``relay``
- ``client_id``      – The registered OAuth client (public identifier)
- ``txn_id``         – Pending authorization identifier (first 6 chars kept)
- ``correlation_id`` – Per-request id set by the correlation middleware

Usage
-----
>>> from todoist_mcp.central_auth.log_utils import get_auth_logger
>>> log = get_auth_logger(flow="relay", client_id="mcp-abc", txn_id="Zx81ab...")
>>> log.info("Relaying authorization request")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


class _AuthLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted auth context into log records."""

    extra_keys = ("flow", "client_id", "txn_id", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if not extra or extra.get(k) is None:
                continue
            if k == "txn_id":
                extra_clean[k] = str(extra[k])[:6]
            else:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if kwargs.get("extra") is None:
            kwargs["extra"] = {}
        # call-site extras win
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_auth_logger(
    *,
    base_logger_name: str = "todoist-mcp.central_auth",
    flow: str | None = None,
    client_id: str | None = None,
    txn_id: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with auth context."""
    logger = logging.getLogger(base_logger_name)
    return _AuthLoggerAdapter(
        logger,
        {
            "flow": flow,
            "client_id": client_id,
            "txn_id": txn_id,
            "correlation_id": correlation_id,
        },
    )
