"""Correlation ID middleware for request tracing.

Generates a unique correlation ID per incoming HTTP request (or reuses the
one sent by the caller), sets it in ``request.state.correlation_id`` for
application use and propagates it to the response headers.

Implemented as plain ASGI so streaming MCP responses pass through untouched.
Secrets MUST NOT be logged. The correlation ID is a random UUID4 hex string.
"""

from __future__ import annotations

import logging
import uuid

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

_HEADER_NAME = "X-Correlation-ID"
_MAX_LENGTH = 128
_logger = logging.getLogger("todoist-mcp.correlation")


class CorrelationIdMiddleware:
    """ASGI middleware that attaches a per-request correlation ID."""

    def __init__(self, app: ASGIApp, header_name: str = _HEADER_NAME) -> None:
        self.app = app
        self.header_name = header_name
        self._header_key = header_name.lower().encode("latin-1")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = None
        for key, value in scope.get("headers", []):
            if key == self._header_key:
                incoming = value.decode("latin-1").strip()[:_MAX_LENGTH]
                break
        correlation_id = incoming or uuid.uuid4().hex

        scope.setdefault("state", {})["correlation_id"] = correlation_id
        _logger.debug(
            "request %s %s", scope.get("method"), scope.get("path"),
            extra={"correlation_id": correlation_id},
        )

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[self.header_name] = correlation_id
            await send(message)

        await self.app(scope, receive, send_with_id)
