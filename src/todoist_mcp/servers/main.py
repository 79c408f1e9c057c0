"""Main FastMCP server setup for the Todoist gateway."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Literal, Optional

import fastmcp
from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from todoist_mcp.central_auth.metadata import www_authenticate_header
from todoist_mcp.config import SERVER_NAME, SERVER_VERSION
from todoist_mcp.utils.logging import mask_sensitive

from .auth import public_base_url, register_auth_routes
from .context import AppServices, MainAppContext
from .correlation import CorrelationIdMiddleware
from .todoist import build_todoist_server

logger = logging.getLogger("todoist-mcp.server.main")

JSONRPC_UNAUTHORIZED = -32001
JSONRPC_INTERNAL_ERROR = -32603


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "server": SERVER_NAME})


@asynccontextmanager
async def main_lifespan(app: FastMCP[MainAppContext]) -> AsyncIterator[dict]:
    logger.info("Main Todoist MCP server lifespan starting...")
    services: AppServices = app.services  # type: ignore[attr-defined]
    if not services.identity.configured:
        logger.warning(
            "GitHub OAuth is not configured; only MCP_ALLOWED_TOKENS can authenticate."
        )
    logger.info(
        "Auto-registration of unknown OAuth clients: %s",
        "ENABLED" if services.registry.auto_register else "DISABLED",
    )
    try:
        yield {"app_lifespan_context": MainAppContext(services=services)}
    except Exception as e:
        logger.error("Error during lifespan: %s", e, exc_info=True)
        raise
    finally:
        removed = services.store.sweep_expired()
        logger.info(
            "Main Todoist MCP server lifespan shutdown complete (swept %d stale entries).",
            removed,
        )


class TodoistMCP(FastMCP[MainAppContext]):
    """FastMCP server owning the process-scoped services and the auth guard."""

    def __init__(self, *args: Any, services: AppServices | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._app_services = services

    @property
    def services(self) -> AppServices:
        if self._app_services is None:
            self._app_services = AppServices.from_env()
        return self._app_services

    def http_app(
        self,
        path: str | None = None,
        middleware: list[Middleware] | None = None,
        transport: Literal["http", "streamable-http", "sse"] = "http",
        **kwargs: Any,
    ) -> Starlette:
        mcp_path = path if path is not None else fastmcp.settings.streamable_http_path
        final_middleware_list = [
            Middleware(CorrelationIdMiddleware),
            Middleware(BearerAuthMiddleware, mcp_server_ref=self, mcp_path=mcp_path),
        ]
        if middleware:
            final_middleware_list.extend(middleware)
        return super().http_app(
            path=path, middleware=final_middleware_list, transport=transport, **kwargs
        )


class BearerAuthMiddleware:
    """ASGI middleware guarding the MCP endpoint with bearer tokens.

    Every request to the MCP path must carry ``Authorization: Bearer <token>``
    accepted by the :class:`~todoist_mcp.central_auth.tokens.BearerTokenValidator`.
    Rejections are JSON-RPC shaped 401 responses with a ``WWW-Authenticate``
    challenge pointing at the OAuth endpoints.  The accepted
    :class:`~todoist_mcp.central_auth.models.TokenInfo` is stored in
    ``request.state.token_info``.

    Unexpected exceptions raised before the response started are logged and
    turned into a JSON-RPC internal error.
    """

    def __init__(
        self,
        app: ASGIApp,
        mcp_server_ref: Optional[TodoistMCP] = None,
        mcp_path: str = "/mcp",
    ) -> None:
        self.app = app
        self.mcp_server_ref = mcp_server_ref
        self.mcp_path = mcp_path.rstrip("/") or "/"
        if not self.mcp_server_ref:
            logger.warning(
                "BearerAuthMiddleware initialized without mcp_server_ref; "
                "MCP requests will be rejected."
            )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._is_protected(scope):
            await self._call_app(scope, receive, send)
            return

        token = self._extract_token(scope)
        if not token:
            await self._send_unauthorized(scope, send, "Missing bearer token")
            return

        info = None
        if self.mcp_server_ref is not None:
            info = self.mcp_server_ref.services.validator.info(token)
        if info is None:
            logger.info("Rejected bearer token %s", mask_sensitive(token, 4))
            await self._send_unauthorized(scope, send, "Invalid or expired bearer token")
            return

        scope.setdefault("state", {})["token_info"] = info
        logger.debug(
            "Authorized MCP request user=%s source=%s", info.user, info.source
        )
        await self._call_app(scope, receive, send)

    def _is_protected(self, scope: Scope) -> bool:
        request_path = scope.get("path", "").rstrip("/") or "/"
        return request_path == self.mcp_path

    @staticmethod
    def _extract_token(scope: Scope) -> str | None:
        for key, value in scope.get("headers", []):
            if key == b"authorization":
                header_val = value.decode("latin-1").strip()
                scheme, _, token = header_val.partition(" ")
                if scheme.lower() != "bearer":
                    return None
                return token.strip() or None
        return None

    async def _call_app(self, scope: Scope, receive: Receive, send: Send) -> None:
        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            logger.error(
                "Unhandled error serving %s %s: %s",
                scope.get("method"),
                scope.get("path"),
                exc,
                exc_info=True,
            )
            if response_started or scope["type"] != "http":
                raise
            await self._send_json(
                send,
                500,
                {
                    "jsonrpc": "2.0",
                    "error": {"code": JSONRPC_INTERNAL_ERROR, "message": "Internal error"},
                    "id": None,
                },
            )

    async def _send_unauthorized(self, scope: Scope, send: Send, message: str) -> None:
        base_url = public_base_url(
            Request(scope),
            self.mcp_server_ref.services.auth_config if self.mcp_server_ref else None,
        )
        await self._send_json(
            send,
            401,
            {
                "jsonrpc": "2.0",
                "error": {"code": JSONRPC_UNAUTHORIZED, "message": message},
                "id": None,
            },
            extra_headers=[
                (b"www-authenticate", www_authenticate_header(base_url).encode("latin-1"))
            ],
        )

    @staticmethod
    async def _send_json(
        send: Send,
        status_code: int,
        payload: dict[str, Any],
        extra_headers: list[tuple[bytes, bytes]] | None = None,
    ) -> None:
        body = json.dumps(payload).encode("utf-8")
        headers = [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode("ascii")),
        ]
        if extra_headers:
            headers.extend(extra_headers)
        await send({"type": "http.response.start", "status": status_code, "headers": headers})
        await send({"type": "http.response.body", "body": body})


def create_server(services: AppServices | None = None) -> TodoistMCP:
    """Build the gateway: tools mounted under ``todoist``, OAuth and health routes."""
    server = TodoistMCP(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        lifespan=main_lifespan,
        services=services,
    )
    server.mount(build_todoist_server(), "todoist")
    register_auth_routes(server)
    server.custom_route("/health", methods=["GET"], include_in_schema=False)(health_check)
    return server


main_mcp = create_server()
