"""Browser and client facing OAuth endpoints.

Handlers are intentionally thin:

1. Parse HTTP-layer parameters.
2. Delegate business logic to ``AuthorizationService`` / ``ClientRegistry``.
3. Return an appropriate Starlette ``Response`` type.

SECURITY NOTE
-------------
• No raw secrets (states, codes, verifiers, bearer tokens, client secrets)
  are ever logged.
• Correlation IDs, if present in ``request.state.correlation_id``, are included
  in INFO logs to aid troubleshooting.

This module is HTTP-only and MUST remain free from business logic.
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Any

from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from todoist_mcp.central_auth.errors import IdentityProviderError, OAuthError
from todoist_mcp.central_auth.metadata import (
    AUTHORIZATION_SERVER_PATH,
    AUTHORIZE_PATH,
    MANIFEST_PATH,
    PROTECTED_RESOURCE_PATH,
    REGISTER_PATH,
    TOKEN_PATH,
    authorization_server_metadata,
    mcp_manifest,
    protected_resource_metadata,
)
from todoist_mcp.central_auth.service import ClientRedirect
from todoist_mcp.central_auth.state import InvalidStateError
from todoist_mcp.config import SERVER_NAME, SERVER_VERSION, AuthConfig

if TYPE_CHECKING:  # pragma: no cover
    from todoist_mcp.servers.main import TodoistMCP  # circular – only for typing

_LOG = logging.getLogger("todoist-mcp.auth.routes")

GITHUB_LOGIN_PATH = "/auth/github/login"
GITHUB_CALLBACK_PATH = "/auth/github/callback"

_NO_STORE = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def _html_page(title: str, body: str, status: int = 200) -> HTMLResponse:
    """Return a tiny success / error HTML page; *body* is trusted markup."""
    content = (
        "<!doctype html><html lang='en'>"
        "<head><meta charset='utf-8'><title>"
        f"{html.escape(title)}</title></head><body><h1>{html.escape(title)}</h1>"
        f"<p>{body}</p></body></html>"
    )
    return HTMLResponse(content, status_code=status, headers=_NO_STORE)


def _oauth_error(exc: OAuthError) -> JSONResponse:
    return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=_NO_STORE)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "-")


def public_base_url(request: Request, config: AuthConfig | None = None) -> str:
    """Externally visible base URL: configured, else derived from the request."""
    if config is not None and config.public_base_url:
        return config.public_base_url
    return str(request.base_url).rstrip("/")


async def _read_params(request: Request) -> dict[str, Any]:
    """Read a form-encoded or JSON request body into a flat dict."""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = await request.json()
        except (ValueError, UnicodeDecodeError) as exc:
            raise OAuthError.invalid_request("Request body is not valid JSON") from exc
        if not isinstance(data, dict):
            raise OAuthError.invalid_request("Request body must be a JSON object")
        return data
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def register_auth_routes(app: TodoistMCP) -> None:
    """Attach the OAuth, login and discovery endpoints to *app*."""

    # ----- GET /oauth/authorize ------------------------------------------- #
    @app.custom_route(AUTHORIZE_PATH, methods=["GET"])
    async def _authorize(request: Request) -> Response:
        try:
            location = app.services.auth.authorize(request.query_params)
        except OAuthError as exc:
            _LOG.info(
                "Authorize rejected error=%s correlation_id=%s",
                exc.error,
                _correlation_id(request),
            )
            return _oauth_error(exc)
        except IdentityProviderError as exc:
            _LOG.error("Authorize unavailable: %s", exc)
            return JSONResponse(
                {"error": "temporarily_unavailable", "error_description": str(exc)},
                status_code=503,
                headers=_NO_STORE,
            )
        _LOG.info("Authorize relayed to GitHub correlation_id=%s", _correlation_id(request))
        return RedirectResponse(location, status_code=302)

    # ----- POST /oauth/token ---------------------------------------------- #
    @app.custom_route(TOKEN_PATH, methods=["POST"])
    async def _token(request: Request) -> Response:
        try:
            params = await _read_params(request)
            payload = app.services.auth.exchange_token(params)
        except OAuthError as exc:
            _LOG.info(
                "Token exchange rejected error=%s correlation_id=%s",
                exc.error,
                _correlation_id(request),
            )
            return _oauth_error(exc)
        return JSONResponse(payload, headers=_NO_STORE)

    # ----- POST /oauth/register ------------------------------------------- #
    @app.custom_route(REGISTER_PATH, methods=["POST"])
    async def _register(request: Request) -> Response:
        try:
            try:
                metadata = await request.json()
            except (ValueError, UnicodeDecodeError) as exc:
                raise OAuthError.invalid_client_metadata("Request body is not valid JSON") from exc
            if not isinstance(metadata, dict):
                raise OAuthError.invalid_client_metadata("Request body must be a JSON object")
            client = app.services.registry.register(metadata)
        except OAuthError as exc:
            _LOG.info(
                "Registration rejected error=%s correlation_id=%s",
                exc.error,
                _correlation_id(request),
            )
            return _oauth_error(exc)
        return JSONResponse(client.to_payload(), status_code=201, headers=_NO_STORE)

    # ----- GET /auth/github/login ----------------------------------------- #
    @app.custom_route(GITHUB_LOGIN_PATH, methods=["GET"])
    async def _github_login(request: Request) -> Response:
        try:
            location = app.services.auth.start_manual_login()
        except IdentityProviderError as exc:
            _LOG.error("Manual login unavailable: %s", exc)
            return _html_page("Login unavailable", html.escape(str(exc)), 503)
        return RedirectResponse(location, status_code=302)

    # ----- GET /auth/github/callback -------------------------------------- #
    @app.custom_route(GITHUB_CALLBACK_PATH, methods=["GET"])
    async def _github_callback(request: Request) -> Response:
        # Provider-side errors first (e.g. access_denied)
        provider_error = request.query_params.get("error")
        if provider_error:
            description = request.query_params.get("error_description", "")
            text = f"{provider_error}: {description}" if description else provider_error
            return _html_page("Authorization error", html.escape(text), 400)

        code = request.query_params.get("code")
        state = request.query_params.get("state")
        if not code or not state:
            return _html_page("Missing parameters", "code or state missing", 400)

        try:
            outcome = await app.services.auth.handle_callback(code=code, state=state)
        except InvalidStateError as exc:
            _LOG.warning(
                "Callback with invalid state: %s correlation_id=%s",
                exc,
                _correlation_id(request),
            )
            return _html_page("Authorization failed", "invalid state", 400)
        except IdentityProviderError as exc:
            _LOG.warning("GitHub identity lookup failed: %s", exc)
            return _html_page("Authorization failed", html.escape(str(exc)), 400)

        if isinstance(outcome, ClientRedirect):
            _LOG.info(
                "Relay flow complete client_id=%s correlation_id=%s",
                outcome.client_id,
                _correlation_id(request),
            )
            return RedirectResponse(outcome.location, status_code=302)

        _LOG.info(
            "Manual flow complete user=%s correlation_id=%s",
            outcome.user,
            _correlation_id(request),
        )
        body = (
            f"Signed in as <strong>{html.escape(outcome.user)}</strong>. "
            "Use this bearer token for the MCP endpoint:</p>"
            f"<pre id='token'>{html.escape(outcome.access_token)}</pre>"
            "<p>It does not expire until the server restarts."
        )
        return _html_page("Authorization successful", body)

    # ----- discovery documents -------------------------------------------- #
    @app.custom_route(AUTHORIZATION_SERVER_PATH, methods=["GET"])
    async def _authorization_server(request: Request) -> Response:
        services = app.services
        base = public_base_url(request, services.auth_config)
        return JSONResponse(
            authorization_server_metadata(base, services.registry.allowed_scopes)
        )

    @app.custom_route(PROTECTED_RESOURCE_PATH, methods=["GET"])
    async def _protected_resource(request: Request) -> Response:
        services = app.services
        base = public_base_url(request, services.auth_config)
        return JSONResponse(
            protected_resource_metadata(base, services.registry.allowed_scopes)
        )

    @app.custom_route(MANIFEST_PATH, methods=["GET"])
    async def _manifest(request: Request) -> Response:
        services = app.services
        base = public_base_url(request, services.auth_config)
        return JSONResponse(
            mcp_manifest(
                base,
                services.registry.allowed_scopes,
                server_name=SERVER_NAME,
                version=SERVER_VERSION,
            )
        )

    _LOG.debug("Registered OAuth and discovery routes")
