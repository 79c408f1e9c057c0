"""Discovery documents for the OAuth gateway.

All three documents are derived from the public base URL of the deployment,
so clients can find the endpoints without out-of-band configuration.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from todoist_mcp.central_auth.pkce import S256

AUTHORIZE_PATH = "/oauth/authorize"
TOKEN_PATH = "/oauth/token"
REGISTER_PATH = "/oauth/register"
AUTHORIZATION_SERVER_PATH = "/.well-known/oauth-authorization-server"
PROTECTED_RESOURCE_PATH = "/.well-known/oauth-protected-resource"
MANIFEST_PATH = "/.well-known/mcp/manifest.json"


def endpoint_urls(base_url: str) -> dict[str, str]:
    base = base_url.rstrip("/")
    return {
        "authorization_endpoint": f"{base}{AUTHORIZE_PATH}",
        "token_endpoint": f"{base}{TOKEN_PATH}",
        "registration_endpoint": f"{base}{REGISTER_PATH}",
    }


def authorization_server_metadata(base_url: str, scopes: Sequence[str]) -> dict[str, Any]:
    """RFC 8414 authorization server metadata."""
    base = base_url.rstrip("/")
    return {
        "issuer": base,
        **endpoint_urls(base),
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code"],
        "code_challenge_methods_supported": [S256],
        "token_endpoint_auth_methods_supported": ["none"],
        "scopes_supported": list(scopes),
    }


def protected_resource_metadata(
    base_url: str, scopes: Sequence[str], *, mcp_path: str = "/mcp"
) -> dict[str, Any]:
    """RFC 9728 protected resource metadata for the MCP endpoint."""
    base = base_url.rstrip("/")
    return {
        "resource": f"{base}{mcp_path}",
        "authorization_servers": [base],
        "scopes_supported": list(scopes),
        "bearer_methods_supported": ["header"],
    }


def mcp_manifest(
    base_url: str,
    scopes: Sequence[str],
    *,
    server_name: str,
    version: str,
    mcp_path: str = "/mcp",
) -> dict[str, Any]:
    base = base_url.rstrip("/")
    return {
        "name": server_name,
        "version": version,
        "transports": [
            {"type": "streamable-http", "url": f"{base}{mcp_path}"},
        ],
        "oauth": {
            "authorization_server": authorization_server_metadata(base, scopes),
            "protected_resource": f"{base}{PROTECTED_RESOURCE_PATH}",
        },
    }


def www_authenticate_header(base_url: str) -> str:
    """Value of the ``WWW-Authenticate`` header sent with 401 responses."""
    base = base_url.rstrip("/")
    urls = endpoint_urls(base)
    return (
        'Bearer realm="todoist-mcp", '
        f'authorization_uri="{urls["authorization_endpoint"]}", '
        f'token_uri="{urls["token_endpoint"]}", '
        f'registration_uri="{urls["registration_endpoint"]}", '
        f'resource_metadata="{base}{PROTECTED_RESOURCE_PATH}"'
    )
