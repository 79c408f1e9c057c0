"""Configuration objects loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from todoist_mcp.utils.environment import env_flag, env_float, env_int, env_list

logger = logging.getLogger("todoist-mcp.config")

DEFAULT_REST_BASE_URL = "https://api.todoist.com/rest/v2"
DEFAULT_SYNC_URL = "https://api.todoist.com/sync/v9/sync"
DEFAULT_ID_MAPPING_URL = "https://api.todoist.com/api/v1/id_mappings"
DEFAULT_SCOPES: tuple[str, ...] = ("read", "write")
SERVER_NAME = "todoist-mcp-server-http"
SERVER_VERSION = "0.3.0"


@dataclass(frozen=True)
class TodoistConfig:
    """Connection settings for the upstream Todoist APIs."""

    api_token: str | None = None
    rest_base_url: str = DEFAULT_REST_BASE_URL
    sync_url: str = DEFAULT_SYNC_URL
    id_mapping_url: str = DEFAULT_ID_MAPPING_URL
    timeout: float = 15.0

    @classmethod
    def from_env(cls) -> TodoistConfig:
        token = os.getenv("TODOIST_API_TOKEN") or None
        if not token:
            logger.warning("TODOIST_API_TOKEN is not set; tool calls will fail upstream.")
        return cls(
            api_token=token,
            rest_base_url=(os.getenv("TODOIST_REST_BASE_URL") or DEFAULT_REST_BASE_URL).rstrip("/"),
            sync_url=os.getenv("TODOIST_SYNC_URL") or DEFAULT_SYNC_URL,
            id_mapping_url=(os.getenv("TODOIST_ID_MAPPING_URL") or DEFAULT_ID_MAPPING_URL).rstrip("/"),
            timeout=env_float("TODOIST_TIMEOUT_SECONDS", 15.0),
        )


@dataclass(frozen=True)
class AuthConfig:
    """OAuth gateway settings: identity provider, scopes and static tokens."""

    github_client_id: str | None = None
    github_client_secret: str | None = None
    github_callback_url: str | None = None
    allowed_tokens: tuple[str, ...] = ()
    allowed_scopes: tuple[str, ...] = DEFAULT_SCOPES
    auto_register: bool = True
    public_base_url: str | None = None
    state_secret: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> AuthConfig:
        scopes = tuple(env_list("MCP_OAUTH_SCOPES", separators=", ")) or DEFAULT_SCOPES
        base_url = os.getenv("MCP_PUBLIC_BASE_URL") or None
        return cls(
            github_client_id=os.getenv("GITHUB_OAUTH_CLIENT_ID") or None,
            github_client_secret=os.getenv("GITHUB_OAUTH_SECRET") or None,
            github_callback_url=os.getenv("GITHUB_OAUTH_CALLBACK_URL") or None,
            allowed_tokens=tuple(env_list("MCP_ALLOWED_TOKENS")),
            allowed_scopes=scopes,
            auto_register=env_flag("MCP_OAUTH_AUTO_REGISTER", True),
            public_base_url=base_url.rstrip("/") if base_url else None,
            state_secret=os.getenv("MCP_STATE_HMAC_SECRET") or None,
        )


@dataclass(frozen=True)
class ServerConfig:
    """Listen address and logging level for the HTTP server."""

    host: str = "0.0.0.0"
    port: int = 8766
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ServerConfig:
        return cls(
            host=os.getenv("HOST") or "0.0.0.0",
            port=env_int("PORT", 8766),
            log_level=(os.getenv("MCP_LOG_LEVEL") or "INFO").upper(),
        )
