"""Todoist MCP gateway: Todoist tools behind an OAuth 2.0 / PKCE layer."""

from __future__ import annotations

import argparse
import logging

from todoist_mcp.config import SERVER_VERSION, ServerConfig
from todoist_mcp.utils.logging import setup_logging

__version__ = SERVER_VERSION

logger = logging.getLogger("todoist-mcp")


def _parse_args(argv: list[str] | None, defaults: ServerConfig) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="todoist-mcp",
        description="Serve the Todoist MCP gateway over streamable HTTP.",
    )
    parser.add_argument("--host", default=defaults.host, help="Listen address (env HOST)")
    parser.add_argument("--port", type=int, default=defaults.port, help="Listen port (env PORT)")
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Root log level (env MCP_LOG_LEVEL)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Console entry point."""
    args = _parse_args(argv, ServerConfig.from_env())
    setup_logging(args.log_level)

    from todoist_mcp.servers.main import main_mcp

    logger.info("Starting Todoist MCP gateway on %s:%s", args.host, args.port)
    main_mcp.run(transport="http", host=args.host, port=args.port)


__all__ = ["__version__", "main"]
