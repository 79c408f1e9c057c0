"""Dependency providers for tool functions.

Tools receive a FastMCP :class:`~fastmcp.Context`; the helpers below pull the
process-scoped :class:`AppServices` out of the lifespan context.
"""

from __future__ import annotations

import logging

from fastmcp import Context

from todoist_mcp.servers.context import AppServices, MainAppContext
from todoist_mcp.todoist.operations import TodoistOperations

logger = logging.getLogger("todoist-mcp.servers.dependencies")


def get_services(ctx: Context) -> AppServices:
    """Return the services yielded by the main server lifespan.

    Raises:
        ValueError: if called outside a request or before the lifespan ran.
    """
    request_context = ctx.request_context
    lifespan_ctx_dict = request_context.lifespan_context if request_context else None
    app_lifespan_ctx: MainAppContext | None = (
        lifespan_ctx_dict.get("app_lifespan_context")
        if isinstance(lifespan_ctx_dict, dict)
        else None
    )
    if app_lifespan_ctx is None:
        logger.error("get_services: application lifespan context is unavailable.")
        raise ValueError("Todoist services are not available outside the server lifespan.")
    return app_lifespan_ctx.services


def get_operations(ctx: Context) -> TodoistOperations:
    return get_services(ctx).operations

