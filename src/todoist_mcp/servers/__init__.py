"""FastMCP server, HTTP routes and ASGI middleware."""

from .main import BearerAuthMiddleware, TodoistMCP, create_server, main_mcp

__all__ = ["BearerAuthMiddleware", "TodoistMCP", "create_server", "main_mcp"]
