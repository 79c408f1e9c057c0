"""mcp_call.py

Call the gateway's MCP endpoint from a shell.

* Sends ``Authorization: Bearer <token>`` taken from ``--token`` or
  ``MCP_BEARER_TOKEN`` (the value is never printed)
* Always sends ``Accept: application/json, text/event-stream``
* Runs the ``initialize`` / ``notifications/initialized`` handshake to
  obtain an ``mcp-session-id`` unless one is given with ``--session-id``
* Prints the JSON-RPC result, reading the first SSE ``data:`` frame when
  the server streams

Example
-------
    MCP_BEARER_TOKEN=... python scripts/mcp_call.py --rpc-method tools/list
    python scripts/mcp_call.py --tool todoist_get_tasks --args-json '{"limit": 5}'
"""
from __future__ import annotations

import argparse
import json
import os
import sys
import uuid
from pathlib import Path
from typing import Any

import requests

DEFAULT_MCP_URL = os.getenv("MCP_URL", "http://localhost:8766/mcp")
ACCEPT_HEADER_VALUE = "application/json, text/event-stream"
PROTOCOL_VERSION = "2025-03-26"


def _envelope(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": str(uuid.uuid4()),
        "method": method,
        "params": params or {},
    }


def _read_result(resp: requests.Response) -> dict[str, Any]:
    """Decode a JSON body or the first SSE ``data:`` frame."""
    if "event-stream" not in resp.headers.get("content-type", ""):
        return resp.json()
    for line in resp.iter_lines(decode_unicode=True):
        if line and line.startswith("data:"):
            return json.loads(line[len("data:") :].lstrip())
    raise RuntimeError("No SSE data event received from MCP server.")


def _post(url: str, payload: dict[str, Any], headers: dict[str, str], timeout: int) -> requests.Response:
    try:
        return requests.post(url, json=payload, headers=headers, stream=True, timeout=timeout)
    except requests.RequestException as exc:
        sys.exit(f"HTTP error communicating with MCP server: {exc}")


def _fail_unless_ok(resp: requests.Response, what: str) -> None:
    if resp.ok:
        return
    if resp.status_code == 401:
        challenge = resp.headers.get("www-authenticate", "")
        sys.exit(f"{what}: bearer token rejected (HTTP 401). {challenge}".strip())
    sys.exit(f"{what}: HTTP {resp.status_code}: {resp.text.strip() or 'No response body'}")


def _open_session(url: str, headers: dict[str, str], timeout: int = 30) -> str:
    init = _envelope(
        "initialize",
        {
            "protocolVersion": PROTOCOL_VERSION,
            "clientInfo": {"name": "mcp_call.py", "version": "0.3.0"},
            "capabilities": {},
        },
    )
    resp = _post(url, init, headers, timeout)
    _fail_unless_ok(resp, "initialize")
    session_id = resp.headers.get("mcp-session-id")
    if not session_id:
        sys.exit("initialize failed: server did not return an 'mcp-session-id' header.")

    notify = {"jsonrpc": "2.0", "method": "notifications/initialized", "params": {}}
    resp = _post(url, notify, {**headers, "mcp-session-id": session_id}, timeout)
    _fail_unless_ok(resp, "notifications/initialized")
    return session_id


def main() -> None:
    parser = argparse.ArgumentParser(description="Call a tool on the Todoist MCP gateway.")
    parser.add_argument("--mcp-url", default=DEFAULT_MCP_URL, help="MCP endpoint URL")
    parser.add_argument("--tool", help="Tool name, e.g. todoist_get_tasks")
    args_group = parser.add_mutually_exclusive_group()
    args_group.add_argument("--args-file", type=Path, help="Path to a JSON arguments file")
    args_group.add_argument("--args-json", help="Inline JSON arguments")
    parser.add_argument(
        "--rpc-method", default="tools/call", help="JSON-RPC method (e.g. tools/list)"
    )
    parser.add_argument(
        "--token",
        default=os.getenv("MCP_BEARER_TOKEN"),
        help="Bearer token (default: $MCP_BEARER_TOKEN)",
    )
    parser.add_argument(
        "--session-id",
        default=os.getenv("MCP_SESSION_ID"),
        help="Reuse an existing mcp-session-id",
    )
    args = parser.parse_args()

    if args.rpc_method == "tools/call" and not args.tool:
        parser.error("--tool is required when rpc-method is tools/call")
    if not args.token:
        parser.error("a bearer token is required (--token or MCP_BEARER_TOKEN)")

    if args.args_file:
        try:
            raw = args.args_file.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            sys.exit(f"Args file not found: {exc.filename}")
    else:
        raw = args.args_json or "{}"
    try:
        tool_args = json.loads(raw)
    except json.JSONDecodeError as exc:
        sys.exit(f"Invalid JSON in tool args: {exc}")

    headers = {
        "Accept": ACCEPT_HEADER_VALUE,
        "Authorization": f"Bearer {args.token}",
    }
    headers["mcp-session-id"] = args.session_id or _open_session(args.mcp_url, headers)
    print(f"Using headers: {', '.join(sorted(headers))}", file=sys.stderr)

    if args.rpc_method == "tools/call":
        payload = _envelope("tools/call", {"name": args.tool, "arguments": tool_args})
    else:
        payload = _envelope(args.rpc_method)

    resp = _post(args.mcp_url, payload, headers, timeout=300)
    _fail_unless_ok(resp, args.rpc_method)
    try:
        result = _read_result(resp)
    except (ValueError, RuntimeError) as exc:
        sys.exit(f"Failed to parse MCP response: {exc}")
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
