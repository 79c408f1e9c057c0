"""End to end: OAuth dance, then MCP calls over streamable HTTP."""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlsplit

import pytest
from starlette.testclient import TestClient

from todoist_mcp.central_auth.pkce import code_challenge_s256, generate_code_verifier
from todoist_mcp.servers.main import create_server
from todoist_mcp.todoist import TodoistClient, is_canonical, is_legacy

REDIRECT = "http://127.0.0.1:6274/oauth/callback"
PROTOCOL_VERSION = "2025-03-26"
MCP_ACCEPT = "application/json, text/event-stream"


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


def _rpc_result(resp) -> dict:
    """Return the JSON-RPC message from a JSON or SSE response body."""
    if resp.headers.get("content-type", "").startswith("text/event-stream"):
        for line in resp.text.splitlines():
            if line.startswith("data:"):
                return json.loads(line[5:].strip())
        raise AssertionError(f"no data frame in {resp.text!r}")
    return resp.json()


def _obtain_token(client: TestClient) -> str:
    registered = client.post("/oauth/register", json={"redirect_uris": [REDIRECT]}).json()
    client_id = registered["client_id"]
    verifier = generate_code_verifier()

    authorize = client.get(
        "/oauth/authorize",
        params={
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": REDIRECT,
            "state": "inspector-state",
            "code_challenge": code_challenge_s256(verifier),
            "code_challenge_method": "S256",
            "scope": "read write",
        },
    )
    relay_state = _query(authorize.headers["location"])["state"]
    callback = client.get("/auth/github/callback", params={"code": "gh", "state": relay_state})
    code = _query(callback.headers["location"])["code"]

    token = client.post(
        "/oauth/token",
        data={
            "grant_type": "authorization_code",
            "code": code,
            "client_id": client_id,
            "redirect_uri": REDIRECT,
            "code_verifier": verifier,
        },
    )
    assert token.status_code == 200
    return token.json()["access_token"]


@pytest.mark.integration
@pytest.mark.ci_safe
def test_issued_token_opens_an_mcp_session(services, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/projects", [{"id": "2203306141", "name": "Inbox"}])
    fake_todoist.on(
        "GET",
        "/api/v1/id_mappings/projects/2203306141",
        {"2203306141": "01J0M8KPV7Z2F4S9DX3T8HCN9A"},
    )
    app = create_server(services).http_app()

    with TestClient(app, base_url="https://gateway.test", follow_redirects=False) as client:
        assert client.post("/mcp", json={}).status_code == 401

        headers = {"Authorization": f"Bearer {_obtain_token(client)}", "Accept": MCP_ACCEPT}
        init = client.post(
            "/mcp",
            headers=headers,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "method": "initialize",
                "params": {
                    "protocolVersion": PROTOCOL_VERSION,
                    "clientInfo": {"name": "integration", "version": "0"},
                    "capabilities": {},
                },
            },
        )
        assert init.status_code == 200
        assert _rpc_result(init)["result"]["serverInfo"]["name"] == "todoist-mcp-server-http"

        session_id = init.headers.get("mcp-session-id")
        if session_id:
            headers["mcp-session-id"] = session_id
        client.post(
            "/mcp", headers=headers, json={"jsonrpc": "2.0", "method": "notifications/initialized"}
        )

        listed = client.post(
            "/mcp", headers=headers, json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"}
        )
        names = {tool["name"] for tool in _rpc_result(listed)["result"]["tools"]}
        assert "todoist_get_projects" in names

        called = client.post(
            "/mcp",
            headers=headers,
            json={
                "jsonrpc": "2.0",
                "id": 3,
                "method": "tools/call",
                "params": {"name": "todoist_get_projects", "arguments": {}},
            },
        )
        result = _rpc_result(called)["result"]
        assert result.get("isError") is not True
        payload = json.loads(result["content"][0]["text"])
        assert payload["projects"][0]["id"] == "01J0M8KPV7Z2F4S9DX3T8HCN9A"


@pytest.mark.integration
@pytest.mark.anyio
async def test_live_account_returns_recognisable_ids(live_todoist_config) -> None:
    client = TodoistClient(live_todoist_config)
    projects = await client.get_projects()
    assert projects, "every Todoist account has at least an Inbox project"
    assert all(is_canonical(str(p["id"])) or is_legacy(str(p["id"])) for p in projects)
