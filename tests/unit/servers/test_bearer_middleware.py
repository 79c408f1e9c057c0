"""Bearer token guard in front of the MCP endpoint."""

from __future__ import annotations

import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from todoist_mcp.servers.main import BearerAuthMiddleware, create_server

INIT_PAYLOAD = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "clientInfo": {"name": "pytest", "version": "0"},
        "capabilities": {},
    },
}
MCP_HEADERS = {"Accept": "application/json, text/event-stream"}


# --------------------------------------------------------------------------- #
# Against a tiny downstream app                                               #
# --------------------------------------------------------------------------- #
async def _whoami(request: Request) -> JSONResponse:
    info = getattr(request.state, "token_info", None)
    return JSONResponse({"user": info.user if info else None})


async def _explode(scope, receive, send) -> None:
    raise RuntimeError("downstream failure")


@pytest.fixture()
def guarded(services):
    server = create_server(services)
    inner = Starlette(routes=[Route("/mcp", _whoami, methods=["GET", "POST"])])
    app = BearerAuthMiddleware(inner, mcp_server_ref=server, mcp_path="/mcp")
    return TestClient(app, base_url="https://gateway.test")


def test_missing_token_is_rejected(guarded: TestClient) -> None:
    resp = guarded.post("/mcp", json=INIT_PAYLOAD)
    assert resp.status_code == 401
    body = resp.json()
    assert body["error"]["code"] == -32001
    assert body["error"]["message"] == "Missing bearer token"
    challenge = resp.headers["www-authenticate"]
    assert challenge.startswith("Bearer ")
    assert 'authorization_uri="https://gateway.test/oauth/authorize"' in challenge
    assert "resource_metadata=" in challenge


@pytest.mark.parametrize(
    "header",
    ["Bearer not-a-real-token", "Basic c3RhdGljLXRlc3QtdG9rZW4=", "Bearer ", "static-test-token"],
)
def test_bad_credentials_are_rejected(guarded: TestClient, header: str) -> None:
    resp = guarded.get("/mcp", headers={"Authorization": header})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == -32001


def test_static_token_reaches_downstream(guarded: TestClient) -> None:
    resp = guarded.get("/mcp", headers={"Authorization": "Bearer static-test-token"})
    assert resp.status_code == 200
    assert resp.json() == {"user": "static-token"}


def test_scheme_is_case_insensitive_and_trailing_slash_is_guarded(guarded: TestClient) -> None:
    assert guarded.get("/mcp/").status_code == 401
    resp = guarded.get("/mcp", headers={"Authorization": "bearer static-test-token"})
    assert resp.status_code == 200


def test_issued_token_reaches_downstream(guarded: TestClient, services) -> None:
    token, _ = services.validator.mint(user="octocat", scope="read", ttl_seconds=60)
    resp = guarded.get("/mcp", headers={"Authorization": f"Bearer {token}"})
    assert resp.json() == {"user": "octocat"}


def test_expired_token_is_rejected(guarded: TestClient, services, clock) -> None:
    token, _ = services.validator.mint(user="octocat", scope="read", ttl_seconds=60)
    clock.advance(61)
    resp = guarded.get("/mcp", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid or expired bearer token"


def test_other_paths_are_not_guarded(guarded: TestClient) -> None:
    assert guarded.get("/elsewhere").status_code == 404


def test_unhandled_errors_become_jsonrpc_internal_errors(services) -> None:
    app = BearerAuthMiddleware(_explode, mcp_server_ref=create_server(services), mcp_path="/mcp")
    resp = TestClient(app).get("/boom")
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == -32603
    assert "downstream failure" not in resp.text


# --------------------------------------------------------------------------- #
# Against the real MCP application                                            #
# --------------------------------------------------------------------------- #
def test_mcp_endpoint_requires_a_token(services) -> None:
    app = create_server(services).http_app()
    client = TestClient(app, base_url="https://gateway.test")
    resp = client.post("/mcp", json=INIT_PAYLOAD, headers=MCP_HEADERS)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == -32001


def test_mcp_endpoint_accepts_a_valid_token(services) -> None:
    app = create_server(services).http_app()
    headers = {**MCP_HEADERS, "Authorization": "Bearer static-test-token"}
    with TestClient(app, base_url="https://gateway.test") as client:
        resp = client.post("/mcp", json=INIT_PAYLOAD, headers=headers)
    assert resp.status_code == 200
    assert resp.headers.get("x-correlation-id")
