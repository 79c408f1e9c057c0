"""Shared fixtures: a controllable clock, a stub identity provider and a fake
Todoist API served through :class:`httpx.MockTransport`."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
import pytest

from todoist_mcp.central_auth.errors import IdentityProviderError
from todoist_mcp.config import AuthConfig, TodoistConfig
from todoist_mcp.servers.context import AppServices

REST = "https://todoist.test/rest/v2"
SYNC = "https://todoist.test/sync/v9/sync"
ID_MAPPING = "https://todoist.test/api/v1/id_mappings"

CANONICAL_TASK = "01J0M8KPV7Z2F4S9DX3T8HCN8F"
CANONICAL_PROJECT = "01J0M8KPV7Z2F4S9DX3T8HCN9A"
CANONICAL_SECTION = "01J0M8KPV7Z2F4S9DX3T8HCNAB"


@pytest.fixture()
def anyio_backend() -> str:
    """The gateway runs on asyncio (``asyncio.gather`` in batch/normalizer)."""
    return "asyncio"


# --------------------------------------------------------------------------- #
# Clock                                                                       #
# --------------------------------------------------------------------------- #
class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# --------------------------------------------------------------------------- #
# Identity provider                                                           #
# --------------------------------------------------------------------------- #
class StubIdentity:
    """Stand-in for GitHubIdentityProvider that never touches the network."""

    authorize_base = "https://github.test/login/oauth/authorize"

    def __init__(self, login: str = "octocat", *, configured: bool = True) -> None:
        self.login = login
        self.configured = configured
        self.codes: list[str] = []
        self.fail_with: str | None = None

    def build_authorize_url(self, state: str) -> str:
        if not self.configured:
            raise IdentityProviderError("GitHub OAuth environment not configured")
        return f"{self.authorize_base}?{urlencode({'state': state})}"

    def resolve_identity(self, code: str) -> str:
        self.codes.append(code)
        if self.fail_with:
            raise IdentityProviderError(self.fail_with)
        return self.login


@pytest.fixture()
def identity() -> StubIdentity:
    return StubIdentity()


# --------------------------------------------------------------------------- #
# Fake Todoist API                                                            #
# --------------------------------------------------------------------------- #
Route = Callable[[httpx.Request], httpx.Response]


@dataclass
class FakeTodoist:
    """Routes ``(METHOD, path)`` to canned handlers and records every call."""

    routes: dict[tuple[str, str], Route] = field(default_factory=dict)
    calls: list[httpx.Request] = field(default_factory=list)

    def on(self, method: str, path: str, response: Any = None, status: int = 200) -> None:
        if callable(response):
            self.routes[(method, path)] = response
            return

        def _reply(request: httpx.Request) -> httpx.Response:
            if response is None:
                return httpx.Response(status)
            return httpx.Response(status, json=response)

        self.routes[(method, path)] = _reply

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, text="no route")
        return route(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self, method: str | None = None) -> list[str]:
        return [
            r.url.path for r in self.calls if method is None or r.method == method
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture()
def fake_todoist() -> FakeTodoist:
    return FakeTodoist()


@pytest.fixture()
def todoist_config() -> TodoistConfig:
    return TodoistConfig(
        api_token="todoist-test-token",
        rest_base_url=REST,
        sync_url=SYNC,
        id_mapping_url=ID_MAPPING,
        timeout=2.0,
    )


@pytest.fixture()
def auth_config() -> AuthConfig:
    return AuthConfig(
        github_client_id="gh-client",
        github_client_secret="gh-secret",
        github_callback_url="https://gateway.test/auth/github/callback",
        allowed_tokens=("static-test-token",),
        allowed_scopes=("read", "write"),
        auto_register=True,
        public_base_url="https://gateway.test",
        state_secret="state-secret-for-tests",
    )


@pytest.fixture()
def services(
    auth_config: AuthConfig,
    todoist_config: TodoistConfig,
    clock: FakeClock,
    identity: StubIdentity,
    fake_todoist: FakeTodoist,
) -> AppServices:
    return AppServices.build(
        auth_config,
        todoist_config,
        clock=clock,
        identity=identity,  # type: ignore[arg-type]
        transport=fake_todoist.transport(),
    )


# --------------------------------------------------------------------------- #
# Integration switch                                                          #
# --------------------------------------------------------------------------- #
def pytest_addoption(parser):
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run tests that talk to the real Todoist API",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless ``--integration`` is given.

    Tests also marked ``ci_safe`` stub every external call and always run.
    """
    if config.getoption("--integration"):
        return
    skip_integration = pytest.mark.skip(reason="Need --integration option to run")
    for item in items:
        if "integration" in item.keywords and "ci_safe" not in item.keywords:
            item.add_marker(skip_integration)
