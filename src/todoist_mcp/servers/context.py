from __future__ import annotations

from dataclasses import dataclass

import httpx

from todoist_mcp.central_auth.clock import Clock, default_clock
from todoist_mcp.central_auth.identity import GitHubIdentityProvider
from todoist_mcp.central_auth.registry import ClientRegistry
from todoist_mcp.central_auth.service import AuthorizationService
from todoist_mcp.central_auth.store import MemoryAuthStore
from todoist_mcp.central_auth.tokens import BearerTokenValidator
from todoist_mcp.config import AuthConfig, TodoistConfig
from todoist_mcp.todoist.client import TodoistClient
from todoist_mcp.todoist.move import MoveOrchestrator
from todoist_mcp.todoist.normalizer import ResponseNormalizer
from todoist_mcp.todoist.operations import TodoistOperations
from todoist_mcp.todoist.resolver import LegacyIdResolver


@dataclass(frozen=True)
class AppServices:
    """
    Process-scoped container of every stateful component.

    All registrations, pending states, codes, tokens and id mappings live in
    the objects held here and are lost when the process exits.
    """

    auth_config: AuthConfig
    todoist_config: TodoistConfig
    store: MemoryAuthStore
    registry: ClientRegistry
    validator: BearerTokenValidator
    identity: GitHubIdentityProvider
    auth: AuthorizationService
    todoist: TodoistClient
    resolver: LegacyIdResolver
    normalizer: ResponseNormalizer
    mover: MoveOrchestrator
    operations: TodoistOperations

    @classmethod
    def build(
        cls,
        auth_config: AuthConfig,
        todoist_config: TodoistConfig,
        *,
        clock: Clock = default_clock,
        identity: GitHubIdentityProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AppServices:
        store = MemoryAuthStore(clock=clock)
        registry = ClientRegistry(
            store,
            allowed_scopes=auth_config.allowed_scopes,
            auto_register=auth_config.auto_register,
            clock=clock,
        )
        validator = BearerTokenValidator(
            store,
            allowed_tokens=auth_config.allowed_tokens,
            static_scope=registry.default_scope,
            clock=clock,
        )
        if identity is None:
            identity = GitHubIdentityProvider(
                client_id=auth_config.github_client_id,
                client_secret=auth_config.github_client_secret,
                callback_url=auth_config.github_callback_url,
            )
        auth = AuthorizationService(
            store=store,
            registry=registry,
            validator=validator,
            identity=identity,
            state_secret=auth_config.state_secret,
            clock=clock,
        )
        todoist = TodoistClient(todoist_config, transport=transport)
        resolver = LegacyIdResolver(todoist)
        normalizer = ResponseNormalizer(resolver)
        mover = MoveOrchestrator(todoist)
        return cls(
            auth_config=auth_config,
            todoist_config=todoist_config,
            store=store,
            registry=registry,
            validator=validator,
            identity=identity,
            auth=auth,
            todoist=todoist,
            resolver=resolver,
            normalizer=normalizer,
            mover=mover,
            operations=TodoistOperations(todoist, normalizer, mover),
        )

    @classmethod
    def from_env(cls) -> AppServices:
        return cls.build(AuthConfig.from_env(), TodoistConfig.from_env())


@dataclass(frozen=True)
class MainAppContext:
    """
    Context yielded by the server lifespan and read by tool functions.
    """

    services: AppServices
