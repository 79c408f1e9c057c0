"""Asynchronous client for the Todoist REST, Sync and id-mapping APIs.

Each call opens a short-lived :class:`httpx.AsyncClient` bounded by the
configured timeout.  Non-success statuses, timeouts and transport failures
all surface as :class:`~todoist_mcp.todoist.errors.UpstreamError`; a timeout
carries ``status_code=None``.

Payloads and results are the plain JSON dictionaries of the REST API
(snake_case keys).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import httpx

from todoist_mcp.config import TodoistConfig
from todoist_mcp.todoist.errors import UpstreamError

logger = logging.getLogger("todoist-mcp.todoist.client")

JSON = Any


def _compact(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values so they are not sent as explicit nulls."""
    return {k: v for k, v in payload.items() if v is not None}


class TodoistClient:
    """Thin async wrapper over the upstream HTTP APIs."""

    def __init__(
        self,
        config: TodoistConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    # ------------------------------------------------------------------ #
    # Plumbing                                                           #
    # ------------------------------------------------------------------ #
    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        label: str,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> JSON:
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=_compact(params) if params else None,
                    json=json,
                    headers=self._headers(),
                )
        except httpx.TimeoutException as exc:
            logger.warning("Todoist %s %s timed out", method, label)
            raise UpstreamError(method, label, None, f"timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Todoist %s %s transport error: %s", method, label, exc)
            raise UpstreamError(method, label, None, str(exc)) from exc

        if response.is_error:
            logger.debug(
                "Todoist %s %s -> %s", method, label, response.status_code
            )
            raise UpstreamError(method, label, response.status_code, response.text)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                method, label, response.status_code, "response is not JSON"
            ) from exc

    async def _rest(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> JSON:
        url = f"{self.config.rest_base_url}{path}"
        return await self._request(method, url, label=path, params=params, json=json)

    # ------------------------------------------------------------------ #
    # Tasks                                                              #
    # ------------------------------------------------------------------ #
    async def get_tasks(
        self,
        *,
        project_id: str | None = None,
        section_id: str | None = None,
        label: str | None = None,
        filter: str | None = None,
        lang: str | None = None,
        ids: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        params = {
            "project_id": project_id,
            "section_id": section_id,
            "label": label,
            "filter": filter,
            "lang": lang,
            "ids": ",".join(ids) if ids else None,
        }
        return await self._rest("GET", "/tasks", params=params) or []

    async def get_task(self, task_id: str) -> dict[str, Any]:
        return await self._rest("GET", f"/tasks/{task_id}")

    async def add_task(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._rest("POST", "/tasks", json=_compact(payload))

    async def update_task(self, task_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._rest("POST", f"/tasks/{task_id}", json=_compact(payload))

    async def close_task(self, task_id: str) -> None:
        await self._rest("POST", f"/tasks/{task_id}/close")

    async def delete_task(self, task_id: str) -> None:
        await self._rest("DELETE", f"/tasks/{task_id}")

    async def move_task(self, task_id: str, payload: Mapping[str, Any]) -> JSON:
        """Single-resource relocate verb; explicit ``None`` values are kept."""
        return await self._rest("POST", f"/tasks/{task_id}/move", json=dict(payload))

    # ------------------------------------------------------------------ #
    # Projects and sections                                              #
    # ------------------------------------------------------------------ #
    async def get_projects(self) -> list[dict[str, Any]]:
        return await self._rest("GET", "/projects") or []

    async def get_project(self, project_id: str) -> dict[str, Any]:
        return await self._rest("GET", f"/projects/{project_id}")

    async def add_project(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._rest("POST", "/projects", json=_compact(payload))

    async def get_sections(self, project_id: str | None = None) -> list[dict[str, Any]]:
        return await self._rest("GET", "/sections", params={"project_id": project_id}) or []

    async def add_section(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._rest("POST", "/sections", json=_compact(payload))

    async def update_section(self, section_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._rest("POST", f"/sections/{section_id}", json=_compact(payload))

    # ------------------------------------------------------------------ #
    # Comments                                                           #
    # ------------------------------------------------------------------ #
    async def get_comments(self, task_id: str) -> list[dict[str, Any]]:
        return await self._rest("GET", "/comments", params={"task_id": task_id}) or []

    async def add_comment(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._rest("POST", "/comments", json=_compact(payload))

    # ------------------------------------------------------------------ #
    # Sync API and id mappings                                           #
    # ------------------------------------------------------------------ #
    async def sync(self, commands: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
        """Submit versioned command envelopes to the batch command endpoint."""
        result = await self._request(
            "POST",
            self.config.sync_url,
            label="/sync",
            json={"commands": list(commands)},
        )
        return result or {}

    async def id_mappings(self, resource_type: str, ids: Sequence[str]) -> JSON:
        """Look up canonical ids for a batch of legacy ids of one resource type."""
        joined = ",".join(ids)
        path = f"/id_mappings/{resource_type}/{joined}"
        url = f"{self.config.id_mapping_url}/{resource_type}/{joined}"
        return await self._request("GET", url, label=path)
