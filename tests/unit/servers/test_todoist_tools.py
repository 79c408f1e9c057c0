"""Todoist tools exercised through an in-memory FastMCP client."""

from __future__ import annotations

import json

import httpx
import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from todoist_mcp.servers.main import create_server
from todoist_mcp.servers.todoist import TOOL_HANDLERS, TodoistTool

CANONICAL_TASK = "01J0M8KPV7Z2F4S9DX3T8HCN8F"
CANONICAL_PROJECT = "01J0M8KPV7Z2F4S9DX3T8HCN9A"


def _payload(result) -> dict:
    return json.loads(result.content[0].text)


def test_every_tool_has_a_handler() -> None:
    assert set(TOOL_HANDLERS) == set(TodoistTool)
    assert len(TodoistTool) == 11


@pytest.mark.anyio
async def test_tools_are_listed_under_the_todoist_namespace(services) -> None:
    async with Client(create_server(services)) as client:
        tools = await client.list_tools()

    names = {tool.name for tool in tools}
    assert names == {f"todoist_{tool.value}" for tool in TodoistTool}


@pytest.mark.anyio
async def test_batch_tool_reports_partial_failure(services, fake_todoist) -> None:
    fake_todoist.on("POST", "/rest/v2/tasks", {"id": CANONICAL_TASK, "content": "Milk"})

    async with Client(create_server(services)) as client:
        result = await client.call_tool(
            "todoist_create_task",
            {
                "tasks": [
                    {"content": "Milk"},
                    {"content": "Eggs", "project_id": "Inbox"},
                    {"content": "Milk"},
                ]
            },
            raise_on_error=False,
        )

    assert result.is_error is True
    envelope = _payload(result)
    assert envelope["success"] is False
    assert envelope["summary"] == {"total": 3, "succeeded": 2, "failed": 1}
    assert envelope["results"][0] == {"success": True, "task_id": CANONICAL_TASK, "content": "Milk"}
    assert envelope["results"][1]["success"] is False
    assert "project_id" in envelope["results"][1]["error"]
    assert envelope["results"][2]["success"] is True
    assert fake_todoist.paths("POST") == ["/rest/v2/tasks", "/rest/v2/tasks"]


@pytest.mark.anyio
async def test_update_task_moves_via_sync_fallback(services, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/tasks/8951709409", {"id": "8951709409"})
    fake_todoist.on("POST", "/rest/v2/tasks/8951709409/move", status=404)

    def _sync(request: httpx.Request) -> httpx.Response:
        command = json.loads(request.content)["commands"][0]
        return httpx.Response(200, json={"sync_status": {command["uuid"]: "ok"}})

    fake_todoist.on("POST", "/sync/v9/sync", _sync)

    async with Client(create_server(services)) as client:
        result = await client.call_tool(
            "todoist_update_task",
            {"tasks": [{"task_id": "8951709409", "project_id": CANONICAL_PROJECT}]},
        )

    envelope = _payload(result)
    assert envelope["success"] is True
    assert envelope["results"][0]["moved"] == "sync"


@pytest.mark.anyio
async def test_get_tasks_returns_normalized_list(services, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/tasks", [{"id": "55", "content": "Legacy task"}])
    fake_todoist.on("GET", "/api/v1/id_mappings/tasks/55", {"55": CANONICAL_TASK})

    async with Client(create_server(services)) as client:
        result = await client.call_tool("todoist_get_tasks", {"limit": 5})

    payload = _payload(result)
    assert payload["success"] is True
    assert payload["tasks"][0]["id"] == CANONICAL_TASK


@pytest.mark.anyio
async def test_get_tasks_upstream_failure_is_a_tool_error(services, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/tasks", status=503)

    async with Client(create_server(services)) as client:
        with pytest.raises(ToolError):
            await client.call_tool("todoist_get_tasks", {})


@pytest.mark.anyio
async def test_empty_batch_is_rejected(services, fake_todoist) -> None:
    async with Client(create_server(services)) as client:
        with pytest.raises(ToolError):
            await client.call_tool("todoist_delete_task", {"tasks": []})
    assert fake_todoist.calls == []


@pytest.mark.anyio
async def test_item_missing_required_field_fails_alone(services, fake_todoist) -> None:
    fake_todoist.on("POST", "/rest/v2/tasks", {"id": CANONICAL_TASK, "content": "Milk"})

    async with Client(create_server(services)) as client:
        result = await client.call_tool(
            "todoist_create_task",
            {"tasks": [{"content": "Milk"}, {"description": "no content"}, {"content": "Milk"}]},
            raise_on_error=False,
        )

    envelope = _payload(result)
    assert envelope["summary"] == {"total": 3, "succeeded": 2, "failed": 1}
    assert envelope["results"][1]["success"] is False
    assert "content" in envelope["results"][1]["error"]
    assert envelope["results"][1]["item"] == {"description": "no content"}
    assert len(fake_todoist.paths("POST")) == 2


@pytest.mark.anyio
async def test_task_reference_without_id_or_name_fails_alone(services, fake_todoist) -> None:
    fake_todoist.on("POST", f"/rest/v2/tasks/{CANONICAL_TASK}/close", status=204)

    async with Client(create_server(services)) as client:
        result = await client.call_tool(
            "todoist_complete_task",
            {"tasks": [{"task_id": CANONICAL_TASK}, {}]},
            raise_on_error=False,
        )

    assert result.is_error is True
    envelope = _payload(result)
    assert envelope["results"][0] == {"success": True, "task_id": CANONICAL_TASK}
    assert envelope["results"][1]["success"] is False
    assert "task_id or task_name" in envelope["results"][1]["error"]
    assert fake_todoist.paths("POST") == [f"/rest/v2/tasks/{CANONICAL_TASK}/close"]


@pytest.mark.anyio
async def test_fully_successful_batch_is_not_an_error(services, fake_todoist) -> None:
    fake_todoist.on("POST", f"/rest/v2/tasks/{CANONICAL_TASK}/close", status=204)

    async with Client(create_server(services)) as client:
        result = await client.call_tool(
            "todoist_complete_task", {"tasks": [{"task_id": CANONICAL_TASK}]}
        )

    assert result.is_error is False
    assert _payload(result)["summary"] == {"total": 1, "succeeded": 1, "failed": 0}
