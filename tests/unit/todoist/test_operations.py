"""Per-item tool operations against the fake Todoist API."""

from __future__ import annotations

import httpx
import pytest

from todoist_mcp.todoist.errors import InvalidIdentifierError, TodoistError
from todoist_mcp.todoist.models import (
    CreateCommentItem,
    CreateProjectItem,
    CreateSectionItem,
    CreateTaskItem,
    RenameSectionItem,
    TaskRef,
    UpdateTaskItem,
)

CANONICAL_TASK = "01J0M8KPV7Z2F4S9DX3T8HCN8F"
CANONICAL_PROJECT = "01J0M8KPV7Z2F4S9DX3T8HCN9A"

TASKS = [
    {"id": "101", "content": "Buy milk", "project_id": "9", "priority": 4, "labels": []},
    {"id": "102", "content": "Call Mum", "project_id": "9", "priority": 1, "labels": []},
    {"id": CANONICAL_TASK, "content": "Write report", "project_id": CANONICAL_PROJECT, "priority": 4},
]


@pytest.fixture()
def ops(services):
    return services.operations


# --------------------------------------------------------------------------- #
# Models                                                                      #
# --------------------------------------------------------------------------- #
def test_task_ref_requires_id_or_name() -> None:
    with pytest.raises(ValueError):
        TaskRef()


def test_update_item_separates_move_fields() -> None:
    item = UpdateTaskItem(task_id="1", content="New", section_id=None)
    assert item.to_payload() == {"content": "New"}
    assert item.move_changes() == {"section_id": None}
    assert UpdateTaskItem(task_id="1", content="x").move_changes() == {}


# --------------------------------------------------------------------------- #
# Tasks                                                                       #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_get_tasks_filters_limits_and_normalizes(ops, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/tasks", TASKS)
    fake_todoist.on("GET", "/api/v1/id_mappings/tasks/101", {"101": "01J0M8KPV7Z2F4S9DX3T8HCN00"})
    fake_todoist.on("GET", "/api/v1/id_mappings/projects/9", {})

    tasks = await ops.get_tasks(priority=4, limit=1)

    assert len(tasks) == 1
    assert tasks[0]["id"] == "01J0M8KPV7Z2F4S9DX3T8HCN00"
    assert tasks[0]["project_id"] == "9"
    assert tasks[0]["content"] == "Buy milk"
    assert "url" in tasks[0]


@pytest.mark.anyio
async def test_get_tasks_default_limit(ops, fake_todoist) -> None:
    many = [{"id": CANONICAL_TASK, "content": f"t{i}"} for i in range(25)]
    fake_todoist.on("GET", "/rest/v2/tasks", many)
    assert len(await ops.get_tasks()) == 10


@pytest.mark.anyio
async def test_get_tasks_rejects_malformed_filter_ids(ops, fake_todoist) -> None:
    with pytest.raises(InvalidIdentifierError):
        await ops.get_tasks(project_id="inbox")
    assert fake_todoist.calls == []


@pytest.mark.anyio
async def test_resolve_task_by_name(ops, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/tasks", TASKS)
    assert await ops.resolve_task_id(TaskRef(task_name="call mum")) == "102"
    with pytest.raises(TodoistError, match="No task found"):
        await ops.resolve_task_id(TaskRef(task_name="nothing like this"))


@pytest.mark.anyio
async def test_create_task_item(ops, fake_todoist) -> None:
    fake_todoist.on("POST", "/rest/v2/tasks", {"id": CANONICAL_TASK, "content": "Milk"})

    result = await ops.create_task_item(CreateTaskItem(content="Milk", priority=2))

    assert result == {"task_id": CANONICAL_TASK, "content": "Milk"}
    assert fake_todoist.body(fake_todoist.calls[0]) == {"content": "Milk", "priority": 2}


@pytest.mark.anyio
async def test_create_task_item_validates_ids_first(ops, fake_todoist) -> None:
    with pytest.raises(InvalidIdentifierError):
        await ops.create_task_item(CreateTaskItem(content="Milk", section_id="Inbox"))
    assert fake_todoist.calls == []


@pytest.mark.anyio
async def test_update_task_item_updates_and_moves(ops, fake_todoist) -> None:
    fake_todoist.on("POST", "/rest/v2/tasks/101", {"id": "101"})
    fake_todoist.on("GET", "/rest/v2/tasks/101", {"id": "101"})
    fake_todoist.on("POST", "/rest/v2/tasks/101/move", status=204)

    result = await ops.update_task_item(
        UpdateTaskItem(task_id="101", content="Buy oat milk", project_id=CANONICAL_PROJECT)
    )

    assert result == {"task_id": "101", "updated": True, "moved": "rest"}
    assert fake_todoist.body(fake_todoist.calls[0]) == {"content": "Buy oat milk"}


@pytest.mark.anyio
async def test_update_task_item_without_fields(ops) -> None:
    with pytest.raises(ValueError, match="no fields"):
        await ops.update_task_item(UpdateTaskItem(task_id="101"))


@pytest.mark.anyio
async def test_complete_and_delete(ops, fake_todoist) -> None:
    fake_todoist.on("POST", "/rest/v2/tasks/101/close", status=204)
    fake_todoist.on("DELETE", "/rest/v2/tasks/102", status=204)

    assert await ops.complete_task_item(TaskRef(task_id="101")) == {"task_id": "101"}
    assert await ops.delete_task_item(TaskRef(task_id="102")) == {"task_id": "102"}


# --------------------------------------------------------------------------- #
# Projects, sections, comments                                                #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_get_projects_with_sections_and_hierarchy(ops, fake_todoist) -> None:
    fake_todoist.on(
        "GET",
        "/rest/v2/projects",
        [
            {"id": CANONICAL_PROJECT, "name": "Work", "parent_id": None},
            {"id": "01J0M8KPV7Z2F4S9DX3T8HCN9B", "name": "Reports", "parent_id": CANONICAL_PROJECT},
        ],
    )
    fake_todoist.on(
        "GET",
        "/rest/v2/sections",
        [{"id": "01J0M8KPV7Z2F4S9DX3T8HCNAB", "name": "Doing", "project_id": CANONICAL_PROJECT}],
    )

    projects = await ops.get_projects(include_sections=True, include_hierarchy=True)

    work, reports = projects
    assert work["child_ids"] == ["01J0M8KPV7Z2F4S9DX3T8HCN9B"]
    assert reports["child_ids"] == []
    assert [s["name"] for s in work["sections"]] == ["Doing"]
    assert reports["sections"] == []


@pytest.mark.anyio
async def test_get_projects_filter_matches_legacy_or_canonical(ops, fake_todoist) -> None:
    fake_todoist.on(
        "GET", "/rest/v2/projects", [{"id": "9", "name": "Inbox"}, {"id": "10", "name": "Home"}]
    )
    fake_todoist.on("GET", "/api/v1/id_mappings/projects/9,10", {"9": CANONICAL_PROJECT})

    by_legacy = await ops.get_projects(project_ids=["9"])
    by_canonical = await ops.get_projects(project_ids=[CANONICAL_PROJECT])

    assert [p["name"] for p in by_legacy] == ["Inbox"]
    assert [p["name"] for p in by_canonical] == ["Inbox"]
    assert by_legacy[0]["id"] == CANONICAL_PROJECT


@pytest.mark.anyio
async def test_create_project_with_parent_name_and_sections(ops, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/projects", [{"id": CANONICAL_PROJECT, "name": "Work"}])
    fake_todoist.on("POST", "/rest/v2/projects", {"id": "01J0M8KPV7Z2F4S9DX3T8HCN9C", "name": "Q3"})
    fake_todoist.on("POST", "/rest/v2/sections", {"id": "01J0M8KPV7Z2F4S9DX3T8HCNAC", "name": "x"})

    result = await ops.create_project_item(
        CreateProjectItem(name="Q3", parent_name="work", sections=["Todo", "Done"])
    )

    assert result["project_id"] == "01J0M8KPV7Z2F4S9DX3T8HCN9C"
    assert len(result["section_ids"]) == 2
    project_call = next(c for c in fake_todoist.calls if c.url.path == "/rest/v2/projects" and c.method == "POST")
    assert fake_todoist.body(project_call)["parent_id"] == CANONICAL_PROJECT


@pytest.mark.anyio
async def test_create_project_normalizes_new_section_ids(ops, fake_todoist) -> None:
    fake_todoist.on("POST", "/rest/v2/projects", {"id": CANONICAL_PROJECT, "name": "Q3"})
    created = iter(["31", "32"])

    def _section(request: httpx.Request) -> httpx.Response:
        body = fake_todoist.body(request)
        return httpx.Response(
            200, json={"id": next(created), "name": body["name"], "project_id": CANONICAL_PROJECT}
        )

    fake_todoist.on("POST", "/rest/v2/sections", _section)
    fake_todoist.on(
        "GET",
        "/api/v1/id_mappings/sections/31,32",
        {"31": "01J0M8KPV7Z2F4S9DX3T8HCNAD", "32": "01J0M8KPV7Z2F4S9DX3T8HCNAE"},
    )

    result = await ops.create_project_item(CreateProjectItem(name="Q3", sections=["Todo", "Done"]))

    assert result["section_ids"] == ["01J0M8KPV7Z2F4S9DX3T8HCNAD", "01J0M8KPV7Z2F4S9DX3T8HCNAE"]


@pytest.mark.anyio
async def test_create_project_with_unknown_parent(ops, fake_todoist) -> None:
    fake_todoist.on("GET", "/rest/v2/projects", [])
    with pytest.raises(TodoistError, match="No project found"):
        await ops.create_project_item(CreateProjectItem(name="Q3", parent_name="Nope"))


@pytest.mark.anyio
async def test_sections_and_comments(ops, fake_todoist) -> None:
    fake_todoist.on("POST", "/rest/v2/sections", {"id": "01J0M8KPV7Z2F4S9DX3T8HCNAB", "name": "Later"})
    fake_todoist.on("POST", "/rest/v2/sections/01J0M8KPV7Z2F4S9DX3T8HCNAB", {"name": "Someday"})
    fake_todoist.on("GET", "/rest/v2/comments", [{"id": "c1", "task_id": "101", "content": "hi"}])
    fake_todoist.on("POST", "/rest/v2/comments", {"id": "c2"})

    created = await ops.create_section_item(
        CreateSectionItem(name="Later", project_id=CANONICAL_PROJECT)
    )
    renamed = await ops.rename_section_item(
        RenameSectionItem(section_id=created["section_id"], name="Someday")
    )
    comments = await ops.get_task_comments_item(TaskRef(task_id="101"))
    comment = await ops.create_task_comment_item(
        CreateCommentItem(task_id="101", content="done")
    )

    assert created == {"section_id": "01J0M8KPV7Z2F4S9DX3T8HCNAB", "name": "Later"}
    assert renamed == {"section_id": "01J0M8KPV7Z2F4S9DX3T8HCNAB", "name": "Someday"}
    assert comments["comments"][0]["content"] == "hi"
    assert comment == {"task_id": "101", "comment_id": "c2"}
