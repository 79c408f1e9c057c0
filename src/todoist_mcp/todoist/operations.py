"""Per-item tool operations on top of the Todoist client.

Each ``*_item`` coroutine handles one element of a batch tool call and
returns the identifiers of what it touched; the batch runner adds
``success`` and collects failures.  Read operations return normalized
entities.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from todoist_mcp.todoist.client import TodoistClient
from todoist_mcp.todoist.errors import TodoistError
from todoist_mcp.todoist.ids import require_identifier
from todoist_mcp.todoist.models import (
    CreateCommentItem,
    CreateProjectItem,
    CreateSectionItem,
    CreateTaskItem,
    RenameSectionItem,
    TaskRef,
    UpdateTaskItem,
)
from todoist_mcp.todoist.move import MoveOrchestrator
from todoist_mcp.todoist.normalizer import ResponseNormalizer

logger = logging.getLogger("todoist-mcp.todoist.operations")

DEFAULT_TASK_LIMIT = 10

_TASK_FIELDS = (
    "id",
    "content",
    "description",
    "project_id",
    "section_id",
    "parent_id",
    "order",
    "labels",
    "priority",
    "due",
    "deadline",
    "assignee_id",
    "duration",
    "is_completed",
    "url",
)
_PROJECT_FIELDS = (
    "id",
    "name",
    "color",
    "parent_id",
    "order",
    "comment_count",
    "is_shared",
    "is_favorite",
    "is_inbox_project",
    "is_team_inbox",
    "view_style",
    "url",
)
_SECTION_FIELDS = ("id", "name", "project_id", "order")
_COMMENT_FIELDS = ("id", "task_id", "content", "posted_at", "attachment")


def _project(entity: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    return {f: entity.get(f) for f in fields}


def _validate_ids(values: Mapping[str, Any]) -> None:
    for name, value in values.items():
        if value is not None:
            require_identifier(value, name)


class TodoistOperations:
    def __init__(
        self,
        client: TodoistClient,
        normalizer: ResponseNormalizer,
        mover: MoveOrchestrator,
    ) -> None:
        self.client = client
        self.normalizer = normalizer
        self.mover = mover

    # ------------------------------------------------------------------ #
    # Lookup helpers                                                     #
    # ------------------------------------------------------------------ #
    async def resolve_task_id(self, ref: TaskRef) -> str:
        """Return the id named by *ref*, looking it up by content if needed."""
        if ref.task_id:
            return require_identifier(ref.task_id, "task_id")
        needle = (ref.task_name or "").lower()
        for task in await self.client.get_tasks():
            if needle in str(task.get("content", "")).lower():
                logger.debug("Task name %r matched task %s", ref.task_name, task.get("id"))
                return str(task["id"])
        raise TodoistError(f"No task found matching name {ref.task_name!r}")

    async def _find_project_id(self, name: str) -> str:
        needle = name.lower()
        for project in await self.client.get_projects():
            if str(project.get("name", "")).lower() == needle:
                return str(project["id"])
        raise TodoistError(f"No project found named {name!r}")

    # ------------------------------------------------------------------ #
    # Tasks                                                              #
    # ------------------------------------------------------------------ #
    async def create_task_item(self, item: CreateTaskItem) -> dict[str, Any]:
        _validate_ids(
            {
                "project_id": item.project_id,
                "section_id": item.section_id,
                "parent_id": item.parent_id,
            }
        )
        task = await self.client.add_task(item.to_payload())
        await self.normalizer.normalize_one("task", task)
        return {"task_id": task.get("id"), "content": task.get("content")}

    async def get_tasks(
        self,
        *,
        project_id: str | None = None,
        section_id: str | None = None,
        label: str | None = None,
        filter: str | None = None,
        lang: str | None = None,
        ids: list[str] | None = None,
        priority: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        _validate_ids({"project_id": project_id, "section_id": section_id})
        if ids:
            ids = [require_identifier(i, "ids") for i in ids]
        tasks = await self.client.get_tasks(
            project_id=project_id,
            section_id=section_id,
            label=label,
            filter=filter,
            lang=lang,
            ids=ids,
        )
        if priority is not None:
            tasks = [t for t in tasks if t.get("priority") == priority]
        tasks = tasks[: limit or DEFAULT_TASK_LIMIT]
        await self.normalizer.normalize("task", tasks)
        return [_project(t, _TASK_FIELDS) for t in tasks]

    async def update_task_item(self, item: UpdateTaskItem) -> dict[str, Any]:
        task_id = await self.resolve_task_id(item)
        payload = item.to_payload()
        changes = item.move_changes()
        if not payload and not changes:
            raise ValueError("no fields to update")

        result: dict[str, Any] = {"task_id": task_id, "updated": False, "moved": None}
        if payload:
            await self.client.update_task(task_id, payload)
            result["updated"] = True
        if changes:
            moved = await self.mover.move(task_id, changes)
            result["moved"] = moved.method
        return result

    async def delete_task_item(self, ref: TaskRef) -> dict[str, Any]:
        task_id = await self.resolve_task_id(ref)
        await self.client.delete_task(task_id)
        return {"task_id": task_id}

    async def complete_task_item(self, ref: TaskRef) -> dict[str, Any]:
        task_id = await self.resolve_task_id(ref)
        await self.client.close_task(task_id)
        return {"task_id": task_id}

    # ------------------------------------------------------------------ #
    # Projects                                                           #
    # ------------------------------------------------------------------ #
    async def get_projects(
        self,
        *,
        project_ids: list[str] | None = None,
        include_sections: bool = False,
        include_hierarchy: bool = False,
    ) -> list[dict[str, Any]]:
        wanted = {require_identifier(p, "project_ids") for p in project_ids or ()}
        projects = await self.client.get_projects()
        raw_ids = [str(p.get("id")) for p in projects]
        await self.normalizer.normalize("project", projects)
        if wanted:
            projects = [
                p
                for p, raw in zip(projects, raw_ids)
                if raw in wanted or str(p.get("id")) in wanted
            ]

        result = [_project(p, _PROJECT_FIELDS) for p in projects]

        if include_sections:
            sections = await self.client.get_sections()
            await self.normalizer.normalize("section", sections)
            grouped: dict[str, list[dict[str, Any]]] = {}
            for section in sections:
                grouped.setdefault(str(section.get("project_id")), []).append(
                    _project(section, _SECTION_FIELDS)
                )
            for project in result:
                project["sections"] = grouped.get(str(project["id"]), [])

        if include_hierarchy:
            for project in result:
                project["child_ids"] = [
                    p["id"] for p in result if p.get("parent_id") == project["id"]
                ]
        return result

    async def create_project_item(self, item: CreateProjectItem) -> dict[str, Any]:
        payload = item.to_payload()
        if item.parent_id:
            payload["parent_id"] = require_identifier(item.parent_id, "parent_id")
        elif item.parent_name:
            payload["parent_id"] = await self._find_project_id(item.parent_name)

        project = await self.client.add_project(payload)
        await self.normalizer.normalize_one("project", project)
        project_id = str(project.get("id"))

        sections = [
            await self.client.add_section({"name": name, "project_id": project_id})
            for name in item.sections or ()
        ]
        await self.normalizer.normalize("section", sections)
        section_ids = [section.get("id") for section in sections]
        return {"project_id": project_id, "name": project.get("name"), "section_ids": section_ids}

    # ------------------------------------------------------------------ #
    # Comments                                                           #
    # ------------------------------------------------------------------ #
    async def get_task_comments_item(self, ref: TaskRef) -> dict[str, Any]:
        task_id = await self.resolve_task_id(ref)
        comments = await self.client.get_comments(task_id)
        return {"task_id": task_id, "comments": [_project(c, _COMMENT_FIELDS) for c in comments]}

    async def create_task_comment_item(self, item: CreateCommentItem) -> dict[str, Any]:
        task_id = await self.resolve_task_id(item)
        comment = await self.client.add_comment({"task_id": task_id, "content": item.content})
        return {"task_id": task_id, "comment_id": comment.get("id")}

    # ------------------------------------------------------------------ #
    # Sections                                                           #
    # ------------------------------------------------------------------ #
    async def create_section_item(self, item: CreateSectionItem) -> dict[str, Any]:
        require_identifier(item.project_id, "project_id")
        section = await self.client.add_section(item.to_payload())
        await self.normalizer.normalize_one("section", section)
        return {"section_id": section.get("id"), "name": section.get("name")}

    async def rename_section_item(self, item: RenameSectionItem) -> dict[str, Any]:
        section_id = require_identifier(item.section_id, "section_id")
        section = await self.client.update_section(section_id, {"name": item.name})
        return {"section_id": section_id, "name": (section or {}).get("name", item.name)}
