"""Todoist FastMCP tools.

Every tool is a member of the closed :class:`TodoistTool` enum and has exactly
one entry in :data:`TOOL_HANDLERS`; the module refuses to import if the two
disagree.  Batch tools take a non-empty list of raw items, validate each one
against its model inside the batch, and always answer with the envelope built
by :func:`~todoist_mcp.todoist.batch.run_batch`.  When any item failed the
envelope is returned as a tool error so clients see `isError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from todoist_mcp.servers.dependencies import get_operations
from todoist_mcp.todoist.batch import run_batch
from todoist_mcp.todoist.errors import TodoistError
from todoist_mcp.todoist.models import (
    CreateCommentItem,
    CreateProjectItem,
    CreateSectionItem,
    CreateTaskItem,
    RenameSectionItem,
    TaskRef,
    UpdateTaskItem,
)

logger = logging.getLogger("todoist-mcp.server.todoist")


class TodoistTool(str, Enum):
    CREATE_TASK = "create_task"
    GET_TASKS = "get_tasks"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    COMPLETE_TASK = "complete_task"
    GET_PROJECTS = "get_projects"
    CREATE_PROJECT = "create_project"
    GET_TASK_COMMENTS = "get_task_comments"
    CREATE_TASK_COMMENT = "create_task_comment"
    CREATE_SECTION = "create_section"
    RENAME_SECTION = "rename_section"


def _dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _batch_answer(envelope: dict[str, Any]) -> str:
    if not envelope["success"]:
        raise ToolError(_dump(envelope))
    return _dump(envelope)


Items = list[dict[str, Any]]


# --------------------------------------------------------------------------- #
# Tasks                                                                       #
# --------------------------------------------------------------------------- #
async def create_task(
    ctx: Context,
    tasks: Annotated[
        Items,
        Field(
            min_length=1,
            description=(
                "Tasks to create. Each needs content; optional description, project_id, "
                "section_id, parent_id, order, labels, priority (1-4), due_string, "
                "due_date, due_datetime, due_lang, assignee_id, duration, "
                "duration_unit, deadline_date."
            ),
        ),
    ],
) -> str:
    """Create one or more tasks."""
    ops = get_operations(ctx)
    envelope = await run_batch(tasks, ops.create_task_item, model=CreateTaskItem)
    return _batch_answer(envelope)


async def get_tasks(
    ctx: Context,
    project_id: Annotated[str | None, Field(description="Only tasks of this project")] = None,
    section_id: Annotated[str | None, Field(description="Only tasks of this section")] = None,
    label: Annotated[str | None, Field(description="Only tasks with this label")] = None,
    filter: Annotated[
        str | None, Field(description="Todoist filter query, e.g. 'today | overdue'")
    ] = None,
    lang: Annotated[str | None, Field(description="Language of the filter query")] = None,
    ids: Annotated[list[str] | None, Field(description="Only these task ids")] = None,
    priority: Annotated[int | None, Field(ge=1, le=4, description="Only this priority")] = None,
    limit: Annotated[int, Field(ge=1, le=200, description="Maximum number of tasks")] = 10,
) -> str:
    """List active tasks; legacy ids in the result are converted where possible."""
    ops = get_operations(ctx)
    try:
        tasks = await ops.get_tasks(
            project_id=project_id,
            section_id=section_id,
            label=label,
            filter=filter,
            lang=lang,
            ids=ids,
            priority=priority,
            limit=limit,
        )
    except TodoistError as exc:
        raise ToolError(str(exc)) from exc
    return _dump({"success": True, "tasks": tasks})


async def update_task(
    ctx: Context,
    tasks: Annotated[
        Items,
        Field(
            min_length=1,
            description=(
                "Tasks to update, by task_id or task_name. project_id, section_id "
                "and parent_id move the task; null section_id/parent_id detaches it."
            ),
        ),
    ],
) -> str:
    """Update and/or move one or more tasks."""
    ops = get_operations(ctx)
    envelope = await run_batch(tasks, ops.update_task_item, model=UpdateTaskItem)
    return _batch_answer(envelope)


async def delete_task(
    ctx: Context,
    tasks: Annotated[
        Items, Field(min_length=1, description="Tasks to delete, by task_id or task_name")
    ],
) -> str:
    """Delete one or more tasks."""
    ops = get_operations(ctx)
    envelope = await run_batch(tasks, ops.delete_task_item, model=TaskRef)
    return _batch_answer(envelope)


async def complete_task(
    ctx: Context,
    tasks: Annotated[
        Items, Field(min_length=1, description="Tasks to complete, by task_id or task_name")
    ],
) -> str:
    """Mark one or more tasks as completed."""
    ops = get_operations(ctx)
    envelope = await run_batch(tasks, ops.complete_task_item, model=TaskRef)
    return _batch_answer(envelope)


# --------------------------------------------------------------------------- #
# Projects and sections                                                       #
# --------------------------------------------------------------------------- #
async def get_projects(
    ctx: Context,
    project_ids: Annotated[
        list[str] | None, Field(description="Only these projects")
    ] = None,
    include_sections: Annotated[
        bool, Field(description="Attach the sections of each project")
    ] = False,
    include_hierarchy: Annotated[
        bool, Field(description="Attach the ids of child projects")
    ] = False,
) -> str:
    """List projects; legacy ids in the result are converted where possible."""
    ops = get_operations(ctx)
    try:
        projects = await ops.get_projects(
            project_ids=project_ids,
            include_sections=include_sections,
            include_hierarchy=include_hierarchy,
        )
    except TodoistError as exc:
        raise ToolError(str(exc)) from exc
    return _dump({"success": True, "projects": projects})


async def create_project(
    ctx: Context,
    projects: Annotated[
        Items,
        Field(
            min_length=1,
            description=(
                "Projects to create. Each needs name; optional parent_id or parent_name, "
                "color, is_favorite, view_style (list|board), sections (names)."
            ),
        ),
    ],
) -> str:
    """Create one or more projects, optionally with sections."""
    ops = get_operations(ctx)
    envelope = await run_batch(projects, ops.create_project_item, model=CreateProjectItem)
    return _batch_answer(envelope)


async def create_section(
    ctx: Context,
    sections: Annotated[
        Items,
        Field(min_length=1, description="Sections to create: name, project_id, optional order"),
    ],
) -> str:
    """Create one or more sections."""
    ops = get_operations(ctx)
    envelope = await run_batch(sections, ops.create_section_item, model=CreateSectionItem)
    return _batch_answer(envelope)


async def rename_section(
    ctx: Context,
    sections: Annotated[
        Items, Field(min_length=1, description="Sections to rename: section_id, name")
    ],
) -> str:
    """Rename one or more sections."""
    ops = get_operations(ctx)
    envelope = await run_batch(sections, ops.rename_section_item, model=RenameSectionItem)
    return _batch_answer(envelope)


# --------------------------------------------------------------------------- #
# Comments                                                                    #
# --------------------------------------------------------------------------- #
async def get_task_comments(
    ctx: Context,
    tasks: Annotated[
        Items,
        Field(min_length=1, description="Tasks whose comments to fetch, by task_id or task_name"),
    ],
) -> str:
    """Fetch the comments of one or more tasks."""
    ops = get_operations(ctx)
    envelope = await run_batch(tasks, ops.get_task_comments_item, model=TaskRef)
    return _batch_answer(envelope)


async def create_task_comment(
    ctx: Context,
    comments: Annotated[
        Items,
        Field(
            min_length=1,
            description="Comments to add: content plus task_id or task_name",
        ),
    ],
) -> str:
    """Add a comment to one or more tasks."""
    ops = get_operations(ctx)
    envelope = await run_batch(comments, ops.create_task_comment_item, model=CreateCommentItem)
    return _batch_answer(envelope)


# --------------------------------------------------------------------------- #
# Dispatch table                                                              #
# --------------------------------------------------------------------------- #
ToolFn = Callable[..., Awaitable[str]]

TOOL_HANDLERS: dict[TodoistTool, tuple[ToolFn, frozenset[str]]] = {
    TodoistTool.CREATE_TASK: (create_task, frozenset({"todoist", "write"})),
    TodoistTool.GET_TASKS: (get_tasks, frozenset({"todoist", "read"})),
    TodoistTool.UPDATE_TASK: (update_task, frozenset({"todoist", "write"})),
    TodoistTool.DELETE_TASK: (delete_task, frozenset({"todoist", "write"})),
    TodoistTool.COMPLETE_TASK: (complete_task, frozenset({"todoist", "write"})),
    TodoistTool.GET_PROJECTS: (get_projects, frozenset({"todoist", "read"})),
    TodoistTool.CREATE_PROJECT: (create_project, frozenset({"todoist", "write"})),
    TodoistTool.GET_TASK_COMMENTS: (get_task_comments, frozenset({"todoist", "read"})),
    TodoistTool.CREATE_TASK_COMMENT: (create_task_comment, frozenset({"todoist", "write"})),
    TodoistTool.CREATE_SECTION: (create_section, frozenset({"todoist", "write"})),
    TodoistTool.RENAME_SECTION: (rename_section, frozenset({"todoist", "write"})),
}

_unhandled = set(TodoistTool) - set(TOOL_HANDLERS)
if _unhandled:
    raise RuntimeError(
        f"Todoist tools without a handler: {sorted(t.value for t in _unhandled)}"
    )


def build_todoist_server() -> FastMCP:
    """Return a FastMCP server exposing every :class:`TodoistTool`."""
    server = FastMCP(name="Todoist MCP Service")
    for tool, (handler, tags) in TOOL_HANDLERS.items():
        server.tool(handler, name=tool.value, tags=set(tags))
    logger.debug("Registered %d Todoist tools", len(TOOL_HANDLERS))
    return server
