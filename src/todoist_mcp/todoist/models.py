"""Per-item argument models of the batch tools.

Identifier fields are plain strings here; their shape is checked per item by
:mod:`todoist_mcp.todoist.operations` so that one malformed id fails only its
own item.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

Priority = int
DurationUnit = Literal["minute", "day"]


class _Item(BaseModel):
    def api_fields(self, *names: str) -> dict[str, Any]:
        """Return the named fields that were given a non-null value."""
        return {n: getattr(self, n) for n in names if getattr(self, n) is not None}


class TaskRef(_Item):
    """Identifies a task by id or, failing that, by part of its content."""

    task_id: str | None = Field(default=None, description="Task id (numeric or canonical)")
    task_name: str | None = Field(
        default=None,
        description="Case-insensitive substring of the task content, used when task_id is absent",
    )

    @model_validator(mode="after")
    def _one_reference(self) -> TaskRef:
        if not self.task_id and not self.task_name:
            raise ValueError("either task_id or task_name is required")
        return self


_DUE_FIELDS = ("due_string", "due_date", "due_datetime", "due_lang")


class CreateTaskItem(_Item):
    content: str = Field(description="Task content / title")
    description: str | None = None
    project_id: str | None = None
    section_id: str | None = None
    parent_id: str | None = None
    order: int | None = None
    labels: list[str] | None = None
    priority: Priority | None = Field(default=None, ge=1, le=4)
    due_string: str | None = None
    due_date: str | None = None
    due_datetime: str | None = None
    due_lang: str | None = None
    assignee_id: str | None = None
    duration: int | None = Field(default=None, gt=0)
    duration_unit: DurationUnit | None = None
    deadline_date: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.api_fields(
            "content",
            "description",
            "project_id",
            "section_id",
            "parent_id",
            "order",
            "labels",
            "priority",
            *_DUE_FIELDS,
            "assignee_id",
            "duration",
            "duration_unit",
            "deadline_date",
        )


class UpdateTaskItem(TaskRef):
    content: str | None = None
    description: str | None = None
    labels: list[str] | None = None
    priority: Priority | None = Field(default=None, ge=1, le=4)
    due_string: str | None = None
    due_date: str | None = None
    due_datetime: str | None = None
    due_lang: str | None = None
    assignee_id: str | None = None
    duration: int | None = Field(default=None, gt=0)
    duration_unit: DurationUnit | None = None
    deadline_date: str | None = None
    project_id: str | None = Field(default=None, description="Move to this project")
    section_id: str | None = Field(default=None, description="Move to this section; null detaches")
    parent_id: str | None = Field(default=None, description="Make a subtask; null detaches")

    def to_payload(self) -> dict[str, Any]:
        return self.api_fields(
            "content",
            "description",
            "labels",
            "priority",
            *_DUE_FIELDS,
            "assignee_id",
            "duration",
            "duration_unit",
            "deadline_date",
        )

    def move_changes(self) -> dict[str, str | None]:
        """Move fields that were sent, an explicit ``null`` included."""
        return {
            name: getattr(self, name)
            for name in ("project_id", "section_id", "parent_id")
            if name in self.model_fields_set
        }


class CreateProjectItem(_Item):
    name: str
    parent_id: str | None = None
    parent_name: str | None = Field(
        default=None, description="Name of the parent project, used when parent_id is absent"
    )
    color: str | None = None
    is_favorite: bool | None = None
    view_style: Literal["list", "board"] | None = None
    sections: list[str] | None = Field(
        default=None, description="Section names to create inside the new project"
    )

    def to_payload(self) -> dict[str, Any]:
        return self.api_fields("name", "parent_id", "color", "is_favorite", "view_style")


class CreateCommentItem(TaskRef):
    content: str


class CreateSectionItem(_Item):
    name: str
    project_id: str
    order: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.api_fields("name", "project_id", "order")


class RenameSectionItem(_Item):
    section_id: str
    name: str
