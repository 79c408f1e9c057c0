"""Exceptions raised by the Todoist layer.

Every error here is caught per item by the batch runner and reported in that
item's result entry; none of them is fatal to a tool call as a whole.
"""

from __future__ import annotations

from typing import Any

_BODY_LIMIT = 500


class TodoistError(Exception):
    """Base class for Todoist layer errors."""


class InvalidIdentifierError(TodoistError, ValueError):
    """A value is neither a canonical nor a legacy identifier."""

    def __init__(self, value: Any, *, field: str = "id") -> None:
        self.value = value
        self.field = field
        super().__init__(
            f"Invalid {field} {value!r}: expected a numeric legacy id "
            "or a 26-character canonical id"
        )


class UpstreamError(TodoistError):
    """The Todoist API answered with a non-success status or not at all.

    ``status_code`` is ``None`` when the request timed out or failed at the
    transport level.
    """

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int | None,
        body: str = "",
    ) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = (body or "")[:_BODY_LIMIT]
        status = status_code if status_code is not None else "no response"
        message = f"Todoist API {method} {path} failed ({status})"
        if self.body:
            message = f"{message}: {self.body}"
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class TaskNotFoundError(TodoistError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class MoveFailedError(TodoistError):
    """The batch-command fallback did not report ``ok`` for a move."""

    def __init__(self, task_id: str, status: Any) -> None:
        self.task_id = task_id
        self.status = status
        super().__init__(f"Sync move of task {task_id} failed: {status!r}")
