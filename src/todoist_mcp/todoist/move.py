"""Task relocation with a REST-first, Sync-fallback strategy.

The REST ``/tasks/{id}/move`` verb answers 404 for tasks that still carry a
legacy id even though the task exists.  The Sync API ``item_move`` command
accepts both id families, so a 404 from REST (after the task was seen to
exist) triggers exactly one Sync attempt.  Any other REST failure is
returned to the caller unchanged.

Once every account is migrated the REST call stops failing and the fallback
is simply never taken.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from todoist_mcp.todoist.client import TodoistClient
from todoist_mcp.todoist.errors import MoveFailedError, TaskNotFoundError, UpstreamError
from todoist_mcp.todoist.ids import require_identifier

logger = logging.getLogger("todoist-mcp.todoist.move")

MOVE_FIELDS: tuple[str, ...] = ("project_id", "section_id", "parent_id")

MoveMethod = Literal["rest", "sync", "noop"]


@dataclass(frozen=True)
class MoveResult:
    task_id: str
    method: MoveMethod
    changes: dict[str, str | None] = field(default_factory=dict)

    @property
    def moved(self) -> bool:
        return self.method != "noop"


def build_move_payload(changes: Mapping[str, Any]) -> dict[str, str | None]:
    """Keep present move fields; ``None`` stays as an explicit detach.

    Raises:
        InvalidIdentifierError: for a present, non-null, malformed id.
        ValueError: for keys that are not move fields.
    """
    unknown = set(changes) - set(MOVE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported move field(s): {', '.join(sorted(unknown))}")
    payload: dict[str, str | None] = {}
    for name in MOVE_FIELDS:
        if name not in changes:
            continue
        value = changes[name]
        payload[name] = None if value is None else require_identifier(value, name)
    return payload


class MoveOrchestrator:
    def __init__(self, client: TodoistClient) -> None:
        self._client = client

    async def move(self, task_id: str, changes: Mapping[str, Any]) -> MoveResult:
        """Relocate *task_id* according to *changes*.

        Raises:
            InvalidIdentifierError: *task_id* or a target id is malformed.
            TaskNotFoundError: the pre-flight read answered 404.
            UpstreamError: REST failed with anything but 404, or Sync failed
                at the HTTP level.
            MoveFailedError: Sync answered but did not report ``ok``.
        """
        task_id = require_identifier(task_id, "task_id")
        payload = build_move_payload(changes)

        try:
            await self._client.get_task(task_id)
        except UpstreamError as exc:
            if exc.is_not_found:
                raise TaskNotFoundError(task_id) from exc
            raise

        if not payload:
            logger.debug("Move of task %s requested without changes; nothing to do", task_id)
            return MoveResult(task_id=task_id, method="noop")

        logger.info("Moving task %s via REST payload=%s", task_id, payload)
        try:
            await self._client.move_task(task_id, payload)
        except UpstreamError as exc:
            if not exc.is_not_found:
                logger.warning("REST move of task %s failed: %s", task_id, exc)
                raise
            logger.info(
                "REST move of task %s answered 404; falling back to Sync item_move",
                task_id,
            )
        else:
            logger.info("REST move of task %s succeeded", task_id)
            return MoveResult(task_id=task_id, method="rest", changes=payload)

        return await self._sync_move(task_id, payload)

    async def _sync_move(self, task_id: str, payload: dict[str, str | None]) -> MoveResult:
        command_uuid = str(uuid.uuid4())
        command = {
            "type": "item_move",
            "uuid": command_uuid,
            "args": {"id": task_id, **payload},
        }
        logger.info("Moving task %s via Sync command=%s", task_id, command_uuid)
        result = await self._client.sync([command])
        statuses = result.get("sync_status") if isinstance(result, dict) else None
        status = statuses.get(command_uuid) if isinstance(statuses, dict) else None
        if status != "ok":
            logger.warning(
                "Sync move of task %s failed command=%s status=%r",
                task_id,
                command_uuid,
                status,
            )
            raise MoveFailedError(task_id, status)
        logger.info("Sync move of task %s succeeded", task_id)
        return MoveResult(task_id=task_id, method="sync", changes=payload)
