"""All-settled fan-out over the items of a batch tool call."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from todoist_mcp.todoist.errors import TodoistError

logger = logging.getLogger("todoist-mcp.todoist.batch")

ItemT = TypeVar("ItemT")
Handler = Callable[[ItemT], Awaitable[dict[str, Any]]]


def _describe(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump(exclude_none=True)
    return item


def validation_message(exc: ValidationError) -> str:
    """Flatten a pydantic error into ``field: problem; ...``."""
    parts = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ())) or "item"
        parts.append(f"{where}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or str(exc)


async def _settle(
    handler: Handler,
    item: Any,
    index: int,
    model: type[BaseModel] | None = None,
) -> dict[str, Any]:
    try:
        if model is not None and not isinstance(item, model):
            item = model.model_validate(item)
        outcome = await handler(item)
    except ValidationError as exc:
        logger.info("Batch item %d is invalid: %s", index, exc.error_count())
        return {"success": False, "error": validation_message(exc), "item": _describe(item)}
    except (TodoistError, ValueError) as exc:
        logger.info("Batch item %d failed: %s", index, exc)
        return {"success": False, "error": str(exc), "item": _describe(item)}
    except Exception as exc:  # broad: one item must not abort its siblings
        logger.error("Batch item %d raised unexpectedly: %s", index, exc, exc_info=True)
        return {
            "success": False,
            "error": f"Unexpected error: {type(exc).__name__}",
            "item": _describe(item),
        }
    return {"success": True, **outcome}


def summarize(results: Sequence[dict[str, Any]]) -> dict[str, Any]:
    total = len(results)
    succeeded = sum(1 for r in results if r.get("success"))
    return {
        "success": succeeded == total,
        "summary": {"total": total, "succeeded": succeeded, "failed": total - succeeded},
        "results": list(results),
    }


async def run_batch(
    items: Sequence[Any],
    handler: Handler,
    *,
    model: type[BaseModel] | None = None,
) -> dict[str, Any]:
    """Run *handler* over every item concurrently and build the batch envelope.

    Raw items are validated against *model* one by one, so a malformed item
    fails alone.  The envelope is ``{"success", "summary": {"total",
    "succeeded", "failed"}, "results"}`` with results in item order.  It is
    always well formed, even when every item failed.
    """
    results = await asyncio.gather(
        *(_settle(handler, item, i, model) for i, item in enumerate(items))
    )
    envelope = summarize(results)
    logger.debug("Batch finished summary=%s", envelope["summary"])
    return envelope
