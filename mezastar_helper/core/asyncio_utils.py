"""Background task helper for effects posted from camera callbacks."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional

from .logging_utils import StructuredLogger, get_module_logger

_default_logger = get_module_logger("Tasks")


def create_logged_task(
    coro: Coroutine[Any, Any, Any],
    *,
    logger: Optional[StructuredLogger] = None,
    context: str = "background task",
    pending: Optional[set[asyncio.Task]] = None,
) -> asyncio.Task:
    """Schedule ``coro`` and log its failure instead of dropping it.

    When ``pending`` is given the task is kept there until it finishes, so
    the owner can await or cancel everything it started.
    """
    task_logger = logger or _default_logger
    task = asyncio.get_running_loop().create_task(coro, name=context)

    def _report(done: asyncio.Task) -> None:
        if pending is not None:
            pending.discard(done)
        if done.cancelled():
            return
        error = done.exception()
        if error is not None:
            task_logger.error("Unhandled exception in %s", context, exc_info=error)

    if pending is not None:
        pending.add(task)
    task.add_done_callback(_report)
    return task


__all__ = ["create_logged_task"]
