"""Background task helpers: failures get logged instead of vanishing."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional

from .logging_utils import LoggerLike, ensure_structured_logger


def add_task_exception_logger(
    task: asyncio.Task[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> asyncio.Task[Any]:
    """Log ``task``'s exception, if any, as soon as it finishes."""
    task_logger = ensure_structured_logger(logger, fallback_name="asyncio")
    label = context or task.get_name()

    def _report(done: asyncio.Task[Any]) -> None:
        if not done.cancelled() and done.exception() is not None:
            task_logger.error("Unhandled exception in %s", label, exc_info=done.exception())

    task.add_done_callback(_report)
    return task


def create_logged_task(
    coro: Coroutine[Any, Any, Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
    pending: Optional[set[asyncio.Task[Any]]] = None,
) -> asyncio.Task[Any]:
    """Start ``coro`` as a named task whose failure is logged.

    When ``pending`` is given the task is kept in it until it finishes, so
    the owner can cancel whatever is still running on shutdown.
    """
    task = asyncio.create_task(coro, name=context)
    add_task_exception_logger(task, logger=logger, context=context)
    if pending is not None:
        pending.add(task)
        task.add_done_callback(pending.discard)
    return task


async def cancel_tasks(tasks: set[asyncio.Task[Any]]) -> None:
    snapshot = list(tasks)
    tasks.clear()
    for task in snapshot:
        task.cancel()
    # results (including errors) were already reported by the task loggers
    await asyncio.gather(*snapshot, return_exceptions=True)


__all__ = ["add_task_exception_logger", "cancel_tasks", "create_logged_task"]
