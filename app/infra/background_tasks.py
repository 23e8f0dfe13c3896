# app/infra/background_tasks.py
"""
Fire-and-forget task helper.

Tasks created here are detached from the caller (the HTTP response does not
wait for them) but their failures are still logged through a done-callback.
A strong reference is held until each task finishes so the event loop cannot
garbage-collect it mid-flight.
"""
from __future__ import annotations

import asyncio
from typing import Coroutine

from app.infra.logging_config import get_logger

logger = get_logger(__name__)

_running: set[asyncio.Task] = set()


def safe_create_task(coro: Coroutine, *, name: str | None = None) -> asyncio.Task:
    """Create a background task with exception logging to avoid 'Task exception was never retrieved'."""
    task = asyncio.create_task(coro, name=name)
    _running.add(task)
    task.add_done_callback(_running.discard)
    task.add_done_callback(_log_task_exception)
    return task


def _log_task_exception(task: asyncio.Task) -> None:
    """Callback: log unhandled exceptions from fire-and-forget tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"Background task {task.get_name()!r} failed: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )


def pending_tasks() -> set[asyncio.Task]:
    return set(_running)


async def drain(timeout: float = 10.0) -> None:
    """Wait for in-flight background tasks (used on shutdown)."""
    tasks = pending_tasks()
    if not tasks:
        return
    logger.info(f"Waiting for {len(tasks)} background task(s)")
    done, still_pending = await asyncio.wait(tasks, timeout=timeout)
    for task in still_pending:
        task.cancel()
    if still_pending:
        logger.warning(f"Cancelled {len(still_pending)} background task(s) after {timeout}s")
