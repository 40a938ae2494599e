"""Detached background tasks whose failures are logged, never propagated."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger

# Strong references: the event loop only keeps weak ones to running tasks
_background_tasks: set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.debug(f"[BG] {task.get_name()} cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).warning(f"[BG] {task.get_name()} failed: {exc}")


def spawn_detached(coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
    """Schedule ``coro`` without awaiting it.

    The returned task may be ignored. Its exception, if any, is consumed
    by the done-callback so it is never re-raised into a caller.
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


def pending_tasks() -> int:
    return len(_background_tasks)


async def drain(timeout: float = 5.0) -> None:
    """Wait briefly for outstanding background work (shutdown path)."""
    if not _background_tasks:
        return
    _, pending = await asyncio.wait(list(_background_tasks), timeout=timeout)
    for task in pending:
        task.cancel()
