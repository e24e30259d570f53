"""
Fire-and-forget tasks.

The event loop only keeps weak references to tasks, so an unreferenced task
can be garbage collected before it finishes. ``spawn`` keeps a strong
reference until completion and logs failures instead of letting them vanish.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)

_background_tasks: set[asyncio.Task] = set()


def spawn(coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task:
    """Schedule ``coro`` without awaiting it. Errors are logged, never raised."""
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)

    def _on_done(done_task: asyncio.Task) -> None:
        _background_tasks.discard(done_task)
        if done_task.cancelled():
            logger.debug("Background task cancelled: %s", description)
            return
        exc = done_task.exception()
        if exc is not None:
            logger.warning("Background task failed (%s): %s", description, exc)

    task.add_done_callback(_on_done)
    return task


def pending_tasks() -> int:
    return len(_background_tasks)


async def drain(timeout: float = 5.0) -> None:
    """Wait for outstanding background tasks, used at shutdown."""
    if not _background_tasks:
        return
    done, pending = await asyncio.wait(set(_background_tasks), timeout=timeout)
    for task in pending:
        task.cancel()
    if pending:
        logger.warning("Cancelled %d background task(s) still running at shutdown", len(pending))
