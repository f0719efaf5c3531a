"""Async utilities for safe task management.

Provides safe wrappers for asyncio.create_task with error handling.
Session lifecycles run as background tasks, so nothing awaits them; an
exception escaping one would otherwise only surface as "Task exception was
never retrieved" at garbage collection time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Strong references to running background tasks (the event loop keeps only weak ones)
_background_tasks: set[asyncio.Task] = set()


def create_safe_task(
    coro: Coroutine[Any, Any, T],
    *,
    name: str | None = None,
    on_error: Callable[[Exception], None] | None = None,
    suppress_cancelled: bool = True,
) -> asyncio.Task[T]:
    """Create an asyncio task with proper error handling.

    Args:
        coro: The coroutine to run as a task
        name: Optional name for the task (for logging)
        on_error: Optional callback for exception handling
        suppress_cancelled: If True, don't log CancelledError

    Returns:
        The created task
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)

    def handle_exception(t: asyncio.Task) -> None:
        _background_tasks.discard(t)

        if t.cancelled():
            if not suppress_cancelled:
                logger.debug(f"Task {name or 'unnamed'} was cancelled")
            return

        exc = t.exception()
        if exc is None:
            return

        logger.error(
            f"Task {name or 'unnamed'} failed with {type(exc).__name__}: {exc}",
            exc_info=exc,
        )

        if on_error:
            try:
                on_error(exc)
            except Exception as handler_exc:
                logger.error(f"Error handler for task {name} also failed: {handler_exc}")

    task.add_done_callback(handle_exception)
    return task


def get_background_tasks() -> set[asyncio.Task]:
    """Snapshot of tasks created by create_safe_task that are still running."""
    return set(_background_tasks)


async def cancel_task_safe(task: asyncio.Task | None, timeout: float = 5.0) -> bool:
    """Safely cancel a task with timeout.

    Args:
        task: The task to cancel
        timeout: Maximum time to wait for cancellation

    Returns:
        True if task was cancelled successfully, False otherwise
    """
    if task is None:
        return True

    if task.done():
        return True

    task.cancel()

    try:
        await asyncio.wait_for(
            asyncio.shield(task),
            timeout=timeout,
        )
    except asyncio.CancelledError:
        return True
    except asyncio.TimeoutError:
        logger.warning(f"Task cancellation timed out after {timeout}s")
        return False
    except Exception as e:
        logger.debug(f"Task raised exception during cancellation: {e}")
        return True

    return task.done()
