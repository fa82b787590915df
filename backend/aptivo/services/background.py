"""
Fire-and-Forget Background Tasks

Best-effort side effects (mistake logging, timezone sync, attempt
persistence from a practice session) run as asyncio tasks that the caller
does not await. Their failures never affect the caller's control flow
but are always funneled to the log.

Usage:
    from aptivo.services.background import fire_and_forget

    fire_and_forget(store.update_timezone(user_id, tz), "timezone sync")
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight.
_background_tasks: set[asyncio.Task] = set()


def fire_and_forget(
    coro: Coroutine[Any, Any, Any],
    description: str,
    on_error: Optional[Callable[[BaseException], None]] = None,
) -> asyncio.Task:
    """
    Schedule a coroutine without awaiting it.

    Args:
        coro: Coroutine to run in the background.
        description: Human-readable label used in log messages.
        on_error: Optional callback invoked with the exception after it is
            logged (e.g. to attach a notice to a practice session).

    Returns:
        The scheduled task. Callers normally ignore it.
    """
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)

    def _done(t: asyncio.Task) -> None:
        _background_tasks.discard(t)
        if t.cancelled():
            logger.debug(f"Background task cancelled: {description}")
            return
        exc = t.exception()
        if exc is None:
            return
        logger.error(f"Background task failed ({description}): {type(exc).__name__}: {exc}")
        if on_error is not None:
            try:
                on_error(exc)
            except Exception as callback_exc:
                logger.error(f"Error callback failed ({description}): {callback_exc}")

    task.add_done_callback(_done)
    return task


def pending_task_count() -> int:
    """Number of background tasks that have not finished yet."""
    return len(_background_tasks)


async def drain_background_tasks(timeout: Optional[float] = None) -> None:
    """
    Wait for outstanding background tasks.

    Used on application shutdown and in tests. Exceptions are already
    logged by the done-callback, so they are not re-raised here.
    """
    if not _background_tasks:
        return
    tasks = list(_background_tasks)
    done, pending = await asyncio.wait(tasks, timeout=timeout)
    if pending:
        logger.warning(f"{len(pending)} background task(s) still running after drain")
