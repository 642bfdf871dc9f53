"""Background task helpers for the application lifespan."""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from kyartu.core.logging import get_logger

logger = get_logger(__name__)


def create_background_task(
    coro: Coroutine[Any, Any, Any], *, name: str = ""
) -> asyncio.Task[Any]:
    """Create an asyncio task that logs its failure instead of losing it."""
    task: asyncio.Task[Any] = asyncio.create_task(coro, name=name or None)

    def _done(t: asyncio.Task[Any]) -> None:
        if t.cancelled():
            return
        if exc := t.exception():
            logger.error("Background task failed", task_name=name, error=str(exc))

    task.add_done_callback(_done)
    return task


async def run_periodically(
    interval: float,
    job: Callable[[], Awaitable[Any]],
    *,
    name: str = "",
) -> None:
    """Await ``job`` every ``interval`` seconds until cancelled.

    A failing run is logged and the loop continues.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await job()
        except Exception as e:  # noqa: BLE001
            logger.warning("Periodic job failed", task_name=name, error=str(e))
