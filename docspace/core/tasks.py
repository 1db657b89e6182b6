"""
In-process background work for side effects that must not hold up a response.

Webhook fan-out and activity log writes are spawned here. Each task runs
inside an error boundary: a failure is logged and counted, and never reaches
the request that spawned it.
"""
import asyncio
from typing import Any, Awaitable, Callable, Set

from fastapi import Request

from docspace.core.logger import get_logger
from docspace.core.metrics import background_tasks_active, record_background_failure

logger = get_logger(__name__)


class BackgroundTaskDispatcher:
    """
    Spawns fire-and-forget coroutines and keeps references until they finish.

    One dispatcher is created per application and stored on ``app.state``.
    ``drain()`` waits for everything outstanding, which shutdown and tests use.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        name: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> asyncio.Task:
        """
        Schedule ``func(*args, **kwargs)`` on the running loop.

        Args:
            name: Label used in logs and the failure metric
            func: Coroutine function to run

        Returns:
            The scheduled task
        """
        task = asyncio.create_task(self._run(name, func, *args, **kwargs), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        background_tasks_active.inc()
        try:
            return await func(*args, **kwargs)
        except asyncio.CancelledError:
            logger.warning("Background task cancelled", task=name)
            raise
        except Exception as e:
            record_background_failure(name)
            logger.exception("Background task failed", task=name, error=str(e))
            return None
        finally:
            background_tasks_active.dec()

    async def drain(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Give outstanding work ``timeout`` seconds, then cancel the rest."""
        if not self._tasks:
            return
        logger.info("Waiting for background tasks", pending=len(self._tasks))
        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            logger.warning("Cancelled background tasks at shutdown")


def get_task_dispatcher(request: Request) -> BackgroundTaskDispatcher:
    """Dependency returning the application's dispatcher."""
    return request.app.state.task_dispatcher
