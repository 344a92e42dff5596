"""Fire-and-forget work that runs after the response is sent."""

from collections.abc import Awaitable, Callable
from typing import Any

from starlette.background import BackgroundTasks

from search_proxy.shared.logging import get_logger

logger = get_logger(__name__)


class BackgroundJobs:
    """
    Collects jobs for Starlette to run once the response has been delivered.

    Exceptions raised by a job are logged and never reach the caller.
    """

    def __init__(self) -> None:
        self._tasks = BackgroundTasks()
        self._count = 0

    def add(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> None:
        self._tasks.add_task(self._guarded, func, *args, **kwargs)
        self._count += 1

    @staticmethod
    async def _guarded(func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> None:
        try:
            await func(*args, **kwargs)
        except Exception:
            logger.exception(f"Background job {getattr(func, '__name__', func)!r} failed")

    @property
    def tasks(self) -> BackgroundTasks:
        return self._tasks

    def __len__(self) -> int:
        return self._count
