import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional


class PeriodicTask:
    """
    Runs an async callable every `interval_sec` in a background task.

    Each tick is best-effort: exceptions are logged and the loop carries on
    at the next tick. `run_once()` drives a single tick without the timer,
    which is how tests advance the loops deterministically.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[object]],
        interval_sec: float,
        run_immediately: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.name = name
        self._func = func
        self._interval = float(interval_sec)
        self._run_immediately = run_immediately
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        try:
            await self._func()
        except Exception as exc:
            self._logger.exception("%s tick error: %s", self.name, exc)
        finally:
            self.ticks += 1

    async def _loop(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self._interval)
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)
        self._logger.info("%s started (every %.1fs)", self.name, self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._logger.info("%s stopped", self.name)
