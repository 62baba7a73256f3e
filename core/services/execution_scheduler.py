import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from core.domain.entities.trade_entity import TradeEntity

ExecuteFn = Callable[[str, TradeEntity], Awaitable[Optional[TradeEntity]]]


class ExecutionScheduler:
    """
    Runs a pending trade's execution after a fixed delay (order latency /
    watch-mode pacing).

    Scheduled executions are tracked per pilot so they can be cancelled when
    the pilot pauses or exits. With delay <= 0 execution happens inline,
    which keeps tests free of wall-clock waits.
    """

    def __init__(
        self,
        execute: ExecuteFn,
        delay_sec: float,
        logger: Optional[logging.Logger] = None,
    ):
        self._execute = execute
        self._delay = float(delay_sec)
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._tasks: Dict[str, Set[asyncio.Task]] = {}

    async def schedule(self, pilot_id: str, trade: TradeEntity) -> None:
        if self._delay <= 0:
            await self._execute(pilot_id, trade)
            return

        task = asyncio.create_task(self._run_later(pilot_id, trade), name=f"exec:{trade.id}")
        self._tasks.setdefault(pilot_id, set()).add(task)
        task.add_done_callback(lambda t, pid=pilot_id: self._forget(pid, t))

    async def _run_later(self, pilot_id: str, trade: TradeEntity) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self._execute(pilot_id, trade)
        except Exception as exc:
            self._logger.exception("Delayed execution of %s failed: %s", trade.id, exc)

    def _forget(self, pilot_id: str, task: asyncio.Task) -> None:
        tasks = self._tasks.get(pilot_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            self._tasks.pop(pilot_id, None)

    def cancel_pilot(self, pilot_id: str) -> int:
        """Cancel every scheduled execution of a pilot. Returns how many were cancelled."""
        tasks = list(self._tasks.get(pilot_id, ()))
        for task in tasks:
            task.cancel()
        if tasks:
            self._logger.info("Cancelled %d pending executions for pilot %s", len(tasks), pilot_id)
        return len(tasks)

    async def drain(self) -> None:
        """Wait until every scheduled execution has finished (or was cancelled)."""
        while self._tasks:
            tasks: List[asyncio.Task] = [t for ts in self._tasks.values() for t in ts]
            if not tasks:
                break
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(*tasks, return_exceptions=True)

    async def cancel_all(self) -> None:
        for pilot_id in list(self._tasks):
            self.cancel_pilot(pilot_id)
        await self.drain()
