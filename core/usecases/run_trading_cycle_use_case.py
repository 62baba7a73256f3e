import logging
from typing import List, Optional

from core.common.utils import Clock
from core.domain.entities.trade_entity import TradeEntity
from core.domain.enums.pilot_enums import CommentaryType
from core.services.allocation_selector import select_strategies_for_pilot
from core.services.execution_scheduler import ExecutionScheduler
from core.services.pilot_locks import PilotLocks
from core.services.signal_evaluator import SignalEvaluator
from core.services.strategy_catalog import StrategyCatalog
from core.services.trade_factory import TradeFactory

from ..repositories.pilot_repository import PilotRepository
from ..repositories.watch_stream_repository import WatchStreamRepository


class RunTradingCycleUseCase:
    """
    One trading tick.

    For every active pilot with autopilot on: rank the catalog, keep the top N,
    ask the signal evaluator for each, turn accepted ones into pending trades
    and hand them to the execution scheduler. A failure on one pilot is logged
    and does not stop the others.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        watch_repo: WatchStreamRepository,
        catalog: StrategyCatalog,
        signal_evaluator: SignalEvaluator,
        trade_factory: TradeFactory,
        scheduler: ExecutionScheduler,
        locks: PilotLocks,
        clock: Clock,
        top_n: int = 10,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._watch_repo = watch_repo
        self._catalog = catalog
        self._evaluator = signal_evaluator
        self._factory = trade_factory
        self._scheduler = scheduler
        self._locks = locks
        self._clock = clock
        self._top_n = top_n
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute_once(self) -> int:
        """Returns how many trades were scheduled this tick."""
        scheduled = 0
        for pilot in await self._pilot_repo.list_all():
            if not pilot.is_tradeable:
                continue
            try:
                scheduled += len(await self.run_for_pilot(pilot.id))
            except Exception as exc:
                self._logger.exception("Trading cycle failed for pilot %s: %s", pilot.id, exc)
        if scheduled:
            self._logger.info("Trading cycle scheduled %d trades", scheduled)
        return scheduled

    async def run_for_pilot(self, pilot_id: str) -> List[TradeEntity]:
        async with self._locks.for_pilot(pilot_id):
            candidates = await self._collect_candidates(pilot_id)

        # execution takes the pilot lock itself
        for trade in candidates:
            await self._scheduler.schedule(pilot_id, trade)
        return candidates

    async def _collect_candidates(self, pilot_id: str) -> List[TradeEntity]:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None or not pilot.is_tradeable:
            return []
        stream = await self._watch_repo.get_by_pilot(pilot_id)
        if stream is None:
            return []

        top = select_strategies_for_pilot(pilot, self._catalog.all())[: self._top_n]
        candidates: List[TradeEntity] = []
        skipped = 0

        for strategy in top:
            if not self._evaluator.should_trade(strategy, pilot):
                continue
            trade = await self._factory.generate(pilot, strategy)
            if trade is None:
                skipped += 1
                continue
            stream.pending_trades.append(trade)
            stream.add_commentary(
                self._clock.now(),
                f"Considering: {trade.side.upper()} {trade.asset} via {strategy.name}",
                CommentaryType.INFO,
            )
            candidates.append(trade)

        if candidates:
            await self._watch_repo.save(stream)
        if skipped:
            pilot.skipped_signals += skipped
            await self._pilot_repo.save(pilot)
            self._logger.debug("Pilot %s skipped %d signals", pilot_id, skipped)
        return candidates
