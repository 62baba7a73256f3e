import logging
from typing import Optional

from core.common.utils import Clock
from core.domain.entities.pilot_entity import DayReturn, PilotEntity
from core.domain.enums.pilot_enums import PilotStatus
from core.services.global_stats_service import GlobalStatsTracker
from core.services.pilot_locks import PilotLocks
from core.services.risk_discovery_service import MIN_TRADES_FOR_DISCOVERY, RiskDiscoveryService
from core.services.signal_evaluator import ReturnSource
from core.services.snapshot_service import SnapshotService

from ..repositories.pilot_repository import PilotRepository
from ..repositories.risk_discovery_repository import RiskDiscoveryRepository
from ..repositories.snapshot_repository import SnapshotRepository
from ..repositories.trade_repository import TradeRepository


class RunLearningLoopUseCase:
    """
    One learning tick.

    Pilots with enough history get their day's performance applied and their
    risk DNA re-discovered from behavior. Every non-closed pilot gets a snapshot,
    and the engine-wide return stats are refreshed at the end.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        trade_repo: TradeRepository,
        discovery_repo: RiskDiscoveryRepository,
        snapshot_repo: SnapshotRepository,
        discovery: RiskDiscoveryService,
        snapshots: SnapshotService,
        return_source: ReturnSource,
        locks: PilotLocks,
        stats: GlobalStatsTracker,
        clock: Clock,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._trade_repo = trade_repo
        self._discovery_repo = discovery_repo
        self._snapshot_repo = snapshot_repo
        self._discovery = discovery
        self._snapshots = snapshots
        self._returns = return_source
        self._locks = locks
        self._stats = stats
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute_once(self) -> int:
        """Returns how many pilots had their performance updated."""
        updated = 0
        for pilot in await self._pilot_repo.list_all():
            if pilot.status == PilotStatus.CLOSED:
                continue
            try:
                if await self.update_pilot(pilot.id):
                    updated += 1
            except Exception as exc:
                self._logger.exception("Learning loop failed for pilot %s: %s", pilot.id, exc)

        self._stats.refresh_returns(await self._pilot_repo.list_all())
        self._logger.debug("Learning loop updated %d pilots", updated)
        return updated

    async def update_pilot(self, pilot_id: str) -> bool:
        async with self._locks.for_pilot(pilot_id):
            pilot = await self._pilot_repo.get_by_id(pilot_id)
            if pilot is None or pilot.status == PilotStatus.CLOSED:
                return False

            now = self._clock.now()
            trades = await self._trade_repo.list_for_pilot(pilot_id)
            day_return = 0.0
            updated = False

            if len(trades) >= MIN_TRADES_FOR_DISCOVERY:
                result = self._discovery.discover(pilot, trades, now)
                await self._discovery_repo.upsert(result)

                day_return = self._returns.day_return(pilot)
                self._apply_day(pilot, day_return, now)
                realized = [t for t in trades if t.profit_loss is not None]
                if realized:
                    pilot.win_rate = sum(1 for t in realized if t.profit_loss > 0) / len(realized)
                await self._pilot_repo.save(pilot)
                updated = True

            history = await self._snapshot_repo.list_for_pilot(pilot_id)
            snapshot = self._snapshots.build(pilot, now, history=history, day_return=day_return, trades=trades)
            await self._snapshot_repo.append(snapshot)
            return updated

    @staticmethod
    def _apply_day(pilot: PilotEntity, day_return: float, now) -> None:
        pilot.current_value = pilot.current_value * (1 + day_return)
        pilot.recompute_returns()
        if day_return > pilot.best_day.return_:
            pilot.best_day = DayReturn(date=now, return_=day_return)
        if day_return < pilot.worst_day.return_:
            pilot.worst_day = DayReturn(date=now, return_=day_return)
