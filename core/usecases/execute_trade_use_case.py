import logging
from typing import Optional

from core.common.utils import Clock
from core.domain.entities.trade_entity import TradeEntity
from core.domain.enums.pilot_enums import CommentaryType, TradeSide, TradeStatus
from core.services.event_bus import EventBus, TradeExecuted
from core.services.global_stats_service import GlobalStatsTracker
from core.services.pilot_locks import PilotLocks
from core.services.position_book import realized_pnl

from ..repositories.pilot_repository import PilotRepository
from ..repositories.trade_repository import TradeRepository
from ..repositories.watch_stream_repository import WatchStreamRepository


class ExecuteTradeUseCase:
    """
    Moves a pending trade to executed.

    Runs under the pilot lock and re-checks the pilot first: if it was paused,
    is exiting or closed by the time the delay elapsed, the trade is marked
    failed and dropped from the pending list instead. A trade id is never
    executed twice.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        trade_repo: TradeRepository,
        watch_repo: WatchStreamRepository,
        locks: PilotLocks,
        event_bus: EventBus,
        stats: GlobalStatsTracker,
        clock: Clock,
        recent_capacity: int = 20,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._trade_repo = trade_repo
        self._watch_repo = watch_repo
        self._locks = locks
        self._bus = event_bus
        self._stats = stats
        self._clock = clock
        self._recent_capacity = recent_capacity
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(self, pilot_id: str, trade: TradeEntity) -> Optional[TradeEntity]:
        async with self._locks.for_pilot(pilot_id):
            executed = await self._execute_locked(pilot_id, trade)

        if executed is not None:
            await self._bus.publish(TradeExecuted(pilot_id=pilot_id, trade=executed))
        return executed

    async def _execute_locked(self, pilot_id: str, trade: TradeEntity) -> Optional[TradeEntity]:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        stream = await self._watch_repo.get_by_pilot(pilot_id)
        if pilot is None or stream is None:
            self._logger.warning("Pilot %s vanished before trade %s executed", pilot_id, trade.id)
            return None

        now = self._clock.now()

        if not pilot.is_tradeable:
            stream.remove_pending(trade.id)
            stream.add_commentary(
                now,
                f"Cancelled {trade.side.upper()} {trade.asset}: trading is {pilot.status}",
                CommentaryType.ALERT,
            )
            await self._watch_repo.save(stream)
            self._logger.info(
                "Trade %s for pilot %s marked %s (status=%s)", trade.id, pilot_id, TradeStatus.FAILED.value, pilot.status
            )
            return None

        update = {"status": TradeStatus.EXECUTED.value}
        if trade.side == TradeSide.SELL.value:
            realized = realized_pnl(await self._trade_repo.list_for_pilot(pilot_id), trade)
            if realized is not None:
                pnl, pnl_pct = realized
                update.update(exit_price=trade.price, profit_loss=pnl, profit_loss_percent=pnl_pct)
        executed = trade.model_copy(update=update)
        if not await self._trade_repo.append(executed):
            stream.remove_pending(executed.id)
            await self._watch_repo.save(stream)
            self._logger.warning("Trade %s already in the trade log; ignoring", executed.id)
            return None

        stream.remove_pending(executed.id)
        stream.push_recent(executed, self._recent_capacity)
        stream.add_commentary(
            now,
            f"✅ EXECUTED: {executed.side.upper()} ${executed.value:.2f} of {executed.asset}",
            CommentaryType.TRADE,
        )
        if executed.educational_tip:
            stream.add_commentary(now, executed.educational_tip, CommentaryType.EDUCATION)
        await self._watch_repo.save(stream)

        pilot.last_activity = now
        await self._pilot_repo.save(pilot)

        self._stats.trade_executed()
        self._logger.info(
            "Executed %s %s %s $%.2f for pilot %s",
            executed.id, executed.side, executed.asset, executed.value, pilot_id,
        )
        return executed
