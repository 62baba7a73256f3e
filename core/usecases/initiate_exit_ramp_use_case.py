import logging
from datetime import datetime, timedelta
from typing import Optional

from core.common.errors import InvalidPilotStateError, PilotNotFoundError
from core.common.utils import Clock
from core.domain.entities.exit_ramp_entity import ExitRampEntity
from core.domain.enums.pilot_enums import CommentaryType, ExitStrategy, PilotStatus
from core.services.event_bus import EventBus, ExitRampInitiated
from core.services.execution_scheduler import ExecutionScheduler
from core.services.pilot_locks import PilotLocks
from core.services.position_book import open_positions

from ..repositories.exit_ramp_repository import ExitRampRepository
from ..repositories.pilot_repository import PilotRepository
from ..repositories.trade_repository import TradeRepository
from ..repositories.watch_stream_repository import WatchStreamRepository

EXIT_OFFSETS_DAYS = {
    ExitStrategy.IMMEDIATE.value: 0,
    ExitStrategy.GRADUAL_1WEEK.value: 7,
    ExitStrategy.GRADUAL_1MONTH.value: 30,
    ExitStrategy.OPTIMAL.value: 14,
}

TAX_SAVINGS_RATE = 0.02
EXIT_COST_FACTOR = 0.995


def target_exit_date(strategy: str, now: datetime) -> datetime:
    return now + timedelta(days=EXIT_OFFSETS_DAYS[strategy])


async def cancel_pending_trades(
    pilot_id: str,
    scheduler: ExecutionScheduler,
    watch_repo: WatchStreamRepository,
    now: datetime,
    reason: str,
) -> int:
    """Cancel scheduled executions and clear the pilot's pending list. Caller holds the pilot lock."""
    scheduler.cancel_pilot(pilot_id)
    stream = await watch_repo.get_by_pilot(pilot_id)
    if stream is None or not stream.pending_trades:
        return 0
    dropped = len(stream.pending_trades)
    stream.pending_trades = []
    stream.add_commentary(now, f"Cancelled {dropped} pending trade(s): {reason}", CommentaryType.ALERT)
    await watch_repo.save(stream)
    return dropped


class InitiateExitRampUseCase:
    """
    Starts the graceful wind-down of a pilot.

    Under the pilot lock: status -> exiting, autopilot off, pending executions
    cancelled, ramp stored. The ramp itself never moves the pilot to closed;
    only a full withdrawal does.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        trade_repo: TradeRepository,
        watch_repo: WatchStreamRepository,
        exit_repo: ExitRampRepository,
        scheduler: ExecutionScheduler,
        locks: PilotLocks,
        event_bus: EventBus,
        clock: Clock,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._trade_repo = trade_repo
        self._watch_repo = watch_repo
        self._exit_repo = exit_repo
        self._scheduler = scheduler
        self._locks = locks
        self._bus = event_bus
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(self, pilot_id: str, strategy: ExitStrategy | str) -> ExitRampEntity:
        strategy = getattr(strategy, "value", strategy)
        if strategy not in EXIT_OFFSETS_DAYS:
            raise ValueError(f"Unknown exit strategy: {strategy}")

        async with self._locks.for_pilot(pilot_id):
            pilot = await self._pilot_repo.get_by_id(pilot_id)
            if pilot is None:
                raise PilotNotFoundError(pilot_id)
            if pilot.status in (PilotStatus.CLOSED, PilotStatus.EXITING):
                raise InvalidPilotStateError(
                    pilot_id, pilot.status, f"Cannot start an exit ramp: pilot is {pilot.status}"
                )

            now = self._clock.now()
            pilot.status = PilotStatus.EXITING
            pilot.autopilot_enabled = False
            pilot.last_activity = now
            await self._pilot_repo.save(pilot)

            await cancel_pending_trades(pilot_id, self._scheduler, self._watch_repo, now, "exit ramp started")

            target = target_exit_date(strategy, now)
            tax_optimized = strategy != ExitStrategy.IMMEDIATE.value
            trades = await self._trade_repo.list_for_pilot(pilot_id)

            ramp = ExitRampEntity(
                pilot_id=pilot_id,
                requested_at=now,
                target_exit_date=target,
                exit_strategy=strategy,
                positions_closed=0,
                positions_remaining=open_positions(trades),
                cash_extracted=0.0,
                remaining_value=pilot.current_value,
                tax_optimized=tax_optimized,
                estimated_tax_savings=pilot.current_value * TAX_SAVINGS_RATE if tax_optimized else 0.0,
                status=f"Exit ramp initiated. Strategy: {strategy}",
                estimated_completion=target,
                projected_final_value=pilot.current_value * EXIT_COST_FACTOR,
            )
            await self._exit_repo.create(ramp)

        self._logger.info("Exit ramp initiated for pilot %s: %s (target %s)", pilot_id, strategy, target.isoformat())
        await self._bus.publish(ExitRampInitiated(pilot_id=pilot_id, exit_ramp=ramp))
        return ramp
