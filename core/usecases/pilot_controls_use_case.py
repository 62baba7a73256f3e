import logging
from typing import Optional

from core.common.errors import InsufficientFundsError, InvalidPilotStateError, PilotNotFoundError
from core.common.utils import Clock
from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.withdrawal_entity import AvailableBalance, WithdrawalResult
from core.domain.enums.pilot_enums import PilotStatus
from core.services.event_bus import (
    EventBus,
    PartialWithdrawal,
    TradingPaused,
    TradingResumed,
    WatchModeEnabled,
    WithdrawalComplete,
)
from core.services.execution_scheduler import ExecutionScheduler
from core.services.global_stats_service import GlobalStatsTracker
from core.services.pilot_locks import PilotLocks
from core.services.position_book import open_positions

from ..repositories.pilot_repository import PilotRepository
from ..repositories.trade_repository import TradeRepository
from ..repositories.watch_stream_repository import WatchStreamRepository
from .initiate_exit_ramp_use_case import cancel_pending_trades

SLIPPAGE_RATE = 0.001
PLATFORM_FEE_RATE = 0.002
LIQUID_SHARE = 0.1


def withdrawal_fees(amount: float) -> float:
    return amount * SLIPPAGE_RATE + amount * PLATFORM_FEE_RATE


class PilotControlsUseCase:
    """
    User-driven state changes: pause/resume, watch mode, withdrawals.

    Withdrawals taken while the pilot is under water count as panic
    withdrawals, and manual pauses count as pauses; both feed risk discovery.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        trade_repo: TradeRepository,
        watch_repo: WatchStreamRepository,
        scheduler: ExecutionScheduler,
        locks: PilotLocks,
        event_bus: EventBus,
        stats: GlobalStatsTracker,
        clock: Clock,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._trade_repo = trade_repo
        self._watch_repo = watch_repo
        self._scheduler = scheduler
        self._locks = locks
        self._bus = event_bus
        self._stats = stats
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def _require(self, pilot_id: str) -> PilotEntity:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None:
            raise PilotNotFoundError(pilot_id)
        return pilot

    # ---------- trading ----------

    async def pause(self, pilot_id: str) -> PilotEntity:
        async with self._locks.for_pilot(pilot_id):
            pilot = await self._require(pilot_id)
            if pilot.status in (PilotStatus.CLOSED, PilotStatus.EXITING):
                raise InvalidPilotStateError(pilot_id, pilot.status, f"Cannot pause: pilot is {pilot.status}")

            now = self._clock.now()
            pilot.status = PilotStatus.PAUSED
            pilot.autopilot_enabled = False
            pilot.pause_count += 1
            pilot.last_activity = now
            await self._pilot_repo.save(pilot)
            await cancel_pending_trades(pilot_id, self._scheduler, self._watch_repo, now, "trading paused")

        self._logger.info("Trading paused for pilot %s (value $%.2f)", pilot_id, pilot.current_value)
        await self._bus.publish(TradingPaused(pilot_id=pilot_id, current_value=pilot.current_value))
        return pilot

    async def resume(self, pilot_id: str) -> PilotEntity:
        async with self._locks.for_pilot(pilot_id):
            pilot = await self._require(pilot_id)
            if pilot.status in (PilotStatus.CLOSED, PilotStatus.EXITING):
                raise InvalidPilotStateError(
                    pilot_id, pilot.status, "Cannot resume - account is closed or exiting"
                )
            pilot.status = PilotStatus.ACTIVE
            pilot.autopilot_enabled = True
            pilot.last_activity = self._clock.now()
            await self._pilot_repo.save(pilot)

        self._logger.info("Trading resumed for pilot %s", pilot_id)
        await self._bus.publish(TradingResumed(pilot_id=pilot_id))
        return pilot

    # ---------- watch mode ----------

    async def set_watch_mode(self, pilot_id: str, enabled: bool) -> bool:
        """Unknown pilots are a no-op (returns False)."""
        if await self._watch_repo.get_by_pilot(pilot_id) is None:
            return False
        async with self._locks.for_pilot(pilot_id):
            stream = await self._watch_repo.get_by_pilot(pilot_id)
            if stream is None:
                return False
            stream.enabled = enabled
            await self._watch_repo.save(stream)

        if enabled:
            await self._bus.publish(WatchModeEnabled(pilot_id=pilot_id))
        return True

    # ---------- funds ----------

    async def withdraw_all(self, pilot_id: str) -> WithdrawalResult:
        async with self._locks.for_pilot(pilot_id):
            pilot = await self._require(pilot_id)
            if pilot.status == PilotStatus.CLOSED:
                raise InvalidPilotStateError(pilot_id, pilot.status, "Pilot is already closed")

            requested_at = self._clock.now()
            await cancel_pending_trades(pilot_id, self._scheduler, self._watch_repo, requested_at, "full withdrawal")

            amount = pilot.current_value
            fees = withdrawal_fees(amount)
            net = amount - fees
            positions = open_positions(await self._trade_repo.list_for_pilot(pilot_id))

            if pilot.total_return < 0:
                pilot.panic_withdrawals += 1
            pilot.status = PilotStatus.CLOSED
            pilot.autopilot_enabled = False
            pilot.current_value = 0.0
            pilot.last_activity = self._clock.now()
            await self._pilot_repo.save(pilot)

            result = WithdrawalResult(
                success=True,
                pilot_id=pilot_id,
                requested_at=requested_at,
                completed_at=pilot.last_activity,
                amount_requested=amount,
                amount_withdrawn=amount,
                fees=fees,
                net_amount=net,
                positions_closed=positions,
                message=f"Withdrawal complete! ${net:.2f} is on its way to your account.",
            )

        self._stats.capital_withdrawn(amount)
        self._logger.info("Full withdrawal for pilot %s: $%.2f net", pilot_id, net)
        await self._bus.publish(WithdrawalComplete(pilot_id=pilot_id, result=result))
        return result

    async def withdraw_partial(self, pilot_id: str, amount: float) -> WithdrawalResult:
        if amount <= 0:
            raise ValueError("amount must be positive")

        async with self._locks.for_pilot(pilot_id):
            pilot = await self._require(pilot_id)
            if pilot.status in (PilotStatus.CLOSED, PilotStatus.EXITING):
                raise InvalidPilotStateError(pilot_id, pilot.status, f"Cannot withdraw: pilot is {pilot.status}")
            if amount > pilot.current_value:
                raise InsufficientFundsError(pilot_id, amount, pilot.current_value)

            now = self._clock.now()
            fees = withdrawal_fees(amount)
            net = amount - fees
            positions = 0
            if amount > pilot.current_value * 0.5:
                held = open_positions(await self._trade_repo.list_for_pilot(pilot_id))
                positions = max(1, round(held * amount / pilot.current_value)) if held else 0

            if pilot.total_return < 0:
                pilot.panic_withdrawals += 1
            # withdrawn capital leaves the deposit base too
            share = amount / pilot.current_value
            pilot.total_deposited = pilot.total_deposited * (1 - share)
            pilot.current_value = pilot.current_value - amount
            pilot.recompute_returns()
            pilot.last_activity = now
            await self._pilot_repo.save(pilot)

            result = WithdrawalResult(
                success=True,
                pilot_id=pilot_id,
                requested_at=now,
                completed_at=now,
                amount_requested=amount,
                amount_withdrawn=amount,
                fees=fees,
                net_amount=net,
                positions_closed=positions,
                message=(
                    f"Partial withdrawal complete! ${net:.2f} is on its way. "
                    f"Remaining: ${pilot.current_value:.2f}"
                ),
            )

        self._stats.capital_withdrawn(amount)
        self._logger.info(
            "Partial withdrawal for pilot %s: $%.2f net, $%.2f remaining", pilot_id, net, pilot.current_value
        )
        await self._bus.publish(PartialWithdrawal(pilot_id=pilot_id, result=result))
        return result

    async def available_balance(self, pilot_id: str) -> AvailableBalance:
        pilot = await self._require(pilot_id)
        return AvailableBalance(
            available=pilot.current_value * LIQUID_SHARE,
            invested=pilot.current_value * (1 - LIQUID_SHARE),
            total=pilot.current_value,
            can_withdraw=pilot.status not in (PilotStatus.EXITING, PilotStatus.CLOSED),
        )
