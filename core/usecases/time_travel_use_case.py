import logging
import random
from datetime import datetime
from typing import List, Optional

from core.common.errors import PilotNotFoundError
from core.common.utils import Clock, ensure_utc, shift_months
from core.domain.entities.time_travel_entity import TimeTravelResult
from core.domain.entities.trade_entity import TradeEntity
from core.domain.enums.pilot_enums import RiskDNA, TimeTravelScenario

from ..repositories.pilot_repository import PilotRepository
from ..repositories.trade_repository import TradeRepository

BASE_ANNUAL_RETURNS = {
    RiskDNA.ULTRA_SAFE.value: 0.03,
    RiskDNA.CAREFUL.value: 0.08,
    RiskDNA.BALANCED.value: 0.15,
    RiskDNA.GROWTH.value: 0.25,
    RiskDNA.AGGRESSIVE.value: 0.40,
    RiskDNA.YOLO.value: 0.60,
}

SCENARIO_MONTHS = {
    TimeTravelScenario.LAST_MONTH.value: 1,
    TimeTravelScenario.LAST_QUARTER.value: 3,
    TimeTravelScenario.LAST_YEAR.value: 12,
    TimeTravelScenario.CUSTOM.value: 1,
}

JITTER_LOW = 0.8
JITTER_HIGH = 1.2


def _trade_pnl(trade: TradeEntity) -> float:
    return trade.profit_loss if trade.profit_loss is not None else trade.value


class TimeTravelUseCase:
    """
    "What if I had started earlier?" projection for a pilot.

    The hypothetical return is the pilot's risk-tier base annual return scaled
    by elapsed time, with a +/-20% jitter from the injected rng.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        trade_repo: TradeRepository,
        clock: Clock,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._trade_repo = trade_repo
        self._clock = clock
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def _start_date(self, scenario: str, now: datetime, custom_start_date: Optional[datetime]) -> datetime:
        if scenario == TimeTravelScenario.CUSTOM.value and custom_start_date is not None:
            return ensure_utc(custom_start_date)
        if scenario not in SCENARIO_MONTHS:
            raise ValueError(f"Unknown time travel scenario: {scenario}")
        return shift_months(now, -SCENARIO_MONTHS[scenario])

    async def execute(
        self,
        pilot_id: str,
        scenario: TimeTravelScenario | str,
        custom_start_date: Optional[datetime] = None,
    ) -> TimeTravelResult:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None:
            raise PilotNotFoundError(pilot_id)

        scenario = getattr(scenario, "value", scenario)
        now = self._clock.now()
        start = self._start_date(scenario, now, custom_start_date)

        elapsed_days = max((now - start).total_seconds() / 86400.0, 0.0)
        base = BASE_ANNUAL_RETURNS.get(pilot.risk_dna, BASE_ANNUAL_RETURNS[RiskDNA.BALANCED.value])
        jitter = self._rng.uniform(JITTER_LOW, JITTER_HIGH)
        rate = base * (elapsed_days / 30) / 12 * jitter

        deposit = pilot.total_deposited
        value = deposit * (1 + rate)
        gain = value - deposit

        trades: List[TradeEntity] = await self._trade_repo.list_for_pilot(pilot_id)
        best = max(trades, key=_trade_pnl) if trades else None
        worst = min(trades, key=_trade_pnl) if trades else None

        self._logger.debug("Time travel %s for %s: %.4f over %.1f days", scenario, pilot_id, rate, elapsed_days)
        label = f"From {start.date().isoformat()}" if scenario == TimeTravelScenario.CUSTOM.value else scenario
        verb = "earned" if rate > 0 else "lost"
        return TimeTravelResult(
            pilot_id=pilot_id,
            scenario=label,
            start_date=start,
            end_date=now,
            hypothetical_deposit=deposit,
            hypothetical_value=value,
            hypothetical_return=gain,
            hypothetical_return_percent=rate * 100,
            best_trade=best,
            worst_trade=worst,
            biggest_miss=self._biggest_miss(best),
            summary=(
                f"If you had started with ${deposit:g} {scenario.replace('_', ' ')}, "
                f"you would have {verb} ${abs(gain):.2f} ({rate * 100:.1f}%)"
            ),
        )

    @staticmethod
    def _biggest_miss(best: Optional[TradeEntity]) -> str:
        if best is None:
            return "No trades yet to compare against."
        return f"Would have caught the {best.asset_name} move earlier."
