from typing import List

from core.domain.entities.global_stats_entity import GlobalStats, PilotReturnRef
from core.domain.entities.pilot_entity import PilotEntity
from core.domain.enums.pilot_enums import PilotStatus


class GlobalStatsTracker:
    """Engine-wide counters. Single event loop, so plain increments are safe."""

    def __init__(self):
        self._stats = GlobalStats()

    def pilot_created(self, deposit: float) -> None:
        self._stats.total_pilots += 1
        self._stats.total_capital += deposit

    def capital_withdrawn(self, amount: float) -> None:
        self._stats.total_capital = max(0.0, self._stats.total_capital - amount)

    def trade_executed(self) -> None:
        self._stats.total_trades += 1

    def refresh_returns(self, pilots: List[PilotEntity]) -> None:
        live = [p for p in pilots if p.status != PilotStatus.CLOSED]
        if not live:
            return
        self._stats.avg_return = sum(p.total_return_percent for p in live) / len(live)
        best = max(live, key=lambda p: p.total_return_percent)
        worst = min(live, key=lambda p: p.total_return_percent)
        self._stats.best_pilot = PilotReturnRef(id=best.id, return_=best.total_return_percent)
        self._stats.worst_pilot = PilotReturnRef(id=worst.id, return_=worst.total_return_percent)

    def snapshot(self) -> GlobalStats:
        return self._stats.model_copy(deep=True)
