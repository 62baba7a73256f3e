from collections import defaultdict
from datetime import datetime
from typing import List

from core.domain.entities.skim_entity import AutoSkimStats, SkimResult, SkimTypeStats

EMPTY_SUMMARY = "Scanning for micro-profit opportunities..."


def _day_start(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def _win_rate(results: List[SkimResult]) -> float:
    return sum(1 for r in results if r.successful) / len(results) * 100 if results else 0.0


class SkimStatsService:
    """
    Rebuilds a pilot's skim stats after each settled skim.

    `today_*` counters cover the calendar day (UTC) of the latest result and
    restart when a result lands on a new day. Streaks count consecutive
    successful skims.
    """

    def record(self, stats: AutoSkimStats, results: List[SkimResult], result: SkimResult) -> AutoSkimStats:
        """`results` already includes `result`."""
        day = _day_start(result.timestamp)
        today = [r for r in results if r.timestamp >= day]

        stats.day = day
        stats.today_skims = len(today)
        stats.today_profit = sum(r.net_profit for r in today)
        stats.today_profit_bps = sum(r.profit_bps for r in today)
        stats.today_win_rate = _win_rate(today)

        stats.total_skims += 1
        stats.total_profit += result.net_profit
        stats.total_profit_bps += result.profit_bps
        stats.overall_win_rate = _win_rate(results)
        stats.avg_profit_per_skim = stats.total_profit / stats.total_skims
        stats.avg_hold_time_ms = sum(r.hold_time_ms for r in results) / len(results)

        of_type = [r for r in results if r.skim_type == result.skim_type]
        stats.by_type[result.skim_type] = SkimTypeStats(
            count=len(of_type),
            profit=sum(r.net_profit for r in of_type),
            win_rate=_win_rate(of_type),
            avg_profit_bps=sum(r.profit_bps for r in of_type) / len(of_type),
        )
        played = {k: v for k, v in stats.by_type.items() if v.count}
        stats.best_skim_type = max(played, key=lambda k: played[k].profit)

        by_asset = defaultdict(float)
        for r in results:
            by_asset[r.asset] += r.net_profit
        stats.best_asset = max(by_asset, key=by_asset.get)

        if result.successful:
            stats.current_win_streak += 1
            stats.best_win_streak = max(stats.best_win_streak, stats.current_win_streak)
        else:
            stats.current_win_streak = 0

        if stats.biggest_skim is None or result.net_profit > stats.biggest_skim.net_profit:
            stats.biggest_skim = result

        stats.summary = self.summary(stats)
        return stats

    @staticmethod
    def summary(stats: AutoSkimStats) -> str:
        if stats.total_skims == 0:
            return EMPTY_SUMMARY
        return (
            f"Today: {stats.today_skims} skims, {stats.today_profit_bps:+.1f} bps (${stats.today_profit:.2f}). "
            f"Win rate: {stats.today_win_rate:.0f}%. Streak: {stats.current_win_streak} wins. "
            f"Total: ${stats.total_profit:.2f} from {stats.total_skims} skims."
        )
