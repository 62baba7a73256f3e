from datetime import datetime, timedelta
from typing import List, Optional

from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.snapshot_entity import SnapshotEntity, SnapshotSummary
from core.domain.entities.trade_entity import TradeEntity
from core.domain.enums.pilot_enums import Sentiment
from core.services.position_book import holdings

CASH_SHARE = 0.1


def _value_at(history: List[SnapshotEntity], cutoff: datetime) -> Optional[float]:
    """Latest recorded value at or before `cutoff`, else the oldest one we have."""
    if not history:
        return None
    before = [s for s in history if s.timestamp <= cutoff]
    ref = before[-1] if before else history[0]
    return ref.total_value


def _sentiment(total_return_percent: float) -> Sentiment:
    if total_return_percent >= 10:
        return Sentiment.GREAT
    if total_return_percent >= 0:
        return Sentiment.GOOD
    if total_return_percent > -5:
        return Sentiment.OKAY
    if total_return_percent > -15:
        return Sentiment.CONCERNING
    return Sentiment.BAD


class SnapshotService:
    """Point-in-time portfolio view with a plain-English headline."""

    def build(
        self,
        pilot: PilotEntity,
        now: datetime,
        history: Optional[List[SnapshotEntity]] = None,
        day_return: float = 0.0,
        trades: Optional[List[TradeEntity]] = None,
    ) -> SnapshotEntity:
        history = history or []
        value = pilot.current_value

        week_ref = _value_at(history, now - timedelta(days=7))
        month_ref = _value_at(history, now - timedelta(days=30))
        sentiment = _sentiment(pilot.total_return_percent)

        if pilot.total_return >= 0:
            headline = "Your money is growing!"
        else:
            headline = "Hang in there!"
        action_needed = sentiment in (Sentiment.CONCERNING, Sentiment.BAD)

        return SnapshotEntity(
            pilot_id=pilot.id,
            timestamp=now,
            total_value=value,
            cash_balance=value * CASH_SHARE,
            invested_value=value * (1 - CASH_SHARE),
            day_return=value - value / (1 + day_return) if day_return > -1 else 0.0,
            day_return_percent=day_return * 100,
            week_return=value - week_ref if week_ref is not None else 0.0,
            month_return=value - month_ref if month_ref is not None else 0.0,
            total_return=pilot.total_return,
            total_return_percent=pilot.total_return_percent,
            holdings=holdings(trades or [], value),
            summary=SnapshotSummary(
                headline=headline,
                detail=f"Current value: ${value:.2f}",
                sentiment=sentiment,
                action_needed=action_needed,
                suggestion="Consider a safer risk profile." if action_needed else None,
            ),
        )
