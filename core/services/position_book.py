from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from core.domain.entities.snapshot_entity import HoldingEntry
from core.domain.entities.trade_entity import TradeEntity
from core.domain.enums.pilot_enums import TradeSide


class AssetPosition(BaseModel):
    """Net position in one asset, with the cost basis of what is still held."""

    asset: str
    asset_name: str
    quantity: float = 0.0
    cost: float = 0.0
    last_price: float = 0.0

    @property
    def avg_cost(self) -> float:
        return self.cost / self.quantity if self.quantity > 0 else 0.0

    def apply(self, trade: TradeEntity) -> None:
        self.last_price = trade.price
        if trade.side == TradeSide.BUY.value:
            self.quantity += trade.quantity
            self.cost += trade.quantity * trade.price
            return
        held = max(self.quantity, 0.0)
        self.cost -= self.avg_cost * min(trade.quantity, held)
        self.quantity -= trade.quantity
        if self.quantity <= 0:
            self.cost = 0.0


def build_positions(trades: List[TradeEntity]) -> Dict[str, AssetPosition]:
    """Replays the trade log (oldest first) into one position per asset."""
    book: Dict[str, AssetPosition] = {}
    for t in trades:
        pos = book.get(t.asset)
        if pos is None:
            pos = book[t.asset] = AssetPosition(asset=t.asset, asset_name=t.asset_name)
        pos.apply(t)
    return book


def open_positions(trades: List[TradeEntity]) -> int:
    """Distinct assets with a positive net quantity in the trade log."""
    return sum(1 for p in build_positions(trades).values() if p.quantity > 0)


def realized_pnl(trades: List[TradeEntity], sell: TradeEntity) -> Optional[Tuple[float, float]]:
    """
    (profit_loss, profit_loss_percent) of a sell against the average cost of
    the position it closes, net of the sell's fees. None when nothing is held.
    """
    pos = build_positions(trades).get(sell.asset)
    if pos is None or pos.quantity <= 0:
        return None
    matched = min(sell.quantity, pos.quantity)
    avg_cost = pos.avg_cost
    pnl = (sell.price - avg_cost) * matched - sell.fees
    pct = (sell.price / avg_cost - 1) * 100 if avg_cost > 0 else 0.0
    return pnl, pct


def holdings(trades: List[TradeEntity], portfolio_value: float) -> List[HoldingEntry]:
    """Open positions marked at the last traded price, largest first."""
    entries = []
    for pos in build_positions(trades).values():
        if pos.quantity <= 0:
            continue
        value = pos.quantity * pos.last_price
        pnl = value - pos.cost
        pnl_pct = pnl / pos.cost * 100 if pos.cost > 0 else 0.0
        direction = "up" if pnl >= 0 else "down"
        entries.append(
            HoldingEntry(
                asset=pos.asset,
                asset_name=pos.asset_name,
                quantity=pos.quantity,
                avg_cost=pos.avg_cost,
                current_price=pos.last_price,
                value=value,
                profit_loss=pnl,
                profit_loss_percent=pnl_pct,
                allocation=value / portfolio_value * 100 if portfolio_value > 0 else 0.0,
                plain_english=(
                    f"You own {pos.quantity:.4f} {pos.asset_name} worth ${value:.2f} "
                    f"({direction} {abs(pnl_pct):.1f}%)"
                ),
            )
        )
    entries.sort(key=lambda h: h.value, reverse=True)
    return entries
