import itertools
import random
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Deque, Dict, List, Optional

from core.domain.entities.skim_entity import AutoSkimConfig, SkimOpportunity
from core.domain.enums.pilot_enums import TradeSide
from core.domain.enums.skim_enums import SkimMode
from core.services.price_oracle import AssetQuote

BPS = 10_000
HISTORY_LEN = 100
MIN_HISTORY = 5

# (symbol, name, base price, jitter range)
SKIMMABLE_ASSETS = [
    ("BTC", "Bitcoin", 42500, 500),
    ("ETH", "Ethereum", 2250, 50),
    ("SOL", "Solana", 98, 5),
    ("SPY", "S&P 500 ETF", 478, 2),
    ("QQQ", "Nasdaq 100 ETF", 405, 2),
    ("AAPL", "Apple", 195, 2),
    ("MSFT", "Microsoft", 378, 2),
    ("NVDA", "NVIDIA", 495, 5),
    ("EUR/USD", "Euro/Dollar", 1.0875, 0.001),
    ("GOLD", "Gold", 2050, 10),
]

SPREADS_BPS = {
    "BTC": 5, "ETH": 8, "SOL": 15, "SPY": 1, "QQQ": 1,
    "AAPL": 2, "MSFT": 2, "NVDA": 3, "EUR/USD": 1, "GOLD": 5,
}
DEFAULT_SPREAD_BPS = 10

OPTIONS_ASSETS = ["SPY", "QQQ", "AAPL", "MSFT", "NVDA"]
PERP_ASSETS = ["BTC", "ETH", "SOL", "BNB"]
CORRELATED_PAIRS = [
    ("BTC", "ETH", 0.85),
    ("SPY", "QQQ", 0.95),
    ("AAPL", "MSFT", 0.75),
    ("GOLD", "SILVER", 0.80),
]
AVG_VOL = 0.25

# scan order when mode is "all"
SCAN_ORDER = [m for m in SkimMode if m != SkimMode.ALL]


class SkimMarket:
    """
    Stand-in price tape for the skimmable assets.

    Each `tick()` jitters every price around its base and keeps the last
    HISTORY_LEN prints per symbol, which the mean-reversion scanners read.
    """

    def __init__(self, rng: random.Random):
        self._rng = rng
        self._history: Dict[str, Deque[float]] = {}

    def tick(self) -> List[AssetQuote]:
        quotes = []
        for symbol, name, base, jitter in SKIMMABLE_ASSETS:
            price = base + (self._rng.random() - 0.5) * jitter
            self._history.setdefault(symbol, deque(maxlen=HISTORY_LEN)).append(price)
            quotes.append(AssetQuote(symbol=symbol, name=name, price=price))
        return quotes

    def history(self, symbol: str) -> List[float]:
        return list(self._history.get(symbol, ()))

    def average(self, symbol: str, fallback: float) -> float:
        prices = self._history.get(symbol)
        if not prices:
            return fallback
        return sum(prices) / len(prices)


def skimmable(quotes: List[AssetQuote], config: AutoSkimConfig) -> List[AssetQuote]:
    if config.assets:
        quotes = [q for q in quotes if q.symbol in config.assets]
    if config.exclude_assets:
        quotes = [q for q in quotes if q.symbol not in config.exclude_assets]
    return quotes


def _towards(price: float, side: str, bps: float) -> float:
    """Price `bps` in the profitable direction for `side`."""
    sign = 1 if side == TradeSide.BUY.value else -1
    return price * (1 + sign * bps / BPS)


def _against(price: float, side: str, bps: float) -> float:
    return _towards(price, TradeSide.SELL.value if side == TradeSide.BUY.value else TradeSide.BUY.value, bps)


class SkimScanner:
    """
    Ten micro-profit scanners over the skim market.

    Each scanner returns at most one opportunity per tick; `scan()` runs the
    scanners selected by the mode and keeps the best by
    confidence x expected profit. Randomness comes from the injected rng.
    """

    def __init__(self, market: SkimMarket, rng: random.Random):
        self._market = market
        self._rng = rng
        self._ids = itertools.count(1)
        self._scanners: Dict[str, Callable[..., Optional[SkimOpportunity]]] = {
            SkimMode.MICRO_VACUUM.value: self._micro_vacuum,
            SkimMode.SPREAD_SKIM.value: self._spread_skim,
            SkimMode.THETA_SKIM.value: self._theta_skim,
            SkimMode.VWAP_BOUNCE.value: self._vwap_bounce,
            SkimMode.FUNDING_RATE.value: self._funding_rate,
            SkimMode.FLASH_ARB.value: self._flash_arb,
            SkimMode.CORRELATION_SKIM.value: self._correlation_skim,
            SkimMode.NEWS_VELOCITY.value: self._news_velocity,
            SkimMode.ORDERFLOW_SKIM.value: self._orderflow,
            SkimMode.VOL_REGIME.value: self._vol_regime,
        }

    def scan(self, config: AutoSkimConfig, quotes: List[AssetQuote], now: datetime) -> Optional[SkimOpportunity]:
        mode = getattr(config.mode, "value", config.mode)
        modes = [m.value for m in SCAN_ORDER] if mode == SkimMode.ALL.value else [mode]
        assets = skimmable(quotes, config)
        found = []
        for name in modes:
            opp = self._scanners[name](config, assets, now)
            if opp is not None:
                found.append(opp)
        if not found:
            return None
        return max(found, key=lambda o: o.score)

    def _opportunity(self, now: datetime, expires_in_sec: int, **fields) -> SkimOpportunity:
        return SkimOpportunity(
            id=f"skim_{next(self._ids):012d}",
            timestamp=now,
            expires_at=now + timedelta(seconds=expires_in_sec),
            **fields,
        )

    # ---------- scanners ----------

    def _micro_vacuum(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for asset in assets:
            history = self._market.history(asset.symbol)
            if len(history) < MIN_HISTORY:
                continue
            avg = sum(history) / len(history)
            deviation = (asset.price - avg) / avg * BPS
            if abs(deviation) < config.min_profit_bps * 2:
                continue
            side = TradeSide.SELL.value if deviation > 0 else TradeSide.BUY.value
            target = min(abs(deviation) * 0.5, config.max_profit_bps)
            return self._opportunity(
                now, 30,
                type=SkimMode.MICRO_VACUUM, asset=asset.symbol, asset_name=asset.name, side=side,
                entry_price=asset.price,
                target_exit=_towards(asset.price, side, target),
                stop_loss=_against(asset.price, side, config.min_profit_bps),
                expected_profit_bps=target,
                confidence=min(abs(deviation) * 2, 95),
                edge_source="Price micro-deviation from short-term average",
                expected_hold_seconds=config.hold_time_seconds,
                explanation=(
                    f"{asset.name} moved {'up' if deviation > 0 else 'down'} {abs(deviation):.1f} bps from average. "
                    f"Expecting reversion for {target:.1f} bps profit."
                ),
            )
        return None

    def _spread_skim(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for asset in assets:
            spread = SPREADS_BPS.get(asset.symbol, DEFAULT_SPREAD_BPS)
            if spread < config.min_profit_bps * 1.5:
                continue
            profit = spread * 0.4
            return self._opportunity(
                now, 10,
                type=SkimMode.SPREAD_SKIM, asset=asset.symbol, asset_name=asset.name,
                entry_price=asset.price * (1 - spread / (2 * BPS)),
                target_exit=asset.price * (1 + spread / (2 * BPS)),
                stop_loss=asset.price * (1 - spread / BPS),
                expected_profit_bps=profit,
                confidence=75,
                edge_source=f"Bid-ask spread of {spread:.1f} bps",
                expected_hold_seconds=10,
                explanation=(
                    f"Capturing {profit:.1f} bps from {asset.name}'s {spread:.1f} bps spread. Quick in-and-out!"
                ),
            )
        return None

    def _theta_skim(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for symbol in OPTIONS_ASSETS:
            iv = 0.20 + self._rng.random() * 0.30
            theta = iv * 0.01
            profit = theta * BPS * 0.3
            if profit < config.min_profit_bps:
                continue
            return self._opportunity(
                now, 3600,
                type=SkimMode.THETA_SKIM, asset=symbol, asset_name=symbol, side=TradeSide.SELL,
                entry_price=0.0, target_exit=0.0, stop_loss=0.0,
                expected_profit_bps=profit,
                confidence=72,
                edge_source=f"IV: {iv * 100:.1f}%, Daily Theta: {theta * 100:.2f}%",
                expected_hold_seconds=86400,
                explanation=(
                    f"Selling premium on {symbol} options with {iv * 100:.0f}% IV. "
                    f"Collect {profit:.1f} bps daily from time decay."
                ),
            )
        return None

    def _vwap_bounce(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for asset in assets:
            vwap = self._market.average(asset.symbol, asset.price)
            deviation = (asset.price - vwap) / vwap * BPS
            if abs(deviation) < config.min_profit_bps * 3:
                continue
            side = TradeSide.SELL.value if deviation > 0 else TradeSide.BUY.value
            target = min(abs(deviation) * 0.5, config.max_profit_bps)
            return self._opportunity(
                now, 60,
                type=SkimMode.VWAP_BOUNCE, asset=asset.symbol, asset_name=asset.name, side=side,
                entry_price=asset.price,
                target_exit=_towards(vwap, side, config.min_profit_bps),
                stop_loss=_against(asset.price, side, config.min_profit_bps * 2),
                expected_profit_bps=target,
                confidence=68,
                edge_source=f"{abs(deviation):.1f} bps from VWAP",
                expected_hold_seconds=config.hold_time_seconds * 2,
                explanation=(
                    f"{asset.name} is {'above' if deviation > 0 else 'below'} VWAP by {abs(deviation):.1f} bps. "
                    "Expecting bounce back to VWAP."
                ),
            )
        return None

    def _funding_rate(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for symbol in PERP_ASSETS:
            rate = (self._rng.random() - 0.5) * 0.002
            funding = abs(rate * BPS)
            if funding < config.min_profit_bps:
                continue
            side = TradeSide.SELL.value if rate > 0 else TradeSide.BUY.value
            return self._opportunity(
                now, 3600,
                type=SkimMode.FUNDING_RATE, asset=symbol, asset_name=symbol, side=side,
                entry_price=0.0, target_exit=0.0, stop_loss=0.0,
                expected_profit_bps=funding,
                confidence=85,
                edge_source=f"Funding rate: {rate * 100:.3f}%",
                expected_hold_seconds=28800,
                explanation=(
                    f"{symbol} perp funding is {'positive' if rate > 0 else 'negative'} at {rate * 100:.3f}%. "
                    f"{'Shorting' if side == TradeSide.SELL.value else 'Longing'} to collect "
                    f"{funding:.1f} bps funding payment."
                ),
            )
        return None

    def _flash_arb(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for asset in assets:
            other = asset.price * (1 + (self._rng.random() - 0.5) * 0.002)
            diff = abs((asset.price - other) / asset.price) * BPS
            if diff < config.min_profit_bps * 2:
                continue
            profit = diff * 0.4
            low, high = min(asset.price, other), max(asset.price, other)
            return self._opportunity(
                now, 5,
                type=SkimMode.FLASH_ARB, asset=asset.symbol, asset_name=asset.name,
                entry_price=low, target_exit=high, stop_loss=low * 0.999,
                expected_profit_bps=profit,
                confidence=90,
                edge_source=f"Cross-exchange price difference: {diff:.1f} bps",
                expected_hold_seconds=5,
                explanation=(
                    f"{asset.name} has {diff:.1f} bps price difference across exchanges. "
                    f"Buy low, sell high simultaneously for {profit:.1f} bps profit."
                ),
            )
        return None

    def _correlation_skim(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for a, b, corr in CORRELATED_PAIRS:
            z = (self._rng.random() - 0.5) * 4
            if abs(z) < 1.5:
                continue
            profit = abs(z) * 10
            return self._opportunity(
                now, 120,
                type=SkimMode.CORRELATION_SKIM, asset=f"{a}/{b}", asset_name=f"{a}-{b} Spread",
                entry_price=0.0, target_exit=0.0, stop_loss=0.0,
                expected_profit_bps=profit,
                confidence=70,
                edge_source=f"Z-score: {z:.2f} ({corr * 100:.0f}% correlated)",
                expected_hold_seconds=config.hold_time_seconds * 3,
                explanation=(
                    f"{a}/{b} spread is {abs(z):.1f} std devs from mean. "
                    f"These are {corr * 100:.0f}% correlated, expecting convergence."
                ),
            )
        return None

    def _news_velocity(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for asset in assets:
            velocity = (self._rng.random() - 0.5) * 2
            if abs(velocity) < 0.5:
                continue
            side = TradeSide.BUY.value if velocity > 0 else TradeSide.SELL.value
            profit = abs(velocity) * 20
            return self._opportunity(
                now, 30,
                type=SkimMode.NEWS_VELOCITY, asset=asset.symbol, asset_name=asset.name, side=side,
                entry_price=asset.price,
                target_exit=_towards(asset.price, side, profit),
                stop_loss=_against(asset.price, side, profit / 2),
                expected_profit_bps=profit,
                confidence=55,
                edge_source=f"Sentiment velocity: {velocity * 100:+.0f}%/min",
                expected_hold_seconds=60,
                explanation=(
                    f"{asset.name} news sentiment is rapidly {'improving' if velocity > 0 else 'declining'}. "
                    f"Riding the momentum for quick {profit:.1f} bps profit."
                ),
            )
        return None

    def _orderflow(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for asset in assets:
            size = self._rng.random()
            side = TradeSide.BUY.value if self._rng.random() > 0.5 else TradeSide.SELL.value
            if size < 0.8:
                continue
            profit = (size - 0.5) * 30
            return self._opportunity(
                now, 10,
                type=SkimMode.ORDERFLOW_SKIM, asset=asset.symbol, asset_name=asset.name, side=side,
                entry_price=asset.price,
                target_exit=_towards(asset.price, side, profit),
                stop_loss=_against(asset.price, side, config.min_profit_bps),
                expected_profit_bps=profit,
                confidence=65,
                edge_source=f"Large {side} order detected ({size * 100:.0f}% confidence)",
                expected_hold_seconds=15,
                explanation=(
                    f"Large {side} order detected for {asset.name}. "
                    f"Positioning ahead for expected {profit:.1f} bps price impact."
                ),
            )
        return None

    def _vol_regime(self, config: AutoSkimConfig, assets: List[AssetQuote], now: datetime):
        for asset in assets:
            vol = 0.10 + self._rng.random() * 0.40
            change = (vol - AVG_VOL) / AVG_VOL
            if abs(change) < 0.3:
                continue
            profit = abs(change) * 30
            side = TradeSide.SELL.value if change > 0 else TradeSide.BUY.value
            return self._opportunity(
                now, 60,
                type=SkimMode.VOL_REGIME, asset=asset.symbol, asset_name=asset.name, side=side,
                entry_price=asset.price,
                target_exit=_towards(asset.price, side, profit),
                stop_loss=_against(asset.price, side, profit / 2),
                expected_profit_bps=profit,
                confidence=60,
                edge_source=f"Vol regime shift: {vol * 100:.0f}% vs {AVG_VOL * 100:.0f}% avg",
                expected_hold_seconds=config.hold_time_seconds * 2,
                explanation=(
                    f"{asset.name} volatility is {'expanding' if change > 0 else 'contracting'} from average. "
                    "Positioning for vol regime mean reversion."
                ),
            )
        return None
