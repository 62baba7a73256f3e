import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class AssetQuote(BaseModel):
    symbol: str
    name: str
    price: float

    model_config = ConfigDict(frozen=True)


class PriceOracle(ABC):
    """
    Source of tradable assets and their current prices.
    """

    @abstractmethod
    async def quote_for_asset_class(self, asset_class: str) -> Optional[AssetQuote]:
        """
        Pick one asset of the given class with a live price.
        Returns None when nothing can be quoted; the caller skips the trade.
        """
        raise NotImplementedError


# Stand-in prices; not a market data source.
STATIC_ASSETS: Dict[str, List[AssetQuote]] = {
    "stocks": [
        AssetQuote(symbol="AAPL", name="Apple Inc.", price=195),
        AssetQuote(symbol="MSFT", name="Microsoft Corp", price=378),
        AssetQuote(symbol="GOOGL", name="Alphabet Inc.", price=141),
        AssetQuote(symbol="AMZN", name="Amazon.com", price=178),
        AssetQuote(symbol="NVDA", name="NVIDIA Corp", price=495),
        AssetQuote(symbol="SPY", name="S&P 500 ETF", price=478),
        AssetQuote(symbol="QQQ", name="Nasdaq 100 ETF", price=405),
    ],
    "crypto": [
        AssetQuote(symbol="BTC", name="Bitcoin", price=42500),
        AssetQuote(symbol="ETH", name="Ethereum", price=2250),
        AssetQuote(symbol="SOL", name="Solana", price=98),
        AssetQuote(symbol="BNB", name="Binance Coin", price=315),
        AssetQuote(symbol="ADA", name="Cardano", price=0.58),
    ],
    "forex": [
        AssetQuote(symbol="EUR/USD", name="Euro/Dollar", price=1.0875),
        AssetQuote(symbol="GBP/USD", name="Pound/Dollar", price=1.2650),
        AssetQuote(symbol="USD/JPY", name="Dollar/Yen", price=148.50),
    ],
}


class StaticPriceOracle(PriceOracle):
    """
    Fixed lookup table, used when no PRICE_ORACLE_BASE_URL is configured.
    Unknown asset classes fall back to the stock pool.
    """

    def __init__(self, rng: Optional[random.Random] = None, assets: Optional[Dict[str, List[AssetQuote]]] = None):
        self._rng = rng or random.Random()
        self._assets = assets or STATIC_ASSETS

    async def quote_for_asset_class(self, asset_class: str) -> Optional[AssetQuote]:
        pool = self._assets.get(asset_class) or self._assets.get("stocks") or []
        if not pool:
            return None
        return self._rng.choice(pool)
