import logging
from typing import Any, Dict, Iterable, List, Optional

from core.domain.entities.strategy_entity import StrategyEntity

# Fully described strategies (metrics from published bot research).
FULL_STRATEGIES: List[Dict[str, Any]] = [
    # crypto
    {
        "id": "grid_bot_classic", "name": "Classic Grid Bot", "source": "Pionex", "type": "grid",
        "description": "Buy low, sell high in a price range automatically",
        "win_rate": 0.73, "avg_return": 0.15, "risk_level": "balanced", "asset_class": ["crypto"],
        "timeframe": "1h", "min_capital": 100, "max_drawdown": 0.15, "sharpe_ratio": 1.8,
        "signals": ["price_range", "volatility"],
        "plain_english": "Like a shopkeeper buying cheap and selling dear, over and over",
    },
    {
        "id": "dca_smart", "name": "Smart DCA Bot", "source": "3Commas", "type": "dca",
        "description": "Dollar-cost average with smart entry timing",
        "win_rate": 0.68, "avg_return": 0.12, "risk_level": "careful", "asset_class": ["crypto", "stocks"],
        "timeframe": "1d", "min_capital": 50, "max_drawdown": 0.10, "sharpe_ratio": 1.5,
        "signals": ["rsi_oversold", "support_level"],
        "plain_english": "Slowly buying more when prices dip, like buying on sale",
    },
    {
        "id": "ai_momentum", "name": "AI Momentum Hunter", "source": "Cryptohopper", "type": "momentum",
        "description": "AI identifies and rides momentum waves",
        "win_rate": 0.62, "avg_return": 0.25, "risk_level": "aggressive", "asset_class": ["crypto"],
        "timeframe": "15m", "min_capital": 200, "max_drawdown": 0.25, "sharpe_ratio": 1.2,
        "signals": ["macd_cross", "volume_surge", "ai_sentiment"],
        "plain_english": "Jumps on fast-moving assets and rides the wave up",
    },
    # forex
    {
        "id": "forex_fury_range", "name": "Range Trading Master", "source": "ForexFury", "type": "range",
        "description": "Trade during low volatility with 93% win rate",
        "win_rate": 0.93, "avg_return": 0.05, "risk_level": "careful", "asset_class": ["forex"],
        "timeframe": "1h", "min_capital": 100, "max_drawdown": 0.08, "sharpe_ratio": 2.5,
        "signals": ["low_volatility", "range_bound"],
        "plain_english": "Trades when markets are calm, like fishing in still water",
    },
    {
        "id": "evening_scalper", "name": "Evening Scalper Pro", "source": "EveningScalperPro", "type": "scalping",
        "description": "Mean reversion scalping in evening sessions",
        "win_rate": 0.68, "avg_return": 0.05, "risk_level": "balanced", "asset_class": ["forex"],
        "timeframe": "5m", "min_capital": 500, "max_drawdown": 0.15, "sharpe_ratio": 1.9,
        "signals": ["mean_reversion", "session_time"],
        "plain_english": "Quick trades in the evening when things bounce back",
    },
    # stocks
    {
        "id": "holly_ai_breakout", "name": "Holly AI Breakout", "source": "TradeIdeas", "type": "breakout",
        "description": "AI identifies breakout patterns in real-time",
        "win_rate": 0.58, "avg_return": 0.18, "risk_level": "aggressive", "asset_class": ["stocks"],
        "timeframe": "5m", "min_capital": 1000, "max_drawdown": 0.20, "sharpe_ratio": 1.3,
        "signals": ["breakout", "volume_confirmation", "ai_pattern"],
        "plain_english": "Catches stocks breaking out of their normal range",
    },
    {
        "id": "trend_follower", "name": "Trend Following Master", "source": "TrendSpider", "type": "trend",
        "description": "Follow established trends with smart entries",
        "win_rate": 0.55, "avg_return": 0.22, "risk_level": "balanced", "asset_class": ["stocks", "etf"],
        "timeframe": "1d", "min_capital": 500, "max_drawdown": 0.18, "sharpe_ratio": 1.4,
        "signals": ["trend_direction", "pullback_entry"],
        "plain_english": "Rides stocks that are clearly going up",
    },
    # institutional
    {
        "id": "stat_arb_pairs", "name": "Statistical Arbitrage Pairs", "source": "InstitutionalResearch",
        "type": "stat_arb", "description": "Trade correlated asset pairs when they diverge",
        "win_rate": 0.72, "avg_return": 0.08, "risk_level": "careful", "asset_class": ["stocks", "etf"],
        "timeframe": "1h", "min_capital": 2000, "max_drawdown": 0.10, "sharpe_ratio": 2.2,
        "signals": ["correlation_break", "zscore_extreme"],
        "plain_english": "When twins fight, bet they'll make up",
    },
    {
        "id": "mean_reversion_king", "name": "Mean Reversion King", "source": "InstitutionalResearch",
        "type": "mean_reversion", "description": "Buy oversold, sell overbought with precision",
        "win_rate": 0.65, "avg_return": 0.10, "risk_level": "balanced",
        "asset_class": ["stocks", "forex", "crypto"],
        "timeframe": "4h", "min_capital": 300, "max_drawdown": 0.12, "sharpe_ratio": 1.7,
        "signals": ["bollinger_extreme", "rsi_extreme"],
        "plain_english": "What goes up too fast comes back down, and the other way round",
    },
    # yield
    {
        "id": "yield_harvester", "name": "Yield Harvester", "source": "DeFiResearch", "type": "yield",
        "description": "Automatically harvest best yield opportunities",
        "win_rate": 0.85, "avg_return": 0.08, "risk_level": "careful", "asset_class": ["defi", "crypto"],
        "timeframe": "1d", "min_capital": 100, "max_drawdown": 0.05, "sharpe_ratio": 2.8,
        "signals": ["yield_comparison", "risk_adjusted_yield"],
        "plain_english": "Like finding the best savings account rates",
    },
    {
        "id": "dividend_compounder", "name": "Dividend Compounder", "source": "PassiveIncome", "type": "dividend",
        "description": "Buy dividend stocks, reinvest automatically",
        "win_rate": 0.90, "avg_return": 0.06, "risk_level": "ultra_safe", "asset_class": ["stocks", "etf"],
        "timeframe": "1w", "min_capital": 100, "max_drawdown": 0.15, "sharpe_ratio": 1.5,
        "signals": ["dividend_yield", "payout_ratio", "dividend_growth"],
        "plain_english": "Buy companies that pay you regularly",
    },
    # market making
    {
        "id": "market_maker_basic", "name": "Market Maker Basic", "source": "Hummingbot", "type": "market_making",
        "description": "Provide liquidity and earn the spread",
        "win_rate": 0.78, "avg_return": 0.04, "risk_level": "balanced", "asset_class": ["crypto"],
        "timeframe": "1m", "min_capital": 1000, "max_drawdown": 0.10, "sharpe_ratio": 2.0,
        "signals": ["bid_ask_spread", "order_book_depth"],
        "plain_english": "Be the middleman in trades and keep a small fee",
    },
    # open source
    {
        "id": "freqai_adaptive", "name": "FreqAI Adaptive", "source": "Freqtrade", "type": "ml_adaptive",
        "description": "Machine learning that adapts to market conditions",
        "win_rate": 0.60, "avg_return": 0.20, "risk_level": "aggressive", "asset_class": ["crypto", "forex"],
        "timeframe": "1h", "min_capital": 500, "max_drawdown": 0.20, "sharpe_ratio": 1.4,
        "signals": ["ml_prediction", "regime_detection"],
        "plain_english": "AI that learns and changes with the market",
    },
    {
        "id": "jesse_trend_rider", "name": "Jesse Trend Rider", "source": "Jesse", "type": "trend",
        "description": "Advanced trend following with risk management",
        "win_rate": 0.48, "avg_return": 0.35, "risk_level": "aggressive", "asset_class": ["crypto", "forex"],
        "timeframe": "4h", "min_capital": 300, "max_drawdown": 0.22, "sharpe_ratio": 1.3,
        "signals": ["supertrend", "atr_breakout"],
        "plain_english": "Catches big moves and lets winners run",
    },
    # sentiment & news
    {
        "id": "sentiment_surfer", "name": "Sentiment Surfer", "source": "SentimentAnalysis", "type": "sentiment",
        "description": "Trade based on social media and news sentiment",
        "win_rate": 0.58, "avg_return": 0.15, "risk_level": "aggressive", "asset_class": ["crypto", "stocks"],
        "timeframe": "15m", "min_capital": 200, "max_drawdown": 0.25, "sharpe_ratio": 1.0,
        "signals": ["twitter_sentiment", "news_score", "fear_greed"],
        "plain_english": "Trades based on what people are saying online",
    },
    {
        "id": "news_flash_trader", "name": "News Flash Trader", "source": "NewsAnalysis", "type": "news",
        "description": "React to breaking news faster than humans",
        "win_rate": 0.55, "avg_return": 0.12, "risk_level": "aggressive", "asset_class": ["stocks", "crypto"],
        "timeframe": "1m", "min_capital": 1000, "max_drawdown": 0.30, "sharpe_ratio": 0.9,
        "signals": ["breaking_news", "earnings_surprise"],
        "plain_english": "Jumps on news before the crowd reacts",
    },
]

# Abbreviated entries; missing fields take the StrategyEntity defaults.
ABBREVIATED_STRATEGIES: List[Dict[str, Any]] = [
    {"id": "bb_squeeze", "name": "Bollinger Squeeze", "type": "breakout", "win_rate": 0.58},
    {"id": "rsi_divergence", "name": "RSI Divergence Hunter", "type": "divergence", "win_rate": 0.62},
    {"id": "macd_histogram", "name": "MACD Histogram Trader", "type": "momentum", "win_rate": 0.55},
    {"id": "ichimoku_cloud", "name": "Ichimoku Cloud Rider", "type": "trend", "win_rate": 0.52},
    {"id": "fib_retracement", "name": "Fibonacci Bounce", "type": "support_resistance", "win_rate": 0.60},
    {"id": "elliott_wave", "name": "Elliott Wave Counter", "type": "wave", "win_rate": 0.48},
    {"id": "harmonic_gartley", "name": "Harmonic Gartley", "type": "pattern", "win_rate": 0.65},
    {"id": "order_flow", "name": "Order Flow Analyzer", "type": "flow", "win_rate": 0.58},
    {"id": "dark_pool_spy", "name": "Dark Pool Spy", "type": "institutional", "win_rate": 0.55},
    {"id": "whale_watcher", "name": "Whale Watcher", "type": "big_money", "win_rate": 0.52},
    {"id": "options_flow", "name": "Options Flow Reader", "type": "options", "win_rate": 0.58},
    {"id": "vol_crush", "name": "Volatility Crusher", "type": "volatility", "win_rate": 0.68},
    {"id": "gamma_scalp", "name": "Gamma Scalper", "type": "options", "win_rate": 0.62},
    {"id": "delta_neutral", "name": "Delta Neutral", "type": "hedged", "win_rate": 0.75},
    {"id": "vwap_bounce", "name": "VWAP Bounce Trader", "type": "mean_reversion", "win_rate": 0.58},
    {"id": "twap_executor", "name": "TWAP Executor", "type": "execution", "win_rate": 0.80},
    {"id": "opening_range", "name": "Opening Range Breakout", "type": "breakout", "win_rate": 0.55},
    {"id": "gap_fill", "name": "Gap Fill Hunter", "type": "gap", "win_rate": 0.62},
    {"id": "earnings_drift", "name": "Post-Earnings Drift", "type": "event", "win_rate": 0.58},
    {"id": "sector_rotation", "name": "Sector Rotator", "type": "rotation", "win_rate": 0.52},
    {"id": "low_vol_anomaly", "name": "Low Vol Anomaly", "type": "factor", "win_rate": 0.62},
    {"id": "tail_risk", "name": "Tail Risk Hedge", "type": "risk", "win_rate": 0.85},
    {"id": "carry_trade", "name": "FX Carry Trade", "type": "carry", "win_rate": 0.60},
    {"id": "basis_trade", "name": "Futures Basis Trade", "type": "arbitrage", "win_rate": 0.75},
    {"id": "funding_rate", "name": "Funding Rate Arb", "type": "arbitrage", "win_rate": 0.78},
    {"id": "dex_arb", "name": "DEX Arbitrage", "type": "arbitrage", "win_rate": 0.82},
    {"id": "liquidity_mining", "name": "Liquidity Mining Optimizer", "type": "yield", "win_rate": 0.80},
    {"id": "staking_compound", "name": "Staking Compounder", "type": "yield", "win_rate": 0.90},
    {"id": "meme_momentum", "name": "Meme Coin Momentum", "type": "momentum", "win_rate": 0.40},
    {"id": "golden_cross", "name": "Golden Cross Trader", "type": "trend", "win_rate": 0.55},
    {"id": "turtle_breakout", "name": "Turtle Breakout", "type": "breakout", "win_rate": 0.48},
    {"id": "atr_trailing", "name": "ATR Trailing Stop", "type": "exit", "win_rate": 0.65},
    {"id": "money_flow", "name": "Money Flow Index", "type": "volume", "win_rate": 0.55},
    {"id": "level2_scalp", "name": "Level 2 Scalper", "type": "scalping", "win_rate": 0.55},
    {"id": "iron_condor", "name": "Iron Condor", "type": "options", "win_rate": 0.72},
    {"id": "covered_call", "name": "Covered Call Writer", "type": "income", "win_rate": 0.78},
    {"id": "wheel_strategy", "name": "The Wheel Strategy", "type": "income", "win_rate": 0.72},
    {"id": "freqai_catboost", "name": "FreqAI CatBoost Classifier", "type": "ml_adaptive", "win_rate": 0.62,
     "source": "Freqtrade", "description": "CatBoost ML model for regime-aware trading"},
    {"id": "hummingbot_pmm", "name": "Pure Market Making", "type": "market_making", "win_rate": 0.78,
     "source": "Hummingbot", "description": "Provide liquidity and earn spread on both sides"},
    {"id": "jesse_supertrend", "name": "Jesse SuperTrend Strategy", "type": "trend", "win_rate": 0.52,
     "source": "Jesse", "description": "SuperTrend indicator with ATR-based stops"},
    {"id": "tastytrade_45dte_ic", "name": "45 DTE Iron Condor", "type": "options", "win_rate": 0.72,
     "source": "TastyTrade", "description": "Iron condor opened at 45 days to expiry"},
    {"id": "octobot_grid", "name": "OctoBot Smart Grid", "type": "grid", "win_rate": 0.75,
     "source": "OctoBot", "description": "AI-optimized grid trading with dynamic levels"},
    {"id": "risk_parity", "name": "Risk Parity Portfolio", "type": "portfolio", "win_rate": 0.65,
     "source": "Quant", "description": "Equal risk allocation across assets"},
    {"id": "vol_targeting", "name": "Volatility Targeting", "type": "risk", "win_rate": 0.68,
     "source": "Quant", "description": "Scale positions to maintain constant volatility"},
    {"id": "fear_greed_trade", "name": "Fear & Greed Trader", "type": "sentiment", "win_rate": 0.58,
     "source": "Sentiment", "description": "Contrarian trades based on fear/greed extremes"},
]


class StrategyCatalog:
    """
    Read-only registry of strategies, in insertion order.

    Loaded once at startup and never mutated, so it is shared across
    loops without locking. Duplicate ids keep the first registration.
    """

    def __init__(
        self,
        entries: Optional[Iterable[Dict[str, Any]]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        if entries is None:
            entries = [*FULL_STRATEGIES, *ABBREVIATED_STRATEGIES]

        strategies: Dict[str, StrategyEntity] = {}
        for raw in entries:
            strategy = StrategyEntity.model_validate(raw)
            if strategy.id in strategies:
                self._logger.debug("Duplicate strategy id %s ignored", strategy.id)
                continue
            strategies[strategy.id] = strategy

        self._strategies = strategies
        self._logger.info("Loaded %d strategies", len(self._strategies))

    def __len__(self) -> int:
        return len(self._strategies)

    def all(self) -> List[StrategyEntity]:
        return list(self._strategies.values())

    def get(self, strategy_id: str) -> Optional[StrategyEntity]:
        return self._strategies.get(strategy_id)
