import hashlib

from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.strategy_entity import StrategyEntity
from core.domain.entities.trade_entity import TradeNarrative
from core.domain.enums.pilot_enums import PlainEnglishLevel, TradeSide
from core.services.allocation_selector import risk_dna_to_score
from core.services.price_oracle import AssetQuote

_ELI5_BUY = [
    "We're buying some {name} because it looks like a good deal, like finding a toy on sale.",
    "Time to get some {name}. The numbers say it's growing, like a plant getting sunshine.",
    "We're putting a little money into {name}, like adding coins to a piggy bank.",
    "{name} looks strong today, so we're picking some up, like grabbing apples when they're ripe.",
]

_ELI5_SELL = [
    "We're selling some {name} to keep our winnings safe, like putting cookies back in the jar.",
    "Time to let go of some {name}. It's like trading a toy before it breaks.",
    "We're taking some money out of {name}, like picking fruit before it falls.",
    "{name} looks tired today, so we're stepping back, like going inside before the rain.",
]

_TIPS = {
    "grid": "Grid bots work best in sideways markets. They buy low and sell high within a range.",
    "dca": "Dollar cost averaging spreads your buys over time, so one bad day matters less.",
    "momentum": "Momentum trading follows the crowd: assets going up tend to keep going up, until they don't.",
    "mean_reversion": "Mean reversion bets that prices drift back toward their average. Patience pays.",
    "trend": "The trend is your friend. These strategies ride waves instead of fighting them.",
    "breakout": "Breakout strategies catch big moves when price escapes its normal range.",
    "scalping": "Scalping makes tiny profits many times instead of a few big ones.",
    "arbitrage": "Arbitrage exploits price differences across markets. It needs speed more than luck.",
    "yield": "Yield strategies earn passive income. Your money works while you sleep.",
    "options": "Options give you leverage with limited risk, a bit like insurance for trades.",
}

_DEFAULT_TIP = "Every trade is a learning opportunity. Watch, learn, grow."


def _pct(x: float, digits: int = 1) -> str:
    return f"{x * 100:.{digits}f}%"


class ExplanationService:
    """
    Turns (strategy, asset, side) into narration at five comprehension levels.

    Output is a pure function of the inputs: the eli5 template is picked by
    a hash rather than at random, so a trade's narration is reproducible.
    """

    @staticmethod
    def _pick(templates: list[str], *parts: str) -> str:
        raw = "|".join(parts).encode("utf-8")
        idx = int(hashlib.sha1(raw).hexdigest(), 16) % len(templates)
        return templates[idx]

    def eli5(self, strategy: StrategyEntity, asset: AssetQuote, side: TradeSide | str) -> str:
        side_val = TradeSide(side)
        templates = _ELI5_BUY if side_val == TradeSide.BUY else _ELI5_SELL
        tpl = self._pick(templates, strategy.id, asset.symbol, side_val.value)
        return tpl.format(name=asset.name)

    def beginner(self, strategy: StrategyEntity, asset: AssetQuote, side: TradeSide | str) -> str:
        verb = "Buying" if TradeSide(side) == TradeSide.BUY else "Selling"
        return (
            f'{verb} {asset.name} using the "{strategy.name}" strategy. '
            f"This strategy has a {round(strategy.win_rate * 100)}% success rate. "
            f"{strategy.plain_english}"
        )

    def intermediate(self, strategy: StrategyEntity, asset: AssetQuote) -> str:
        return (
            f"{strategy.type.upper()} signal on {asset.symbol}. "
            f"Strategy: {strategy.name} ({strategy.source}). "
            f"Signals: {', '.join(strategy.signals) or 'none'}. "
            f"Win rate: {round(strategy.win_rate * 100)}%, Avg return: {_pct(strategy.avg_return)}"
        )

    def advanced(self, strategy: StrategyEntity, asset: AssetQuote) -> str:
        return (
            f"Entry: {asset.symbol} @ ${asset.price}. "
            f"Strategy: {strategy.name} ({strategy.source}). "
            f"Type: {strategy.type}. Timeframe: {strategy.timeframe}. "
            f"Metrics: WR {round(strategy.win_rate * 100)}%, "
            f"ER {_pct(strategy.avg_return)}, "
            f"MDD {_pct(strategy.max_drawdown)}, "
            f"Sharpe {strategy.sharpe_ratio:.2f}"
        )

    def expert(self, strategy: StrategyEntity, asset: AssetQuote, confidence: int) -> str:
        return (
            f"EXEC: {asset.symbol} | "
            f"STRAT: {strategy.id} | "
            f"SRC: {strategy.source} | "
            f"SIG: {'+'.join(strategy.signals) or '-'} | "
            f"CONF: {confidence}% | "
            f"EV: {_pct(strategy.avg_return, 2)} | "
            f"RISK: {_pct(strategy.max_drawdown, 2)} MDD | "
            f"SHARPE: {strategy.sharpe_ratio:.3f}"
        )

    def narrate(
        self,
        strategy: StrategyEntity,
        asset: AssetQuote,
        side: TradeSide | str,
        confidence: int,
    ) -> TradeNarrative:
        return TradeNarrative(
            eli5=self.eli5(strategy, asset, side),
            beginner=self.beginner(strategy, asset, side),
            intermediate=self.intermediate(strategy, asset),
            advanced=self.advanced(strategy, asset),
            expert=self.expert(strategy, asset, confidence),
        )

    def educational_tip(self, strategy: StrategyEntity) -> str:
        return _TIPS.get(strategy.type, _DEFAULT_TIP)

    def welcome_message(self, pilot: PilotEntity, strategy_count: int) -> str:
        deposit = f"${pilot.initial_deposit:g}"
        risk = getattr(pilot.risk_dna, "value", pilot.risk_dna)
        messages = {
            PlainEnglishLevel.ELI5.value: (
                f"Yay! Your {deposit} is ready to grow! I'll buy and sell things to make you more money. Watch me work!"
            ),
            PlainEnglishLevel.BEGINNER.value: (
                f"Welcome! Your {deposit} is now active. I'll trade automatically using smart strategies. "
                "Check back anytime to see how we're doing!"
            ),
            PlainEnglishLevel.INTERMEDIATE.value: (
                f"Portfolio initialized with {deposit}. I'll be using {strategy_count}+ strategies "
                f"optimized for your {risk} risk profile."
            ),
            PlainEnglishLevel.ADVANCED.value: (
                f"Capital deployed: {deposit}. Strategy allocation: Multi-strategy ensemble with {risk} "
                "risk parameters. Expected Sharpe: 1.5-2.0."
            ),
            PlainEnglishLevel.EXPERT.value: (
                f"Init: {deposit} | Risk DNA: {risk} | Strategy Mix: Adaptive ensemble of {strategy_count} "
                f"alpha signals | Target Vol: {risk_dna_to_score(risk)}%"
            ),
        }
        level = getattr(pilot.plain_english_level, "value", pilot.plain_english_level)
        return messages.get(level, messages[PlainEnglishLevel.BEGINNER.value])
