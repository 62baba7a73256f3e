"""
Decision sources for the trading and learning loops.

Each is an injectable seam so tests can force outcomes; the defaults are
placeholders for real market-signal evaluation and real P&L.
"""

import random
from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.strategy_entity import StrategyEntity
from core.domain.enums.pilot_enums import TradeSide


class SignalEvaluator(ABC):

    @abstractmethod
    def should_trade(self, strategy: StrategyEntity, pilot: PilotEntity) -> bool:
        """Admission gate: does this strategy produce a trade candidate now?"""
        raise NotImplementedError


class WinRateSignalEvaluator(SignalEvaluator):
    """Accepts with probability win_rate * factor."""

    def __init__(self, factor: float = 0.1, rng: Optional[random.Random] = None):
        self._factor = factor
        self._rng = rng or random.Random()

    def should_trade(self, strategy: StrategyEntity, pilot: PilotEntity) -> bool:
        return self._rng.random() < strategy.win_rate * self._factor


class StaticSignalEvaluator(SignalEvaluator):
    """Always (or never) admits. Useful for dry runs and tests."""

    def __init__(self, accept: bool):
        self._accept = accept

    def should_trade(self, strategy: StrategyEntity, pilot: PilotEntity) -> bool:
        return self._accept


class SideSelector(ABC):

    @abstractmethod
    def side_for(self, strategy: StrategyEntity) -> TradeSide:
        raise NotImplementedError


class LongBiasedSideSelector(SideSelector):
    """Buys with probability `buy_probability`, otherwise sells."""

    def __init__(self, buy_probability: float = 0.7, rng: Optional[random.Random] = None):
        self._buy_probability = buy_probability
        self._rng = rng or random.Random()

    def side_for(self, strategy: StrategyEntity) -> TradeSide:
        return TradeSide.BUY if self._rng.random() < self._buy_probability else TradeSide.SELL


class ReturnSource(ABC):

    @abstractmethod
    def day_return(self, pilot: PilotEntity) -> float:
        """Fractional return for the period since the last learning tick."""
        raise NotImplementedError


class SimulatedReturnSource(ReturnSource):
    """Uniform in [-0.8%, +1.2%)."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def day_return(self, pilot: PilotEntity) -> float:
        return (self._rng.random() - 0.4) * 0.02
