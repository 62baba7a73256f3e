import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict

from core.domain.entities.exit_ramp_entity import ExitRampEntity
from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.skim_entity import AutoSkimConfig, SkimOpportunity, SkimResult
from core.domain.entities.social_proof_entity import SocialProofEntity
from core.domain.entities.trade_entity import TradeEntity
from core.domain.entities.withdrawal_entity import WithdrawalResult


class EngineEvent(BaseModel):
    name: ClassVar[str] = "event"

    model_config = ConfigDict(frozen=True)


class Initialized(EngineEvent):
    name: ClassVar[str] = "initialized"
    strategy_count: int


class PilotCreated(EngineEvent):
    name: ClassVar[str] = "pilot_created"
    pilot: PilotEntity


class TradeExecuted(EngineEvent):
    name: ClassVar[str] = "trade_executed"
    pilot_id: str
    trade: TradeEntity


class ExitRampInitiated(EngineEvent):
    name: ClassVar[str] = "exit_ramp_initiated"
    pilot_id: str
    exit_ramp: ExitRampEntity


class SocialProofUpdated(EngineEvent):
    name: ClassVar[str] = "social_proof_updated"
    pilot_id: str
    social_proof: SocialProofEntity


class WatchModeEnabled(EngineEvent):
    name: ClassVar[str] = "watch_mode_enabled"
    pilot_id: str


class TradingPaused(EngineEvent):
    name: ClassVar[str] = "trading_paused"
    pilot_id: str
    current_value: float


class TradingResumed(EngineEvent):
    name: ClassVar[str] = "trading_resumed"
    pilot_id: str


class WithdrawalComplete(EngineEvent):
    name: ClassVar[str] = "withdrawal_complete"
    pilot_id: str
    result: WithdrawalResult


class PartialWithdrawal(EngineEvent):
    name: ClassVar[str] = "partial_withdrawal"
    pilot_id: str
    result: WithdrawalResult


class SkimEnabled(EngineEvent):
    name: ClassVar[str] = "skim_enabled"
    pilot_id: str
    config: AutoSkimConfig


class SkimDisabled(EngineEvent):
    name: ClassVar[str] = "skim_disabled"
    pilot_id: str


class SkimExecuted(EngineEvent):
    name: ClassVar[str] = "skim_executed"
    pilot_id: str
    opportunity: SkimOpportunity


class SkimCompleted(EngineEvent):
    name: ClassVar[str] = "skim_completed"
    pilot_id: str
    result: SkimResult


Handler = Callable[[Any], Awaitable[None]]


class EventBus:
    """
    In-process pub/sub for engine events.

    Subscribers register per event class (or for all events). Handlers run
    in registration order; a failing handler is logged and never breaks the
    publisher or the other handlers.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._handlers: Dict[Optional[Type[EngineEvent]], List[Handler]] = defaultdict(list)

    def subscribe(self, handler: Handler, event_type: Optional[Type[EngineEvent]] = None) -> None:
        """`event_type=None` receives every event."""
        self._handlers[event_type].append(handler)

    def unsubscribe(self, handler: Handler, event_type: Optional[Type[EngineEvent]] = None) -> None:
        handlers = self._handlers.get(event_type) or []
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: EngineEvent) -> None:
        handlers = [*self._handlers.get(type(event), []), *self._handlers.get(None, [])]
        for handler in handlers:
            try:
                await handler(event)
            except Exception as exc:
                self._logger.warning("Event handler failed for %s: %s", event.name, exc)


class RecordingSubscriber:
    """Keeps every event it receives; handy for tests and debugging."""

    def __init__(self):
        self.events: List[EngineEvent] = []

    async def __call__(self, event: EngineEvent) -> None:
        self.events.append(event)

    def named(self, name: str) -> List[EngineEvent]:
        return [e for e in self.events if e.name == name]
