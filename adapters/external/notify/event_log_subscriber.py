import logging
from typing import Optional

from core.services.event_bus import EngineEvent
from .telegram_notifier import format_event


class EventLogSubscriber:
    """Writes every engine event to the log; the default sink when no notifier is configured."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("autopilot.events")

    async def __call__(self, event: EngineEvent) -> None:
        text = format_event(event)
        if text:
            self._logger.info("%s: %s", event.name, text)
        else:
            self._logger.debug("%s: %s", event.name, event.model_dump(mode="json"))
