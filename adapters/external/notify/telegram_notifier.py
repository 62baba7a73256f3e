import logging
from typing import Optional

import httpx

from core.services.event_bus import (
    EngineEvent,
    ExitRampInitiated,
    PartialWithdrawal,
    PilotCreated,
    SkimCompleted,
    TradeExecuted,
    TradingPaused,
    WithdrawalComplete,
)

MAX_LEN = 3800  # 4096 is the hard limit


def format_event(event: EngineEvent) -> Optional[str]:
    """Human-readable line for the events worth a push; None for the rest."""
    if isinstance(event, TradeExecuted):
        t = event.trade
        return (
            f"[{event.pilot_id}] {t.side.upper()} {t.quantity:.6f} {t.asset} @ ${t.price:.2f} "
            f"(${t.value:.2f}, conf {t.reasoning.confidence}%)\n{t.plain_english.beginner}"
        )
    if isinstance(event, PilotCreated):
        p = event.pilot
        return f"New pilot {p.id} ({p.name}) for user {p.user_id}: ${p.initial_deposit:.2f}, risk {p.risk_dna}"
    if isinstance(event, ExitRampInitiated):
        r = event.exit_ramp
        return f"[{event.pilot_id}] exit ramp {r.exit_strategy}, target {r.target_exit_date:%Y-%m-%d}"
    if isinstance(event, TradingPaused):
        return f"[{event.pilot_id}] trading paused at ${event.current_value:.2f}"
    if isinstance(event, (WithdrawalComplete, PartialWithdrawal)):
        return f"[{event.pilot_id}] {event.result.message}"
    if isinstance(event, SkimCompleted):
        r = event.result
        outcome = "won" if r.successful else "lost"
        return f"[{event.pilot_id}] skim {outcome} on {r.asset}: {r.profit_bps:+.1f} bps (${r.net_profit:.2f} net)"
    return None


class TelegramNotifier:
    """Event bus subscriber that forwards notable engine events to a Telegram chat."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str | int,
        logger: logging.Logger | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._client = client or httpx.AsyncClient(timeout=10.0)

    async def __call__(self, event: EngineEvent) -> None:
        text = format_event(event)
        if text:
            await self.send_message(text)

    async def send_message(self, text: str) -> None:
        if not text:
            return

        if len(text) > MAX_LEN:
            text = text[:MAX_LEN - 50] + "\n\n[... truncated ...]"

        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
        }

        resp = await self._client.post(url, json=payload)
        if resp.status_code >= 400:
            try:
                data = resp.json()
            except ValueError:
                data = {"raw": resp.text}

            # logged, not raised: a chat outage must not stall the engine
            self._logger.error(
                "Telegram error %s: %s",
                resp.status_code,
                data,
            )

    async def aclose(self) -> None:
        await self._client.aclose()
