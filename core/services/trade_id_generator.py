import asyncio
import logging
from typing import Optional

from core.repositories.trade_repository import TradeRepository

PREFIX = "trade_"


def format_trade_id(seq: int) -> str:
    return f"{PREFIX}{seq:012d}"


def parse_trade_seq(trade_id: str) -> Optional[int]:
    if not trade_id.startswith(PREFIX):
        return None
    digits = trade_id[len(PREFIX):]
    return int(digits) if digits.isdigit() else None


class TradeIdGenerator:
    """
    Monotonic trade ids (`trade_` + 12 digits) in creation order.

    With a trade repository the sequence resumes after the newest id already
    in the trade log, so an engine restarted over the same store never hands
    out an id twice. The store is read once, on the first id.
    """

    def __init__(
        self,
        trade_repo: Optional[TradeRepository] = None,
        start: int = 1,
        logger: Optional[logging.Logger] = None,
    ):
        self._repo = trade_repo
        self._next = start
        self._seeded = trade_repo is None
        self._seed_lock = asyncio.Lock()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def _seed(self) -> None:
        async with self._seed_lock:
            if self._seeded:
                return
            latest = await self._repo.latest_id()
            seq = parse_trade_seq(latest) if latest else None
            if seq is not None and seq >= self._next:
                self._next = seq + 1
                self._logger.info("Trade ids resume after %s", latest)
            self._seeded = True

    async def next_id(self) -> str:
        if not self._seeded:
            await self._seed()
        seq = self._next
        self._next += 1
        return format_trade_id(seq)
