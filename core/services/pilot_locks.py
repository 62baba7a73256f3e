import asyncio
import weakref


class PilotLocks:
    """
    One asyncio.Lock per pilot id.

    Every read-modify-write of a pilot, its trade log or its watch stream
    goes through `for_pilot(...)`, so the trading cycle, the learning loop
    and on-demand calls cannot lose each other's updates across awaits.

    A lock lives only while someone holds or waits on it; idle entries drop
    out of the map on their own.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def for_pilot(self, pilot_id: str) -> asyncio.Lock:
        lock = self._locks.get(pilot_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[pilot_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
