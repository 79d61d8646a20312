"""Per-market in-process locks.

Serializes trades and resolution for one market inside this process so
they queue here instead of piling up on the PostgreSQL row lock. The
`SELECT ... FOR UPDATE` taken afterwards is what serializes across
worker processes.

Entries are reference-counted: a market's lock exists only while some
task holds or waits on it, so ids that never resolve to a market leave
nothing behind.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from src.pm_common.errors import ConflictError

logger = logging.getLogger(__name__)


class MarketLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, market_id: str, timeout_ms: int) -> AsyncIterator[None]:
        lock = self._locks.get(market_id)
        if lock is None:
            lock = self._locks[market_id] = asyncio.Lock()
        self._users[market_id] = self._users.get(market_id, 0) + 1
        try:
            try:
                async with asyncio.timeout(timeout_ms / 1000):
                    await lock.acquire()
            except TimeoutError:
                logger.warning("Market lock wait timed out: market=%s", market_id)
                raise ConflictError(f"Market {market_id} is busy, please retry") from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[market_id] -= 1
            if self._users[market_id] == 0:
                del self._users[market_id]
                del self._locks[market_id]

    def is_held(self, market_id: str) -> bool:
        lock = self._locks.get(market_id)
        return lock is not None and lock.locked()

    def active(self) -> int:
        """Markets with at least one holder or waiter."""
        return len(self._locks)


_locks: MarketLocks | None = None


def get_market_locks() -> MarketLocks:
    global _locks  # noqa: PLW0603
    if _locks is None:
        _locks = MarketLocks()
    return _locks
