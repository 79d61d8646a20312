"""Per-market asyncio lock registry."""
import asyncio

import pytest

from src.pm_amm.engine.locks import MarketLocks, get_market_locks
from src.pm_common.errors import ConflictError


async def test_hold_and_release() -> None:
    locks = MarketLocks()
    async with locks.hold("m1", 100):
        assert locks.is_held("m1")
        assert not locks.is_held("m2")
    assert not locks.is_held("m1")


async def test_released_on_exception() -> None:
    locks = MarketLocks()
    with pytest.raises(RuntimeError):
        async with locks.hold("m1", 100):
            raise RuntimeError("boom")
    assert not locks.is_held("m1")


async def test_wait_timeout_raises_conflict() -> None:
    locks = MarketLocks()
    entered = asyncio.Event()
    release = asyncio.Event()

    async def holder() -> None:
        async with locks.hold("m1", 100):
            entered.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await entered.wait()
    with pytest.raises(ConflictError):
        async with locks.hold("m1", 20):
            pass
    release.set()
    await task


async def test_different_markets_do_not_block() -> None:
    locks = MarketLocks()
    async with locks.hold("m1", 50):
        async with locks.hold("m2", 50):
            assert locks.is_held("m1") and locks.is_held("m2")


def test_singleton() -> None:
    assert get_market_locks() is get_market_locks()


async def test_entry_dropped_after_release() -> None:
    locks = MarketLocks()
    async with locks.hold("m1", 100):
        assert locks.active() == 1
    assert locks.active() == 0


async def test_entry_dropped_after_timeout_and_kept_for_waiters() -> None:
    locks = MarketLocks()
    entered = asyncio.Event()
    release = asyncio.Event()

    async def holder() -> None:
        async with locks.hold("m1", 100):
            entered.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await entered.wait()
    with pytest.raises(ConflictError):
        async with locks.hold("m1", 20):
            pass
    # the holder still owns the entry
    assert locks.is_held("m1")
    assert locks.active() == 1
    release.set()
    await task
    assert locks.active() == 0


async def test_waiter_gets_same_lock_after_holder_releases() -> None:
    locks = MarketLocks()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold("m1", 500):
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert locks.active() == 0


async def test_cancelled_waiter_releases_entry() -> None:
    locks = MarketLocks()
    entered = asyncio.Event()
    release = asyncio.Event()

    async def holder() -> None:
        async with locks.hold("m1", 1000):
            entered.set()
            await release.wait()

    async def waiter() -> None:
        async with locks.hold("m1", 1000):
            pass

    held = asyncio.create_task(holder())
    await entered.wait()
    waiting = asyncio.create_task(waiter())
    await asyncio.sleep(0)
    waiting.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiting
    release.set()
    await held
    assert locks.active() == 0
