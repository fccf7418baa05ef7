import asyncio
from unittest.mock import AsyncMock

import pytest

from playback.cache import ONE_HOUR_IN_SECONDS, KeyValueCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_hit_within_ttl_skips_compute():
    clock = FakeClock()
    cache = KeyValueCache(clock=clock)
    compute = AsyncMock(return_value=["a", "b"])

    first = await cache.wrap(compute, "q", expires_in=60, key="k")
    clock.now += 59
    second = await cache.wrap(compute, "q", expires_in=60, key="k")

    assert first == second == ["a", "b"]
    compute.assert_awaited_once_with("q")
    assert "k" in cache


@pytest.mark.asyncio
async def test_expired_entry_is_recomputed():
    clock = FakeClock()
    cache = KeyValueCache(clock=clock)
    compute = AsyncMock(side_effect=[["old"], ["new"]])

    assert await cache.wrap(compute, expires_in=ONE_HOUR_IN_SECONDS, key="k") == ["old"]
    clock.now += ONE_HOUR_IN_SECONDS
    assert "k" not in cache
    assert len(cache) == 0
    assert await cache.wrap(compute, expires_in=ONE_HOUR_IN_SECONDS, key="k") == ["new"]
    assert compute.await_count == 2


@pytest.mark.asyncio
async def test_keys_are_independent():
    cache = KeyValueCache()
    compute = AsyncMock(side_effect=lambda q: [q.upper()])

    assert await cache.wrap(compute, "a", expires_in=60, key="x:a") == ["A"]
    assert await cache.wrap(compute, "b", expires_in=60, key="x:b") == ["B"]
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_default_key_uses_arguments():
    cache = KeyValueCache()
    compute = AsyncMock(side_effect=lambda q, n: [q] * n)

    await cache.wrap(compute, "a", 2, expires_in=60)
    await cache.wrap(compute, "a", 2, expires_in=60)
    await cache.wrap(compute, "a", 3, expires_in=60)

    assert compute.await_count == 2


@pytest.mark.asyncio
async def test_failures_are_not_cached():
    cache = KeyValueCache()
    compute = AsyncMock(side_effect=[RuntimeError("boom"), ["ok"]])

    with pytest.raises(RuntimeError, match="boom"):
        await cache.wrap(compute, expires_in=60, key="k")
    assert len(cache) == 0
    assert await cache.wrap(compute, expires_in=60, key="k") == ["ok"]


@pytest.mark.asyncio
async def test_non_positive_ttl_rejected():
    cache = KeyValueCache()
    compute = AsyncMock(return_value=[])

    with pytest.raises(ValueError):
        await cache.wrap(compute, expires_in=0, key="k")
    compute.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_call():
    cache = KeyValueCache()
    release = asyncio.Event()
    calls = 0

    async def compute(q):
        nonlocal calls
        calls += 1
        await release.wait()
        return [q]

    first = asyncio.create_task(cache.wrap(compute, "q", expires_in=60, key="k"))
    second = asyncio.create_task(cache.wrap(compute, "q", expires_in=60, key="k"))
    await asyncio.sleep(0)
    release.set()

    assert await first == ["q"]
    assert await second == ["q"]
    assert calls == 1


@pytest.mark.asyncio
async def test_cancelled_caller_still_fills_cache():
    cache = KeyValueCache()
    release = asyncio.Event()
    compute_done = asyncio.Event()

    async def compute():
        await release.wait()
        compute_done.set()
        return ["late"]

    waiter = asyncio.create_task(cache.wrap(compute, expires_in=60, key="k"))
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    release.set()
    await compute_done.wait()
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert "k" in cache
    follow_up = AsyncMock(return_value=["fresh"])
    assert await cache.wrap(follow_up, expires_in=60, key="k") == ["late"]
    follow_up.assert_not_awaited()


@pytest.mark.asyncio
async def test_expired_keys_are_freed_without_lookup():
    clock = FakeClock()
    cache = KeyValueCache(clock=clock)
    compute = AsyncMock(side_effect=lambda q: [q])
    query = "never gonna give you up"

    for end in range(1, len(query) + 1):
        prefix = query[:end]
        await cache.wrap(compute, prefix, expires_in=ONE_HOUR_IN_SECONDS, key=f"autocomplete:{prefix}")
    assert len(cache) == len(query)

    clock.now += 10 * ONE_HOUR_IN_SECONDS
    await cache.wrap(compute, "lofi", expires_in=ONE_HOUR_IN_SECONDS, key="autocomplete:lofi")

    assert len(cache._entries) == 1
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_len_agrees_with_contains_after_expiry():
    clock = FakeClock()
    cache = KeyValueCache(clock=clock)

    await cache.wrap(AsyncMock(return_value=["a"]), expires_in=60, key="a")
    await cache.wrap(AsyncMock(return_value=["b"]), expires_in=600, key="b")
    clock.now += 60

    assert "a" not in cache
    assert "b" in cache
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_least_recently_used_entry_evicted_when_full():
    cache = KeyValueCache(maxsize=2)

    await cache.wrap(AsyncMock(return_value=["a"]), expires_in=60, key="a")
    await cache.wrap(AsyncMock(return_value=["b"]), expires_in=60, key="b")
    await cache.wrap(AsyncMock(return_value=["a2"]), expires_in=60, key="a")
    await cache.wrap(AsyncMock(return_value=["c"]), expires_in=60, key="c")

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache
