import asyncio

import pytest

from receipt_scanner.core.cache import CoalescingCache


@pytest.mark.asyncio
async def test_get_or_load_caches_value() -> None:
    cache = CoalescingCache[str]()
    calls = 0

    async def loader() -> str:
        nonlocal calls
        calls += 1
        return "value"

    assert await cache.get_or_load("key", loader) == "value"
    assert await cache.get_or_load("key", loader) == "value"
    assert calls == 1
    assert "key" in cache
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_load() -> None:
    cache = CoalescingCache[str]()
    gate = asyncio.Event()
    calls = 0

    async def loader() -> str:
        nonlocal calls
        calls += 1
        await gate.wait()
        return "value"

    tasks = [asyncio.create_task(cache.get_or_load("key", loader)) for _ in range(5)]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*tasks)

    assert results == ["value"] * 5
    assert calls == 1


@pytest.mark.asyncio
async def test_failed_load_is_shared_and_not_cached() -> None:
    cache = CoalescingCache[str]()
    gate = asyncio.Event()
    calls = 0

    async def failing_loader() -> str:
        nonlocal calls
        calls += 1
        await gate.wait()
        raise RuntimeError("boom")

    tasks = [asyncio.create_task(cache.get_or_load("key", failing_loader)) for _ in range(3)]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert calls == 1
    assert all(isinstance(r, RuntimeError) for r in results)
    assert "key" not in cache

    async def loader() -> str:
        return "recovered"

    assert await cache.get_or_load("key", loader) == "recovered"


@pytest.mark.asyncio
async def test_distinct_keys_load_independently() -> None:
    cache = CoalescingCache[str]()

    async def load_a() -> str:
        return "a"

    async def load_b() -> str:
        return "b"

    assert await cache.get_or_load("a", load_a) == "a"
    assert await cache.get_or_load("b", load_b) == "b"
    assert cache.get("a") == "a"
    assert cache.get("missing") is None


def test_clear_removes_values() -> None:
    cache = CoalescingCache[str]()
    cache._values["key"] = "value"

    cache.clear()

    assert len(cache) == 0
