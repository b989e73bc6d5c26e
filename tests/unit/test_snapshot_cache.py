"""Tests for the per-context snapshot cache."""

import asyncio

import pytest

from screentrail.events.snapshot_cache import Snapshot, SnapshotCache

from tests.helpers.builders import at, make_result


def snapshot(seconds: float = 0, frame_id: str = "f") -> Snapshot:
    return Snapshot(results=(make_result("text"),), timestamp=at(seconds), frame_id=frame_id)


class TestSnapshotCache:
    def test_put_and_get(self):
        cache = SnapshotCache(max_size=4)
        key = ("com.example.app", "Main")

        cache.put(key, snapshot(frame_id="f1"))

        assert key in cache
        assert cache.get(key).frame_id == "f1"
        assert cache.get(("other", "")) is None

    def test_evicts_least_recently_used(self):
        cache = SnapshotCache(max_size=2)
        cache.put(("a", ""), snapshot())
        cache.put(("b", ""), snapshot())
        cache.get(("a", ""))

        cache.put(("c", ""), snapshot())

        assert ("a", "") in cache
        assert ("b", "") not in cache
        assert len(cache) == 2

    def test_clear(self):
        cache = SnapshotCache()
        cache.put(("a", ""), snapshot())

        cache.clear()

        assert len(cache) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            SnapshotCache(max_size=0)

    @pytest.mark.asyncio
    async def test_lock_is_shared_per_key(self):
        cache = SnapshotCache()

        assert cache.lock_for(("a", "")) is cache.lock_for(("a", ""))
        assert cache.lock_for(("a", "")) is not cache.lock_for(("b", ""))

    @pytest.mark.asyncio
    async def test_lock_serializes_one_key(self):
        cache = SnapshotCache()
        order: list[str] = []

        async def worker(name: str, delay: float) -> None:
            async with cache.lock_for(("a", "")):
                order.append(f"{name}-start")
                await asyncio.sleep(delay)
                order.append(f"{name}-end")

        await asyncio.gather(worker("first", 0.02), worker("second", 0))

        assert order == ["first-start", "first-end", "second-start", "second-end"]
