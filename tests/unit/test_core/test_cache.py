"""Tests for the read-side result cache."""

from unittest.mock import patch

from election_api.core.cache import GLOBAL_PREFIX, InMemoryResultCache, NullResultCache, position_prefix


class TestInMemoryResultCache:
    def test_miss(self) -> None:
        assert InMemoryResultCache().get("position:PRES:tally") is None

    def test_set_and_get(self) -> None:
        cache = InMemoryResultCache()
        cache.set("position:PRES:tally", {"total": 3})
        assert cache.get("position:PRES:tally") == {"total": 3}

    def test_entries_expire(self) -> None:
        cache = InMemoryResultCache(ttl_seconds=10)
        with patch("election_api.core.cache.time") as mock_time:
            mock_time.monotonic.return_value = 100.0
            cache.set("k", "v")
            mock_time.monotonic.return_value = 109.9
            assert cache.get("k") == "v"
            mock_time.monotonic.return_value = 110.0
            assert cache.get("k") is None
        assert len(cache) == 0

    def test_invalidate_prefix_is_position_scoped(self) -> None:
        cache = InMemoryResultCache()
        cache.set("position:MP:tally", 1)
        cache.set("position:MP:winners", 2)
        cache.set("position:MPX:tally", 3)
        cache.set(f"{GLOBAL_PREFIX}winners", 4)

        removed = cache.invalidate_prefix(position_prefix("MP"))

        assert removed == 2
        assert cache.get("position:MPX:tally") == 3
        assert cache.get("global:winners") == 4

    def test_clear(self) -> None:
        cache = InMemoryResultCache()
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestStaleWrites:
    """A reader that started before an invalidation must not repopulate the key."""

    def test_read_overtaken_by_invalidation_is_dropped(self) -> None:
        cache = InMemoryResultCache()
        generation = cache.generation()

        cache.invalidate_prefix(position_prefix("PRES"))
        cache.set("position:PRES:tally", "stale", generation)

        assert cache.get("position:PRES:tally") is None
        assert len(cache) == 0

    def test_other_positions_unaffected(self) -> None:
        cache = InMemoryResultCache()
        generation = cache.generation()

        cache.invalidate_prefix(position_prefix("PRES"))
        cache.set("position:MP:tally", "fresh", generation)

        assert cache.get("position:MP:tally") == "fresh"

    def test_read_started_after_invalidation_is_stored(self) -> None:
        cache = InMemoryResultCache()
        cache.invalidate_prefix(position_prefix("PRES"))
        generation = cache.generation()

        cache.set("position:PRES:tally", "fresh", generation)

        assert cache.get("position:PRES:tally") == "fresh"

    def test_clear_drops_every_earlier_read(self) -> None:
        cache = InMemoryResultCache()
        generation = cache.generation()

        cache.clear()
        cache.set(f"{GLOBAL_PREFIX}summary", "stale", generation)
        cache.set("position:MP:winners", "stale", generation)

        assert len(cache) == 0

    def test_set_without_generation_always_stores(self) -> None:
        cache = InMemoryResultCache()
        cache.invalidate_prefix(GLOBAL_PREFIX)
        cache.set(f"{GLOBAL_PREFIX}winners", "value")
        assert cache.get(f"{GLOBAL_PREFIX}winners") == "value"


class TestNullResultCache:
    def test_never_stores(self) -> None:
        cache = NullResultCache()
        cache.set("a", 1, cache.generation())
        assert cache.get("a") is None
        assert cache.generation() == 0
        assert cache.invalidate_prefix("a") == 0
        cache.clear()


def test_position_prefix() -> None:
    assert position_prefix("PRES") == "position:PRES:"
