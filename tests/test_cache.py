"""Tests for the month query cache."""

from src.ingestion.cache import QueryCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_hit_within_ttl(schedule):
    clock = FakeClock()
    cache = QueryCache(ttl_seconds=300, clock=clock)
    flights = [schedule()]

    cache.put("ICN-CEB", 2025, 8, flights)
    clock.advance(299)

    assert cache.get("ICN-CEB", 2025, 8) == flights


def test_expired_entry_is_a_miss(schedule):
    clock = FakeClock()
    cache = QueryCache(ttl_seconds=300, clock=clock)

    cache.put("ICN-CEB", 2025, 8, [schedule()])
    clock.advance(300)

    assert cache.get("ICN-CEB", 2025, 8) is None
    assert len(cache) == 0


def test_expired_entry_is_overwritten(schedule):
    clock = FakeClock()
    cache = QueryCache(ttl_seconds=300, clock=clock)

    cache.put("ICN-CEB", 2025, 8, [])
    clock.advance(301)
    cache.put("ICN-CEB", 2025, 8, [schedule()])

    assert len(cache.get("ICN-CEB", 2025, 8)) == 1


def test_keys_are_per_route_and_month(schedule):
    cache = QueryCache(ttl_seconds=300, clock=FakeClock())
    cache.put("ICN-CEB", 2025, 8, [schedule()])

    assert cache.get("ICN-CEB", 2025, 9) is None
    assert cache.get("ICN-MNL", 2025, 8) is None


def test_invalidate():
    cache = QueryCache(ttl_seconds=300, clock=FakeClock())
    cache.put("ICN-CEB", 2025, 8, [])
    cache.put("ICN-CEB", 2025, 9, [])
    cache.put("ICN-MNL", 2025, 8, [])

    assert cache.invalidate("ICN-CEB") == 2
    assert cache.get("ICN-MNL", 2025, 8) == []
    assert cache.invalidate() == 1
    assert len(cache) == 0


def test_returned_list_is_a_copy(schedule):
    cache = QueryCache(ttl_seconds=300, clock=FakeClock())
    cache.put("ICN-CEB", 2025, 8, [schedule()])

    cache.get("ICN-CEB", 2025, 8).clear()

    assert len(cache.get("ICN-CEB", 2025, 8)) == 1
