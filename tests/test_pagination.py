"""Tests for the pagination cursor and request pacing."""

import asyncio

import pytest

from shiori.services.pacing import PacingPolicy
from shiori.services.pagination import PaginationCursor


class TestPaginationCursor:
    """Fetch page N, stop when a page returns zero items."""

    def test_starts_on_first_page(self):
        cursor = PaginationCursor(target="query")
        assert cursor.page == 1
        assert cursor.has_more is True
        assert cursor.should_fetch_next() is True

    def test_advance_increments_by_exactly_one(self):
        cursor = PaginationCursor(target="query")
        cursor.advance(1)
        assert cursor.page == 2
        cursor.advance(500)
        assert cursor.page == 3
        assert cursor.has_more is True

    def test_empty_page_stops_without_incrementing(self):
        cursor = PaginationCursor(target="query")
        cursor.advance(20)
        cursor.advance(0)
        assert cursor.page == 2
        assert cursor.has_more is False

        cursor.advance(0)
        assert cursor.page == 2
        assert cursor.has_more is False
        assert cursor.should_fetch_next() is False

    def test_in_flight_blocks_fetch(self):
        cursor = PaginationCursor(target="query")
        assert cursor.should_fetch_next(in_flight=True) is False

    def test_reset(self):
        cursor = PaginationCursor(target="query")
        cursor.advance(10)
        cursor.advance(0)
        cursor.reset()
        assert cursor.page == 1
        assert cursor.has_more is True


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestPacingPolicy:
    """Minimum interval between page requests."""

    def test_first_call_never_sleeps(self):
        clock = FakeClock()
        pacing = PacingPolicy(0.5, sleep=clock.sleep, clock=clock)

        assert asyncio.run(pacing.wait()) == 0.0
        assert clock.sleeps == []

    def test_sleeps_for_remaining_interval(self):
        clock = FakeClock()
        pacing = PacingPolicy(0.5, sleep=clock.sleep, clock=clock)

        async def two_requests():
            await pacing.wait()
            clock.now += 0.2
            await pacing.wait()

        asyncio.run(two_requests())
        assert clock.sleeps == [pytest.approx(0.3)]

    def test_no_sleep_when_interval_already_elapsed(self):
        clock = FakeClock()
        pacing = PacingPolicy(0.5, sleep=clock.sleep, clock=clock)

        async def slow_requests():
            await pacing.wait()
            clock.now += 2.0
            await pacing.wait()

        asyncio.run(slow_requests())
        assert clock.sleeps == []

    def test_disabled_policy(self):
        clock = FakeClock()
        pacing = PacingPolicy(0, sleep=clock.sleep, clock=clock)

        async def burst():
            for _ in range(5):
                await pacing.wait()

        asyncio.run(burst())
        assert pacing.enabled is False
        assert clock.sleeps == []

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            PacingPolicy(-1)
