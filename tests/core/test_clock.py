"""
Tests for the clock abstraction.
"""

from datetime import datetime, timedelta, timezone

from core.clock import MockClock, SystemClock, ensure_utc


class TestMockClock:

    def test_time_only_moves_on_advance(self):
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)
        clock = MockClock(start)

        assert clock.now() == start
        clock.advance(seconds=30)
        assert clock.now() == start + timedelta(seconds=30)
        clock.advance(minutes=2)
        assert clock.now() == start + timedelta(seconds=150)

    def test_ago(self):
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)
        clock = MockClock(start)
        assert clock.ago(60) == start - timedelta(minutes=1)

    def test_naive_initial_time_is_utc(self):
        clock = MockClock(datetime(2025, 1, 1))
        assert clock.now().tzinfo == timezone.utc


class TestSystemClock:

    def test_now_is_aware_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)


def test_ensure_utc_converts_offsets():
    value = datetime(2025, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_utc(value) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert ensure_utc(value).tzinfo == timezone.utc
