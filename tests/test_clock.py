"""Tests for the injectable clocks."""

from datetime import date, datetime, timedelta, timezone

from orders_kernel.domain.clock import DeterministicClock, SystemClock

JST = timezone(timedelta(hours=9))


class TestDeterministicClock:

    def test_default_time(self):
        assert DeterministicClock().today() == date(2024, 1, 1)

    def test_stable_until_moved(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance_days(self):
        clock = DeterministicClock(datetime(2024, 2, 28, 6, 0, tzinfo=timezone.utc))
        clock.advance_days(2)
        assert clock.today() == date(2024, 3, 1)

    def test_set_date_keeps_timezone(self):
        clock = DeterministicClock(datetime(2024, 1, 1, 23, 0, tzinfo=JST))
        clock.set_date(date(2024, 3, 7))
        assert clock.now() == datetime(2024, 3, 7, 6, 0, tzinfo=JST)

    def test_advance_seconds_can_cross_midnight(self):
        clock = DeterministicClock(datetime(2024, 3, 1, 23, 59, 59, tzinfo=timezone.utc))
        clock.advance(1)
        assert clock.today() == date(2024, 3, 2)


class TestSystemClock:

    def test_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
        assert SystemClock(JST).now().utcoffset() == timedelta(hours=9)

    def test_today_matches_now(self):
        clock = SystemClock(JST)
        before = clock.now().date()
        assert clock.today() in (before, before + timedelta(days=1))
