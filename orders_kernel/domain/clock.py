"""
Clock -- injectable source of "today".

Services never call ``date.today()`` or ``datetime.now()`` themselves.  The
daily cycle, template creation and resume all ask a ``Clock``; production
wires ``SystemClock`` and tests pin a ``DeterministicClock``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone, tzinfo


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a ``datetime``.
        - ``today()`` returns the calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """
    Wall-clock time.

    ``tz`` selects the business timezone that decides which calendar day it
    is (a cycle at 00:30 JST is still "yesterday" in UTC).  When omitted
    the host's local timezone is used.
    """

    def __init__(self, tz: tzinfo | None = None):
        self._tz = tz

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``set_time``, ``set_date``,
    ``advance`` or ``advance_days`` moves it.
    """

    DEFAULT_TIME = datetime(2024, 1, 1, 6, 0, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or self.DEFAULT_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = moment

    def set_date(self, day: date) -> None:
        """Move to 06:00 on ``day``, keeping the timezone."""
        self._current = datetime.combine(day, time(6, 0), tzinfo=self._current.tzinfo)

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)
