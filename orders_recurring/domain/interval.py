"""
Interval calculator -- pure next-date arithmetic for recurring templates.

Contract:
    ``next_date(base, spec)`` is PURE, total and deterministic, and always
    returns a date strictly after ``base``.  Time-of-day is discarded by
    rebuilding the calendar date from year/month/day before any weekday
    or month arithmetic, so an ISO date string parsed at UTC midnight can
    never shift the computation by a day.

    ``decode_interval()`` / ``encode_interval()`` are the only place where
    the stored representation (JSON object, or a bare integer written by
    older versions) is translated to and from the typed ``IntervalSpec``.

Architecture: orders_recurring/domain.  ZERO I/O.

Variants:
    Weekly(weekday)        -- next ``weekday`` strictly after base.
    NWeekly(n, weekday)    -- anchor on the next ``weekday`` on/after base,
                              then ``n`` weeks later.
    MonthlyDay(day)        -- ``day`` (1-31, "first", "last") of the month
                              after base, clamped to the month length.
    NMonthly(n)            -- base plus ``n`` months, clamped to month end.
"""

from __future__ import annotations

import calendar
import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Literal, Union

MonthDay = Union[int, Literal["first", "last"]]


# =============================================================================
# IntervalSpec variants
# =============================================================================


@dataclass(frozen=True)
class Weekly:
    """Every week on ``weekday`` (1=Monday ... 7=Sunday)."""

    weekday: int = 1

    def __post_init__(self) -> None:
        _check_weekday(self.weekday)


@dataclass(frozen=True)
class NWeekly:
    """Every ``n`` weeks on ``weekday``."""

    n: int = 2
    weekday: int = 1

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ValueError(f"n must be >= 1, got {self.n}")
        _check_weekday(self.weekday)


@dataclass(frozen=True)
class MonthlyDay:
    """A fixed day of the following month."""

    day: MonthDay = 1

    def __post_init__(self) -> None:
        if self.day in ("first", "last"):
            return
        if isinstance(self.day, bool) or not isinstance(self.day, int):
            raise ValueError(f"day must be 1-31, 'first' or 'last', got {self.day!r}")
        if not 1 <= self.day <= 31:
            raise ValueError(f"day must be 1-31, got {self.day}")


@dataclass(frozen=True)
class NMonthly:
    """Every ``n`` months, keeping the day of month where it exists."""

    n: int = 1

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ValueError(f"n must be >= 1, got {self.n}")


IntervalSpec = Union[Weekly, NWeekly, MonthlyDay, NMonthly]

DEFAULT_INTERVAL: IntervalSpec = NMonthly(1)


def _check_weekday(weekday: int) -> None:
    if isinstance(weekday, bool) or not isinstance(weekday, int) or not 1 <= weekday <= 7:
        raise ValueError(f"weekday must be 1-7 (1=Monday), got {weekday!r}")


# =============================================================================
# Date arithmetic (pure)
# =============================================================================


def to_calendar_date(value: date | datetime) -> date:
    """Drop any time-of-day component, keeping the displayed calendar day."""
    return date(value.year, value.month, value.day)


def _last_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def add_months_clamped(base: date, months: int) -> date:
    """Add ``months`` calendar months, clamping to the target month's last day.

    2024-01-31 + 1 month -> 2024-02-29; 2023-01-31 + 1 month -> 2023-02-28.
    """
    year, month = _shift_month(base.year, base.month, months)
    return date(year, month, min(base.day, _last_day(year, month)))


def next_date(base: date | datetime, spec: Any) -> date:
    """Compute the next shipping date after ``base`` for ``spec``.

    Anything that is not a recognized ``IntervalSpec`` is treated as
    ``NMonthly(1)``, and so is a count too large for the calendar.
    """
    d = to_calendar_date(base)
    try:
        return _step(d, spec)
    except (OverflowError, ValueError):
        return add_months_clamped(d, DEFAULT_INTERVAL.n)


def _step(d: date, spec: Any) -> date:
    if isinstance(spec, Weekly):
        diff = (spec.weekday - d.isoweekday()) % 7
        return d + timedelta(days=diff or 7)

    if isinstance(spec, NWeekly):
        to_anchor = (spec.weekday - d.isoweekday()) % 7
        return d + timedelta(days=to_anchor + 7 * spec.n)

    if isinstance(spec, MonthlyDay):
        year, month = _shift_month(d.year, d.month, 1)
        last = _last_day(year, month)
        if spec.day == "first":
            day = 1
        elif spec.day == "last":
            day = last
        else:
            day = min(spec.day, last)
        return date(year, month, day)

    if isinstance(spec, NMonthly):
        return add_months_clamped(d, spec.n)

    return add_months_clamped(d, DEFAULT_INTERVAL.n)


# =============================================================================
# Storage codec (store boundary)
# =============================================================================

_NWEEK_TYPES = frozenset({"nweek", "biweekly", "triweekly"})
_NMONTH_TYPES = frozenset({"nmonth", "2month", "3month"})

# Largest stored week or month count honoured; above it the default applies.
MAX_COUNT = 1200


def _positive_int(value: Any, default: int, maximum: int = MAX_COUNT) -> int:
    """Coerce ``value`` to an int in ``1..maximum``, falling back to ``default``."""
    if isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number if 0 < number <= maximum else default


def _weekday(value: Any) -> int:
    number = _positive_int(value, 1)
    return number if number <= 7 else 1


def _from_mapping(data: dict[str, Any]) -> IntervalSpec:
    kind = str(data.get("type") or "").strip().lower()
    value = data.get("value")

    if kind == "weekly":
        return Weekly(_weekday(value))

    if kind in _NWEEK_TYPES:
        return NWeekly(_positive_int(value, 2), _weekday(data.get("weekday")))

    if kind == "monthly":
        if value in ("first", "last"):
            return MonthlyDay(value)
        return MonthlyDay(min(_positive_int(value, 1), 31))

    if kind in _NMONTH_TYPES:
        return NMonthly(_positive_int(value, 1))

    # Unknown type: numeric value is read as a month count.
    return NMonthly(_positive_int(value, 1))


def decode_interval(raw: Any) -> IntervalSpec:
    """Decode a stored interval into an ``IntervalSpec``.

    Accepts an ``IntervalSpec`` (returned as-is), a mapping, a JSON string,
    or a bare number / numeric string (legacy month count).  Never raises:
    anything unreadable becomes ``NMonthly(1)``.
    """
    if isinstance(raw, (Weekly, NWeekly, MonthlyDay, NMonthly)):
        return raw

    if isinstance(raw, dict):
        return _from_mapping(raw)

    if isinstance(raw, str):
        text = raw.strip()
        try:
            parsed = json.loads(text)
        except ValueError:
            return NMonthly(_positive_int(text, 1))
        if isinstance(parsed, dict):
            return _from_mapping(parsed)
        return NMonthly(_positive_int(parsed, 1))

    if isinstance(raw, (int, float)):
        return NMonthly(_positive_int(raw, 1))

    return DEFAULT_INTERVAL


def encode_interval(spec: IntervalSpec) -> dict[str, Any]:
    """Encode an ``IntervalSpec`` as the JSON-ready mapping stored on templates."""
    if isinstance(spec, Weekly):
        return {"type": "weekly", "value": spec.weekday}
    if isinstance(spec, NWeekly):
        return {"type": "nweek", "value": spec.n, "weekday": spec.weekday}
    if isinstance(spec, MonthlyDay):
        return {"type": "monthly", "value": spec.day}
    if isinstance(spec, NMonthly):
        return {"type": "nmonth", "value": spec.n}
    raise TypeError(f"Not an IntervalSpec: {spec!r}")
