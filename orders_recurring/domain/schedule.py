"""
Pure evaluation of the daily execution window and date advancement.

Contract:
    ``evaluate()``, ``should_fire()``, ``advance_dates()`` and
    ``resume_dates()`` are PURE -- no I/O, no clock.  "Today" always comes
    from the caller.

Architecture: orders_recurring/domain.  ZERO I/O.

Window rule:
    A template fires when its next shipping date is between
    ``min_days`` and ``max_days`` (inclusive) days after today.  With the
    default 6-7 window an order is created a week ahead of shipping and one
    missed trigger day is tolerated.  Under a daily trigger each cycle lands
    in exactly one run, because the next run sees the advanced date.

    A template that keeps failing drifts out of the window and is not
    retried automatically.  The scheduler reports ``retry_possible`` on each
    failure so operators can tell when that is about to happen.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from orders_recurring.domain.interval import IntervalSpec, next_date
from orders_recurring.domain.types import (
    RecurringTemplate,
    TemplateRunStatus,
    TemplateStatus,
)


@dataclass(frozen=True)
class ExecutionWindow:
    """Inclusive range of days-before-shipping in which a template fires."""

    min_days: int = 6
    max_days: int = 7

    def __post_init__(self) -> None:
        if self.min_days > self.max_days:
            raise ValueError(
                f"min_days ({self.min_days}) > max_days ({self.max_days})"
            )

    def contains(self, diff_days: int) -> bool:
        return self.min_days <= diff_days <= self.max_days


DEFAULT_WINDOW = ExecutionWindow()


def days_until(target: date, today: date) -> int:
    """Whole calendar days from ``today`` to ``target`` (negative if past)."""
    return (target - today).days


def evaluate(
    template: RecurringTemplate,
    today: date,
    window: ExecutionWindow = DEFAULT_WINDOW,
) -> TemplateRunStatus | None:
    """Decide whether ``template`` fires today.

    Returns None when the template should be executed, otherwise the skip
    reason.  Only active templates are expected here; anything else is
    reported as out of window.
    """
    if template.status != TemplateStatus.ACTIVE:
        return TemplateRunStatus.OUT_OF_WINDOW

    if template.last_executed_date == today:
        return TemplateRunStatus.ALREADY_EXECUTED

    if not window.contains(days_until(template.next_shipping_date, today)):
        return TemplateRunStatus.OUT_OF_WINDOW

    return None


def should_fire(
    template: RecurringTemplate,
    today: date,
    window: ExecutionWindow = DEFAULT_WINDOW,
) -> bool:
    """True when ``template`` must be materialized in today's run."""
    return evaluate(template, today, window) is None


def apply_lead_offset(shipping_date: date, lead_offset_days: int) -> date:
    """Delivery date that keeps ``lead_offset_days`` after ``shipping_date``."""
    return shipping_date + timedelta(days=lead_offset_days)


def advance_dates(template: RecurringTemplate) -> tuple[date, date]:
    """Next cycle's (shipping, delivery) after a successful execution.

    Advances from the template's current next shipping date, never from
    today, so a cycle's calendar does not slide with trigger drift.
    """
    shipping = next_date(template.next_shipping_date, template.interval)
    return shipping, apply_lead_offset(shipping, template.lead_offset_days)


def resume_dates(template: RecurringTemplate, today: date) -> tuple[date, date]:
    """(shipping, delivery) for a template resumed on ``today``.

    The stale stored shipping date is ignored; only its lead offset survives.
    """
    shipping = next_date(today, template.interval)
    return shipping, apply_lead_offset(shipping, template.lead_offset_days)


def initial_dates(
    interval: IntervalSpec,
    first_shipping_date: date,
    first_delivery_date: date,
) -> tuple[date, date]:
    """(shipping, delivery) of a new template's first automatic cycle."""
    shipping = next_date(first_shipping_date, interval)
    offset = (first_delivery_date - first_shipping_date).days
    return shipping, apply_lead_offset(shipping, offset)
