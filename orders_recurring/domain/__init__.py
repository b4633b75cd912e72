"""
orders_recurring.domain -- Pure types and value objects for recurring orders.

ZERO I/O.  All types are frozen dataclasses; all functions are pure.
"""

from orders_recurring.domain.interval import (
    IntervalSpec,
    MonthlyDay,
    NMonthly,
    NWeekly,
    Weekly,
    add_months_clamped,
    decode_interval,
    encode_interval,
    next_date,
)
from orders_recurring.domain.schedule import (
    ExecutionWindow,
    advance_dates,
    resume_dates,
    should_fire,
)
from orders_recurring.domain.types import (
    CarrierCode,
    CarrierExportRow,
    Checklist,
    DailyCycleResult,
    DocumentKind,
    LedgerRow,
    MaterializedOrder,
    Party,
    RecurringTemplate,
    ShippingInstructions,
    SideEffectOutcome,
    SideEffectStatus,
    TemplateDraft,
    TemplateFilter,
    TemplateLine,
    TemplateRunOutcome,
    TemplateRunStatus,
    TemplateStatus,
    TemplateSummary,
)

__all__ = [
    "CarrierCode",
    "CarrierExportRow",
    "Checklist",
    "DailyCycleResult",
    "DocumentKind",
    "ExecutionWindow",
    "IntervalSpec",
    "LedgerRow",
    "MaterializedOrder",
    "MonthlyDay",
    "NMonthly",
    "NWeekly",
    "Party",
    "RecurringTemplate",
    "ShippingInstructions",
    "SideEffectOutcome",
    "SideEffectStatus",
    "TemplateDraft",
    "TemplateFilter",
    "TemplateLine",
    "TemplateRunOutcome",
    "TemplateRunStatus",
    "TemplateStatus",
    "TemplateSummary",
    "Weekly",
    "add_months_clamped",
    "advance_dates",
    "decode_interval",
    "encode_interval",
    "next_date",
    "resume_dates",
    "should_fire",
]
