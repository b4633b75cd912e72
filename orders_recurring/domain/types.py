"""
orders_recurring.domain.types -- Pure frozen dataclasses for recurring orders.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - Every ``TemplateLine`` has quantity > 0.
    - ``RecurringTemplate.lead_offset_days`` is derived, never stored: it is
      whatever gap the two next-dates carry, and every recomputation
      re-applies it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from orders_recurring.domain.interval import IntervalSpec


# =============================================================================
# Status enums
# =============================================================================


class TemplateStatus(str, Enum):
    """Template lifecycle status."""

    ACTIVE = "active"  # Eligible for the daily cycle
    PAUSED = "paused"  # Kept, not executed; resume recomputes from today
    CANCELLED = "cancelled"  # Terminal, retained for audit


class DocumentKind(str, Enum):
    """Documents the renderer can be asked for after materialization."""

    DELIVERY_NOTE = "delivery_note"
    RECEIPT = "receipt"


class CarrierCode(str, Enum):
    """Carriers with a dedicated export layout."""

    CARRIER_A = "carrier_a"
    CARRIER_B = "carrier_b"


class SideEffectStatus(str, Enum):
    """Outcome of one non-transactional materialization side effect."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TemplateRunStatus(str, Enum):
    """Per-template outcome of one daily cycle."""

    EXECUTED = "executed"
    OUT_OF_WINDOW = "out_of_window"
    ALREADY_EXECUTED = "already_executed"  # last_executed_date == run date
    FAILED = "failed"


# =============================================================================
# Template value objects
# =============================================================================


@dataclass(frozen=True)
class Party:
    """A name/address block (customer, ship-to or ship-from).

    Postal codes and phone numbers are text: leading zeros are significant.
    """

    name: str = ""
    postal_code: str = ""
    address: str = ""
    phone: str = ""


@dataclass(frozen=True)
class Checklist:
    """Documents to enclose with each materialized order."""

    delivery_note: bool = False
    invoice: bool = False
    receipt: bool = False
    pamphlet: bool = False
    recipe: bool = False

    def requested_documents(self) -> tuple[DocumentKind, ...]:
        """Documents the renderer must produce, in rendering order."""
        kinds: list[DocumentKind] = []
        if self.delivery_note:
            kinds.append(DocumentKind.DELIVERY_NOTE)
        if self.receipt:
            kinds.append(DocumentKind.RECEIPT)
        return tuple(kinds)


@dataclass(frozen=True)
class ShippingInstructions:
    """Carrier-facing details copied onto every order and export row.

    Coded fields (``delivery_time``, ``invoice_type``, ``cool_class``,
    ``cargo_handling``) hold display labels; carrier formatters translate
    them to codes through the master data lookup.
    """

    delivery_method: str = ""
    delivery_time: str = ""
    goods_description: str = ""
    invoice_type: str = ""
    cool_class: str = ""
    cargo_handling: tuple[str, ...] = ("", "", "")
    cod_total: str = ""
    cod_tax: str = ""
    copies: str = ""
    slip_memo: str = ""


@dataclass(frozen=True)
class TemplateLine:
    """One product line of a standing order."""

    category: str
    product_name: str
    unit_price: Decimal
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"quantity must be > 0, got {self.quantity}")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class RecurringTemplate:
    """Immutable snapshot of one standing order definition."""

    template_id: UUID
    interval: IntervalSpec
    next_shipping_date: date
    next_delivery_date: date
    status: TemplateStatus
    lines: tuple[TemplateLine, ...]
    customer: Party = field(default_factory=Party)
    ship_to: Party = field(default_factory=Party)
    ship_from: Party = field(default_factory=Party)
    shipping: ShippingInstructions = field(default_factory=ShippingInstructions)
    checklist: Checklist = field(default_factory=Checklist)
    receipt_way: str = ""
    receptionist: str = ""
    other_attachments: str = ""
    internal_memo: str = ""
    delivery_note_memo: str = ""
    memo: str = ""
    delivery_note_text: str = ""
    registered_date: date | None = None
    last_executed_date: date | None = None

    @property
    def lead_offset_days(self) -> int:
        return (self.next_delivery_date - self.next_shipping_date).days

    @property
    def is_executable(self) -> bool:
        return bool(self.lines)


@dataclass
class TemplateDraft:
    """Parameters for creating a template.

    ``first_shipping_date`` / ``first_delivery_date`` describe the order the
    customer just placed; the template's first cycle is one interval later
    and keeps the same shipping-to-delivery gap.
    """

    interval: IntervalSpec
    first_shipping_date: date
    first_delivery_date: date
    lines: list[TemplateLine]
    customer: Party = field(default_factory=Party)
    ship_to: Party = field(default_factory=Party)
    ship_from: Party = field(default_factory=Party)
    shipping: ShippingInstructions = field(default_factory=ShippingInstructions)
    checklist: Checklist = field(default_factory=Checklist)
    receipt_way: str = ""
    receptionist: str = ""
    other_attachments: str = ""
    internal_memo: str = ""
    delivery_note_memo: str = ""
    memo: str = ""
    delivery_note_text: str = ""


@dataclass(frozen=True)
class TemplateFilter:
    """Filter for ``RecurringTemplateStore.list()``."""

    status: TemplateStatus | None = None
    customer_name_contains: str | None = None


@dataclass(frozen=True)
class TemplateSummary:
    """List-view projection of a template."""

    template_id: UUID
    status: TemplateStatus
    customer_name: str
    ship_to_name: str
    delivery_method: str
    next_shipping_date: date
    next_delivery_date: date
    last_executed_date: date | None
    product_summary: str  # "name xqty, name xqty"
    total_amount: Decimal


# =============================================================================
# Materialization DTOs
# =============================================================================


@dataclass(frozen=True)
class LedgerRow:
    """One concrete order line written to the ledger."""

    order_id: str
    template_id: UUID
    line_index: int
    order_date: date
    shipping_date: date
    delivery_date: date
    customer: Party
    ship_to: Party
    ship_from: Party
    shipping: ShippingInstructions
    checklist: Checklist
    receipt_way: str
    receptionist: str
    other_attachments: str
    internal_memo: str
    delivery_note_memo: str
    memo: str
    delivery_note_text: str
    category: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class CarrierExportRow:
    """One denormalized row in a carrier's fixed column layout."""

    carrier: CarrierCode
    order_id: str
    columns: tuple[str, ...]
    values: dict[str, str]

    def as_list(self) -> list[str]:
        """Values in column order, ready for a CSV writer."""
        return [self.values.get(name, "") for name in self.columns]


@dataclass(frozen=True)
class SideEffectOutcome:
    """Result of one side effect (carrier export or a document render)."""

    name: str  # "carrier_a", "delivery_note", ...
    status: SideEffectStatus
    error_code: str | None = None
    error_message: str | None = None
    artifact: Any = None


@dataclass(frozen=True)
class MaterializedOrder:
    """Ledger rows produced by one execution of one template."""

    order_id: str
    template_id: UUID
    order_date: date
    rows: tuple[LedgerRow, ...]
    carrier_export: SideEffectOutcome | None = None
    documents: tuple[SideEffectOutcome, ...] = ()

    @property
    def total_amount(self) -> Decimal:
        return sum((row.line_total for row in self.rows), Decimal("0"))


# =============================================================================
# Daily cycle DTOs
# =============================================================================


@dataclass(frozen=True)
class TemplateRunOutcome:
    """What the daily cycle did with one active template.

    ``diff_days`` is None when the stored row could not be loaded.
    """

    template_id: UUID
    status: TemplateRunStatus
    diff_days: int | None
    order_id: str | None = None
    next_shipping_date: date | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class DailyCycleResult:
    """Immutable result of ``RecurringOrderScheduler.run_daily_cycle()``."""

    run_date: date
    total_active: int
    executed: int
    failed: int
    skipped: int
    outcomes: tuple[TemplateRunOutcome, ...] = ()
    duration_ms: int = 0
