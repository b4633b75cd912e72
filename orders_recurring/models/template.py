"""
ORM model for recurring order templates.

Contract:
    ``RecurringTemplateModel`` persists one standing order definition and
    round-trips through ``to_dto()`` / ``from_dto()``.  The interval and
    the line set are JSON columns; ``decode_interval()`` runs on every
    read, so rows written by older versions (bare month counts) load as
    ``NMonthly``.

Architecture: orders_recurring/models. Imports from orders_kernel.db.base only
(plus the pure domain package).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from orders_kernel.db.base import TrackedBase
from orders_recurring.models.columns import (
    OrderMetadataColumns,
    metadata_fields,
    write_metadata,
)

if TYPE_CHECKING:
    from orders_recurring.domain.types import RecurringTemplate, TemplateLine


def encode_lines(lines: tuple[TemplateLine, ...] | list[TemplateLine]) -> list[dict[str, Any]]:
    """Line set as a JSON-ready list.  Prices are stored as strings."""
    return [
        {
            "category": line.category,
            "product_name": line.product_name,
            "unit_price": str(line.unit_price),
            "quantity": line.quantity,
        }
        for line in lines
    ]


def decode_lines(raw: list[dict[str, Any]] | None) -> tuple[TemplateLine, ...]:
    from orders_recurring.domain.types import TemplateLine

    return tuple(
        TemplateLine(
            category=item.get("category") or "",
            product_name=item.get("product_name") or "",
            unit_price=Decimal(str(item.get("unit_price") or "0")),
            quantity=int(item["quantity"]),
        )
        for item in (raw or [])
    )


class RecurringTemplateModel(OrderMetadataColumns, TrackedBase):
    """Persistent standing order definition."""

    __tablename__ = "recurring_templates"

    __table_args__ = (
        Index("ix_recurring_templates_status", "status"),
        Index("ix_recurring_templates_next_shipping", "next_shipping_date"),
    )

    interval: Mapped[Any] = mapped_column(JSON, nullable=False)
    next_shipping_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    lines: Mapped[list] = mapped_column(JSON, nullable=False)
    registered_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_executed_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> RecurringTemplate:
        from orders_recurring.domain.interval import decode_interval
        from orders_recurring.domain.types import RecurringTemplate, TemplateStatus

        return RecurringTemplate(
            template_id=self.id,
            interval=decode_interval(self.interval),
            next_shipping_date=self.next_shipping_date,
            next_delivery_date=self.next_delivery_date,
            status=TemplateStatus(self.status),
            lines=decode_lines(self.lines),
            registered_date=self.registered_date,
            last_executed_date=self.last_executed_date,
            **metadata_fields(self),
        )

    def apply_dto(self, dto: RecurringTemplate) -> None:
        """Overwrite every mutable column from ``dto``."""
        from orders_recurring.domain.interval import encode_interval

        self.interval = encode_interval(dto.interval)
        self.next_shipping_date = dto.next_shipping_date
        self.next_delivery_date = dto.next_delivery_date
        self.status = dto.status.value
        self.lines = encode_lines(dto.lines)
        self.registered_date = dto.registered_date
        self.last_executed_date = dto.last_executed_date
        write_metadata(self, dto)

    @classmethod
    def from_dto(cls, dto: RecurringTemplate, created_by_id: UUID) -> RecurringTemplateModel:
        model = cls(id=dto.template_id, created_by_id=created_by_id)
        model.apply_dto(dto)
        return model
