"""
ORM models for materialized orders.

Contract:
    ``LedgerRowModel`` is one concrete order line (one row per template
    line, all rows of one execution share ``order_id``).
    ``CarrierExportAModel`` / ``CarrierExportBModel`` hold exactly one row
    per exported order in the carrier's fixed column layout; the column
    order is kept alongside the values so a CSV can be rebuilt verbatim.

Architecture: orders_recurring/models. Imports from orders_kernel.db.base only
(plus the pure domain package).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from orders_kernel.db.base import TrackedBase, UUIDString
from orders_recurring.models.columns import (
    OrderMetadataColumns,
    metadata_fields,
    write_metadata,
)

if TYPE_CHECKING:
    from orders_recurring.domain.types import CarrierExportRow, LedgerRow


class LedgerRowModel(OrderMetadataColumns, TrackedBase):
    """Persistent order line produced by a template execution."""

    __tablename__ = "ledger"

    __table_args__ = (
        Index("ix_ledger_order_id", "order_id"),
        Index("ix_ledger_template_id", "template_id"),
        Index("ix_ledger_order_date", "order_date"),
    )

    order_id: Mapped[str] = mapped_column(String(32), nullable=False)
    template_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    line_index: Mapped[int] = mapped_column(Integer, nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    shipping_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self) -> LedgerRow:
        from orders_recurring.domain.types import LedgerRow

        return LedgerRow(
            order_id=self.order_id,
            template_id=self.template_id,
            line_index=self.line_index,
            order_date=self.order_date,
            shipping_date=self.shipping_date,
            delivery_date=self.delivery_date,
            category=self.category,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=Decimal(self.unit_price),
            line_total=Decimal(self.line_total),
            **metadata_fields(self),
        )

    @classmethod
    def from_dto(cls, dto: LedgerRow, created_by_id: UUID) -> LedgerRowModel:
        model = cls(
            order_id=dto.order_id,
            template_id=dto.template_id,
            line_index=dto.line_index,
            order_date=dto.order_date,
            shipping_date=dto.shipping_date,
            delivery_date=dto.delivery_date,
            category=dto.category,
            product_name=dto.product_name,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            line_total=dto.line_total,
            created_by_id=created_by_id,
        )
        write_metadata(model, dto)
        return model


class _CarrierExportColumns:
    order_id: Mapped[str] = mapped_column(String(32), nullable=False)
    template_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    columns: Mapped[list] = mapped_column(JSON, nullable=False)
    row_data: Mapped[dict] = mapped_column(JSON, nullable=False)

    def to_dto(self) -> CarrierExportRow:
        from orders_recurring.domain.types import CarrierExportRow, CarrierCode

        return CarrierExportRow(
            carrier=CarrierCode(self.carrier_code),
            order_id=self.order_id,
            columns=tuple(self.columns),
            values=dict(self.row_data),
        )

    def as_list(self) -> list[str]:
        return [self.row_data.get(name, "") for name in self.columns]


class CarrierExportAModel(_CarrierExportColumns, TrackedBase):
    """Carrier A shipment row (52 columns)."""

    __tablename__ = "carrier_export_a"
    __table_args__ = (Index("ix_carrier_export_a_order_id", "order_id"),)

    carrier_code = "carrier_a"


class CarrierExportBModel(_CarrierExportColumns, TrackedBase):
    """Carrier B shipment row (76 columns)."""

    __tablename__ = "carrier_export_b"
    __table_args__ = (Index("ix_carrier_export_b_order_id", "order_id"),)

    carrier_code = "carrier_b"
