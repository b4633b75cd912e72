"""
ORM model for carrier master code tables.

Each row maps a display label to a carrier code.  ``type_value`` holds
``"code:label"`` (the code may be empty, e.g. ``":指定なし"``); ``name``
is the display name.  ``carrier`` scopes a row to one carrier and is
NULL for rows shared by every carrier.
"""

from __future__ import annotations

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from orders_kernel.db.base import Base


class MasterCodeModel(Base):
    """One entry of a master code table (invoice type, cool class, ...)."""

    __tablename__ = "master_codes"

    __table_args__ = (
        Index("ix_master_codes_table_carrier", "table_name", "carrier"),
    )

    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    carrier: Mapped[str | None] = mapped_column(String(50), nullable=True)
    type_value: Mapped[str] = mapped_column(String(200), nullable=False)
    name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def as_row(self) -> dict[str, str]:
        return {
            "carrier": self.carrier or "",
            "type_value": self.type_value,
            "name": self.name,
        }
