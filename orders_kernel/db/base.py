"""
Declarative base for the recurring order tables.

Every model module imports ``Base`` or ``TrackedBase`` from here; this module
imports nothing from ``orders_recurring`` or ``orders_config``.

Column conventions carried by the annotation map:
    - ``Decimal`` is ``Numeric(18, 2)``; prices and line totals never touch
      float.
    - ``date`` is ``Date``; the engine works in whole calendar days.
    - ``UUID`` is stored as ``String(36)`` so SQLite and PostgreSQL agree.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID on the Python side, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Root of all models; contributes a uuid4 primary key named ``id``."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 2),
        date: Date(),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base with audit columns.

    ``created_at`` / ``updated_at`` are filled by the database.
    ``created_by_id`` is required on every insert; ``updated_by_id`` is set by
    the store on edits and state transitions.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by_id: Mapped[UUID] = mapped_column(nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
