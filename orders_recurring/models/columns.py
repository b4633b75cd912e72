"""
Shared order metadata columns.

Templates and ledger rows carry the same customer / ship-to / ship-from /
shipping / checklist block.  ``OrderMetadataColumns`` declares it once and
``metadata_fields()`` / ``write_metadata()`` convert it to and from the
domain value objects.

Postal codes and phone numbers are ``String`` columns: the values are
never coerced to numbers, so leading zeros survive a round trip.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from orders_recurring.domain.types import Checklist, Party, ShippingInstructions


class OrderMetadataColumns:
    """Declarative mixin with the metadata copied onto every order."""

    customer_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    customer_postal_code: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    customer_address: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)

    ship_to_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    ship_to_postal_code: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    ship_to_address: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    ship_to_phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)

    ship_from_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    ship_from_postal_code: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    ship_from_address: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    ship_from_phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)

    receipt_way: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    receptionist: Mapped[str] = mapped_column(String(100), default="", nullable=False)

    delivery_method: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    delivery_time: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    goods_description: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    invoice_type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    cool_class: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    cargo_1: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    cargo_2: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    cargo_3: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    cod_total: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    cod_tax: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    copies: Mapped[str] = mapped_column(String(10), default="", nullable=False)
    slip_memo: Mapped[str] = mapped_column(Text, default="", nullable=False)

    wants_delivery_note: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    wants_invoice: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    wants_receipt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    wants_pamphlet: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    wants_recipe: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    other_attachments: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    internal_memo: Mapped[str] = mapped_column(Text, default="", nullable=False)
    delivery_note_memo: Mapped[str] = mapped_column(Text, default="", nullable=False)
    memo: Mapped[str] = mapped_column(Text, default="", nullable=False)
    delivery_note_text: Mapped[str] = mapped_column(Text, default="", nullable=False)


def _party(model: Any, prefix: str) -> Party:
    return Party(
        name=getattr(model, f"{prefix}_name") or "",
        postal_code=getattr(model, f"{prefix}_postal_code") or "",
        address=getattr(model, f"{prefix}_address") or "",
        phone=getattr(model, f"{prefix}_phone") or "",
    )


def _write_party(model: Any, prefix: str, party: Party) -> None:
    setattr(model, f"{prefix}_name", party.name)
    setattr(model, f"{prefix}_postal_code", str(party.postal_code))
    setattr(model, f"{prefix}_address", party.address)
    setattr(model, f"{prefix}_phone", str(party.phone))


def metadata_fields(model: Any) -> dict[str, Any]:
    """Read the metadata block as keyword arguments for a domain DTO."""
    cargo = (model.cargo_1 or "", model.cargo_2 or "", model.cargo_3 or "")
    return {
        "customer": _party(model, "customer"),
        "ship_to": _party(model, "ship_to"),
        "ship_from": _party(model, "ship_from"),
        "shipping": ShippingInstructions(
            delivery_method=model.delivery_method or "",
            delivery_time=model.delivery_time or "",
            goods_description=model.goods_description or "",
            invoice_type=model.invoice_type or "",
            cool_class=model.cool_class or "",
            cargo_handling=cargo,
            cod_total=model.cod_total or "",
            cod_tax=model.cod_tax or "",
            copies=model.copies or "",
            slip_memo=model.slip_memo or "",
        ),
        "checklist": Checklist(
            delivery_note=bool(model.wants_delivery_note),
            invoice=bool(model.wants_invoice),
            receipt=bool(model.wants_receipt),
            pamphlet=bool(model.wants_pamphlet),
            recipe=bool(model.wants_recipe),
        ),
        "receipt_way": model.receipt_way or "",
        "receptionist": model.receptionist or "",
        "other_attachments": model.other_attachments or "",
        "internal_memo": model.internal_memo or "",
        "delivery_note_memo": model.delivery_note_memo or "",
        "memo": model.memo or "",
        "delivery_note_text": model.delivery_note_text or "",
    }


def write_metadata(model: Any, source: Any) -> None:
    """Copy the metadata block of a domain object onto ``model``."""
    _write_party(model, "customer", source.customer)
    _write_party(model, "ship_to", source.ship_to)
    _write_party(model, "ship_from", source.ship_from)

    shipping: ShippingInstructions = source.shipping
    cargo = tuple(shipping.cargo_handling) + ("", "", "")
    model.delivery_method = shipping.delivery_method
    model.delivery_time = shipping.delivery_time
    model.goods_description = shipping.goods_description
    model.invoice_type = shipping.invoice_type
    model.cool_class = shipping.cool_class
    model.cargo_1, model.cargo_2, model.cargo_3 = cargo[:3]
    model.cod_total = str(shipping.cod_total)
    model.cod_tax = str(shipping.cod_tax)
    model.copies = str(shipping.copies)
    model.slip_memo = shipping.slip_memo

    checklist: Checklist = source.checklist
    model.wants_delivery_note = checklist.delivery_note
    model.wants_invoice = checklist.invoice
    model.wants_receipt = checklist.receipt
    model.wants_pamphlet = checklist.pamphlet
    model.wants_recipe = checklist.recipe

    model.receipt_way = source.receipt_way
    model.receptionist = source.receptionist
    model.other_attachments = source.other_attachments
    model.internal_memo = source.internal_memo
    model.delivery_note_memo = source.delivery_note_memo
    model.memo = source.memo
    model.delivery_note_text = source.delivery_note_text
