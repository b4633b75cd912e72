"""
RecurringTemplateStore -- lifecycle and persistence of standing orders.

Contract:
    CRUD plus the state machine over ``recurring_templates``:

        active --pause--> paused --resume--> active
        active/paused --cancel--> cancelled (terminal)

    All reads return frozen ``RecurringTemplate`` DTOs; the interval is
    decoded at this boundary and never leaves it untyped.

Architecture: orders_recurring/services.  Imports from orders_recurring.domain,
    orders_recurring.models and the kernel.

Invariants enforced:
    - A stored template always has at least one line, every line with
      quantity > 0.
    - ``next_delivery_date - next_shipping_date`` (the lead offset) is
      re-applied by every recomputation (create, resume, execution).
    - Cancelled is terminal: no transition or edit leaves it.
    - ``template_id``, ``status``, ``last_executed_date`` and
      ``registered_date`` are not editable through ``update()``.
    - All dates from the injected Clock.

Non-goals:
    - Does NOT call ``session.commit()`` -- caller controls boundaries.
    - No row locking: a single writer per run is assumed.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from orders_kernel.domain.clock import Clock, SystemClock
from orders_kernel.exceptions import (
    CorruptTemplateError,
    EmptyLineSetError,
    ImmutableFieldError,
    InvalidStateTransitionError,
    InvalidTemplateLineError,
    TemplateCancelledError,
    TemplateNotFoundError,
)
from orders_kernel.logging_config import get_logger
from orders_recurring.domain.interval import IntervalSpec, decode_interval
from orders_recurring.domain.schedule import initial_dates, resume_dates
from orders_recurring.domain.types import (
    RecurringTemplate,
    TemplateDraft,
    TemplateFilter,
    TemplateLine,
    TemplateStatus,
    TemplateSummary,
)
from orders_recurring.models.template import RecurringTemplateModel

logger = get_logger("recurring.store")

_IMMUTABLE_FIELDS = frozenset(
    {"template_id", "status", "last_executed_date", "registered_date"}
)
_TEMPLATE_FIELDS = frozenset(f.name for f in dataclasses.fields(RecurringTemplate))


def _number(value: Any, index: int, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidTemplateLineError(index, field, value)
    if value is None or value == "":
        return Decimal("0")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidTemplateLineError(index, field, value) from None
    if not number.is_finite():
        raise InvalidTemplateLineError(index, field, value)
    return number


def normalize_lines(raw: Iterable[TemplateLine | Mapping[str, Any]]) -> tuple[TemplateLine, ...]:
    """Coerce a submitted line set, dropping lines with quantity <= 0.

    Quantities must be whole numbers (``"2"`` and ``2.0`` are accepted);
    a fractional or non-numeric quantity or price raises
    ``InvalidTemplateLineError`` naming the line.
    """
    lines: list[TemplateLine] = []
    for index, item in enumerate(raw):
        if isinstance(item, TemplateLine):
            lines.append(item)
            continue
        quantity = _number(item.get("quantity"), index, "quantity")
        if quantity != quantity.to_integral_value():
            raise InvalidTemplateLineError(index, "quantity", item.get("quantity"))
        if quantity <= 0:
            continue
        lines.append(
            TemplateLine(
                category=str(item.get("category") or ""),
                product_name=str(item.get("product_name") or ""),
                unit_price=_number(item.get("unit_price"), index, "unit_price"),
                quantity=int(quantity),
            )
        )
    return tuple(lines)


def _decode(model: RecurringTemplateModel) -> RecurringTemplate:
    try:
        return model.to_dto()
    except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as exc:
        raise CorruptTemplateError(str(model.id), str(exc) or type(exc).__name__) from exc


def summarize(template: RecurringTemplate) -> TemplateSummary:
    """List-view projection: ``"name xqty, ..."`` and the order total."""
    product_summary = ", ".join(
        f"{line.product_name} x{line.quantity}" for line in template.lines
    )
    total = sum((line.line_total for line in template.lines), Decimal("0"))
    return TemplateSummary(
        template_id=template.template_id,
        status=template.status,
        customer_name=template.customer.name,
        ship_to_name=template.ship_to.name,
        delivery_method=template.shipping.delivery_method,
        next_shipping_date=template.next_shipping_date,
        next_delivery_date=template.next_delivery_date,
        last_executed_date=template.last_executed_date,
        product_summary=product_summary,
        total_amount=total,
    )


class RecurringTemplateStore:
    """Persistence and state machine for recurring templates.

    Contract:
        - ``create()`` validates lines and computes the first cycle.
        - ``pause()`` / ``resume()`` / ``cancel()`` drive the state machine.
        - ``change_interval()`` / ``update()`` edit a non-cancelled template.
        - ``list_active_ids()`` / ``get_by_id()`` / ``record_execution()``
          serve the scheduler.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or uuid4()

    # -------------------------------------------------------------------------
    # Create / read
    # -------------------------------------------------------------------------

    def create(self, draft: TemplateDraft) -> UUID:
        """Persist a new active template and return its id.

        Raises:
            EmptyLineSetError: If no line with quantity > 0 remains.
        """
        lines = normalize_lines(draft.lines)
        if not lines:
            raise EmptyLineSetError()

        interval = decode_interval(draft.interval)
        next_shipping, next_delivery = initial_dates(
            interval, draft.first_shipping_date, draft.first_delivery_date,
        )

        template_id = uuid4()
        dto = RecurringTemplate(
            template_id=template_id,
            interval=interval,
            next_shipping_date=next_shipping,
            next_delivery_date=next_delivery,
            status=TemplateStatus.ACTIVE,
            lines=lines,
            customer=draft.customer,
            ship_to=draft.ship_to,
            ship_from=draft.ship_from,
            shipping=draft.shipping,
            checklist=draft.checklist,
            receipt_way=draft.receipt_way,
            receptionist=draft.receptionist,
            other_attachments=draft.other_attachments,
            internal_memo=draft.internal_memo,
            delivery_note_memo=draft.delivery_note_memo,
            memo=draft.memo,
            delivery_note_text=draft.delivery_note_text,
            registered_date=self._clock.today(),
            last_executed_date=None,
        )

        self._session.add(RecurringTemplateModel.from_dto(dto, created_by_id=self._actor_id))
        self._session.flush()

        logger.info(
            "template_created",
            extra={
                "template_id": str(template_id),
                "next_shipping_date": next_shipping,
                "next_delivery_date": next_delivery,
                "line_count": len(lines),
            },
        )
        return template_id

    def get_by_id(self, template_id: UUID) -> RecurringTemplate:
        """Raises TemplateNotFoundError if the id is unknown."""
        return _decode(self._get_model(template_id))

    def list(self, template_filter: TemplateFilter | None = None) -> list[RecurringTemplate]:
        """Templates matching ``template_filter``, oldest first."""
        stmt = select(RecurringTemplateModel)
        if template_filter is not None:
            if template_filter.status is not None:
                stmt = stmt.where(RecurringTemplateModel.status == template_filter.status.value)
            if template_filter.customer_name_contains:
                stmt = stmt.where(
                    RecurringTemplateModel.customer_name.contains(
                        template_filter.customer_name_contains, autoescape=True,
                    )
                )
        stmt = stmt.order_by(RecurringTemplateModel.created_at, RecurringTemplateModel.id)
        return [_decode(m) for m in self._session.execute(stmt).scalars().all()]

    def list_active(self) -> list[RecurringTemplate]:
        """Active templates in creation order (the daily cycle's input)."""
        return self.list(TemplateFilter(status=TemplateStatus.ACTIVE))

    def list_active_ids(self) -> list[UUID]:
        """Ids of active templates in creation order, without decoding rows.

        The daily cycle loads each template by id so that one row that
        fails to decode only fails itself.
        """
        stmt = (
            select(RecurringTemplateModel.id)
            .where(RecurringTemplateModel.status == TemplateStatus.ACTIVE.value)
            .order_by(RecurringTemplateModel.created_at, RecurringTemplateModel.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_summaries(self, template_filter: TemplateFilter | None = None) -> list[TemplateSummary]:
        return [summarize(t) for t in self.list(template_filter)]

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def pause(self, template_id: UUID) -> RecurringTemplate:
        """Stop executing a template.  Dates are left untouched.

        Pausing a paused template is a no-op.

        Raises:
            TemplateCancelledError: If the template is cancelled.
        """
        model = self._get_model(template_id)
        current = _decode(model)
        if current.status == TemplateStatus.CANCELLED:
            raise TemplateCancelledError(str(template_id), "pause")
        if current.status == TemplateStatus.PAUSED:
            return current

        return self._save(model, dataclasses.replace(current, status=TemplateStatus.PAUSED), "template_paused")

    def resume(self, template_id: UUID) -> RecurringTemplate:
        """Reactivate a paused template, recomputing its dates from today.

        Raises:
            TemplateCancelledError: If the template is cancelled.
            InvalidStateTransitionError: If the template is already active.
        """
        model = self._get_model(template_id)
        current = _decode(model)
        if current.status == TemplateStatus.CANCELLED:
            raise TemplateCancelledError(str(template_id), "resume")
        if current.status != TemplateStatus.PAUSED:
            raise InvalidStateTransitionError(str(template_id), current.status.value, "resume")

        next_shipping, next_delivery = resume_dates(current, self._clock.today())
        updated = dataclasses.replace(
            current,
            status=TemplateStatus.ACTIVE,
            next_shipping_date=next_shipping,
            next_delivery_date=next_delivery,
        )
        return self._save(model, updated, "template_resumed")

    def cancel(self, template_id: UUID) -> RecurringTemplate:
        """Terminally cancel a template.  The row is kept for audit.

        Raises:
            TemplateCancelledError: If the template is already cancelled.
        """
        model = self._get_model(template_id)
        current = _decode(model)
        if current.status == TemplateStatus.CANCELLED:
            raise TemplateCancelledError(str(template_id), "cancel")

        return self._save(model, dataclasses.replace(current, status=TemplateStatus.CANCELLED), "template_cancelled")

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    def change_interval(
        self,
        template_id: UUID,
        interval: IntervalSpec | Any,
        next_shipping_date: date,
        next_delivery_date: date,
    ) -> RecurringTemplate:
        """Replace the interval and set both next dates verbatim.

        Raises:
            TemplateCancelledError: If the template is cancelled.
        """
        model = self._get_model(template_id)
        current = _decode(model)
        if current.status == TemplateStatus.CANCELLED:
            raise TemplateCancelledError(str(template_id), "change_interval")

        updated = dataclasses.replace(
            current,
            interval=decode_interval(interval),
            next_shipping_date=next_shipping_date,
            next_delivery_date=next_delivery_date,
        )
        return self._save(model, updated, "template_interval_changed")

    def update(self, template_id: UUID, **fields: Any) -> RecurringTemplate:
        """Full edit: replace the given fields, lines as a whole.

        Raises:
            ImmutableFieldError: If an identity/status/history field is given.
            TemplateCancelledError: If the template is cancelled.
            EmptyLineSetError: If ``lines`` leaves no line with quantity > 0.
            TypeError: If a field name is unknown.
        """
        immutable = sorted(_IMMUTABLE_FIELDS.intersection(fields))
        if immutable:
            raise ImmutableFieldError(str(template_id), immutable)
        unknown = sorted(set(fields) - _TEMPLATE_FIELDS)
        if unknown:
            raise TypeError(f"Unknown template fields: {unknown}")

        model = self._get_model(template_id)
        current = _decode(model)
        if current.status == TemplateStatus.CANCELLED:
            raise TemplateCancelledError(str(template_id), "update")

        if "lines" in fields:
            lines = normalize_lines(fields["lines"])
            if not lines:
                raise EmptyLineSetError(str(template_id))
            fields["lines"] = lines
        if "interval" in fields:
            fields["interval"] = decode_interval(fields["interval"])

        updated = dataclasses.replace(current, **fields)
        return self._save(model, updated, "template_updated", changed=sorted(fields))

    def delete(self, template_id: UUID) -> None:
        """Physically delete a template.  Ledger rows already written stay.

        Raises:
            TemplateNotFoundError: If the id is unknown.
        """
        self._session.delete(self._get_model(template_id))
        self._session.flush()
        logger.info("template_deleted", extra={"template_id": str(template_id)})

    # -------------------------------------------------------------------------
    # Scheduler support
    # -------------------------------------------------------------------------

    def record_execution(
        self,
        template_id: UUID,
        next_shipping_date: date,
        next_delivery_date: date,
        executed_on: date,
    ) -> RecurringTemplate:
        """Advance a template after a successful materialization."""
        model = self._get_model(template_id)
        updated = dataclasses.replace(
            _decode(model),
            next_shipping_date=next_shipping_date,
            next_delivery_date=next_delivery_date,
            last_executed_date=executed_on,
        )
        return self._save(model, updated, "template_advanced")

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _get_model(self, template_id: UUID) -> RecurringTemplateModel:
        model = self._session.get(RecurringTemplateModel, template_id)
        if model is None:
            raise TemplateNotFoundError(str(template_id))
        return model

    def _save(
        self,
        model: RecurringTemplateModel,
        dto: RecurringTemplate,
        event: str,
        **extra: Any,
    ) -> RecurringTemplate:
        model.apply_dto(dto)
        model.updated_by_id = self._actor_id
        self._session.flush()

        logger.info(
            event,
            extra={
                "template_id": str(dto.template_id),
                "status": dto.status.value,
                "next_shipping_date": dto.next_shipping_date,
                "next_delivery_date": dto.next_delivery_date,
                **extra,
            },
        )
        return dto
