"""
Materializer -- turns one template execution into a concrete order.

Contract:
    ``materialize(template, order_date)`` writes one ledger row per
    template line under a fresh order id, then runs the side effects:

        1. carrier export row (at most once, only when the delivery
           method maps to a carrier)
        2. delivery note, if the checklist asks for one
        3. receipt, if the checklist asks for one

    and returns a ``MaterializedOrder`` carrying the rows and the outcome
    of every side effect.

Architecture: orders_recurring/services.

Invariants enforced:
    - ``line_total == quantity * unit_price`` on every row.
    - The internal memo of every row carries the auto-created marker.
    - Ledger rows are the unit of success: a failing side effect is logged
      and reported in the outcome, never re-raised, and never rolls the
      ledger rows back.  The carrier write runs in its own SAVEPOINT so a
      failed insert cannot poison the enclosing transaction.

Failure modes:
    - ``EmptyLineSetError`` if the template has no lines (nothing written).
    - Database errors while writing ledger rows propagate to the caller.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from orders_config.schema import RecurringConfig
from orders_kernel.exceptions import (
    CarrierExportError,
    DocumentRenderError,
    EmptyLineSetError,
)
from orders_kernel.logging_config import LogContext, get_logger
from orders_recurring.domain.types import (
    LedgerRow,
    MaterializedOrder,
    RecurringTemplate,
    SideEffectOutcome,
    SideEffectStatus,
)
from orders_recurring.models.ledger import LedgerRowModel
from orders_recurring.services.carriers import (
    CarrierExportWriter,
    build_formatter,
    resolve_carrier,
)
from orders_recurring.services.documents import (
    CustomerLookup,
    DocumentRenderer,
    NullDocumentRenderer,
    TimeboxedRenderer,
)
from orders_recurring.services.identifiers import (
    IdentifierGenerator,
    RandomIdentifierGenerator,
)
from orders_recurring.services.master_data import CodeLookup

logger = get_logger("recurring.materializer")


def build_ledger_rows(
    template: RecurringTemplate,
    order_id: str,
    order_date: date,
    memo_suffix: str,
) -> tuple[LedgerRow, ...]:
    """One ledger row per template line (pure)."""
    internal_memo = f"{template.internal_memo}{memo_suffix}"
    return tuple(
        LedgerRow(
            order_id=order_id,
            template_id=template.template_id,
            line_index=index,
            order_date=order_date,
            shipping_date=template.next_shipping_date,
            delivery_date=template.next_delivery_date,
            customer=template.customer,
            ship_to=template.ship_to,
            ship_from=template.ship_from,
            shipping=template.shipping,
            checklist=template.checklist,
            receipt_way=template.receipt_way,
            receptionist=template.receptionist,
            other_attachments=template.other_attachments,
            internal_memo=internal_memo,
            delivery_note_memo=template.delivery_note_memo,
            memo=template.memo,
            delivery_note_text=template.delivery_note_text,
            category=line.category,
            product_name=line.product_name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
        )
        for index, line in enumerate(template.lines)
    )


class Materializer:
    """Writes ledger rows and runs the per-order side effects.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT advance the template; that is the scheduler's job.
    """

    def __init__(
        self,
        session: Session,
        config: RecurringConfig,
        code_lookup: CodeLookup,
        renderer: DocumentRenderer | None = None,
        identifiers: IdentifierGenerator | None = None,
        customer_lookup: CustomerLookup | None = None,
        actor_id: UUID | None = None,
    ):
        self._session = session
        self._config = config
        self._code_lookup = code_lookup
        self._renderer = TimeboxedRenderer(
            renderer or NullDocumentRenderer(),
            timeout_seconds=config.document_render_timeout_seconds,
        )
        self._identifiers = identifiers or RandomIdentifierGenerator(config.identifier_length)
        self._customer_lookup = customer_lookup
        self._actor_id = actor_id or uuid4()
        self._carrier_writer = CarrierExportWriter(session, self._actor_id)

    def materialize(self, template: RecurringTemplate, order_date: date) -> MaterializedOrder:
        """Materialize one execution of ``template`` dated ``order_date``.

        Raises:
            EmptyLineSetError: If the template has no lines.
        """
        if not template.is_executable:
            raise EmptyLineSetError(str(template.template_id))

        order_id = self._identifiers.new_id()

        with LogContext.bind(order_id=order_id):
            rows = build_ledger_rows(
                template, order_id, order_date, self._config.auto_memo_suffix,
            )
            for row in rows:
                self._session.add(LedgerRowModel.from_dto(row, created_by_id=self._actor_id))
            self._session.flush()

            logger.info(
                "ledger_rows_written",
                extra={
                    "template_id": str(template.template_id),
                    "order_id": order_id,
                    "row_count": len(rows),
                    "shipping_date": template.next_shipping_date,
                },
            )

            order = MaterializedOrder(
                order_id=order_id,
                template_id=template.template_id,
                order_date=order_date,
                rows=rows,
            )

            carrier_outcome = self._export_to_carrier(template, order)
            documents = self._render_documents(template, rows)

        return MaterializedOrder(
            order_id=order_id,
            template_id=template.template_id,
            order_date=order_date,
            rows=rows,
            carrier_export=carrier_outcome,
            documents=documents,
        )

    # -------------------------------------------------------------------------
    # Side effects
    # -------------------------------------------------------------------------

    def _export_to_carrier(
        self, template: RecurringTemplate, order: MaterializedOrder,
    ) -> SideEffectOutcome | None:
        code = resolve_carrier(template.shipping.delivery_method, self._config.carriers)
        if code is None:
            logger.debug(
                "carrier_export_not_applicable",
                extra={"delivery_method": template.shipping.delivery_method},
            )
            return None

        carrier_config = self._config.carrier(code.value)
        savepoint = self._session.begin_nested()
        try:
            formatter = build_formatter(code, carrier_config, self._code_lookup)
            row = formatter.format(template, order)
            self._carrier_writer.append(template.template_id, row)
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            error = CarrierExportError(code.value, order.order_id, str(exc))
            error.__cause__ = exc
            logger.error(
                "carrier_export_failed",
                exc_info=error,
                extra={"template_id": str(template.template_id), "carrier": code.value},
            )
            return SideEffectOutcome(
                name=code.value,
                status=SideEffectStatus.FAILED,
                error_code=error.code,
                error_message=str(exc),
            )

        return SideEffectOutcome(name=code.value, status=SideEffectStatus.SUCCEEDED, artifact=row)

    def _render_documents(
        self, template: RecurringTemplate, rows: Sequence[LedgerRow],
    ) -> tuple[SideEffectOutcome, ...]:
        outcomes: list[SideEffectOutcome] = []
        for kind in template.checklist.requested_documents():
            try:
                artifact = self._renderer.render(kind, rows, self._customer_lookup)
            except DocumentRenderError as exc:
                logger.error(
                    "document_render_failed",
                    exc_info=exc,
                    extra={"template_id": str(template.template_id), "kind": kind.value},
                )
                outcomes.append(
                    SideEffectOutcome(
                        name=kind.value,
                        status=SideEffectStatus.FAILED,
                        error_code=exc.code,
                        error_message=str(exc),
                    )
                )
                continue

            logger.info(
                "document_rendered",
                extra={"template_id": str(template.template_id), "kind": kind.value},
            )
            outcomes.append(
                SideEffectOutcome(name=kind.value, status=SideEffectStatus.SUCCEEDED, artifact=artifact)
            )
        return tuple(outcomes)
