"""
Tests for the engine's structured logging (orders_kernel/logging_config.py).

Covers the run-scoped context the daily cycle binds (run date, template,
order), serialization of the values services put in ``extra``, the
flattening of kernel exceptions into ``exc_*`` fields, and the events
the scheduler emits for a cycle.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from orders_kernel.exceptions import (
    CarrierExportError,
    DocumentRenderTimeoutError,
    InvalidStateTransitionError,
)
from orders_kernel.logging_config import LogContext, get_logger
from orders_recurring.services.materializer import Materializer
from orders_recurring.services.scheduler import RecurringOrderScheduler
from orders_recurring.services.template_store import RecurringTemplateStore

logger = get_logger("recurring.test")

TEMPLATE_A = "6f1c2a4e-0000-4000-8000-00000000000a"
TEMPLATE_B = "6f1c2a4e-0000-4000-8000-00000000000b"


def _only(records: list[dict], message: str) -> dict:
    (record,) = [r for r in records if r["message"] == message]
    return record


def _log_failure(exc: Exception, event: str = "side_effect_failed") -> None:
    try:
        raise exc
    except Exception:
        logger.warning(event, exc_info=True)


# =============================================================================
# Run-scoped context
# =============================================================================


class TestRunContext:

    def test_cycle_fields_stamped_on_every_record(self, captured_logs):
        with LogContext.bind(correlation_id="cycle-1", run_date="2024-03-01"):
            logger.info("daily_cycle_started")
            logger.info("daily_cycle_completed")

        for record in captured_logs():
            assert record["correlation_id"] == "cycle-1"
            assert record["run_date"] == "2024-03-01"
            assert "template_id" not in record

    def test_template_binding_restored_after_each_template(self, captured_logs):
        with LogContext.bind(run_date="2024-03-01"):
            with LogContext.bind(template_id=TEMPLATE_A):
                with LogContext.bind(order_id="ord00001"):
                    logger.info("template_executed")
                logger.info("carrier_row_written")
            with LogContext.bind(template_id=TEMPLATE_B):
                logger.info("template_executed")
            logger.info("daily_cycle_completed")

        first, carrier, second, completed = captured_logs()
        assert (first["template_id"], first["order_id"]) == (TEMPLATE_A, "ord00001")
        assert carrier["template_id"] == TEMPLATE_A
        assert "order_id" not in carrier
        assert second["template_id"] == TEMPLATE_B
        assert "order_id" not in second
        assert "template_id" not in completed
        assert completed["run_date"] == "2024-03-01"

    def test_none_does_not_mask_outer_value(self):
        with LogContext.bind(template_id=TEMPLATE_A):
            with LogContext.bind(template_id=None, order_id="ord00002"):
                assert LogContext.get_all() == {
                    "template_id": TEMPLATE_A,
                    "order_id": "ord00002",
                }
            assert LogContext.get_all() == {"template_id": TEMPLATE_A}

    def test_binding_restored_when_template_raises(self):
        with LogContext.bind(run_date="2024-03-01"):
            with pytest.raises(RuntimeError):
                with LogContext.bind(template_id=TEMPLATE_A, order_id="ord00003"):
                    raise RuntimeError("materialize failed")
            assert LogContext.get_all() == {"run_date": "2024-03-01"}

    def test_fields_outside_the_run_scope_ignored(self):
        with LogContext.bind(customer_name="山田商店"):
            assert LogContext.get_all() == {}

    def test_extra_cannot_overwrite_bound_template(self, captured_logs):
        with LogContext.bind(template_id=TEMPLATE_A):
            logger.info("template_executed", extra={"template_id": TEMPLATE_B})

        assert captured_logs()[0]["template_id"] == TEMPLATE_A


# =============================================================================
# Extras
# =============================================================================


class TestExtras:

    def test_dates_amounts_and_ids_serialized(self, captured_logs):
        logger.info(
            "template_executed",
            extra={
                "next_shipping_date": date(2024, 4, 7),
                "executed_at": datetime(2024, 3, 1, 6, 0, tzinfo=timezone.utc),
                "total_amount": Decimal("850.00"),
                "actor_id": UUID("00000000-0000-0000-0000-000000000001"),
                "row_count": 2,
                "retry_possible": False,
            },
        )

        record = captured_logs()[0]
        assert record["next_shipping_date"] == "2024-04-07"
        assert record["executed_at"] == "2024-03-01T06:00:00+00:00"
        assert record["total_amount"] == "850.00"
        assert record["actor_id"] == "00000000-0000-0000-0000-000000000001"
        assert record["row_count"] == 2
        assert record["retry_possible"] is False

    def test_japanese_text_not_escaped(self, captured_logs):
        logger.info("template_created", extra={"product_summary": "にんじん x2, たまねぎ x1"})

        assert captured_logs()[0]["product_summary"] == "にんじん x2, たまねぎ x1"

    def test_logger_names_live_under_kernel_namespace(self, captured_logs):
        get_logger("recurring.scheduler").info("scheduler_started")

        assert captured_logs()[0]["logger"] == "orders_kernel.recurring.scheduler"


# =============================================================================
# Exception flattening
# =============================================================================


class TestExceptionFields:

    def test_carrier_export_error_attributes(self, captured_logs):
        _log_failure(CarrierExportError("A", "ord00004", "spool full"), "carrier_export_failed")

        record = captured_logs()[0]
        assert record["level"] == "WARNING"
        assert record["exc_type"] == "CarrierExportError"
        assert record["exc_code"] == "CARRIER_EXPORT_FAILED"
        assert record["exc_carrier"] == "A"
        assert record["exc_order_id"] == "ord00004"
        assert record["exc_reason"] == "spool full"
        assert "CarrierExportError" in record["traceback"]

    def test_render_timeout_carries_inherited_and_own_attributes(self, captured_logs):
        _log_failure(DocumentRenderTimeoutError("receipt", "ord00005", 0.2), "document_render_failed")

        record = captured_logs()[0]
        assert record["exc_code"] == "DOCUMENT_RENDER_TIMEOUT"
        assert record["exc_kind"] == "receipt"
        assert record["exc_order_id"] == "ord00005"
        assert record["exc_timeout_seconds"] == 0.2
        assert "0.2" in record["exc_reason"]

    def test_state_transition_error_attributes(self, captured_logs):
        _log_failure(InvalidStateTransitionError(TEMPLATE_A, "active", "resume"))

        record = captured_logs()[0]
        assert record["exc_template_id"] == TEMPLATE_A
        assert record["exc_current_status"] == "active"
        assert record["exc_action"] == "resume"

    def test_foreign_exception_has_no_code(self, captured_logs):
        _log_failure(ConnectionError("database unreachable"))

        record = captured_logs()[0]
        assert record["exc_type"] == "ConnectionError"
        assert record["exc_message"] == "database unreachable"
        assert "exc_code" not in record


# =============================================================================
# Scheduler events
# =============================================================================


class RefusingMaterializer:
    """Fails every execution with a kernel error."""

    def materialize(self, template, order_date):
        raise CarrierExportError("A", "ord00001", "spool full")


@pytest.fixture
def cycle(session, session_factory, default_config, code_lookup, identifiers,
          deterministic_clock, test_actor_id, draft_factory):
    """Create one template due on 2024-03-01 and return a cycle runner."""
    store = RecurringTemplateStore(session, clock=deterministic_clock, actor_id=test_actor_id)
    template_id = store.create(draft_factory())
    session.commit()

    def _run(materializer_factory=None):
        scheduler = RecurringOrderScheduler(
            session_factory=session_factory,
            materializer_factory=materializer_factory or (
                lambda s: Materializer(
                    s, default_config, code_lookup,
                    identifiers=identifiers, actor_id=test_actor_id,
                )
            ),
            config=default_config,
            clock=deterministic_clock,
            actor_id=test_actor_id,
        )
        scheduler.run_daily_cycle(date(2024, 3, 1))
        return str(template_id)

    return _run


class TestSchedulerEvents:

    def test_executed_cycle_events(self, cycle, captured_logs):
        template_id = cycle()
        records = captured_logs()

        started = _only(records, "daily_cycle_started")
        executed = _only(records, "template_executed")
        completed = _only(records, "daily_cycle_completed")

        assert started["run_date"] == completed["run_date"] == "2024-03-01"
        assert started["correlation_id"] == executed["correlation_id"] == completed["correlation_id"]
        assert started["active_templates"] == 1
        assert (started["window_min_days"], started["window_max_days"]) == (6, 7)

        assert executed["template_id"] == template_id
        assert executed["order_id"] == "ord00001"
        assert executed["diff_days"] == 6
        assert executed["next_shipping_date"] == "2024-04-07"
        assert executed["next_delivery_date"] == "2024-04-08"

        assert "template_id" not in completed
        assert (completed["executed"], completed["failed"], completed["skipped"]) == (1, 0, 0)

    def test_failed_template_event(self, cycle, captured_logs):
        template_id = cycle(lambda s: RefusingMaterializer())
        records = captured_logs()

        failed = _only(records, "template_execution_failed")
        assert failed["level"] == "WARNING"
        assert failed["logger"] == "orders_kernel.recurring.scheduler"
        assert failed["template_id"] == template_id
        assert failed["diff_days"] == 6
        assert failed["next_shipping_date"] == "2024-03-07"
        assert failed["retry_possible"] is False
        assert failed["exc_code"] == "CARRIER_EXPORT_FAILED"
        assert failed["exc_carrier"] == "A"

        assert _only(records, "daily_cycle_completed")["failed"] == 1
