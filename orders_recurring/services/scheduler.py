"""
RecurringOrderScheduler -- the daily materialization cycle.

Contract:
    ``run_daily_cycle(today)`` loads every active template, evaluates the
    execution window with the pure ``evaluate()``, materializes the ones
    that are due and advances their dates.  ``tick()`` runs the cycle for
    the injected clock's today; ``start()`` / ``stop()`` run it from a
    background thread at most once per calendar day.

Architecture: orders_recurring/services.  Uses orders_recurring.domain.schedule
    for pure evaluation and orders_recurring.services.materializer for the
    writes.

Invariants enforced:
    - SAVEPOINT per template: ledger rows, carrier row and the date advance
      of one template commit or roll back together; one failure never
      aborts the cycle.
    - Templates are loaded one at a time by id, so a stored row that
      cannot be decoded fails only itself.
    - Idempotent per day: a template whose ``last_executed_date`` is the run
      date is skipped, and an executed template's next shipping date moves
      out of the window.
    - Dates advance from the template's current next shipping date, never
      from the run date.
    - All dates from the injected Clock.

Concurrency:
    Single writer.  The cycle takes no row locks and assumes no other
    process mutates ``recurring_templates`` while it runs; schedule exactly
    one runner per database.

Retry behaviour:
    A failed template is not retried within the run.  With the default 6-7
    day window it gets one more chance the next day (diff 6); after that it
    drifts out of the window and needs an operator.  The failure log says
    whether another automatic attempt is still possible.
"""

from __future__ import annotations

import threading
import time
from datetime import date
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from orders_config.schema import RecurringConfig
from orders_kernel.domain.clock import Clock, SystemClock
from orders_kernel.exceptions import OrdersKernelError
from orders_kernel.logging_config import LogContext, get_logger
from orders_recurring.domain.schedule import (
    ExecutionWindow,
    advance_dates,
    days_until,
    evaluate,
)
from orders_recurring.domain.types import (
    DailyCycleResult,
    TemplateRunOutcome,
    TemplateRunStatus,
)
from orders_recurring.services.materializer import Materializer
from orders_recurring.services.template_store import RecurringTemplateStore

logger = get_logger("recurring.scheduler")


class RecurringOrderScheduler:
    """Daily cycle runner for recurring templates.

    Contract:
        - ``run_daily_cycle()`` evaluates and executes all active templates.
        - ``tick()`` runs the cycle in its own session and commits.
        - ``start()`` / ``stop()`` for background thread operation.
        - Respects the stop signal between templates.

    Non-goals:
        - NOT a distributed scheduler (no leader election, no locking).
        - Does NOT retry failed templates within a run.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        materializer_factory: Callable[[Session], Materializer],
        config: RecurringConfig,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        tick_interval_seconds: int = 300,
    ):
        self._session_factory = session_factory
        self._materializer_factory = materializer_factory
        self._config = config
        self._window = ExecutionWindow(config.window.min_days, config.window.max_days)
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or uuid4()
        self._tick_interval = tick_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_run_date: date | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def run_daily_cycle(self, today: date, session: Session | None = None) -> DailyCycleResult:
        """Run one cycle for ``today``.

        With ``session`` the caller owns the transaction (nothing is
        committed here).  Without it a session is opened from the factory,
        committed on success and rolled back on error.
        """
        if session is not None:
            return self._run_cycle(session, today)

        own_session = self._session_factory()
        try:
            result = self._run_cycle(own_session, today)
            own_session.commit()
            return result
        except Exception:
            own_session.rollback()
            raise
        finally:
            own_session.close()

    def tick(self) -> DailyCycleResult | None:
        """Run the cycle for the clock's today (public for testing).

        Returns None when the cycle itself failed (logged).
        """
        today = self._clock.today()
        try:
            result = self.run_daily_cycle(today)
        except Exception:
            logger.exception("scheduler_tick_failed", extra={"run_date": today})
            return None
        self._last_run_date = today
        return result

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="recurring-order-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current template to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def window(self) -> ExecutionWindow:
        return self._window

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop: one cycle per calendar day.  Exits on stop."""
        while not self._stop_event.is_set():
            if self._clock.today() != self._last_run_date:
                try:
                    self.tick()
                except Exception:
                    logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)

    def _run_cycle(self, session: Session, today: date) -> DailyCycleResult:
        start_time = time.monotonic()
        store = RecurringTemplateStore(session, clock=self._clock, actor_id=self._actor_id)
        materializer = self._materializer_factory(session)

        with LogContext.bind(correlation_id=str(uuid4()), run_date=today.isoformat()):
            template_ids = store.list_active_ids()
            logger.info(
                "daily_cycle_started",
                extra={
                    "active_templates": len(template_ids),
                    "window_min_days": self._window.min_days,
                    "window_max_days": self._window.max_days,
                },
            )

            outcomes: list[TemplateRunOutcome] = []
            for template_id in template_ids:
                # Check stop signal between templates
                if self._stop_event.is_set():
                    logger.warning("daily_cycle_interrupted", extra={"processed": len(outcomes)})
                    break
                with LogContext.bind(template_id=str(template_id)):
                    outcomes.append(
                        self._run_template(session, store, materializer, template_id, today)
                    )

            executed = sum(1 for o in outcomes if o.status == TemplateRunStatus.EXECUTED)
            failed = sum(1 for o in outcomes if o.status == TemplateRunStatus.FAILED)
            result = DailyCycleResult(
                run_date=today,
                total_active=len(template_ids),
                executed=executed,
                failed=failed,
                skipped=len(outcomes) - executed - failed,
                outcomes=tuple(outcomes),
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )

            logger.info(
                "daily_cycle_completed",
                extra={
                    "total_active": result.total_active,
                    "executed": result.executed,
                    "failed": result.failed,
                    "skipped": result.skipped,
                    "duration_ms": result.duration_ms,
                },
            )
        return result

    def _run_template(
        self,
        session: Session,
        store: RecurringTemplateStore,
        materializer: Materializer,
        template_id: UUID,
        today: date,
    ) -> TemplateRunOutcome:
        try:
            template = store.get_by_id(template_id)
        except Exception as exc:
            logger.warning("template_load_failed", exc_info=True)
            return _failed(template_id, None, exc)

        diff_days = days_until(template.next_shipping_date, today)
        skip_reason = evaluate(template, today, self._window)
        if skip_reason is not None:
            return TemplateRunOutcome(
                template_id=template_id,
                status=skip_reason,
                diff_days=diff_days,
            )

        savepoint = session.begin_nested()
        try:
            order = materializer.materialize(template, today)
            next_shipping, next_delivery = advance_dates(template)
            store.record_execution(template_id, next_shipping, next_delivery, today)
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            # Tomorrow's run sees diff_days - 1.
            retry_possible = self._window.contains(diff_days - 1)
            logger.warning(
                "template_execution_failed",
                exc_info=True,
                extra={
                    "diff_days": diff_days,
                    "next_shipping_date": template.next_shipping_date,
                    "retry_possible": retry_possible,
                },
            )
            return _failed(template_id, diff_days, exc)

        logger.info(
            "template_executed",
            extra={
                "order_id": order.order_id,
                "diff_days": diff_days,
                "row_count": len(order.rows),
                "total_amount": order.total_amount,
                "next_shipping_date": next_shipping,
                "next_delivery_date": next_delivery,
            },
        )
        return TemplateRunOutcome(
            template_id=template_id,
            status=TemplateRunStatus.EXECUTED,
            diff_days=diff_days,
            order_id=order.order_id,
            next_shipping_date=next_shipping,
        )


def _failed(template_id: UUID, diff_days: int | None, exc: Exception) -> TemplateRunOutcome:
    return TemplateRunOutcome(
        template_id=template_id,
        status=TemplateRunStatus.FAILED,
        diff_days=diff_days,
        error_code=exc.code if isinstance(exc, OrdersKernelError) else "UNHANDLED_EXCEPTION",
        error_message=str(exc),
    )
