"""
Document rendering seam (delivery notes, receipts).

Contract:
    ``DocumentRenderer.render(kind, rows, customer_lookup)`` produces the
    requested document for one materialized order and returns whatever
    artifact the implementation produces (file id, URL, bytes, ...).
    Content and layout are the renderer's business, not the engine's.

    ``TimeboxedRenderer`` wraps any renderer so a single call can never
    stall the daily cycle: a call that outlives ``timeout_seconds`` raises
    ``DocumentRenderTimeoutError`` and is abandoned.  The call runs on a
    daemon thread, so a renderer that never returns does not keep the
    process alive after the cycle ends.  Any other exception is re-raised
    as ``DocumentRenderError``.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Protocol, Sequence

from orders_kernel.exceptions import DocumentRenderError, DocumentRenderTimeoutError
from orders_recurring.domain.types import DocumentKind, LedgerRow, Party

CustomerLookup = Callable[[str], Party | None]


class DocumentRenderer(Protocol):
    """Renders one document for one order."""

    def render(
        self,
        kind: DocumentKind,
        rows: Sequence[LedgerRow],
        customer_lookup: CustomerLookup | None = None,
    ) -> Any:
        ...


class NullDocumentRenderer:
    """Renderer that produces nothing.  Used when no renderer is wired."""

    def render(
        self,
        kind: DocumentKind,
        rows: Sequence[LedgerRow],
        customer_lookup: CustomerLookup | None = None,
    ) -> None:
        return None


class TimeboxedRenderer:
    """Runs each ``render`` call on a daemon thread with a deadline."""

    def __init__(self, inner: DocumentRenderer, timeout_seconds: float = 30.0):
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {timeout_seconds}")
        self._inner = inner
        self._timeout = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def render(
        self,
        kind: DocumentKind,
        rows: Sequence[LedgerRow],
        customer_lookup: CustomerLookup | None = None,
    ) -> Any:
        order_id = rows[0].order_id if rows else ""
        outcome: dict[str, Any] = {}

        def _call() -> None:
            try:
                outcome["result"] = self._inner.render(kind, rows, customer_lookup)
            except Exception as exc:
                outcome["error"] = exc

        worker = threading.Thread(
            target=_call,
            name=f"doc-render-{kind.value}-{order_id}",
            daemon=True,
        )
        worker.start()
        worker.join(timeout=self._timeout)

        if worker.is_alive():
            raise DocumentRenderTimeoutError(kind.value, order_id, self._timeout)

        error = outcome.get("error")
        if error is None:
            return outcome.get("result")
        if isinstance(error, DocumentRenderError):
            raise error
        raise DocumentRenderError(kind.value, order_id, str(error)) from error
