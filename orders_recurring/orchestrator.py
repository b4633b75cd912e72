"""
RecurringOrderOrchestrator -- DI container for the recurring order engine.

Contract:
    Wires configuration, clock, master-code lookup, document renderer and
    identifier generator into the template store, the materializer and the
    scheduler.  Single place where all recurring-order dependencies are
    composed.

Architecture: orders_recurring (top-level).  This is the canonical entry
    point for configuring and running the daily cycle.

Invariants enforced:
    - Clock injection (all services receive the same Clock).
    - One actor id attributed to every row written by this container.
    - No kernel imports of orders_recurring (orchestrator lives here).
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from orders_config import get_active_config
from orders_config.schema import RecurringConfig
from orders_kernel.domain.clock import Clock, SystemClock
from orders_kernel.logging_config import get_logger
from orders_recurring.services.documents import CustomerLookup, DocumentRenderer
from orders_recurring.services.identifiers import (
    IdentifierGenerator,
    RandomIdentifierGenerator,
)
from orders_recurring.services.master_data import (
    CodeLookup,
    DatabaseCodeLookup,
    seed_master_codes,
)
from orders_recurring.services.materializer import Materializer
from orders_recurring.services.scheduler import RecurringOrderScheduler
from orders_recurring.services.template_store import RecurringTemplateStore

logger = get_logger("recurring.orchestrator")


class RecurringOrderOrchestrator:
    """DI container for the recurring order engine.

    Contract:
        - ``from_session()`` factory creates a fully wired orchestrator.
        - ``create_store()`` / ``create_materializer()`` for ad-hoc use.
        - ``create_scheduler()`` returns a scheduler for the daily cycle.
        - ``seed_master_data()`` loads the configured master code rows.

    Non-goals:
        - Does NOT start the scheduler automatically -- caller decides.
        - Does NOT manage session lifecycle -- caller controls commits.
    """

    def __init__(
        self,
        session: Session,
        config: RecurringConfig,
        clock: Clock | None = None,
        code_lookup: CodeLookup | None = None,
        renderer: DocumentRenderer | None = None,
        identifiers: IdentifierGenerator | None = None,
        customer_lookup: CustomerLookup | None = None,
        actor_id: UUID | None = None,
    ) -> None:
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._code_lookup = code_lookup
        self._renderer = renderer
        self._identifiers = identifiers or RandomIdentifierGenerator(config.identifier_length)
        self._customer_lookup = customer_lookup
        self._actor_id = actor_id or uuid4()

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_session(
        cls,
        session: Session,
        config: RecurringConfig | None = None,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        renderer: DocumentRenderer | None = None,
        identifiers: IdentifierGenerator | None = None,
    ) -> RecurringOrderOrchestrator:
        """Create a fully wired orchestrator from a session.

        Args:
            session: SQLAlchemy session for persistence.
            config: Optional config; the bundled default set if None.
            clock: Optional clock for deterministic testing.
            actor_id: Optional actor UUID for audit attribution.
            renderer: Optional document renderer; documents are skipped
                (NullDocumentRenderer) if None.
            identifiers: Optional order id generator.
        """
        return cls(
            session=session,
            config=config or get_active_config(),
            clock=clock or SystemClock(),
            renderer=renderer,
            identifiers=identifiers,
            actor_id=actor_id,
        )

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    def create_store(self, session: Session | None = None) -> RecurringTemplateStore:
        """Template store bound to ``session`` (default: the orchestrator's)."""
        return RecurringTemplateStore(
            session or self._session, clock=self._clock, actor_id=self._actor_id,
        )

    def create_materializer(self, session: Session | None = None) -> Materializer:
        """Materializer bound to ``session`` (default: the orchestrator's).

        Without an injected lookup, master codes are read from the
        ``master_codes`` table through ``session``.
        """
        target_session = session or self._session
        return Materializer(
            session=target_session,
            config=self._config,
            code_lookup=self._code_lookup or DatabaseCodeLookup(target_session),
            renderer=self._renderer,
            identifiers=self._identifiers,
            customer_lookup=self._customer_lookup,
            actor_id=self._actor_id,
        )

    def create_scheduler(
        self,
        session_factory: Callable[[], Session] | None = None,
        tick_interval_seconds: int = 300,
    ) -> RecurringOrderScheduler:
        """Create a scheduler wired with the orchestrator's dependencies.

        Args:
            session_factory: Callable returning a new session per cycle.
                If None, every cycle reuses the orchestrator's session
                (commits included).
            tick_interval_seconds: Background polling interval (default 300s).
        """
        factory = session_factory or (lambda: self._session)
        return RecurringOrderScheduler(
            session_factory=factory,
            materializer_factory=self.create_materializer,
            config=self._config,
            clock=self._clock,
            actor_id=self._actor_id,
            tick_interval_seconds=tick_interval_seconds,
        )

    def seed_master_data(self) -> int:
        """Load the configured master code rows into ``master_codes``."""
        return seed_master_codes(self._session, self._config.master_codes)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def config(self) -> RecurringConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def actor_id(self) -> UUID:
        return self._actor_id
