"""
Pytest fixtures for the recurring order test suite.

Provides:
- In-memory SQLite engine / sessions with real ORM models
- Deterministic clock, static master-code lookup, sequential order ids
- Template draft builders
- Captured structured logs
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orders_config import get_active_config
from orders_kernel.db.base import Base
from orders_kernel.db.engine import enable_sqlite_savepoints
from orders_kernel.domain.clock import DeterministicClock
from orders_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from orders_recurring.domain.interval import NMonthly
from orders_recurring.domain.types import (
    Checklist,
    Party,
    ShippingInstructions,
    TemplateDraft,
    TemplateLine,
)
from orders_recurring.services.identifiers import SequentialIdentifierGenerator
from orders_recurring.services.master_data import StaticCodeLookup

import orders_recurring.models  # noqa: F401  (registers tables on Base.metadata)

TEST_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")

# Friday 2024-03-01, 06:00 UTC
TEST_TODAY = date(2024, 3, 1)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture orders_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, scheduler):
            scheduler.run_daily_cycle(today)
            logs = captured_logs()
            assert any(r["message"] == "daily_cycle_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("orders_kernel")
    root.addHandler(handler)
    previous_level = root.level
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(eng)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


# =============================================================================
# Clock / config / collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Deterministic clock pinned to TEST_TODAY 06:00 UTC."""
    return DeterministicClock(datetime(2024, 3, 1, 6, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="session")
def default_config():
    """The bundled default configuration set."""
    return get_active_config()


@pytest.fixture
def code_lookup(default_config):
    return StaticCodeLookup.from_seed(default_config.master_codes)


@pytest.fixture
def identifiers():
    return SequentialIdentifierGenerator()


# =============================================================================
# Template builders
# =============================================================================


def make_draft(
    first_shipping_date: date = date(2024, 2, 7),
    first_delivery_date: date = date(2024, 2, 8),
    interval=None,
    lines=None,
    delivery_method: str = "ヤマト",
    checklist: Checklist | None = None,
    **overrides,
) -> TemplateDraft:
    """A typical standing order: two lines, carrier A, no documents."""
    draft = TemplateDraft(
        interval=interval if interval is not None else NMonthly(1),
        first_shipping_date=first_shipping_date,
        first_delivery_date=first_delivery_date,
        lines=list(lines) if lines is not None else [
            TemplateLine("野菜", "にんじん", Decimal("300"), 2),
            TemplateLine("野菜", "たまねぎ", Decimal("250"), 1),
        ],
        customer=Party("山田商店", "0600001", "北海道札幌市中央区北一条西", "0111234567"),
        ship_to=Party("山田太郎", "0600042", "北海道札幌市中央区大通西十丁目サンプルビル501号室", "09012345678"),
        ship_from=Party("青空農園", "0010010", "北海道札幌市北区北十条西", "0117654321"),
        shipping=ShippingInstructions(
            delivery_method=delivery_method,
            delivery_time="午前中",
            goods_description="野菜詰め合わせ",
            invoice_type="発払い",
            cool_class="冷蔵",
            cargo_handling=("ナマモノ", "天地無用", ""),
        ),
        checklist=checklist or Checklist(),
        internal_memo="毎月",
    )
    for key, value in overrides.items():
        setattr(draft, key, value)
    return draft


@pytest.fixture
def draft_factory():
    return make_draft
