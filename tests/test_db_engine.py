"""Tests for orders_kernel.db.engine -- engine init, session scope, SQLite savepoints."""

from datetime import date

import pytest
from sqlalchemy import inspect, select

from orders_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from orders_recurring.models.master_data import MasterCodeModel
from orders_recurring.services.template_store import RecurringTemplateStore


@pytest.fixture
def memory_engine():
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield get_engine()
    reset_engine()


class TestEngineLifecycle:

    def test_uninitialized_engine_raises(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session()

    def test_tables_created(self, memory_engine):
        names = set(inspect(memory_engine).get_table_names())
        assert {
            "recurring_templates",
            "ledger",
            "carrier_export_a",
            "carrier_export_b",
            "master_codes",
        } <= names


class TestSessionScope:

    def test_commits_on_success(self, memory_engine, draft_factory, deterministic_clock):
        with session_scope() as session:
            template_id = RecurringTemplateStore(session, clock=deterministic_clock).create(
                draft_factory(),
            )

        with session_scope() as session:
            template = RecurringTemplateStore(session).get_by_id(template_id)
        assert template.next_shipping_date == date(2024, 3, 7)

    def test_rolls_back_on_error(self, memory_engine):
        with pytest.raises(ValueError):
            with session_scope() as session:
                session.add(MasterCodeModel(table_name="t", type_value="1:a", name="a", sort_order=0))
                session.flush()
                raise ValueError("abort")

        with session_scope() as session:
            assert session.execute(select(MasterCodeModel)).first() is None


class TestSavepoints:

    def test_nested_rollback_keeps_outer_work(self, memory_engine):
        with session_scope() as session:
            session.add(MasterCodeModel(table_name="t", type_value="1:kept", name="kept", sort_order=0))
            session.flush()

            savepoint = session.begin_nested()
            session.add(MasterCodeModel(table_name="t", type_value="2:dropped", name="dropped", sort_order=1))
            session.flush()
            savepoint.rollback()

        with session_scope() as session:
            names = session.execute(select(MasterCodeModel.name)).scalars().all()
        assert names == ["kept"]
