"""
Engine and session management.

One module-level engine per process, created by ``init_engine_from_url``.
The daily cycle assumes it is the only writer of the template table while
it runs; no row locks are taken.

PostgreSQL engines get a pre-pinged ``QueuePool`` at READ COMMITTED.
SQLite engines (tests, local runs) issue their own BEGIN so nested
SAVEPOINTs behave, and an in-memory database is shared through a
``StaticPool``.

Calling any getter before ``init_engine_from_url`` raises ``RuntimeError``.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from orders_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process engine and session factory.

    A second call replaces the first (the old engine is not disposed).

    Args:
        database_url: SQLAlchemy URL (``postgresql://...``, ``sqlite:///...``).
        echo: Log every SQL statement.
        pool_size, max_overflow, pool_recycle: PostgreSQL pool tuning.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect == "postgresql":
        engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )
    elif dialect == "sqlite":
        if url.database in (None, "", ":memory:"):
            engine = create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(url, echo=echo)
        enable_sqlite_savepoints(engine)
    else:
        engine = create_engine(url, echo=echo)

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": dialect, "echo": echo})
    return engine


def enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own transaction boundaries on a pysqlite engine.

    pysqlite defers BEGIN until the first DML statement, which breaks
    ``Session.begin_nested()``.  Turning off its implicit handling and
    emitting BEGIN on the ``begin`` event makes SAVEPOINT work.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory handed to the scheduler so each cycle owns its session."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on normal exit, roll back and re-raise on error, always close.

    Usage:
        with session_scope() as session:
            RecurringTemplateStore(session).pause(template_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every recurring order table that does not exist yet."""
    from orders_kernel.db.base import Base

    # Registers the model classes on Base.metadata.
    import orders_recurring.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (test cleanup)."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
