"""Database configuration and setup."""

import logging
import time
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Query performance logger
query_logger = logging.getLogger("sqlalchemy.query_performance")

# Base class for models
Base = declarative_base()

# Execution option marking a connection that will write (see _begin_sqlite_transaction)
WRITE_TRANSACTION_OPTION = "clinic_registry_write"


def _is_sqlite_url(url: str) -> bool:
    """Check if database URL is for SQLite."""
    return url.startswith("sqlite:")


def _setup_sqlite_pragma(dbapi_connection, connection_record):
    """Set SQLite pragmas for integrity and concurrency."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=5000")  # 5 second timeout for concurrent access
    cursor.execute("PRAGMA foreign_keys=ON")  # RESTRICT references are enforced
    cursor.execute("PRAGMA temp_store=MEMORY")
    cursor.close()
    # Hand transaction control to SQLAlchemy (see _begin_sqlite_transaction)
    dbapi_connection.isolation_level = None


def _begin_sqlite_transaction(conn):
    """Emit BEGIN ourselves so SAVEPOINTs nest inside a real transaction.

    pysqlite defers BEGIN until the first DML statement, which would make
    a savepoint opened after a SELECT the outermost transaction.

    Connections opened with the ``WRITE_TRANSACTION_OPTION`` execution
    option use IMMEDIATE, taking the write lock up front so concurrent
    writers queue on busy_timeout instead of failing on lock upgrade.
    Everything else gets a deferred BEGIN, which under WAL reads a
    snapshot without waiting for an open writer.
    """
    if conn.get_execution_options().get(WRITE_TRANSACTION_OPTION):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
    else:
        conn.exec_driver_sql("BEGIN")


def _setup_query_logging(engine: Engine, enable_query_logging: bool = False):
    """Set up query performance logging if enabled."""
    if not enable_query_logging:
        return

    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        context._query_start_time = time.time()

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        total = time.time() - context._query_start_time

        # Log slow queries (>100ms) as warnings, others as debug
        if total > 0.1:
            query_logger.warning(
                f"Slow query ({total:.3f}s): {statement[:200]}{'...' if len(statement) > 200 else ''}"
            )
        else:
            query_logger.debug(
                f"Query ({total:.3f}s): {statement[:100]}{'...' if len(statement) > 100 else ''}"
            )


def create_database_engine(
    database_url: Optional[str] = None,
    echo: bool = False,
    enable_query_logging: bool = False,
    **engine_kwargs,
) -> Engine:
    """Create database engine with appropriate configuration.

    Without an explicit URL the configured one is used. Extra keyword
    arguments are passed through to ``create_engine``.
    """
    if database_url is None:
        from ..config import get_config

        config = get_config()
        database_url = config.database.url
        echo = echo or config.database.echo
        enable_query_logging = enable_query_logging or config.database.log_queries

    if _is_sqlite_url(database_url):
        connect_args = engine_kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        engine = create_engine(
            database_url, connect_args=connect_args, echo=echo, **engine_kwargs
        )
        event.listen(engine, "connect", _setup_sqlite_pragma)
        event.listen(engine, "begin", _begin_sqlite_transaction)
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)
        engine = create_engine(database_url, echo=echo, **engine_kwargs)

    _setup_query_logging(engine, enable_query_logging)

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the engine.

    Objects stay usable after commit so services can return them.
    """
    return sessionmaker(
        bind=engine, autoflush=False, expire_on_commit=False
    )


def init_schema(engine: Engine) -> None:
    """Create all tables directly (development and tests; production uses Alembic)."""
    from . import models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=engine)
