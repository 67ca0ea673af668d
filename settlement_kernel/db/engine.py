"""
Module: settlement_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  The ``Database`` handle is the single
    point of database connection configuration and is injected explicitly into
    every component that needs storage.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, domain/, or outer layers
    (except for create_tables/drop_tables which import models).

Invariants enforced:
    - PostgreSQL sessions run at READ COMMITTED with explicit row-level
      locking (FOR UPDATE / FOR UPDATE SKIP LOCKED) where stronger isolation
      is needed.
    - SQLite (development and tests) opens every writing transaction with
      BEGIN IMMEDIATE so that the database-level write lock stands in for row
      locks; ``lock_timeout`` bounds how long a transaction waits for it.
      Read-only scopes open with a deferred BEGIN and take no write lock.
    - No process-wide engine: each ``Database`` owns its engine and
      sessionmaker.

Failure modes:
    - OperationalError on lock contention.  ``is_lock_contention`` classifies
      these so callers can surface them as retryable domain errors.
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from settlement_kernel.logging_config import get_logger

logger = get_logger("db.engine")

# PostgreSQL SQLSTATEs that mean "someone else holds the row"
_PG_CONTENTION_CODES = frozenset({
    "55P03",  # lock_not_available
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
})

_SQLITE_CONTENTION_MESSAGES = (
    "database is locked",
    "database table is locked",
)

# Execution option marking an engine whose transactions only read
READ_ONLY_OPTION = "settlement_read_only"


class Database:
    """
    Storage handle: an engine plus the session factory bound to it.

    Contract:
        Constructed once per process (or per test) and passed into the
        orchestrator, the CLI, and test fixtures.  Services never create
        sessions themselves; they receive one from the caller.

    Guarantees:
        - Sessions are created with expire_on_commit=False so DTOs can be
          built after commit.
        - session_scope() commits on success, rolls back on any exception
          and re-raises it unchanged.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._read_session_factory = sessionmaker(
            bind=engine.execution_options(**{READ_ONLY_OPTION: True}),
            expire_on_commit=False,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def session(self, read_only: bool = False) -> Session:
        """Get a new session instance."""
        if read_only:
            return self._read_session_factory()
        return self._session_factory()

    @contextmanager
    def session_scope(self, read_only: bool = False) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit, session is committed and closed.
            On exception, session is rolled back and closed.  The exception
            is re-raised to the caller.

        read_only only changes how SQLite begins the transaction; it does
        not stop the session from writing.

        Usage:
            with database.session_scope() as session:
                session.add(entity)
        """
        session = self.session(read_only)
        logger.debug("transaction_started", extra={"read_only": read_only})
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except Exception:
            session.rollback()
            logger.debug("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all tables defined in the models."""
        from settlement_kernel.db.base import Base
        import settlement_kernel.models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("tables_created", extra={"dialect": self.dialect_name})

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution - primarily for testing."""
        from settlement_kernel.db.base import Base
        import settlement_kernel.models  # noqa: F401

        Base.metadata.drop_all(self.engine)
        logger.info("tables_dropped", extra={"dialect": self.dialect_name})

    def dispose(self) -> None:
        """Release all pooled connections."""
        self.engine.dispose()


def create_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    lock_timeout: float = 0.0,
) -> Database:
    """
    Build a ``Database`` from a connection URL.

    Args:
        database_url: PostgreSQL (production) or SQLite (development) URL.
        echo: If True, log all SQL statements.
        pool_size: Number of connections to keep in the pool.
        max_overflow: Max connections beyond pool_size.
        pool_pre_ping: If True, test connections before use.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.
        lock_timeout: SQLite only.  Seconds a transaction waits for the
            database write lock before failing with "database is locked".

    Returns:
        Database handle.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        engine = _create_sqlite_engine(database_url, echo=echo, lock_timeout=lock_timeout)
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "echo": echo,
        },
    )
    return Database(engine)


def _create_sqlite_engine(database_url: str, echo: bool, lock_timeout: float) -> Engine:
    url = make_url(database_url)
    in_memory = url.database in (None, "", ":memory:")

    kwargs = {}
    if in_memory:
        kwargs["poolclass"] = StaticPool

    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": lock_timeout},
        **kwargs,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to the "begin" hook below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(READ_ONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def is_lock_contention(exc: BaseException) -> bool:
    """
    Check whether a database error means a competing transaction holds a lock.

    Recognizes PostgreSQL lock-not-available, serialization and deadlock
    failures, and SQLite's "database is locked".
    """
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None)
    if pgcode in _PG_CONTENTION_CODES:
        return True
    message = str(orig).lower()
    return any(m in message for m in _SQLITE_CONTENTION_MESSAGES)
