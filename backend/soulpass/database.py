"""Engine, session factory and store-level helpers shared by every service.

- SQLite engines are switched to ``BEGIN IMMEDIATE`` so each transaction holds
  the write lock from its first statement; PostgreSQL relies on row locks.
- ``Deadline`` / ``store_deadline`` bound a single operation and turn a store
  timeout into ``StoreTimeoutError`` after rolling back.
- ``read_retry`` retries read-only operations on dropped connections.
"""
import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from soulpass.config import settings
from soulpass.errors import SoulPassError, StoreTimeoutError

logger = logging.getLogger(__name__)

Base = declarative_base()

# psycopg2 QueryCanceled, raised when statement_timeout fires
PG_QUERY_CANCELED = "57014"


def configure_sqlite(engine: Engine, busy_timeout_ms: int) -> None:
    """Make SQLite transactions serializable: take the write lock at BEGIN.

    The lock wait is bounded per transaction by the ``sqlite_busy_timeout_ms``
    execution option (see ``store_deadline``), else by ``busy_timeout_ms``.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        # hand transaction control to SQLAlchemy's "begin" hook below
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        wait_ms = conn.get_execution_options().get("sqlite_busy_timeout_ms", busy_timeout_ms)
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {int(wait_ms)}")
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": settings.STORE_TIMEOUT_SECONDS},
        )
        configure_sqlite(engine, int(settings.STORE_TIMEOUT_SECONDS * 1000))
        return engine
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Deadline:
    """Absolute point in time after which an operation must not commit."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout
        self.expires_at = time.monotonic() + self.timeout

    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def remaining_ms(self) -> int:
        return max(1, int((self.expires_at - time.monotonic()) * 1000))


def _is_store_timeout(exc: DBAPIError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == PG_QUERY_CANCELED:
        return True
    return "database is locked" in str(orig)


@contextmanager
def store_deadline(db: Session, timeout: Optional[float] = None) -> Iterator[Deadline]:
    """Run one core operation all-or-nothing under a deadline.

    Any domain error or store failure inside the block rolls the session back
    before it propagates, so a failed call never leaves a partial write.
    """
    deadline = Deadline(timeout)
    dialect = db.get_bind().dialect.name
    try:
        if dialect == "postgresql":
            # SET does not accept bind parameters; remaining_ms() is an int
            db.execute(text(f"SET LOCAL statement_timeout = {deadline.remaining_ms()}"))
        elif dialect == "sqlite" and not db.in_transaction():
            # begins now, waiting for the write lock no longer than the deadline
            db.connection(execution_options={"sqlite_busy_timeout_ms": deadline.remaining_ms()})
        yield deadline
    except SoulPassError:
        db.rollback()
        raise
    except DBAPIError as exc:
        db.rollback()
        if isinstance(exc, OperationalError) and _is_store_timeout(exc):
            logger.warning("Store deadline of %.2fs exceeded: %s", deadline.timeout, exc.orig)
            raise StoreTimeoutError("The store did not respond before the deadline") from exc
        raise


def commit_within(db: Session, deadline: Deadline) -> None:
    """Commit unless the deadline already passed, in which case roll back."""
    if deadline.expired():
        db.rollback()
        raise StoreTimeoutError("Deadline passed before the operation could commit")
    db.commit()


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def _rollback_before_retry(retry_state) -> None:
    db = retry_state.kwargs.get("db")
    if db is None and retry_state.args:
        db = retry_state.args[0]
    if db is not None:
        db.rollback()
    logger.warning(
        "Retrying %s after dropped connection (attempt %d)",
        retry_state.fn.__name__,
        retry_state.attempt_number,
    )


# Reads only. Writes are never retried blindly.
read_retry = retry(
    retry=retry_if_exception(_is_transient),
    stop=stop_after_attempt(settings.READ_RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=0.1, max=2),
    before_sleep=_rollback_before_retry,
    reraise=True,
)
