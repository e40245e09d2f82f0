import logging
import os
import re
import ssl
import time
import urllib.parse
from contextlib import contextmanager

from sqlalchemy import event, text
from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, declarative_base
from sqlalchemy.orm import sessionmaker

from config import DATABASE_URL as CONFIGURED_DATABASE_URL
from config import DB_LOCK_TIMEOUT_MS, DB_RETRY_AFTER_SECONDS, TESTING
from core.errors import TransientError

logger = logging.getLogger(__name__)

# Database connection string
DATABASE_URL = CONFIGURED_DATABASE_URL

if not DATABASE_URL:
    if TESTING:
        # In testing environment, use SQLite in-memory database as fallback
        DATABASE_URL = "sqlite:///:memory:"
        logger.warning("Using in-memory SQLite database for testing")
    else:
        raise ValueError("DATABASE_URL environment variable is not set")

ssl_mode = None

# Only apply PostgreSQL-specific modifications if we're actually using PostgreSQL
if not DATABASE_URL.startswith("sqlite"):
    # If using Heroku/Vercel, convert the postgres:// URL to postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    parsed = urllib.parse.urlparse(DATABASE_URL)
    query_params = urllib.parse.parse_qs(parsed.query)
    ssl_mode = query_params.get("sslmode", [None])[0]

    # Modify URL to use pg8000 instead of psycopg2
    if "postgresql" in DATABASE_URL and "+" not in DATABASE_URL.split("://", 1)[0]:
        pattern = r"postgresql://([^:]+):([^@]+)@([^:/]+):?(\d*)/?([^?]*)"
        match = re.match(pattern, DATABASE_URL)

        if match:
            username, password, host, port, dbname = match.groups()
            if not port:
                port = "5432"
            # pg8000 takes SSL through connect_args, not URL params
            DATABASE_URL = (
                f"postgresql+pg8000://{username}:{password}@{host}:{port}/{dbname}"
            )

# Driver messages that mean "could not get the row lock in time"
_LOCK_CONTENTION_MARKERS = (
    "55P03",  # lock_not_available
    "40P01",  # deadlock_detected
    "40001",  # serialization_failure
    "lock timeout",
    "deadlock detected",
    "could not obtain lock",
    "database is locked",
)


def _install_sqlite_locking(_engine):
    """Give SQLite writer-serialized transactions.

    SQLite ignores ``FOR UPDATE``; starting every transaction with
    ``BEGIN IMMEDIATE`` takes the database write lock up front so a
    read-check-write sequence cannot interleave with another writer.
    """

    @event.listens_for(_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _install_slow_query_logging(_engine):
    threshold_ms = float(os.getenv("SLOW_DB_QUERY_THRESHOLD_MS", "200"))
    if threshold_ms <= 0:
        return

    slow_logger = logging.getLogger("db.slow_query")

    @event.listens_for(_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        context._query_start_time = time.perf_counter()

    @event.listens_for(_engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start = getattr(context, "_query_start_time", None)
        if start is None:
            return
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms < threshold_ms:
            return

        stmt = " ".join(str(statement).split())
        if len(stmt) > 500:
            stmt = stmt[:500] + "…"
        params_repr = repr(parameters)
        if len(params_repr) > 500:
            params_repr = params_repr[:500] + "…"

        slow_logger.warning(
            "SLOW_DB_QUERY | ms=%.1f | stmt=%s | params=%s",
            elapsed_ms,
            stmt,
            params_repr,
        )


def create_db_engine(database_url: str):
    """Build an engine with the locking and logging hooks the ledger relies on."""
    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url,
            echo=False,
            connect_args={
                "check_same_thread": False,
                "timeout": DB_LOCK_TIMEOUT_MS / 1000.0,
            },
        )
        _install_sqlite_locking(_engine)
    else:
        connect_args = {}
        pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        pool_timeout = int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "30"))
        pool_recycle = int(os.getenv("DB_POOL_RECYCLE_SECONDS", "300"))

        if ssl_mode == "disable" or TESTING:
            pass
        elif ssl_mode == "require" or not ssl_mode:
            ssl_context = ssl.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
            connect_args["ssl_context"] = ssl_context

        _engine = create_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
            echo=False,
            pool_recycle=pool_recycle,
            connect_args=connect_args,
        )

    _install_slow_query_logging(_engine)
    return _engine


engine = create_db_engine(DATABASE_URL)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class
Base = declarative_base()


def is_lock_contention(exc: DBAPIError) -> bool:
    detail = f"{exc.orig!r} {exc.orig}".lower()
    return any(marker.lower() in detail for marker in _LOCK_CONTENTION_MARKERS)


def _apply_lock_timeout(db: Session):
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = '{int(DB_LOCK_TIMEOUT_MS)}ms'"))


@contextmanager
def atomic(db: Session):
    """Run a block as one all-or-nothing transaction.

    Commits when the block finishes and rolls back on any error. Lock waits are
    bounded by ``DB_LOCK_TIMEOUT_MS``; running out of time (or losing a deadlock)
    surfaces as ``TransientError`` so the caller can retry.
    """
    try:
        _apply_lock_timeout(db)
        yield db
        db.commit()
    except DBAPIError as exc:
        db.rollback()
        if is_lock_contention(exc):
            logger.warning(f"Lock contention, transaction rolled back: {exc.orig}")
            raise TransientError(retry_after=DB_RETRY_AFTER_SECONDS) from exc
        raise
    except Exception:
        db.rollback()
        raise


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context():
    """Context manager for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all tables"""
    import models  # noqa: F401  registers the mappers on Base

    Base.metadata.create_all(bind=engine)
