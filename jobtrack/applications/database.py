"""Database engine, session management and first-run setup.

SQLite is the only backend. Every connection gets foreign keys, WAL and a
busy timeout, and every transaction starts with BEGIN IMMEDIATE so that two
processes working on the same file serialize their writes instead of
interleaving a read-max-then-insert.

Environment variables:
  JOBTRACK_DB_PATH Local SQLite path (default: from config file)
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ..common.config import get_config
from ..common.errors import StorageUnavailableError
from .lookup_service import seed_statuses
from .models import Base

logger = logging.getLogger(__name__)


def get_db_path() -> Path:
    """Local SQLite file path."""
    return Path(get_config().database.path).expanduser()


def get_engine(db_path: Optional[Path] = None, echo: Optional[bool] = None):
    """Create SQLAlchemy engine for local SQLite file."""
    settings = get_config().database
    path = Path(db_path) if db_path else get_db_path()
    if echo is None:
        echo = settings.echo
    busy_timeout_ms = settings.busy_timeout_ms

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageUnavailableError(f"Cannot create {path.parent}: {e}") from e

    engine = create_engine(f"sqlite:///{path}", echo=echo)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        # Take transaction control away from the driver; see _begin_immediate
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Reads too: every session takes the write lock up front
    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    logger.debug(f"Engine ready for {path}")
    return engine


def get_session_factory(engine=None) -> sessionmaker:
    """Create a session factory."""
    if engine is None:
        engine = get_engine()
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def get_session(engine=None) -> Generator[Session, None, None]:
    """Context manager for database sessions with auto-commit/rollback.

    OperationalError (locked, read-only or missing file) surfaces as
    StorageUnavailableError; everything else is re-raised untouched.
    """
    factory = get_session_factory(engine)
    session = factory()
    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        raise StorageUnavailableError(f"SQLite error: {e.orig}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine=None) -> None:
    """Create all tables and seed the default job statuses. Safe to re-run."""
    if engine is None:
        engine = get_engine()
    try:
        Base.metadata.create_all(engine)
    except OperationalError as e:
        raise StorageUnavailableError(f"Cannot initialize database: {e.orig}") from e
    with get_session(engine) as session:
        seed_statuses(session)
    logger.info("Database tables created.")
