"""Database engine and session management.

The planning operations only flush; ``session_scope`` is the unit of work that
commits them, or rolls everything back when an operation fails.
"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import PlanningConfig, get_config
from .models import Base

logger = logging.getLogger(__name__)


def get_engine(url: Optional[str] = None, echo: Optional[bool] = None,
               config: Optional[PlanningConfig] = None) -> Engine:
    """Create SQLAlchemy engine (URL from config unless given)."""
    config = config or get_config()
    url = url or config.database_url
    engine = create_engine(url, echo=config.echo_sql if echo is None else echo)

    if url.startswith("sqlite"):
        # WAL journal and foreign keys for SQLite
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Create a session factory."""
    if engine is None:
        engine = get_engine()
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(engine: Optional[Engine] = None) -> Generator[Session, None, None]:
    """Context manager for database sessions with auto-commit/rollback."""
    factory = get_session_factory(engine)
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """Create all tables (for initial setup or testing)."""
    if engine is None:
        engine = get_engine()
    Base.metadata.create_all(engine)
    logger.info("Planning tables created.")
