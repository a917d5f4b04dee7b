from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from paperlingo.config import get_settings
from paperlingo.db.models import Base


def create_store_engine(database_url: str | None = None) -> Engine:
    """
    Create the engine for a local card store.

    SQLite file databases get their parent directory created and WAL enabled
    so a reader never observes a half-written record.
    """
    settings = get_settings()
    url = make_url(database_url or settings.database_url)

    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=settings.log_level == "DEBUG", pool_pre_ping=True)

    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
    logger.debug("Card store tables initialized on {}", engine.url)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
