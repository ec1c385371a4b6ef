"""Engine and session management.

SQLite in the platform data directory by default; any SQLAlchemy URL
(PostgreSQL in production) via DATABASE_URL. Sessions are synchronous:
routes take one from ``get_db``; the chat stream, which outlives its
request, opens short scopes from ``get_session_factory()``.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from mathtutor.db.models import Base
from mathtutor.utils.paths import ensure_dirs_exist, get_default_db_path

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Resolve the database URL.

    DATABASE_URL wins; MATHTUTOR_DB_PATH may be a file path or an sqlite
    URL; otherwise ``mathtutor.db`` under the data directory.
    """
    url = os.environ.get("DATABASE_URL", "").strip()
    if url:
        return url
    db_path = os.environ.get("MATHTUTOR_DB_PATH", "").strip()
    if db_path:
        return db_path if db_path.startswith("sqlite:") else f"sqlite:///{db_path}"
    return f"sqlite:///{get_default_db_path()}"


def create_db_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine; SQLite connections get foreign keys switched on.

    Cascade deletes from conversations to messages depend on the pragma.
    File databases also use WAL so the stream writer does not block reads.
    """
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)

    if is_sqlite:
        use_wal = ":memory:" not in url

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if use_wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


DATABASE_URL = get_database_url()

engine = create_db_engine(
    DATABASE_URL,
    echo=os.environ.get("SQL_ECHO", "").lower() == "true",
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: a session closed when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """FastAPI dependency: the factory itself, for work past the request scope."""
    return SessionLocal


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables. Existing tables are left alone."""
    if DATABASE_URL.startswith("sqlite"):
        ensure_dirs_exist()
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized at %s", engine.url.render_as_string(hide_password=True))


def close_db() -> None:
    engine.dispose()
