"""Root-level pytest fixtures for all tests.

Points the data directory and database at a throwaway location before any
``mathtutor`` module is imported, so app startup never touches a developer
database. Provides in-memory database fixtures with SQLite foreign keys
enabled (needed for cascade deletes).
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="mathtutor-tests-"))
os.environ["MATHTUTOR_DATA_DIR"] = str(_TEST_DATA_DIR)
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR / 'test.db'}"
os.environ["FILE_STORAGE_BACKEND"] = "local"
for _var in ("MATHTUTOR_API_KEY", "MATHTUTOR_WORKFLOW_MODE", "MATHTUTOR_PUBLIC_URL"):
    os.environ.pop(_var, None)

import pytest  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from mathtutor.db.connection import create_db_engine  # noqa: E402
from mathtutor.db.models import Base  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring OPENAI_API_KEY and network"
    )


def make_test_engine() -> Engine:
    """In-memory SQLite engine shared across threads, with FK enforcement."""
    engine = create_db_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Session factory bound to a fresh in-memory database."""
    engine = make_test_engine()
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """A session on the in-memory database."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
