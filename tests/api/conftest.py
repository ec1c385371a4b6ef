"""Pytest fixtures for API tests.

Provides a test client whose database, file storage, sandbox client and
approval store dependencies are replaced with in-process fakes.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sse_starlette.sse import AppStatus

from mathtutor.api.main import app
from mathtutor.db.connection import get_db, get_session_factory
from mathtutor.services.approval_store import InMemoryApprovalStore, get_approval_store
from mathtutor.services.file_storage import LocalFileStorage, get_file_storage
from mathtutor.services.sandbox_files import (
    ContainerFile,
    UploadedFile,
    get_sandbox_client,
)


class FakeSandboxClient:
    """In-memory stand-in for SandboxFileClient.

    ``containers`` maps container id to ``{file_id: (path, bytes)}``.
    """

    def __init__(self) -> None:
        self.containers: dict[str, dict[str, tuple[str, bytes]]] = {}
        self.uploads: list[tuple[str, bytes, str]] = []

    def add_file(self, container_id: str, file_id: str, path: str, data: bytes) -> None:
        self.containers.setdefault(container_id, {})[file_id] = (path, data)

    async def upload_file(self, filename: str, data: bytes, content_type: str) -> UploadedFile:
        self.uploads.append((filename, data, content_type))
        return UploadedFile(file_id=f"file-{len(self.uploads)}", filename=filename, bytes=len(data))

    async def list_container_files(self, container_id: str) -> list[ContainerFile]:
        return [
            ContainerFile(id=file_id, path=path)
            for file_id, (path, _) in self.containers.get(container_id, {}).items()
        ]

    async def download_container_file(self, container_id: str, file_id: str) -> bytes:
        return self.containers[container_id][file_id][1]


@pytest.fixture
def sandbox() -> FakeSandboxClient:
    return FakeSandboxClient()


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "agent-files")


@pytest.fixture
def approval_store() -> InMemoryApprovalStore:
    return InMemoryApprovalStore()


@pytest.fixture
def client(
    session_factory: sessionmaker,
    db_session: Session,
    storage: LocalFileStorage,
    sandbox: FakeSandboxClient,
    approval_store: InMemoryApprovalStore,
) -> Generator[TestClient, None, None]:
    """TestClient with every external dependency overridden."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    # sse-starlette binds its exit event to the first event loop it sees.
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_file_storage] = lambda: storage
    app.dependency_overrides[get_sandbox_client] = lambda: sandbox
    app.dependency_overrides[get_approval_store] = lambda: approval_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
