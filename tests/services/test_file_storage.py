"""Tests for durable file storage backends."""

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from mathtutor.errors import StoragePathError
from mathtutor.services.file_storage import (
    DEFAULT_S3_BUCKET,
    LocalFileStorage,
    S3FileStorage,
    build_file_storage,
    build_storage_path,
    normalize_storage_path,
)


class TestStoragePaths:

    def test_build_storage_path(self):
        assert build_storage_path("u1", "c1", "tree.png") == "u1/c1/tree.png"

    def test_missing_conversation_uses_default(self):
        assert build_storage_path("u1", None, "tree.png") == "u1/default/tree.png"

    def test_file_name_reduced_to_basename(self):
        assert build_storage_path("u1", "c1", "../../etc/passwd") == "u1/c1/passwd"

    def test_normalize_collapses_slashes(self):
        assert normalize_storage_path("/u1//c1/./tree.png") == "u1/c1/tree.png"

    @pytest.mark.parametrize("path", ["", "/", "u1/../../x", "..\\x"])
    def test_normalize_rejects_escapes(self, path):
        with pytest.raises(ValueError):
            normalize_storage_path(path)


class TestLocalFileStorage:

    def test_save_read_exists(self, tmp_path):
        storage = LocalFileStorage(tmp_path)

        path = storage.save("u1/c1/tree.png", b"png", "image/png")

        assert path == "u1/c1/tree.png"
        assert (tmp_path / "u1" / "c1" / "tree.png").read_bytes() == b"png"
        assert storage.exists(path)
        assert storage.read(path) == b"png"

    def test_save_overwrites(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        storage.save("u1/c1/a.txt", b"one", "text/plain")

        storage.save("u1/c1/a.txt", b"two", "text/plain")

        assert storage.read("u1/c1/a.txt") == b"two"

    def test_read_missing_returns_none(self, tmp_path):
        storage = LocalFileStorage(tmp_path)

        assert storage.read("u1/c1/missing.png") is None
        assert not storage.exists("u1/c1/missing.png")


class TestS3FileStorage:

    def _storage(self, client, prefix=""):
        storage = S3FileStorage(bucket="bucket", prefix=prefix)
        storage._client = client
        return storage

    def test_save_puts_object_under_prefix(self):
        client = MagicMock()
        storage = self._storage(client, prefix="/tutor/")

        path = storage.save("u1/c1/tree.png", b"png", "image/png")

        assert path == "u1/c1/tree.png"
        client.put_object.assert_called_once_with(
            Bucket="bucket",
            Key="tutor/u1/c1/tree.png",
            Body=b"png",
            ContentType="image/png",
        )

    def test_read_returns_body(self):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO(b"data")}

        assert self._storage(client).read("u1/c1/a.txt") == b"data"

    def test_read_missing_key_returns_none(self):
        client = MagicMock()
        client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "GetObject"
        )

        assert self._storage(client).read("u1/c1/a.txt") is None

    def test_read_other_errors_propagate(self):
        client = MagicMock()
        client.get_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "no"}}, "GetObject"
        )

        with pytest.raises(ClientError):
            self._storage(client).read("u1/c1/a.txt")

    def test_exists_false_on_client_error(self):
        client = MagicMock()
        client.head_object.side_effect = ClientError(
            {"Error": {"Code": "404", "Message": "nope"}}, "HeadObject"
        )

        assert self._storage(client).exists("u1/c1/a.txt") is False


class TestBuildFileStorage:

    def test_local_by_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv("FILE_STORAGE_BACKEND", raising=False)
        monkeypatch.setenv("FILE_STORAGE_LOCAL_DIR", str(tmp_path))

        storage = build_file_storage()

        assert isinstance(storage, LocalFileStorage)
        assert storage.base_dir == tmp_path

    def test_s3_backend(self, monkeypatch):
        monkeypatch.setenv("FILE_STORAGE_BACKEND", "s3")
        monkeypatch.delenv("FILE_STORAGE_S3_BUCKET", raising=False)
        monkeypatch.setenv("FILE_STORAGE_S3_ENDPOINT", "http://localhost:9000")

        storage = build_file_storage()

        assert isinstance(storage, S3FileStorage)
        assert storage.bucket == DEFAULT_S3_BUCKET
        assert storage.endpoint_url == "http://localhost:9000"

    def test_unknown_backend_raises(self, monkeypatch):
        monkeypatch.setenv("FILE_STORAGE_BACKEND", "ftp")

        with pytest.raises(RuntimeError, match="Unsupported"):
            build_file_storage()


def test_escape_raises_storage_path_error():
    with pytest.raises(StoragePathError) as exc_info:
        normalize_storage_path("../x")

    assert exc_info.value.path == "../x"
    assert exc_info.value.field == "path"
