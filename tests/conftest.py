from __future__ import annotations

import io
import os
import threading
import time
import uuid

# must be set before db / auth modules are imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from PIL import Image

from db import engine
from models import Base
from services.blob_service import StoredBlob
from services.user_service import register_user
from utils.multipart import UploadedFile


class FakeBlobStore:
    """In-memory stand-in for BlobStore with switchable failures."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_uploads: set[str] = set()
        self.fail_deletes: set[str] = set()
        self.delays: dict[str, float] = {}
        self._lock = threading.Lock()

    def upload(self, owner_id: str, upload) -> StoredBlob:
        time.sleep(self.delays.get(upload.filename, 0))
        if upload.filename in self.fail_uploads:
            raise OSError(f"upload of {upload.filename} refused")
        name = f"users/{owner_id}/cars/{uuid.uuid4().hex}-{upload.filename}"
        with self._lock:
            self.blobs[name] = upload.data
            self.uploaded.append(name)
        return StoredBlob(url=f"https://blobs.test/car-images/{name}", public_id=name)

    def delete(self, public_id: str) -> None:
        if public_id in self.fail_deletes:
            raise OSError(f"delete of {public_id} refused")
        with self._lock:
            self.blobs.pop(public_id, None)
            self.deleted.append(public_id)


def png_bytes(color: str = "red", size: tuple[int, int] = (4, 3)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_upload(filename: str, color: str = "red") -> UploadedFile:
    return UploadedFile(filename=filename, content_type="image/png", data=png_bytes(color), width=4, height=3)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def user():
    return register_user("Alice", "alice@example.com", "s3cret")


@pytest.fixture
def other_user():
    return register_user("Bob", "bob@example.com", "hunter2")
