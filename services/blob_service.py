# services/blob_service.py
import os
import uuid
import logging
import mimetypes
from dataclasses import dataclass
from functools import lru_cache

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

logger = logging.getLogger(__name__)

# ────────────────────────────────────────────────────────────
# Config
# ────────────────────────────────────────────────────────────
_CONN_STR = os.environ.get("AZURE_BLOB_CONN_STRING")
_DEFAULT_CONTAINER = os.environ.get("AZURE_BLOB_CONTAINER", "car-images")


@dataclass(frozen=True)
class StoredBlob:
    url: str
    public_id: str


# ────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────
def _guess_ext(content_type: str, fallback: str = ".bin") -> str:
    exts = mimetypes.guess_all_extensions(content_type) or []
    return exts[0] if exts else fallback


def blob_name_for(owner_id: str, content_type: str) -> str:
    """Pathing: users/{uid}/cars/{uuid}.{ext}"""
    return f"users/{owner_id}/cars/{uuid.uuid4()}{_guess_ext(content_type, '.jpg')}"


# ────────────────────────────────────────────────────────────
# Public API
# ────────────────────────────────────────────────────────────
class BlobStore:
    """Uploads car images to one Azure Blob container and deletes them by name."""

    def __init__(self, service_client: BlobServiceClient, container: str = _DEFAULT_CONTAINER):
        self._container = service_client.get_container_client(container)
        self._container_ready = False

    @classmethod
    def from_connection_string(cls, conn_str: str, container: str = _DEFAULT_CONTAINER) -> "BlobStore":
        return cls(BlobServiceClient.from_connection_string(conn_str), container)

    def _ensure_container(self) -> None:
        if self._container_ready:
            return
        try:
            self._container.create_container()
        except ResourceExistsError:
            pass
        self._container_ready = True

    def upload(self, owner_id: str, upload) -> StoredBlob:
        """
        Upload one file (anything with .data and .content_type) and return
        where it lives. Errors from the SDK propagate unchanged.
        """
        self._ensure_container()
        name = blob_name_for(owner_id, upload.content_type)
        blob = self._container.get_blob_client(name)
        blob.upload_blob(
            upload.data,
            overwrite=False,
            content_settings=ContentSettings(content_type=upload.content_type),
        )
        logger.info("Uploaded blob %s (%d bytes)", name, len(upload.data))
        return StoredBlob(url=blob.url, public_id=name)

    def delete(self, public_id: str) -> None:
        """Delete a blob; a blob that is already gone counts as deleted."""
        try:
            self._container.delete_blob(public_id, delete_snapshots="include")
        except ResourceNotFoundError:
            logger.info("Blob %s already absent", public_id)
            return
        logger.info("Deleted blob %s", public_id)


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    if not _CONN_STR:
        raise RuntimeError(
            "AZURE_BLOB_CONN_STRING is not set. For Azurite, use the devstore connection string."
        )
    return BlobStore.from_connection_string(_CONN_STR, _DEFAULT_CONTAINER)
