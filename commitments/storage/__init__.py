"""Storage backends for headers and records.

``get_storage`` picks the backend named by ``settings.STORAGE_BACKEND``:
``"local"`` keeps JSON blobs under ``settings.DATA_DIR``, ``"remote"``
uses the relational tables through a SQLAlchemy session.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.orm import Session

from commitments.config import get_settings
from commitments.schemas.records import Header
from commitments.storage.base import EMPTY_RECORDS, StoragePort
from commitments.storage.kv_store import GLOBAL_NAMESPACE, KeyValueStore
from commitments.storage.local import LocalStorage
from commitments.storage.remote import RemoteStorage

__all__ = [
    "EMPTY_RECORDS",
    "GLOBAL_NAMESPACE",
    "KeyValueStore",
    "LocalStorage",
    "RemoteStorage",
    "StoragePort",
    "get_kv_store",
    "get_storage",
]


def get_kv_store(root: Path | None = None) -> KeyValueStore:
    """Return the global-namespace store rooted at *root* or ``settings.DATA_DIR``."""
    return KeyValueStore(Path(root) if root is not None else Path(get_settings().DATA_DIR))


def get_storage(
    user_id: str,
    db: Session | None = None,
    header_defaults: Header | None = None,
    backend: str | None = None,
    kv_store: KeyValueStore | None = None,
) -> StoragePort:
    """Build the storage backend for *user_id*.

    Args:
        user_id: Opaque owner identifier.
        db: Session used by the remote backend.
        header_defaults: Header returned when nothing is stored yet.
        backend: ``"local"`` or ``"remote"``; defaults to the configured one.
        kv_store: Store used by the local backend.

    Raises:
        ValueError: If the backend is unknown, or ``"remote"`` without a session.
    """
    backend = (backend or get_settings().STORAGE_BACKEND).lower()
    if backend == "local":
        return LocalStorage(kv_store or get_kv_store(), user_id, header_defaults)
    if backend == "remote":
        if db is None:
            raise ValueError("The remote storage backend requires a database session")
        return RemoteStorage(db, user_id, header_defaults)
    raise ValueError(f"Unknown storage backend: {backend!r}")
