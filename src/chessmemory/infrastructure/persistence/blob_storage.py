from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from sqlalchemy import Column, DateTime, String, Text, func
from sqlalchemy.orm import sessionmaker

from src.chessmemory.domain.learning.experience_store import BlobStorage
from src.chessmemory.infrastructure.config import AppConfig
from src.chessmemory.infrastructure.persistence.base import Base, session_scope

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class BlobRecord(Base):  # type: ignore[misc]
    __tablename__ = "storage_blobs"

    key = Column(String(128), primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class FileBlobStorage(BlobStorage):
    """Store each blob as ``<key>.json`` inside ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Storage key {key!r} contains unsupported characters.")
        return self._root / f"{key}.json"

    def read_blob(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write_blob(self, key: str, data: str) -> None:
        path = self.path_for(key)
        self._root.mkdir(parents=True, exist_ok=True)

        # Readers only ever see a complete snapshot.
        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class SqlAlchemyBlobStorage(BlobStorage):
    """Blob storage backed by the ``storage_blobs`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def read_blob(self, key: str) -> str | None:
        with session_scope(self._session_factory) as session:
            record = session.get(BlobRecord, key)
            return record.payload if record is not None else None

    def write_blob(self, key: str, data: str) -> None:
        with session_scope(self._session_factory) as session:
            record = session.get(BlobRecord, key)
            if record is None:
                session.add(BlobRecord(key=key, payload=data))
            else:
                record.payload = data


def build_blob_storage(config: AppConfig, session_factory: sessionmaker | None = None) -> BlobStorage:
    """Select the brain's storage backend from configuration."""
    if config.brain_storage_backend == "database":
        if session_factory is None:
            raise ValueError("The database storage backend requires a session factory.")
        return SqlAlchemyBlobStorage(session_factory)
    return FileBlobStorage(config.brain_storage_dir)


__all__ = ["BlobRecord", "FileBlobStorage", "SqlAlchemyBlobStorage", "build_blob_storage"]
