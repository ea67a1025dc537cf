from __future__ import annotations

import json
from numbers import Real
from threading import Lock
from typing import Any, Mapping, Protocol

from src.chessmemory.interface.telemetry.logging import get_logger

DEFAULT_STORAGE_KEY = "chess_brain"

logger = get_logger("chessmemory.brain")


class BlobStorage(Protocol):
    """Durable key/value storage for opaque text snapshots."""

    def read_blob(self, key: str) -> str | None:
        ...

    def write_blob(self, key: str, data: str) -> None:
        ...


class ExperienceStore:
    """Learned score per position key, shared by every game in the process.

    Scores only ever grow by accumulation: ``apply_delta`` adds to the current
    value and nothing removes a key. The whole mapping is written back to
    ``storage`` as a single JSON object by ``persist``.
    """

    def __init__(
        self,
        scores: Mapping[str, float] | None = None,
        *,
        storage: BlobStorage | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        self._scores: dict[str, float] = dict(scores or {})
        self._storage = storage
        self._storage_key = storage_key
        self._lock = Lock()
        self._dirty = False
        self._revision = 0

    @classmethod
    def load(
        cls,
        storage: BlobStorage,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ) -> "ExperienceStore":
        """Restore the persisted snapshot, or start empty if it is missing or unusable."""
        try:
            raw = storage.read_blob(storage_key)
        except Exception as exc:
            logger.warning("experience_snapshot_unreadable", storage_key=storage_key, error=str(exc))
            return cls(storage=storage, storage_key=storage_key)

        if raw is None:
            logger.info("experience_store_empty", storage_key=storage_key)
            return cls(storage=storage, storage_key=storage_key)

        scores = _parse_snapshot(raw)
        if scores is None:
            logger.warning("experience_snapshot_corrupt", storage_key=storage_key)
            return cls(storage=storage, storage_key=storage_key)

        logger.info("experience_store_loaded", storage_key=storage_key, positions=len(scores))
        return cls(scores, storage=storage, storage_key=storage_key)

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def dirty(self) -> bool:
        return self._dirty

    def get(self, key: str) -> float:
        return self._scores.get(key, 0)

    def apply_delta(self, key: str, delta: float) -> float:
        with self._lock:
            score = self._scores.get(key, 0) + delta
            self._scores[key] = score
            self._revision += 1
            self._dirty = True
        return score

    def snapshot(self) -> dict[str, float]:
        with self._lock:
            return dict(self._scores)

    def persist(self) -> bool:
        """Overwrite the durable snapshot with the full in-memory mapping.

        Returns ``False`` when there is no storage or the write fails; the
        in-memory scores stay authoritative either way.
        """
        if self._storage is None:
            return False

        with self._lock:
            payload = json.dumps(self._scores, separators=(",", ":"), sort_keys=True)
            positions = len(self._scores)
            revision = self._revision

        try:
            self._storage.write_blob(self._storage_key, payload)
        except Exception as exc:
            logger.warning(
                "experience_persist_failed",
                storage_key=self._storage_key,
                positions=positions,
                error=str(exc),
            )
            return False

        with self._lock:
            # deltas applied during the write stay pending for the next flush
            if self._revision == revision:
                self._dirty = False
        logger.info("experience_persisted", storage_key=self._storage_key, positions=positions)
        return True

    def flush(self) -> bool:
        """Persist only if deltas were applied since the last successful write."""
        if not self._dirty:
            return True
        return self.persist()

    def __len__(self) -> int:
        return len(self._scores)

    def __contains__(self, key: object) -> bool:
        return key in self._scores


def _parse_snapshot(raw: str) -> dict[str, float] | None:
    try:
        document: Any = json.loads(raw)
    except (TypeError, ValueError):
        return None

    if not isinstance(document, dict):
        return None

    scores: dict[str, float] = {}
    for key, value in document.items():
        if isinstance(value, bool) or not isinstance(value, Real):
            return None
        scores[str(key)] = value
    return scores


__all__ = ["BlobStorage", "DEFAULT_STORAGE_KEY", "ExperienceStore"]
