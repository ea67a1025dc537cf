from __future__ import annotations

import json

import pytest

from src.chessmemory.domain.learning.experience_store import DEFAULT_STORAGE_KEY, ExperienceStore

START_KEY = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"


class _FailingStorage:
    def read_blob(self, key: str) -> str | None:
        raise OSError("disk unavailable")

    def write_blob(self, key: str, data: str) -> None:
        raise OSError("disk full")


def test_unseen_key_scores_zero(store: ExperienceStore) -> None:
    assert store.get(START_KEY) == 0
    assert START_KEY not in store
    assert len(store) == 0


def test_deltas_accumulate(store: ExperienceStore) -> None:
    store.apply_delta(START_KEY, 20)
    assert store.apply_delta(START_KEY, -100) == -80
    assert store.get(START_KEY) == -80
    assert store.dirty


def test_persist_then_load_round_trips(storage, store: ExperienceStore) -> None:
    store.apply_delta(START_KEY, 20)
    store.apply_delta("8/8/8/8/8/8/8/K6k b - -", -100.5)

    assert store.persist() is True
    assert storage.writes == 1
    assert not store.dirty

    restored = ExperienceStore.load(storage)
    assert restored.snapshot() == store.snapshot()


def test_persist_overwrites_previous_snapshot(storage, store: ExperienceStore) -> None:
    storage.blobs[DEFAULT_STORAGE_KEY] = json.dumps({"stale": 5})
    store.apply_delta(START_KEY, 20)
    store.persist()

    assert json.loads(storage.blobs[DEFAULT_STORAGE_KEY]) == {START_KEY: 20}


def test_missing_snapshot_loads_empty(storage) -> None:
    assert len(ExperienceStore.load(storage)) == 0


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[1, 2, 3]",
        json.dumps({START_KEY: "lots"}),
        json.dumps({START_KEY: True}),
        "",
    ],
)
def test_corrupt_snapshot_loads_empty(storage, raw: str) -> None:
    storage.blobs[DEFAULT_STORAGE_KEY] = raw
    store = ExperienceStore.load(storage)
    assert len(store) == 0
    assert store.get(START_KEY) == 0


def test_unreadable_storage_loads_empty() -> None:
    store = ExperienceStore.load(_FailingStorage())
    assert len(store) == 0


def test_failed_persist_keeps_memory_authoritative() -> None:
    store = ExperienceStore(storage=_FailingStorage())
    store.apply_delta(START_KEY, -100)

    assert store.persist() is False
    assert store.get(START_KEY) == -100
    assert store.dirty


def test_flush_only_writes_unsaved_changes(storage, store: ExperienceStore) -> None:
    assert store.flush() is True
    assert storage.writes == 0

    store.apply_delta(START_KEY, 20)
    store.flush()
    store.flush()
    assert storage.writes == 1


def test_store_without_storage_cannot_persist() -> None:
    store = ExperienceStore({START_KEY: 3})
    assert store.persist() is False
    assert store.get(START_KEY) == 3


def test_delta_during_write_stays_pending() -> None:
    class _InterleavingStorage:
        def __init__(self) -> None:
            self.blobs: dict[str, str] = {}
            self.store: ExperienceStore | None = None

        def read_blob(self, key: str) -> str | None:
            return self.blobs.get(key)

        def write_blob(self, key: str, data: str) -> None:
            self.blobs[key] = data
            if self.store is not None and "b" not in self.store:
                self.store.apply_delta("b", 5)

    storage = _InterleavingStorage()
    store = ExperienceStore(storage=storage)
    storage.store = store
    store.apply_delta("a", 1)

    assert store.persist() is True
    assert json.loads(storage.blobs[DEFAULT_STORAGE_KEY]) == {"a": 1}
    assert store.dirty

    assert store.flush() is True
    assert json.loads(storage.blobs[DEFAULT_STORAGE_KEY]) == {"a": 1, "b": 5}
    assert not store.dirty
