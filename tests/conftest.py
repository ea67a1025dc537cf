from __future__ import annotations

import random
from pathlib import Path

import chess
import pytest
from sqlalchemy.orm import sessionmaker

from src.chessmemory.domain.learning import CreditAssigner, ExperienceStore, MoveSelector
from src.chessmemory.infrastructure.config import AppConfig
from src.chessmemory.infrastructure.persistence.base import (
    Base,
    create_engine_from_config,
)
from src.chessmemory.infrastructure.persistence import blob_storage  # noqa: F401
from src.chessmemory.infrastructure.persistence import game_session_repository  # noqa: F401
from src.chessmemory.interface.http.app import create_app


class RecordingStorage:
    """In-memory blob storage that counts writes."""

    def __init__(self, blobs: dict[str, str] | None = None) -> None:
        self.blobs: dict[str, str] = dict(blobs or {})
        self.writes = 0

    def read_blob(self, key: str) -> str | None:
        return self.blobs.get(key)

    def write_blob(self, key: str, data: str) -> None:
        self.writes += 1
        self.blobs[key] = data


class InMemorySessionRepository:
    def __init__(self) -> None:
        self.sessions: dict = {}

    def create(self, session):
        self.sessions[session.id] = session
        return session

    def get(self, session_id):
        return self.sessions.get(session_id)

    def save(self, session):
        self.sessions[session.id] = session
        return session


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Provide a configuration tuned for isolated tests."""
    return AppConfig(
        database_url="sqlite+pysqlite:///:memory:",
        brain_storage_dir=tmp_path / "brain",
        selfplay_games_dir=tmp_path / "selfplay",
        flask_env="test",
        additional={},
    )


@pytest.fixture
def engine(app_config: AppConfig):
    engine = create_engine_from_config(app_config)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db_session(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def store(storage: RecordingStorage) -> ExperienceStore:
    return ExperienceStore(storage=storage)


@pytest.fixture
def selector(store: ExperienceStore) -> MoveSelector:
    return MoveSelector(store, rng=random.Random(7))


@pytest.fixture
def credit_assigner(store: ExperienceStore) -> CreditAssigner:
    return CreditAssigner(store, learner_color=chess.BLACK)


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def app(app_config: AppConfig):
    flask_app = create_app(app_config)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
