from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Session

from src.chessmemory.domain.chess import (
    GameMode,
    GameSession,
    GameSessionRepository,
    MoveActor,
    MoveRecord,
    PlayerColor,
    SessionStatus,
)
from src.chessmemory.infrastructure.persistence.base import Base


class GameSessionRecord(Base):  # type: ignore[misc]
    __tablename__ = "game_sessions"

    id = Column(String(36), primary_key=True)
    status = Column(String(32), nullable=False)
    mode = Column(String(8), nullable=False)
    player_color = Column(String(8), nullable=False)
    initial_fen = Column(Text, nullable=False)
    current_fen = Column(Text, nullable=False)
    moves = Column(JSON, nullable=False, default=list)
    trace = Column(JSON, nullable=False, default=list)
    selected_square = Column(String(2), nullable=True)
    pending_promotion = Column(String(4), nullable=True)
    learned = Column(Boolean, nullable=False, default=False)
    evaluation = Column(Float, nullable=True)
    reset_count = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    ended_at = Column(DateTime(timezone=True), nullable=True)


def _serialize_moves(moves: Iterable[MoveRecord]) -> list[dict[str, Any]]:
    payload: list[dict[str, Any]] = []
    for move in moves:
        payload.append(
            {
                "san": move.san,
                "uci": move.uci,
                "actor": move.actor.value,
                "timestamp": move.timestamp.isoformat(),
                "evaluation": move.evaluation,
                "rationale": list(move.rationale),
            }
        )
    return payload


def _deserialize_moves(items: Optional[Iterable[dict[str, Any]]]) -> List[MoveRecord]:
    if not items:
        return []
    records: List[MoveRecord] = []
    for item in items:
        records.append(
            MoveRecord(
                san=item["san"],
                uci=item["uci"],
                actor=MoveActor(item["actor"]),
                timestamp=datetime.fromisoformat(item["timestamp"]),
                evaluation=item.get("evaluation"),
                rationale=list(item.get("rationale") or []),
            )
        )
    return records


class SqlAlchemyGameSessionRepository(GameSessionRepository):
    """SQLAlchemy-backed repository for chess sessions."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, session_entity: GameSession) -> GameSession:
        record = GameSessionRecord(id=str(session_entity.id))
        self._apply(record, session_entity)
        self._session.add(record)
        self._session.commit()
        self._session.refresh(record)
        return self._to_entity(record)

    def get(self, session_id: UUID) -> GameSession | None:
        record = self._session.get(GameSessionRecord, str(session_id))
        return self._to_entity(record) if record else None

    def save(self, session_entity: GameSession) -> GameSession:
        record = self._session.get(GameSessionRecord, str(session_entity.id))
        if record is None:
            raise ValueError(f"Session {session_entity.id} not found.")

        self._apply(record, session_entity)
        self._session.commit()
        self._session.refresh(record)
        return self._to_entity(record)

    @staticmethod
    def _apply(record: GameSessionRecord, session_entity: GameSession) -> None:
        record.status = session_entity.status.value
        record.mode = session_entity.mode.value
        record.player_color = session_entity.player_color.value
        record.initial_fen = session_entity.initial_fen
        record.current_fen = session_entity.current_fen
        record.moves = _serialize_moves(session_entity.moves)
        record.trace = list(session_entity.trace)
        record.selected_square = session_entity.selected_square
        record.pending_promotion = session_entity.pending_promotion
        record.learned = session_entity.learned
        record.evaluation = session_entity.evaluation
        record.reset_count = session_entity.reset_count
        record.started_at = session_entity.started_at
        record.updated_at = session_entity.updated_at
        record.ended_at = session_entity.ended_at

    @staticmethod
    def _to_entity(record: GameSessionRecord) -> GameSession:
        return GameSession(
            id=UUID(record.id),
            status=SessionStatus(record.status),
            mode=GameMode(record.mode),
            player_color=PlayerColor(record.player_color),
            initial_fen=record.initial_fen,
            current_fen=record.current_fen,
            moves=_deserialize_moves(record.moves),
            trace=list(record.trace or []),
            selected_square=record.selected_square,
            pending_promotion=record.pending_promotion,
            learned=bool(record.learned),
            evaluation=record.evaluation if record.evaluation is None else float(record.evaluation),
            reset_count=record.reset_count or 0,
            started_at=record.started_at or datetime.now(timezone.utc),
            updated_at=record.updated_at or datetime.now(timezone.utc),
            ended_at=record.ended_at,
        )


__all__ = ["SqlAlchemyGameSessionRepository", "GameSessionRecord"]
