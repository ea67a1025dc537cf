from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator
from uuid import UUID, uuid4

from flask import Blueprint, current_app, jsonify, request

from src.chessmemory.domain.chess import (
    GameMode,
    GameSession,
    IllegalMoveError,
    InvalidSquareError,
    PlayerColor,
    PromotionNotPendingError,
    SessionCompletedError,
    SessionError,
    SessionManager,
    SessionNotFoundError,
    render_board,
    status_message,
)
from src.chessmemory.infrastructure.learning import LearningEngine
from src.chessmemory.infrastructure.persistence.game_session_repository import (
    SqlAlchemyGameSessionRepository,
)
from src.chessmemory.interface.telemetry.logging import bind_trace, get_logger

gameplay_bp = Blueprint("gameplay", __name__)
logger = get_logger("chessmemory.api.sessions")

_ERROR_STATUS: dict[type[SessionError], int] = {
    SessionNotFoundError: 404,
    IllegalMoveError: 409,
    SessionCompletedError: 409,
    PromotionNotPendingError: 409,
    InvalidSquareError: 400,
}


def _learning_engine() -> LearningEngine:
    return current_app.extensions["learning_engine"]


@contextmanager
def _session_manager() -> Iterator[SessionManager]:
    factory = current_app.config["SESSION_FACTORY"]
    engine = _learning_engine()

    session = factory()
    try:
        repository = SqlAlchemyGameSessionRepository(session)
        yield SessionManager(repository, engine.selector, engine.credit_assigner)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _serialize_session(session: GameSession, trace_id: str | None = None) -> dict[str, Any]:
    last_move = session.last_move
    return {
        "id": str(session.id),
        "status": session.status.value,
        "mode": session.mode.value,
        "modeLabel": f"Vs ({session.mode.value.upper()})",
        "message": status_message(session),
        "playerColor": session.player_color.value,
        "currentFen": session.current_fen,
        "selectedSquare": session.selected_square,
        "pendingPromotion": session.pending_promotion,
        "lastMove": (
            {"from": last_move.uci[:2], "to": last_move.uci[2:4]} if last_move is not None else None
        ),
        "board": [
            [
                {
                    "square": cell.square,
                    "piece": cell.piece,
                    "glyph": cell.glyph,
                    "shade": cell.shade,
                    "selected": cell.selected,
                    "lastMove": cell.last_move,
                    "target": cell.target,
                    "inCheck": cell.in_check,
                }
                for cell in row
            ]
            for row in render_board(session)
        ],
        "moves": [
            {
                "san": move.san,
                "uci": move.uci,
                "actor": move.actor.value,
                "timestamp": move.timestamp.isoformat(),
                "evaluation": move.evaluation,
                "rationale": move.rationale,
            }
            for move in session.moves
        ],
        "plies": len(session.trace),
        "learned": session.learned,
        "evaluation": session.evaluation,
        "resetCount": session.reset_count,
        "startedAt": session.started_at.isoformat(),
        "updatedAt": session.updated_at.isoformat(),
        "endedAt": session.ended_at.isoformat() if session.ended_at else None,
        "traceId": trace_id,
    }


def _domain_error(code: str, message: str, status: int = 400, detail: Any | None = None):
    payload: dict[str, Any] = {"code": code, "message": message}
    if detail is not None:
        payload["detail"] = detail
    return jsonify(payload), status


def _session_error(exc: SessionError, log: Any):
    status = _ERROR_STATUS.get(type(exc), 400)
    log.warning("session_request_rejected", code=exc.code, detail=str(exc))
    return _domain_error(exc.code, str(exc), status=status)


def _parse_session_id(session_id: str) -> UUID | None:
    try:
        return UUID(session_id)
    except ValueError:
        return None


def _invalid_session_id():
    return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)


@gameplay_bp.post("")
def create_session():
    payload = request.get_json(silent=True) or {}
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex
    log = bind_trace(logger, trace_id)

    try:
        mode = GameMode(payload.get("mode", "ai"))
    except ValueError:
        return _domain_error("invalid_mode", "mode must be 'ai' or 'pvp'.")

    try:
        player_color = PlayerColor(payload.get("playerColor", "white"))
    except ValueError:
        return _domain_error("invalid_color", "playerColor must be 'white' or 'black'.")

    with _session_manager() as manager:
        session = manager.create_session(mode=mode, player_color=player_color)

    log.info(
        "session_created",
        session_id=str(session.id),
        mode=mode.value,
        player_color=player_color.value,
    )
    return jsonify(_serialize_session(session, trace_id=trace_id)), 201


@gameplay_bp.get("/<session_id>")
def get_session(session_id: str):
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _invalid_session_id()

    try:
        with _session_manager() as manager:
            session = manager.get_session(session_uuid)
    except SessionError as exc:
        return _session_error(exc, log)

    return jsonify(_serialize_session(session, trace_id=trace_id)), 200


@gameplay_bp.post("/<session_id>/moves")
def submit_move(session_id: str):
    payload = request.get_json(silent=True) or {}
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _invalid_session_id()

    uci = payload.get("uci")
    if not isinstance(uci, str):
        return _domain_error("invalid_move", "uci must be provided as a string.", status=400)

    try:
        with _session_manager() as manager:
            session = manager.submit_move(session_uuid, uci)
    except SessionError as exc:
        return _session_error(exc, log)

    log.info("move_accepted", uci=uci, total_moves=len(session.moves), status=session.status.value)
    return jsonify(_serialize_session(session, trace_id=trace_id)), 200


@gameplay_bp.post("/<session_id>/clicks")
def click_square(session_id: str):
    payload = request.get_json(silent=True) or {}
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _invalid_session_id()

    square = payload.get("square")
    if not isinstance(square, str):
        return _domain_error("invalid_square", "square must be provided as a string.", status=400)

    try:
        with _session_manager() as manager:
            session = manager.click_square(session_uuid, square)
    except SessionError as exc:
        return _session_error(exc, log)

    log.debug("square_clicked", square=square, selected=session.selected_square)
    return jsonify(_serialize_session(session, trace_id=trace_id)), 200


@gameplay_bp.post("/<session_id>/promotion")
def choose_promotion(session_id: str):
    payload = request.get_json(silent=True) or {}
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _invalid_session_id()

    piece = payload.get("piece")
    if not isinstance(piece, str):
        return _domain_error("invalid_piece", "piece must be one of 'q', 'r', 'b', 'n'.", status=400)

    try:
        with _session_manager() as manager:
            session = manager.choose_promotion(session_uuid, piece)
    except SessionError as exc:
        return _session_error(exc, log)

    log.info("promotion_applied", piece=piece, total_moves=len(session.moves))
    return jsonify(_serialize_session(session, trace_id=trace_id)), 200


@gameplay_bp.post("/<session_id>/reset")
def reset_session(session_id: str):
    payload = request.get_json(silent=True) or {}
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _invalid_session_id()

    mode: GameMode | None = None
    if "mode" in payload:
        try:
            mode = GameMode(payload["mode"])
        except ValueError:
            return _domain_error("invalid_mode", "mode must be 'ai' or 'pvp'.")

    try:
        with _session_manager() as manager:
            session = manager.reset(session_uuid, mode=mode)
    except SessionError as exc:
        return _session_error(exc, log)

    log.info("session_reset", mode=session.mode.value, reset_count=session.reset_count)
    return jsonify(_serialize_session(session, trace_id=trace_id)), 200


__all__ = ["gameplay_bp"]
