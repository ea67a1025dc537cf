from .session_manager import (
    GameMode,
    GameSession,
    GameSessionRepository,
    MoveActor,
    MoveRecord,
    PlayerColor,
    SessionManager,
    SessionStatus,
    IllegalMoveError,
    InvalidSquareError,
    PromotionNotPendingError,
    SessionError,
    SessionNotFoundError,
    SessionCompletedError,
)
from .board_view import SquareView, render_board, status_message

__all__ = [
    "GameMode",
    "GameSession",
    "GameSessionRepository",
    "IllegalMoveError",
    "InvalidSquareError",
    "MoveActor",
    "MoveRecord",
    "PlayerColor",
    "PromotionNotPendingError",
    "SessionCompletedError",
    "SessionError",
    "SessionManager",
    "SessionNotFoundError",
    "SessionStatus",
    "SquareView",
    "render_board",
    "status_message",
]
