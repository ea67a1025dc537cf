from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Protocol
from uuid import UUID, uuid4

import chess

from src.chessmemory.domain.learning.credit_assignment import CreditAssigner
from src.chessmemory.domain.learning.move_selector import MoveSelector, MoveSuggestion
from src.chessmemory.domain.learning.position_key import position_key


class SessionStatus(str, Enum):
    in_progress = "in_progress"
    white_won = "white_won"
    black_won = "black_won"
    drawn = "drawn"


class PlayerColor(str, Enum):
    white = "white"
    black = "black"


class GameMode(str, Enum):
    ai = "ai"
    pvp = "pvp"


class MoveActor(str, Enum):
    human = "human"
    ai = "ai"


PROMOTION_PIECES: dict[str, chess.PieceType] = {
    "q": chess.QUEEN,
    "r": chess.ROOK,
    "b": chess.BISHOP,
    "n": chess.KNIGHT,
}


@dataclass
class MoveRecord:
    san: str
    uci: str
    actor: MoveActor
    timestamp: datetime
    evaluation: float | None = None
    rationale: List[str] = field(default_factory=list)


@dataclass
class GameSession:
    id: UUID
    status: SessionStatus
    mode: GameMode
    player_color: PlayerColor
    initial_fen: str
    current_fen: str
    moves: List[MoveRecord] = field(default_factory=list)
    trace: List[str] = field(default_factory=list)
    selected_square: str | None = None
    pending_promotion: str | None = None
    learned: bool = False
    evaluation: float | None = None
    reset_count: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: datetime | None = None

    @property
    def last_move(self) -> MoveRecord | None:
        return self.moves[-1] if self.moves else None


class GameSessionRepository(Protocol):
    """Persistence contract for session entities."""

    def create(self, session: GameSession) -> GameSession:
        ...

    def get(self, session_id: UUID) -> GameSession | None:
        ...

    def save(self, session: GameSession) -> GameSession:
        ...


class SessionError(RuntimeError):
    """Base class for session-related domain errors."""

    code: str = "session_error"


class SessionNotFoundError(SessionError):
    code = "session_not_found"


class IllegalMoveError(SessionError):
    code = "illegal_move"


class SessionCompletedError(SessionError):
    code = "session_completed"


class InvalidSquareError(SessionError):
    code = "invalid_square"


class PromotionNotPendingError(SessionError):
    code = "promotion_not_pending"


class SessionManager:
    """Coordinate chess sessions: route human input, reply with the AI, learn at game end."""

    def __init__(
        self,
        repository: GameSessionRepository,
        selector: MoveSelector,
        credit_assigner: CreditAssigner,
    ) -> None:
        self._repository = repository
        self._selector = selector
        self._credit = credit_assigner

    def create_session(
        self,
        *,
        mode: GameMode = GameMode.ai,
        player_color: PlayerColor = PlayerColor.white,
        initial_fen: str | None = None,
    ) -> GameSession:
        board = chess.Board(initial_fen) if initial_fen else chess.Board()
        now = datetime.now(timezone.utc)
        session = GameSession(
            id=uuid4(),
            status=SessionStatus.in_progress,
            mode=mode,
            player_color=player_color,
            initial_fen=board.fen(),
            current_fen=board.fen(),
            started_at=now,
            updated_at=now,
        )

        self._sync_from_board(session, board)
        if session.status is SessionStatus.in_progress and self._is_ai_turn(session, board):
            self._perform_ai_move(session, board)

        return self._repository.create(session)

    def get_session(self, session_id: UUID) -> GameSession:
        session = self._repository.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found.")
        return session

    def submit_move(self, session_id: UUID, uci: str) -> GameSession:
        session = self.get_session(session_id)
        self._ensure_in_progress(session)

        board = self._build_board(session)
        if self._is_ai_turn(session, board):
            raise IllegalMoveError("It is not the human player's turn.")

        try:
            move = chess.Move.from_uci(uci)
        except ValueError as exc:
            raise IllegalMoveError(f"Invalid UCI string: {uci}") from exc

        if move not in board.legal_moves:
            raise IllegalMoveError(f"Move {uci} is not legal in the current position.")

        self._play_human_move(session, board, move)
        return self._repository.save(session)

    def click_square(self, session_id: UUID, square: str) -> GameSession:
        """Interpret a click on ``square`` as a selection, a move or a reselection.

        A click that does not complete a legal move is never an error: it
        selects the clicked piece if it belongs to the side to move and clears
        the selection otherwise.
        """
        session = self.get_session(session_id)
        try:
            target = chess.parse_square(square.lower())
        except ValueError as exc:
            raise InvalidSquareError(f"Unknown square: {square}") from exc

        board = self._build_board(session)
        if session.status is not SessionStatus.in_progress or self._is_ai_turn(session, board):
            return session

        if session.selected_square is None:
            if not self._owns_piece(board, target):
                return session
            session.selected_square = chess.square_name(target)
            session.updated_at = datetime.now(timezone.utc)
            return self._repository.save(session)

        session.pending_promotion = None
        session.updated_at = datetime.now(timezone.utc)
        origin = chess.parse_square(session.selected_square)
        candidates = [
            move
            for move in board.legal_moves
            if move.from_square == origin and move.to_square == target
        ]

        if any(move.promotion for move in candidates):
            session.pending_promotion = chess.Move(origin, target).uci()
            return self._repository.save(session)

        if candidates:
            self._play_human_move(session, board, candidates[0])
            return self._repository.save(session)

        session.selected_square = chess.square_name(target) if self._owns_piece(board, target) else None
        return self._repository.save(session)

    def choose_promotion(self, session_id: UUID, piece: str) -> GameSession:
        session = self.get_session(session_id)
        self._ensure_in_progress(session)
        if session.pending_promotion is None:
            raise PromotionNotPendingError("No pawn promotion is awaiting a piece choice.")

        promotion = PROMOTION_PIECES.get(piece.lower())
        if promotion is None:
            raise IllegalMoveError(f"Cannot promote to {piece!r}; choose one of q, r, b, n.")

        board = self._build_board(session)
        pending = chess.Move.from_uci(session.pending_promotion)
        move = chess.Move(pending.from_square, pending.to_square, promotion=promotion)
        if move not in board.legal_moves:
            session.pending_promotion = None
            self._repository.save(session)
            raise IllegalMoveError(f"Move {move.uci()} is not legal in the current position.")

        self._play_human_move(session, board, move)
        return self._repository.save(session)

    def reset(self, session_id: UUID, mode: GameMode | None = None) -> GameSession:
        """Start a fresh game in the same session; learned experience is kept."""
        session = self.get_session(session_id)
        board = chess.Board()
        now = datetime.now(timezone.utc)

        session.mode = mode or session.mode
        session.initial_fen = board.fen()
        session.moves = []
        session.trace = []
        session.selected_square = None
        session.pending_promotion = None
        session.learned = False
        session.evaluation = None
        session.reset_count += 1
        session.started_at = now
        session.updated_at = now
        session.ended_at = None

        self._sync_from_board(session, board)
        if self._is_ai_turn(session, board):
            self._perform_ai_move(session, board)
        return self._repository.save(session)

    def _play_human_move(self, session: GameSession, board: chess.Board, move: chess.Move) -> None:
        self._record_ply(session, board, move, MoveActor.human)
        session.selected_square = None
        session.pending_promotion = None
        self._after_ply(session, board)

        if session.status is SessionStatus.in_progress and self._is_ai_turn(session, board):
            self._perform_ai_move(session, board)

    def _perform_ai_move(self, session: GameSession, board: chess.Board) -> None:
        suggestion = self._safe_select_move(board)
        if suggestion is None:
            self._sync_from_board(session, board)
            return

        self._record_ply(session, board, suggestion.move, MoveActor.ai, suggestion)
        session.evaluation = suggestion.score
        self._after_ply(session, board)

    def _safe_select_move(self, board: chess.Board) -> MoveSuggestion | None:
        legal_moves = list(board.legal_moves)
        if not legal_moves:
            return None

        suggestion = self._selector.select_move(board.copy(stack=False), legal_moves)
        if suggestion.move not in board.legal_moves:
            return MoveSuggestion(move=legal_moves[0], rationale=["fallback"])
        return suggestion

    def _record_ply(
        self,
        session: GameSession,
        board: chess.Board,
        move: chess.Move,
        actor: MoveActor,
        suggestion: MoveSuggestion | None = None,
    ) -> None:
        now = datetime.now(timezone.utc)
        san = board.san(move)
        board.push(move)
        session.moves.append(
            MoveRecord(
                san=san,
                uci=move.uci(),
                actor=actor,
                timestamp=now,
                evaluation=suggestion.score if suggestion else None,
                rationale=list(suggestion.rationale) if suggestion else [],
            )
        )
        session.trace.append(position_key(board))
        session.updated_at = now

    def _after_ply(self, session: GameSession, board: chess.Board) -> None:
        self._sync_from_board(session, board)
        if session.status is SessionStatus.in_progress or session.learned:
            return

        self._credit.learn(
            _winner_of(session.status),
            session.trace,
            learner_color=self._learner_color(session),
        )
        session.learned = True

    def _sync_from_board(self, session: GameSession, board: chess.Board) -> None:
        session.current_fen = board.fen()
        outcome = board.outcome(claim_draw=True)
        if outcome is None:
            session.status = SessionStatus.in_progress
            session.ended_at = None
            return

        if outcome.winner is None:
            session.status = SessionStatus.drawn
        elif outcome.winner == chess.WHITE:
            session.status = SessionStatus.white_won
        else:
            session.status = SessionStatus.black_won

        session.ended_at = session.ended_at or datetime.now(timezone.utc)

    def _build_board(self, session: GameSession) -> chess.Board:
        board = chess.Board(session.initial_fen)
        for move in session.moves:
            board.push(chess.Move.from_uci(move.uci))
        return board

    def _ensure_in_progress(self, session: GameSession) -> None:
        if session.status is not SessionStatus.in_progress:
            raise SessionCompletedError(f"Session {session.id} already completed.")

    def _is_ai_turn(self, session: GameSession, board: chess.Board) -> bool:
        return session.mode is GameMode.ai and board.turn != self._human_turn(session)

    def _human_turn(self, session: GameSession) -> chess.Color:
        return chess.WHITE if session.player_color is PlayerColor.white else chess.BLACK

    def _learner_color(self, session: GameSession) -> chess.Color:
        if session.mode is GameMode.ai:
            return not self._human_turn(session)
        return self._credit.learner_color

    @staticmethod
    def _owns_piece(board: chess.Board, square: chess.Square) -> bool:
        piece = board.piece_at(square)
        return piece is not None and piece.color == board.turn


def _winner_of(status: SessionStatus) -> chess.Color | None:
    if status is SessionStatus.white_won:
        return chess.WHITE
    if status is SessionStatus.black_won:
        return chess.BLACK
    return None


__all__ = [
    "GameMode",
    "GameSession",
    "GameSessionRepository",
    "IllegalMoveError",
    "InvalidSquareError",
    "MoveActor",
    "MoveRecord",
    "PROMOTION_PIECES",
    "PlayerColor",
    "PromotionNotPendingError",
    "SessionCompletedError",
    "SessionError",
    "SessionManager",
    "SessionNotFoundError",
    "SessionStatus",
]
