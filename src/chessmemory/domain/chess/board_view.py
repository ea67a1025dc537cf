from __future__ import annotations

from dataclasses import dataclass
from typing import List

import chess

from src.chessmemory.domain.chess.session_manager import GameSession, SessionStatus

PIECE_GLYPHS: dict[str, str] = {
    "p": "♟", "r": "♜", "n": "♞", "b": "♝", "q": "♛", "k": "♚",
    "P": "♙", "R": "♖", "N": "♘", "B": "♗", "Q": "♕", "K": "♔",
}


@dataclass(frozen=True)
class SquareView:
    square: str
    piece: str | None
    glyph: str | None
    shade: str
    selected: bool = False
    last_move: bool = False
    target: bool = False
    in_check: bool = False


def render_board(session: GameSession) -> List[List[SquareView]]:
    """Lay out the session's board as rows from rank 8 down to rank 1."""
    board = chess.Board(session.current_fen)
    in_check = board.is_check()

    last_squares: set[int] = set()
    if session.last_move is not None:
        last = chess.Move.from_uci(session.last_move.uci)
        last_squares = {last.from_square, last.to_square}

    targets: set[int] = set()
    if session.selected_square is not None:
        origin = chess.parse_square(session.selected_square)
        targets = {move.to_square for move in board.legal_moves if move.from_square == origin}

    rows: List[List[SquareView]] = []
    for row in range(8):
        rank = 7 - row
        cells: List[SquareView] = []
        for file in range(8):
            square = chess.square(file, rank)
            piece = board.piece_at(square)
            symbol = piece.symbol() if piece else None
            cells.append(
                SquareView(
                    square=chess.square_name(square),
                    piece=symbol,
                    glyph=PIECE_GLYPHS[symbol] if symbol else None,
                    shade="light" if (row + file) % 2 == 0 else "dark",
                    selected=chess.square_name(square) == session.selected_square,
                    last_move=square in last_squares,
                    target=square in targets,
                    in_check=bool(
                        in_check
                        and piece is not None
                        and piece.piece_type == chess.KING
                        and piece.color == board.turn
                    ),
                )
            )
        rows.append(cells)
    return rows


def status_message(session: GameSession) -> str:
    if session.status is SessionStatus.white_won:
        return "Checkmate! White Wins"
    if session.status is SessionStatus.black_won:
        return "Checkmate! Black Wins"
    if session.status is SessionStatus.drawn:
        return "Draw Game"

    board = chess.Board(session.current_fen)
    side = "White's" if board.turn == chess.WHITE else "Black's"
    return f"{side} Move (Check!)" if board.is_check() else f"{side} Move"


__all__ = ["PIECE_GLYPHS", "SquareView", "render_board", "status_message"]
