from __future__ import annotations

from typing import Mapping

import chess

PIECE_VALUES: Mapping[chess.PieceType, int] = {
    chess.PAWN: 10,
    chess.KNIGHT: 30,
    chess.BISHOP: 30,
    chess.ROOK: 50,
    chess.QUEEN: 90,
    chess.KING: 900,
}


def evaluate(board: chess.Board) -> int:
    """Material balance of ``board``: positive favours white, negative black."""
    score = 0
    for piece in board.piece_map().values():
        value = PIECE_VALUES[piece.piece_type]
        score += value if piece.color == chess.WHITE else -value
    return score


def evaluate_for(board: chess.Board, color: chess.Color) -> int:
    """Material balance seen from ``color``."""
    score = evaluate(board)
    return score if color == chess.WHITE else -score


__all__ = ["PIECE_VALUES", "evaluate", "evaluate_for"]
