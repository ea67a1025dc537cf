from __future__ import annotations

import chess

# Placement, side to move, castling rights, en-passant target.
_KEY_FIELDS = 4


def key_from_fen(fen: str) -> str:
    """Drop the half-move clock and full-move number from a FEN string."""
    fields = fen.split()
    if len(fields) < _KEY_FIELDS:
        raise ValueError(f"FEN {fen!r} is missing position fields.")
    return " ".join(fields[:_KEY_FIELDS])


def position_key(board: chess.Board) -> str:
    """Canonical experience key for the position currently on ``board``."""
    return key_from_fen(board.fen())


__all__ = ["key_from_fen", "position_key"]
