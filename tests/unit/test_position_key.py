from __future__ import annotations

import chess
import pytest

from src.chessmemory.domain.learning.position_key import key_from_fen, position_key


def test_key_drops_move_counters() -> None:
    assert key_from_fen(chess.STARTING_FEN) == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"


def test_same_layout_reached_later_shares_key() -> None:
    fresh = chess.Board()
    shuffled = chess.Board()
    for uci in ("g1f3", "g8f6", "f3g1", "f6g8"):
        shuffled.push_uci(uci)

    assert shuffled.fen() != fresh.fen()
    assert position_key(shuffled) == position_key(fresh)
    assert position_key(shuffled) == position_key(shuffled)


def test_key_keeps_side_to_move_and_castling_rights() -> None:
    board = chess.Board()
    board.push_uci("e2e4")
    white_to_move = chess.Board(board.fen().replace(" b ", " w "))
    assert position_key(board) != position_key(white_to_move)

    no_castling = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w - - 0 1")
    castling = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    assert position_key(no_castling) != position_key(castling)


def test_truncated_fen_is_rejected() -> None:
    with pytest.raises(ValueError):
        key_from_fen("8/8/8/8/8/8/8/8 w")
