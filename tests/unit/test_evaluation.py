from __future__ import annotations

import chess
import pytest

from src.chessmemory.domain.learning.evaluation import PIECE_VALUES, evaluate, evaluate_for


def test_starting_position_is_balanced() -> None:
    assert evaluate(chess.Board()) == 0


@pytest.mark.parametrize(
    "fen",
    [
        "4k3/8/8/8/8/8/8/4K3 w - - 0 1",
        "k7/8/8/8/8/8/8/7K b - - 12 40",
    ],
)
def test_kings_only_scores_zero(fen: str) -> None:
    assert evaluate(chess.Board(fen)) == 0


def test_empty_board_scores_zero() -> None:
    assert evaluate(chess.Board(None)) == 0


def test_material_is_signed_by_color() -> None:
    board = chess.Board("4k3/8/8/8/8/8/8/Q3K3 w - - 0 1")
    assert evaluate(board) == PIECE_VALUES[chess.QUEEN]

    board = chess.Board("r3k3/pp6/8/8/8/8/8/4K3 w - - 0 1")
    assert evaluate(board) == -(50 + 10 + 10)


@pytest.mark.parametrize(
    "fen",
    [
        chess.STARTING_FEN,
        "r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4",
        "8/5k2/3q4/8/2N5/1B6/5PPP/6K1 b - - 0 31",
    ],
)
def test_mirrored_board_negates_score(fen: str) -> None:
    board = chess.Board(fen)
    assert evaluate(board.mirror()) == -evaluate(board)


def test_evaluate_for_black_is_negated() -> None:
    board = chess.Board("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
    assert evaluate_for(board, chess.WHITE) == 50
    assert evaluate_for(board, chess.BLACK) == -50
