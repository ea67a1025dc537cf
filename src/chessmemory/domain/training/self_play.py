from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

import chess

from src.chessmemory.domain.learning.move_selector import MoveSelector
from src.chessmemory.domain.learning.position_key import position_key

OPPONENTS = ("self", "random")


@dataclass(frozen=True)
class SelfPlayEpisode:
    moves: List[str]
    san_moves: List[str]
    trace: List[str]
    termination: Optional[str]
    winner: Optional[chess.Color]
    result: float
    final_fen: str

    @property
    def plies(self) -> int:
        return len(self.moves)


class SelfPlayCollector:
    """Play complete games with the move selector to feed credit assignment.

    The learner side always uses the selector. The other side uses the
    selector too (``opponent="self"``) or picks uniformly among legal moves
    (``opponent="random"``). Games that reach ``max_plies`` count as draws.
    """

    _DEFAULT_OPENINGS: Sequence[Sequence[str]] = (
        ("e2e4", "e7e5", "g1f3", "b8c6"),
        ("d2d4", "d7d5", "c2c4", "e7e6"),
        ("c2c4", "e7e5", "g1f3", "b8c6"),
        ("g1f3", "d7d5", "d2d4", "g8f6"),
        ("f2f4", "e7e5", "g2g3", "d7d5"),
    )

    def __init__(
        self,
        selector: MoveSelector,
        *,
        learner_color: chess.Color = chess.BLACK,
        opponent: str = "self",
        max_plies: int = 200,
        rng: random.Random | None = None,
        opening_sequences: Optional[Sequence[Sequence[str]]] = None,
        opening_shuffle_moves: int = 4,
    ) -> None:
        if opponent not in OPPONENTS:
            raise ValueError(f"opponent must be one of {', '.join(OPPONENTS)}")
        self._selector = selector
        self._learner_color = learner_color
        self._opponent = opponent
        self._max_plies = max_plies
        self._rng = rng or random.Random()
        self._opening_sequences: List[List[str]] = [
            list(sequence)
            for sequence in (self._DEFAULT_OPENINGS if opening_sequences is None else opening_sequences)
        ]
        self._opening_shuffle_moves = max(0, opening_shuffle_moves)

    def generate_episode(self) -> SelfPlayEpisode:
        board = chess.Board()
        moves: List[str] = []
        san_moves: List[str] = []
        trace: List[str] = []

        for uci, san, key in self._apply_opening_sequence(board):
            moves.append(uci)
            san_moves.append(san)
            trace.append(key)

        while len(moves) < self._max_plies and not board.is_game_over(claim_draw=True):
            move = self._choose(board)
            san_moves.append(board.san(move))
            moves.append(move.uci())
            board.push(move)
            trace.append(position_key(board))

        outcome = board.outcome(claim_draw=True)
        winner = outcome.winner if outcome is not None else None
        if winner is None:
            result = 0.0
        else:
            result = 1.0 if winner == chess.WHITE else -1.0

        termination = outcome.termination.name if outcome is not None else "MAX_PLIES"
        return SelfPlayEpisode(
            moves=moves,
            san_moves=san_moves,
            trace=trace,
            termination=termination,
            winner=winner,
            result=result,
            final_fen=board.fen(),
        )

    def _choose(self, board: chess.Board) -> chess.Move:
        if board.turn != self._learner_color and self._opponent == "random":
            return self._rng.choice(list(board.legal_moves))
        return self._selector.select_move(board).move

    def _apply_opening_sequence(self, board: chess.Board) -> List[tuple[str, str, str]]:
        if not self._opening_sequences or self._opening_shuffle_moves == 0:
            return []

        sequence = self._rng.choice(self._opening_sequences)
        max_prefix = min(len(sequence), self._opening_shuffle_moves, self._max_plies)
        if max_prefix <= 0:
            return []

        prefix_len = self._rng.randint(1, max_prefix)
        applied: List[tuple[str, str, str]] = []
        for uci in sequence[:prefix_len]:
            move = chess.Move.from_uci(uci)
            if move not in board.legal_moves:
                break
            san = board.san(move)
            board.push(move)
            applied.append((uci, san, position_key(board)))
        return applied


__all__ = ["OPPONENTS", "SelfPlayCollector", "SelfPlayEpisode"]
