from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Callable, Iterable, List

import chess

from src.chessmemory.domain.learning.evaluation import evaluate_for
from src.chessmemory.domain.learning.experience_store import ExperienceStore
from src.chessmemory.domain.learning.position_key import position_key
from src.chessmemory.interface.telemetry.logging import get_logger

logger = get_logger("chessmemory.selector")


@dataclass(frozen=True)
class MoveSuggestion:
    """The selector's chosen move and the terms that produced its score."""

    move: chess.Move
    score: float | None = None
    material: int | None = None
    memory: float | None = None
    rationale: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class _CandidateScore:
    score: float
    material: int | None = None
    memory: float | None = None


_UNSCORABLE = _CandidateScore(score=-math.inf)


class MoveSelector:
    """One-ply move selection from material balance plus learned experience.

    Each candidate is pushed onto the board, scored as
    ``material + memory + noise`` and popped again, so the board is left
    exactly as it was received. ``noise`` is drawn from ``[0, noise_scale)``
    and only separates candidates that are otherwise equal.
    """

    def __init__(
        self,
        store: ExperienceStore,
        *,
        rng: random.Random | None = None,
        noise_scale: float = 0.1,
        evaluator: Callable[[chess.Board, chess.Color], int] = evaluate_for,
        key_fn: Callable[[chess.Board], str] = position_key,
    ) -> None:
        self._store = store
        self._rng = rng or random.Random()
        self._noise_scale = noise_scale
        self._evaluator = evaluator
        self._key_fn = key_fn

    @property
    def store(self) -> ExperienceStore:
        return self._store

    def select_move(
        self,
        board: chess.Board,
        legal_moves: Iterable[chess.Move] | None = None,
    ) -> MoveSuggestion:
        candidates = list(board.legal_moves if legal_moves is None else legal_moves)
        if not candidates:
            raise ValueError("Move selection requires at least one legal move.")

        if len(candidates) == 1:
            return MoveSuggestion(move=candidates[0], rationale=["only legal move"])

        mover = board.turn
        best_move = candidates[0]
        best = _UNSCORABLE
        for move in candidates:
            candidate = self._score_candidate(board, move, mover)
            if candidate.score > best.score:
                best = candidate
                best_move = move

        if best.score == -math.inf:
            logger.warning(
                "move_selector_fallback",
                fen=board.fen(),
                candidates=len(candidates),
                fallback=candidates[0].uci(),
            )
            return MoveSuggestion(move=candidates[0], rationale=["fallback"])

        return MoveSuggestion(
            move=best_move,
            score=best.score,
            material=best.material,
            memory=best.memory,
            rationale=[f"material {best.material:+g}", f"memory {best.memory:+g}"],
        )

    def _score_candidate(
        self,
        board: chess.Board,
        move: chess.Move,
        mover: chess.Color,
    ) -> _CandidateScore:
        board.push(move)
        try:
            material = self._evaluator(board, mover)
            memory = self._store.get(self._key_fn(board))
        except Exception as exc:
            logger.debug("candidate_unscorable", uci=move.uci(), error=str(exc))
            return _UNSCORABLE
        finally:
            board.pop()

        noise = self._rng.random() * self._noise_scale
        return _CandidateScore(score=material + memory + noise, material=material, memory=memory)


__all__ = ["MoveSelector", "MoveSuggestion"]
