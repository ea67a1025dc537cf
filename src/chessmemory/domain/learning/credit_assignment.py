from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import chess

from src.chessmemory.domain.learning.experience_store import ExperienceStore
from src.chessmemory.interface.telemetry.logging import get_logger

logger = get_logger("chessmemory.learning")


@dataclass(frozen=True, slots=True)
class RewardSchedule:
    """Flat reward applied to every traced position, keyed by game result."""

    win_reward: float = 20.0
    loss_penalty: float = -100.0
    # A zero draw reward leaves drawn games unlearned.
    draw_reward: float = 0.0


@dataclass(frozen=True, slots=True)
class LearningUpdate:
    reward: float
    positions_updated: int
    persisted: bool


class CreditAssigner:
    """Spread a finished game's result over every position it visited."""

    def __init__(
        self,
        store: ExperienceStore,
        *,
        learner_color: chess.Color = chess.BLACK,
        schedule: RewardSchedule | None = None,
    ) -> None:
        self._store = store
        self._learner_color = learner_color
        self._schedule = schedule or RewardSchedule()

    @property
    def store(self) -> ExperienceStore:
        return self._store

    @property
    def learner_color(self) -> chess.Color:
        return self._learner_color

    @property
    def schedule(self) -> RewardSchedule:
        return self._schedule

    def reward_for(
        self,
        winner: chess.Color | None,
        learner_color: chess.Color | None = None,
    ) -> float:
        learner = self._learner_color if learner_color is None else learner_color
        if winner is None:
            return self._schedule.draw_reward
        if winner == learner:
            return self._schedule.win_reward
        return self._schedule.loss_penalty

    def learn(
        self,
        winner: chess.Color | None,
        trace: Sequence[str],
        *,
        learner_color: chess.Color | None = None,
    ) -> LearningUpdate:
        """Apply the result's reward once per trace entry, then persist once.

        Positions reached twice in the same game are rewarded twice.
        """
        reward = self.reward_for(winner, learner_color)
        if reward == 0:
            logger.info("credit_assignment_skipped", winner=_color_name(winner), positions=len(trace))
            return LearningUpdate(reward=reward, positions_updated=0, persisted=False)

        for key in trace:
            self._store.apply_delta(key, reward)

        persisted = self._store.persist()
        logger.info(
            "credit_assigned",
            winner=_color_name(winner),
            reward=reward,
            positions=len(trace),
            persisted=persisted,
        )
        return LearningUpdate(reward=reward, positions_updated=len(trace), persisted=persisted)


def _color_name(color: chess.Color | None) -> str:
    if color is None:
        return "draw"
    return chess.COLOR_NAMES[color]


__all__ = ["CreditAssigner", "LearningUpdate", "RewardSchedule"]
