from __future__ import annotations

import random
from dataclasses import dataclass

import chess
from sqlalchemy.orm import sessionmaker

from src.chessmemory.domain.learning import (
    CreditAssigner,
    ExperienceStore,
    MoveSelector,
    RewardSchedule,
)
from src.chessmemory.infrastructure.config import AppConfig
from src.chessmemory.infrastructure.persistence.blob_storage import build_blob_storage


@dataclass(frozen=True, slots=True)
class LearningEngine:
    """The process-wide brain and the components that read and update it."""

    store: ExperienceStore
    selector: MoveSelector
    credit_assigner: CreditAssigner


def build_learning_engine(
    config: AppConfig,
    *,
    session_factory: sessionmaker | None = None,
    rng: random.Random | None = None,
) -> LearningEngine:
    """Load the brain from configured storage and wire selector and credit assignment to it."""
    storage = build_blob_storage(config, session_factory)
    store = ExperienceStore.load(storage, config.brain_storage_key)
    selector = MoveSelector(store, rng=rng, noise_scale=config.noise_scale)
    credit_assigner = CreditAssigner(
        store,
        learner_color=chess.WHITE if config.learner_color == "white" else chess.BLACK,
        schedule=RewardSchedule(
            win_reward=config.win_reward,
            loss_penalty=config.loss_penalty,
            draw_reward=config.draw_reward,
        ),
    )
    return LearningEngine(store=store, selector=selector, credit_assigner=credit_assigner)


__all__ = ["LearningEngine", "build_learning_engine"]
