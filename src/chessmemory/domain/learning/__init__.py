"""Learning move-selection engine: evaluation, experience, selection and credit."""

from .credit_assignment import CreditAssigner, LearningUpdate, RewardSchedule
from .evaluation import PIECE_VALUES, evaluate, evaluate_for
from .experience_store import DEFAULT_STORAGE_KEY, BlobStorage, ExperienceStore
from .move_selector import MoveSelector, MoveSuggestion
from .position_key import key_from_fen, position_key

__all__ = [
    "BlobStorage",
    "CreditAssigner",
    "DEFAULT_STORAGE_KEY",
    "ExperienceStore",
    "LearningUpdate",
    "MoveSelector",
    "MoveSuggestion",
    "PIECE_VALUES",
    "RewardSchedule",
    "evaluate",
    "evaluate_for",
    "key_from_fen",
    "position_key",
]
