from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Centralized runtime configuration for the game service and self-play runs."""

    database_url: str
    brain_storage_dir: Path
    selfplay_games_dir: Path
    brain_storage_backend: str = "file"
    brain_storage_key: str = "chess_brain"
    flask_env: str = "production"
    learner_color: str = "black"
    win_reward: float = 20.0
    loss_penalty: float = -100.0
    draw_reward: float = 0.0
    noise_scale: float = 0.1
    additional: dict[str, str] = field(default_factory=dict)


def load_config(prefix: str = "") -> AppConfig:
    """Load application configuration from environment variables."""

    def _get_env(key: str, default: str = "") -> str:
        env_key = f"{prefix}{key}"
        return os.getenv(env_key, default)

    def _parse_float(raw: str, fallback: float) -> float:
        try:
            return float(raw)
        except (TypeError, ValueError):
            return fallback

    database_url = _get_env("DATABASE_URL", "sqlite+pysqlite:///data/chessmemory.db")
    brain_dir = Path(_get_env("BRAIN_STORAGE_DIR", "data/brain")).resolve()
    games_dir = Path(_get_env("SELFPLAY_GAMES_DIR", "data/selfplay")).resolve()

    backend = _get_env("BRAIN_STORAGE_BACKEND", "file").lower()
    if backend not in {"file", "database"}:
        backend = "file"

    learner_color = _get_env("LEARNER_COLOR", "black").lower()
    if learner_color not in {"white", "black"}:
        learner_color = "black"

    additional_keys = ("STRUCTLOG_LEVEL",)
    additional: dict[str, str] = {}
    for key in additional_keys:
        value = _get_env(key, "")
        if value:
            additional[key] = value

    return AppConfig(
        database_url=database_url,
        brain_storage_dir=brain_dir,
        selfplay_games_dir=games_dir,
        brain_storage_backend=backend,
        brain_storage_key=_get_env("BRAIN_STORAGE_KEY", "chess_brain") or "chess_brain",
        flask_env=_get_env("FLASK_ENV", "production"),
        learner_color=learner_color,
        win_reward=_parse_float(_get_env("WIN_REWARD", "20"), 20.0),
        loss_penalty=_parse_float(_get_env("LOSS_PENALTY", "-100"), -100.0),
        draw_reward=_parse_float(_get_env("DRAW_REWARD", "0"), 0.0),
        noise_scale=_parse_float(_get_env("NOISE_SCALE", "0.1"), 0.1),
        additional=additional,
    )


__all__ = ["AppConfig", "load_config"]
