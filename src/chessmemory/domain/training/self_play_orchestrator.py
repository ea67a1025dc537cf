from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4

import chess
import chess.pgn

from src.chessmemory.domain.learning.credit_assignment import CreditAssigner, LearningUpdate
from src.chessmemory.domain.training.self_play import SelfPlayCollector, SelfPlayEpisode
from src.chessmemory.interface.telemetry.logging import get_logger

logger = get_logger("chessmemory.selfplay")

ProgressCallback = Callable[[int, SelfPlayEpisode, LearningUpdate], None]


@dataclass(frozen=True, slots=True)
class SelfPlayReport:
    run_id: str
    episodes: int
    learner_wins: int
    learner_losses: int
    draws: int
    brain_positions: int
    metrics_path: Optional[Path]


class SelfPlayOrchestrator:
    """Run self-play episodes, learn from each, and record what happened."""

    def __init__(
        self,
        collector: SelfPlayCollector,
        credit_assigner: CreditAssigner,
        *,
        games_root: Optional[Path] = None,
    ) -> None:
        self._collector = collector
        self._credit = credit_assigner
        self._games_root = games_root

    def run(
        self,
        episodes: int,
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> SelfPlayReport:
        run_id = uuid4().hex[:8]
        learner = self._credit.learner_color
        wins = losses = draws = 0

        run_dir: Optional[Path] = None
        metrics_file = None
        if self._games_root is not None:
            run_dir = self._games_root / f"{datetime.now(timezone.utc):%Y%m%d%H%M%S}-{run_id}"
            run_dir.mkdir(parents=True, exist_ok=True)
            metrics_file = (run_dir / "metrics.jsonl").open("a", encoding="utf-8")

        start_time = time.time()
        try:
            for index in range(1, episodes + 1):
                episode = self._collector.generate_episode()
                update = self._credit.learn(episode.winner, episode.trace)

                if episode.winner is None:
                    draws += 1
                elif episode.winner == learner:
                    wins += 1
                else:
                    losses += 1

                if metrics_file is not None:
                    record = {
                        "episode_index": index,
                        "plies": episode.plies,
                        "termination": episode.termination,
                        "winner": _color_name(episode.winner),
                        "reward": update.reward,
                        "persisted": update.persisted,
                        "elapsed_seconds": time.time() - start_time,
                    }
                    metrics_file.write(json.dumps(record) + "\n")
                    metrics_file.flush()

                if run_dir is not None and episode.termination == "CHECKMATE":
                    self._save_episode_game(run_dir / f"checkmate_{index}.pgn", episode, index)

                if progress_callback is not None:
                    progress_callback(index, episode, update)
        finally:
            if metrics_file is not None:
                metrics_file.close()

        report = SelfPlayReport(
            run_id=run_id,
            episodes=episodes,
            learner_wins=wins,
            learner_losses=losses,
            draws=draws,
            brain_positions=len(self._credit.store),
            metrics_path=run_dir / "metrics.jsonl" if run_dir is not None else None,
        )
        logger.info(
            "selfplay_run_completed",
            run_id=run_id,
            episodes=episodes,
            wins=wins,
            losses=losses,
            draws=draws,
        )
        return report

    def _save_episode_game(self, path: Path, episode: SelfPlayEpisode, episode_index: int) -> None:
        game = chess.pgn.Game()
        game.headers["Event"] = "ChessMemory Self-Play"
        game.headers["Round"] = str(episode_index)
        game.headers["Result"] = _result_header(episode)
        if episode.termination:
            game.headers["Termination"] = episode.termination
        game.headers["FinalFEN"] = episode.final_fen

        node = game
        for move_uci in episode.moves:
            node = node.add_variation(chess.Move.from_uci(move_uci))

        with path.open("w", encoding="utf-8") as handle:
            handle.write(str(game))
            handle.write("\n")


def _result_header(episode: SelfPlayEpisode) -> str:
    if episode.result > 0:
        return "1-0"
    if episode.result < 0:
        return "0-1"
    return "1/2-1/2"


def _color_name(color: chess.Color | None) -> str | None:
    return chess.COLOR_NAMES[color] if color is not None else None


__all__ = ["SelfPlayOrchestrator", "SelfPlayReport"]
