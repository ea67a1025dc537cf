from __future__ import annotations

import random

import click

from src.chessmemory.domain.training.self_play import OPPONENTS, SelfPlayCollector
from src.chessmemory.domain.training.self_play_orchestrator import SelfPlayOrchestrator
from src.chessmemory.infrastructure.config import load_config
from src.chessmemory.infrastructure.learning import build_learning_engine
from src.chessmemory.infrastructure.persistence.base import create_session_factory
from src.chessmemory.interface.telemetry.logging import setup_logging


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--games", type=int, required=True, help="Number of self-play games to learn from.")
@click.option("--max-plies", type=int, default=200, show_default=True, help="Plies before a game is scored as a draw.")
@click.option(
    "--opponent",
    type=click.Choice(OPPONENTS),
    default="self",
    show_default=True,
    help="Who plays against the learner side.",
)
@click.option("--seed", type=int, default=None, help="Seed the random source for reproducible runs.")
@click.option(
    "--save-games/--no-save-games",
    default=True,
    show_default=True,
    help="Write per-game metrics and checkmate PGNs under SELFPLAY_GAMES_DIR.",
)
@click.option("--log-level", default="WARNING", show_default=True)
def main(
    games: int,
    max_plies: int,
    opponent: str,
    seed: int | None,
    save_games: bool,
    log_level: str,
) -> None:
    """Train the brain by letting the AI play complete games and learn from the results."""
    if games <= 0:
        raise click.BadParameter("must be positive", param_hint="--games")

    setup_logging(log_level)
    config = load_config()
    rng = random.Random(seed)

    session_factory = None
    if config.brain_storage_backend == "database":
        session_factory = create_session_factory(config)

    engine = build_learning_engine(config, session_factory=session_factory, rng=rng)
    collector = SelfPlayCollector(
        engine.selector,
        learner_color=engine.credit_assigner.learner_color,
        opponent=opponent,
        max_plies=max_plies,
        rng=rng,
    )
    orchestrator = SelfPlayOrchestrator(
        collector,
        engine.credit_assigner,
        games_root=config.selfplay_games_dir if save_games else None,
    )

    def progress(index: int, episode, update) -> None:
        click.echo(
            f"[selfplay] game {index}/{games} | plies={episode.plies}"
            f" termination={episode.termination} reward={update.reward:+g}",
            err=True,
        )

    report = orchestrator.run(games, progress_callback=progress)

    click.secho(
        f"Self-play run {report.run_id} finished: {report.learner_wins} won,"
        f" {report.learner_losses} lost, {report.draws} drawn;"
        f" brain holds {report.brain_positions} positions",
        fg="green",
    )
    if report.metrics_path is not None:
        click.echo(f"Metrics written to {report.metrics_path}")


if __name__ == "__main__":  # pragma: no cover
    main()


__all__ = ["main"]
