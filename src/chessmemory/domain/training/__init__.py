"""Self-play training for the experience store."""

from .self_play import SelfPlayCollector, SelfPlayEpisode
from .self_play_orchestrator import SelfPlayOrchestrator, SelfPlayReport

__all__ = ["SelfPlayCollector", "SelfPlayEpisode", "SelfPlayOrchestrator", "SelfPlayReport"]
