"""
ChessMemory package bootstrap.

Subpackages:
- interface: Adapters for HTTP, CLI, and telemetry layers.
- domain: Game sessions, the learning move-selection engine, and self-play training.
- infrastructure: Configuration, persistence, and wiring of the learning engine.
"""

__all__ = ["interface", "domain", "infrastructure"]
