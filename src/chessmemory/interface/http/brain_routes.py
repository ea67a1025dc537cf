from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, request

from src.chessmemory.domain.learning import key_from_fen
from src.chessmemory.infrastructure.learning import LearningEngine

brain_bp = Blueprint("brain", __name__)


def _learning_engine() -> LearningEngine:
    return current_app.extensions["learning_engine"]


@brain_bp.get("")
def brain_summary():
    """Report how much experience the brain has accumulated."""
    engine = _learning_engine()
    schedule = engine.credit_assigner.schedule
    body: dict[str, Any] = {
        "positions": len(engine.store),
        "storageKey": engine.store.storage_key,
        "unsaved": engine.store.dirty,
        "rewards": {
            "win": schedule.win_reward,
            "loss": schedule.loss_penalty,
            "draw": schedule.draw_reward,
        },
    }
    return jsonify(body), 200


@brain_bp.get("/positions")
def position_score():
    """Look up the learned score of a single position given as FEN."""
    fen = request.args.get("fen")
    if not fen:
        return jsonify({"code": "invalid_fen", "message": "fen query parameter is required."}), 400

    try:
        key = key_from_fen(fen)
    except ValueError as exc:
        return jsonify({"code": "invalid_fen", "message": str(exc)}), 400

    engine = _learning_engine()
    return jsonify({"key": key, "score": engine.store.get(key), "known": key in engine.store}), 200


__all__ = ["brain_bp"]
