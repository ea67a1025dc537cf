from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime
from uuid import UUID

import chess

from src.chessmemory.infrastructure.persistence.blob_storage import SqlAlchemyBlobStorage
from src.chessmemory.interface.http.app import create_app


def _create(client, **payload):
    body = {"mode": "ai", "playerColor": "white"}
    body.update(payload)
    response = client.post("/api/v1/sessions", json=body)
    assert response.status_code == 201
    return response.get_json()


def test_create_session_as_white(client):
    payload = _create(client)

    assert UUID(payload["id"])
    assert payload["status"] == "in_progress"
    assert payload["mode"] == "ai"
    assert payload["modeLabel"] == "Vs (AI)"
    assert payload["message"] == "White's Move"
    assert payload["currentFen"] == chess.Board().fen()
    assert payload["moves"] == []
    assert payload["plies"] == 0
    assert len(payload["board"]) == 8
    assert payload["board"][7][4] == {
        "square": "e1",
        "piece": "K",
        "glyph": "♔",
        "shade": "dark",
        "selected": False,
        "lastMove": False,
        "target": False,
        "inCheck": False,
    }
    assert isinstance(datetime.fromisoformat(payload["startedAt"]), datetime)


def test_create_session_as_black_triggers_ai_opening(client):
    payload = _create(client, playerColor="black")

    assert payload["moves"][0]["actor"] == "ai"
    assert payload["lastMove"]["from"] == payload["moves"][0]["uci"][:2]
    assert payload["plies"] == 1


def test_invalid_mode_and_color_are_rejected(client):
    assert client.post("/api/v1/sessions", json={"mode": "bullet"}).get_json()["code"] == "invalid_mode"
    assert client.post("/api/v1/sessions", json={"playerColor": "red"}).get_json()["code"] == "invalid_color"


def test_submit_illegal_move_returns_conflict(client):
    session_id = _create(client)["id"]

    response = client.post(f"/api/v1/sessions/{session_id}/moves", json={"uci": "e7e5"})

    assert response.status_code == 409
    assert response.get_json()["code"] == "illegal_move"


def test_submit_legal_move_includes_ai_reply(client):
    session_id = _create(client)["id"]

    response = client.post(
        f"/api/v1/sessions/{session_id}/moves",
        json={"uci": "e2e4"},
        headers={"X-Trace-Id": "trace-123"},
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert [move["actor"] for move in payload["moves"]] == ["human", "ai"]
    assert payload["traceId"] == "trace-123"
    assert payload["plies"] == 2


def test_click_flow_moves_piece(client):
    session_id = _create(client, mode="pvp")["id"]

    selected = client.post(f"/api/v1/sessions/{session_id}/clicks", json={"square": "b1"}).get_json()
    assert selected["selectedSquare"] == "b1"
    targets = {cell["square"] for row in selected["board"] for cell in row if cell["target"]}
    assert targets == {"a3", "c3"}

    moved = client.post(f"/api/v1/sessions/{session_id}/clicks", json={"square": "c3"}).get_json()
    assert moved["selectedSquare"] is None
    assert moved["moves"][-1]["uci"] == "b1c3"
    assert moved["message"] == "Black's Move"


def test_click_with_bad_square_is_rejected(client):
    session_id = _create(client)["id"]

    response = client.post(f"/api/v1/sessions/{session_id}/clicks", json={"square": "z0"})

    assert response.status_code == 400
    assert response.get_json()["code"] == "invalid_square"


def test_promotion_without_pending_move_conflicts(client):
    session_id = _create(client)["id"]

    response = client.post(f"/api/v1/sessions/{session_id}/promotion", json={"piece": "q"})

    assert response.status_code == 409
    assert response.get_json()["code"] == "promotion_not_pending"


def test_unknown_and_malformed_session_ids(client):
    assert client.get("/api/v1/sessions/not-a-uuid").status_code == 400
    missing = client.get("/api/v1/sessions/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "session_not_found"


def test_reset_switches_mode_and_clears_game(client):
    session_id = _create(client)["id"]
    client.post(f"/api/v1/sessions/{session_id}/moves", json={"uci": "d2d4"})

    response = client.post(f"/api/v1/sessions/{session_id}/reset", json={"mode": "pvp"})

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["mode"] == "pvp"
    assert payload["moves"] == []
    assert payload["resetCount"] == 1
    assert payload["currentFen"] == chess.Board().fen()


def test_brain_endpoints_report_learned_scores(client):
    session_id = _create(client, mode="pvp")["id"]
    for uci in ("f2f3", "e7e5", "g2g4", "d8h4"):
        payload = client.post(f"/api/v1/sessions/{session_id}/moves", json={"uci": uci}).get_json()
    assert payload["status"] == "black_won"
    assert payload["message"] == "Checkmate! Black Wins"
    assert payload["learned"] is True

    summary = client.get("/api/v1/brain").get_json()
    assert summary["positions"] == 4
    assert summary["unsaved"] is False

    lookup = client.get("/api/v1/brain/positions", query_string={"fen": payload["currentFen"]})
    assert lookup.status_code == 200
    assert lookup.get_json()["score"] == 20
    assert lookup.get_json()["known"] is True

    assert client.get("/api/v1/brain/positions").status_code == 400


def test_healthcheck(client):
    assert client.get("/healthz").get_json() == {"status": "ok"}


def test_database_brain_backend_records_finished_game(app_config):
    config = replace(app_config, brain_storage_backend="database")
    app = create_app(config)
    client = app.test_client()

    session_id = _create(client, mode="pvp")["id"]
    for uci in ("f2f3", "e7e5", "g2g4", "d8h4"):
        payload = client.post(f"/api/v1/sessions/{session_id}/moves", json={"uci": uci}).get_json()
    assert payload["status"] == "black_won"

    blob = SqlAlchemyBlobStorage(app.config["SESSION_FACTORY"]).read_blob(config.brain_storage_key)
    snapshot = json.loads(blob)
    assert len(snapshot) == 4
    assert set(snapshot.values()) == {20}
    assert not config.brain_storage_dir.exists()
    assert client.get("/api/v1/brain").get_json()["storageKey"] == config.brain_storage_key
