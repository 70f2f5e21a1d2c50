"""
Tests for API layer.

Tests:
- Game lifecycle via the service and HTTP
- Error codes and status mapping
- Secrets never appear in responses
"""

import asyncio

import pytest

from ..api.app import create_app
from ..api.schemas import (
    CreateGameRequest,
    ErrorCode,
    ErrorResponse,
    FireRequest,
    PlaceBoardRequest,
    ShipInfo,
)
from ..api.service import APIService
from .conftest import CONTRACT, LOCAL, OPPONENT, SESSION_ID


SETUP_SNAPSHOT = {
    "type": "session_state",
    "sessionId": SESSION_ID,
    "status": "SETUP",
    "players": [LOCAL, OPPONENT],
    "gameContractAddress": CONTRACT,
}


@pytest.fixture
def service(fast_config):
    return APIService(config=fast_config)


@pytest.fixture
def http(service):
    from fastapi.testclient import TestClient
    return TestClient(create_app(service))


@pytest.fixture
def game_id(http):
    """A game in PLACING_SHIPS."""
    response = http.post("/api/v1/games", json={"player_id": LOCAL, "session_id": SESSION_ID})
    assert response.status_code == 201
    game_id = response.json()["game_id"]

    response = http.post(f"/api/v1/games/{game_id}/events", json=SETUP_SNAPSHOT)
    assert response.json()["game"]["phase"] == "placing_ships"
    return game_id


class TestAPIService:
    """Tests for APIService."""

    def test_create_and_get_game(self, service):
        created = asyncio.run(service.create_game(CreateGameRequest(player_id=LOCAL)))
        fetched = asyncio.run(service.get_game(created.game_id))

        assert fetched.game_id == created.game_id
        assert fetched.phase == "connecting"
        assert service.list_games() == [created.game_id]

    def test_get_nonexistent_game(self, service):
        response = asyncio.run(service.get_game("nonexistent-id"))

        assert isinstance(response, ErrorResponse)
        assert response.error_code == ErrorCode.GAME_NOT_FOUND

    def test_end_game(self, service):
        created = asyncio.run(service.create_game(CreateGameRequest(player_id=LOCAL)))

        assert asyncio.run(service.end_game(created.game_id))
        assert service.list_games() == []
        assert not asyncio.run(service.end_game(created.game_id))

    def test_fire_before_setup(self, service):
        created = asyncio.run(service.create_game(CreateGameRequest(player_id=LOCAL)))
        response = asyncio.run(service.fire(created.game_id, FireRequest(x=1, y=1)))

        assert response.error_code == ErrorCode.INVALID_PHASE

    def test_placement_error_details(self, service):
        created = asyncio.run(
            service.create_game(CreateGameRequest(player_id=LOCAL, session_id=SESSION_ID))
        )
        asyncio.run(service.deliver_event(created.game_id, SETUP_SNAPSHOT))

        request = PlaceBoardRequest(ships=[
            ShipInfo(size=5, x=0, y=0),
            ShipInfo(size=4, x=0, y=1),
        ])
        response = asyncio.run(service.place_board(created.game_id, request))

        assert response.error_code == ErrorCode.PLACEMENT_ERROR
        assert response.details["reason"] == "adjacent"
        assert response.details["ship_index"] == 1


class TestHTTP:
    """Tests for the FastAPI routes."""

    def test_health(self, http):
        response = http.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unknown_game(self, http):
        response = http.get("/api/v1/games/nope")

        assert response.status_code == 404
        assert response.json()["error_code"] == "GAME_NOT_FOUND"

    def test_random_board(self, http, game_id):
        response = http.post(f"/api/v1/games/{game_id}/board", json={"seed": 7})

        assert response.status_code == 200
        body = response.json()
        assert body["board_commitment"].startswith("0x")
        assert len(body["ships"]) == 5
        assert "salt" not in body

        game = http.get(f"/api/v1/games/{game_id}").json()
        assert game["phase"] == "waiting_for_opponent_board"
        assert game["board_commitment"] == body["board_commitment"]

    def test_board_twice_conflicts(self, http, game_id):
        http.post(f"/api/v1/games/{game_id}/board", json={})
        response = http.post(f"/api/v1/games/{game_id}/board", json={})

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_PHASE"

    def test_composition_error(self, http, game_id):
        ships = [
            {"size": 5, "x": 0, "y": 0},
            {"size": 4, "x": 0, "y": 2},
        ]
        response = http.post(f"/api/v1/games/{game_id}/board", json={"ships": ships})

        assert response.status_code == 400
        assert response.json()["error_code"] == "COMPOSITION_ERROR"

    def test_play_flow(self, http, game_id):
        http.post(f"/api/v1/games/{game_id}/board", json={"seed": 1})
        http.post(
            f"/api/v1/games/{game_id}/events",
            json={"type": "game_started", "currentTurn": LOCAL},
        )

        response = http.post(f"/api/v1/games/{game_id}/shots", json={"x": 3, "y": 4})
        assert response.status_code == 200
        assert response.json()["tx_hash"].startswith("0x")

        response = http.post(f"/api/v1/games/{game_id}/shots", json={"x": 5, "y": 5})
        assert response.status_code == 409
        assert response.json()["error_code"] == "NOT_YOUR_TURN"

        response = http.post(
            f"/api/v1/games/{game_id}/events",
            json={"type": "shot_result", "player": LOCAL, "x": 3, "y": 4, "isHit": True},
        )
        game = response.json()["game"]
        assert game["shots_at_opponent"]["hits"] == [{"x": 3, "y": 4}]
        assert game["pending_shot"] is None

    def test_shot_off_grid_is_rejected(self, http, game_id):
        response = http.post(f"/api/v1/games/{game_id}/shots", json={"x": 10, "y": 0})

        assert response.status_code == 422

    def test_malformed_event(self, http, game_id):
        response = http.post(f"/api/v1/games/{game_id}/events", json={"type": "bogus"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "PROTOCOL_ERROR"

    def test_duplicate_event_not_applied(self, http, game_id):
        chat = {"type": "chat", "sender": OPPONENT, "text": "hello", "timestamp": 12.5}
        http.post(f"/api/v1/games/{game_id}/events", json=chat)
        response = http.post(f"/api/v1/games/{game_id}/events", json=chat)

        assert response.status_code == 200
        assert response.json()["applied"] is False

    def test_forfeit(self, http, game_id):
        response = http.post(f"/api/v1/games/{game_id}/forfeit")

        assert response.status_code == 200
        game = http.get(f"/api/v1/games/{game_id}").json()
        assert game["phase"] == "game_over"
        assert game["winner"] == OPPONENT

    def test_list_and_end(self, http, game_id):
        assert http.get("/api/v1/games").json()["games"] == [game_id]

        response = http.delete(f"/api/v1/games/{game_id}")
        assert response.json()["success"] is True
        assert http.get("/api/v1/games").json()["count"] == 0

    def test_openapi_schema_generates(self, http):
        schema = http.get("/openapi.json").json()

        for name in ("GameResponse", "BoardResponse", "ErrorResponse"):
            assert name in schema["components"]["schemas"]
