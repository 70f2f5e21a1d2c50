"""
Pytest fixtures for Fleetproof tests.
"""

import pytest

from ..board.model import Board, Ship, create_board
from ..config import ClientConfig
from ..services import InMemoryLedger, InMemoryRelayChannel, MockProvingService
from ..session.client import GameClient
from ..session.machine import GameView


LOCAL = "0xAAA1"
OPPONENT = "0xBBB2"
SESSION_ID = "session-1"
CONTRACT = "0xC0FFEE"
SALT = "00112233445566778899aabbccddeeff"


@pytest.fixture
def standard_ships() -> list[Ship]:
    """Standard fleet laid out on alternate rows, no ships touching."""
    return [
        Ship(size=5, x=0, y=0, horizontal=True),
        Ship(size=4, x=0, y=2, horizontal=True),
        Ship(size=3, x=0, y=4, horizontal=True),
        Ship(size=3, x=0, y=6, horizontal=True),
        Ship(size=2, x=0, y=8, horizontal=True),
    ]


@pytest.fixture
def standard_board(standard_ships) -> Board:
    return create_board(standard_ships)


@pytest.fixture
def salt() -> str:
    return SALT


@pytest.fixture
def fast_config() -> ClientConfig:
    """No backoff, short heartbeat, two attempts per call."""
    return ClientConfig(
        heartbeat_interval=0.01,
        retry_attempts=2,
        retry_backoff=0.0,
        call_timeout=1.0,
    )


@pytest.fixture
def view() -> GameView:
    return GameView(session_id=SESSION_ID, local_player=LOCAL)


@pytest.fixture
def relay() -> InMemoryRelayChannel:
    return InMemoryRelayChannel()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(LOCAL)


@pytest.fixture
def prover() -> MockProvingService:
    return MockProvingService()


@pytest.fixture
def client(relay, ledger, prover, fast_config) -> GameClient:
    return GameClient(SESSION_ID, LOCAL, relay, ledger, prover, fast_config)


# =============================================================================
# Relay message builders
# =============================================================================

@pytest.fixture
def snapshot():
    """Build a raw session_state message."""
    def _snapshot(status="SETUP", players=(LOCAL, OPPONENT), **extra):
        message = {
            "type": "session_state",
            "sessionId": extra.pop("session_id", SESSION_ID),
            "status": status,
            "players": list(players),
            "gameContractAddress": CONTRACT,
            "gameId": 1,
        }
        message.update(extra)
        return message
    return _snapshot


@pytest.fixture
def shot_fired():
    def _shot_fired(player, x, y, next_turn=None):
        return {
            "type": "shot_fired",
            "player": player,
            "x": x,
            "y": y,
            "nextTurn": next_turn,
        }
    return _shot_fired


@pytest.fixture
def shot_result():
    def _shot_result(player, x, y, is_hit):
        return {
            "type": "shot_result",
            "player": player,
            "x": x,
            "y": y,
            "isHit": is_hit,
        }
    return _shot_result
