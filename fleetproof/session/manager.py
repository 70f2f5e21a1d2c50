"""
Game Manager - Creates and tracks local game clients.

LIFECYCLE:
1. A game is created for one local player and a relay session id
2. The relay feeds events into it; the player commits a board and fires
3. Game over (or user quits) -> the client is closed and dropped

PERSISTENCE RULES:
- Nothing is persisted; board and salt live only in the GameClient
- A dropped game cannot be resumed by this process
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable
import logging
import time
import uuid

from ..config import ClientConfig
from .client import GameClient

if TYPE_CHECKING:
    from ..services.ledger import LedgerClient
    from ..services.proving import ProvingService
    from ..services.relay import RelayChannel

logger = logging.getLogger(__name__)


@dataclass
class ServiceFactory:
    """Builds the collaborators for a new game, given the local player id."""
    relay: Callable[[str], RelayChannel]
    ledger: Callable[[str], LedgerClient]
    prover: Callable[[], ProvingService]


@dataclass
class ManagedGame:
    """A GameClient plus bookkeeping."""
    game_id: str
    client: GameClient
    created_at: float
    ended: bool = False
    end_reason: str | None = None

    def is_active(self) -> bool:
        return not self.ended and not self.client.view.is_terminal


class GameManager:
    """
    Manages local game clients.

    Responsibilities:
    - Create clients with injected services
    - Track active games
    - Close and drop finished games
    """

    def __init__(self, services: ServiceFactory, config: ClientConfig | None = None):
        self.services = services
        self.config = config or ClientConfig()
        self._games: dict[str, ManagedGame] = {}

    def create_game(self, player_id: str, session_id: str | None = None) -> ManagedGame:
        """Create a client for `player_id` in relay session `session_id` (generated if omitted)."""
        game_id = str(uuid.uuid4())
        session_id = session_id or game_id

        client = GameClient(
            session_id=session_id,
            player_id=player_id,
            relay=self.services.relay(player_id),
            ledger=self.services.ledger(player_id),
            prover=self.services.prover(),
            config=self.config,
        )
        game = ManagedGame(game_id=game_id, client=client, created_at=time.time())
        self._games[game_id] = game
        logger.info("Created game %s for %s (session %s)", game_id, player_id, session_id)
        return game

    def get_game(self, game_id: str) -> ManagedGame | None:
        return self._games.get(game_id)

    async def end_game(self, game_id: str, reason: str = "completed") -> bool:
        """
        Close a game's client and forget it.

        Returns False if the game is unknown.
        """
        game = self._games.pop(game_id, None)
        if game is None:
            return False

        game.ended = True
        game.end_reason = reason
        await game.client.close()
        logger.info("Ended game %s (%s)", game_id, reason)
        return True

    def list_active_games(self) -> list[str]:
        return [gid for gid, game in self._games.items() if game.is_active()]

    async def cleanup_stale_games(self, max_age_seconds: int = 3600) -> int:
        """
        Drop finished games older than max_age.

        Returns how many were removed.
        """
        current_time = time.time()
        to_remove = [
            game_id for game_id, game in self._games.items()
            if current_time - game.created_at > max_age_seconds and not game.is_active()
        ]

        for game_id in to_remove:
            await self.end_game(game_id, reason="stale")
        return len(to_remove)
