"""
API Service - Business logic layer between the control API and game clients.

The service:
1. Creates and tracks GameClients through the GameManager
2. Translates requests into client actions
3. Maps domain errors to structured ErrorResponses
4. Formats views for the caller (never the board salt)

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging
import random

from ..board.model import Board, Ship, create_board, generate_random_board
from ..config import ClientConfig
from ..errors import (
    ClaimMismatchError,
    CompositionError,
    ExternalServiceError,
    FleetproofError,
    GridMismatchError,
    IncompleteSinkError,
    InvalidActionError,
    OutOfBoundsError,
    PlacementError,
    ProtocolError,
)
from ..services import (
    HttpProvingService,
    InMemoryLedger,
    InMemoryRelayChannel,
    MockProvingService,
    ProvingService,
)
from ..session import GameManager, ManagedGame, ServiceFactory
from ..verifier.shots import ShotMap
from .schemas import (
    BoardResponse,
    ChatRequest,
    CoordinateInfo,
    CreateGameRequest,
    ErrorCode,
    ErrorResponse,
    EventResponse,
    FireRequest,
    ForfeitResponse,
    GameResponse,
    PlaceBoardRequest,
    ShipInfo,
    ShotMapInfo,
    ShotResponse,
)

logger = logging.getLogger(__name__)


def default_services(config: ClientConfig) -> ServiceFactory:
    """
    Collaborators for locally driven games.

    Relay and ledger are in-memory; the prover is HTTP when
    FLEETPROOF_PROVER_URL is set and the mock prover otherwise.
    """
    def make_prover() -> ProvingService:
        if config.prover_url:
            return HttpProvingService(config.prover_url, timeout=config.call_timeout)
        logger.warning("No prover URL configured, using the mock prover")
        return MockProvingService()

    return ServiceFactory(
        relay=lambda player_id: InMemoryRelayChannel(),
        ledger=InMemoryLedger,
        prover=make_prover,
    )


@dataclass
class APIService:
    """
    Main API service for the local control surface.

    Usage:
        service = APIService()
        game = await service.create_game(CreateGameRequest(player_id="0xabc"))
        await service.deliver_event(game.game_id, {"type": "session_state", ...})
        await service.place_board(game.game_id, PlaceBoardRequest())
    """
    config: ClientConfig = field(default_factory=ClientConfig.from_env)
    game_manager: GameManager | None = None

    def __post_init__(self):
        if self.game_manager is None:
            self.game_manager = GameManager(default_services(self.config), self.config)

    # =========================================================================
    # Games
    # =========================================================================

    async def create_game(self, request: CreateGameRequest) -> GameResponse:
        game = self.game_manager.create_game(request.player_id, request.session_id)
        return self._game_to_response(game)

    async def get_game(self, game_id: str) -> GameResponse | ErrorResponse:
        game = self.game_manager.get_game(game_id)
        if game is None:
            return self._not_found(game_id)
        return self._game_to_response(game)

    async def end_game(self, game_id: str, reason: str = "user_ended") -> bool:
        return await self.game_manager.end_game(game_id, reason)

    def list_games(self) -> list[str]:
        return self.game_manager.list_active_games()

    # =========================================================================
    # Actions
    # =========================================================================

    async def place_board(
        self, game_id: str, request: PlaceBoardRequest
    ) -> BoardResponse | ErrorResponse:
        """Commit the given fleet, or a random one."""
        game = self.game_manager.get_game(game_id)
        if game is None:
            return self._not_found(game_id)

        try:
            board = self._board_from_request(request)
            commitment = await game.client.submit_board(board)
        except FleetproofError as e:
            return self._error_response(e)

        return BoardResponse(
            game_id=game_id,
            board_commitment=commitment,
            ships=[ShipInfo(**ship.to_dict()) for ship in board.ships],
            rendered=board.render(),
        )

    async def fire(self, game_id: str, request: FireRequest) -> ShotResponse | ErrorResponse:
        game = self.game_manager.get_game(game_id)
        if game is None:
            return self._not_found(game_id)

        try:
            tx_hash = await game.client.fire(request.x, request.y)
        except FleetproofError as e:
            return self._error_response(e)
        return ShotResponse(game_id=game_id, x=request.x, y=request.y, tx_hash=tx_hash)

    async def forfeit(self, game_id: str) -> ForfeitResponse | ErrorResponse:
        game = self.game_manager.get_game(game_id)
        if game is None:
            return self._not_found(game_id)

        try:
            tx_hash = await game.client.forfeit()
        except FleetproofError as e:
            return self._error_response(e)
        return ForfeitResponse(game_id=game_id, tx_hash=tx_hash)

    async def send_chat(self, game_id: str, request: ChatRequest) -> GameResponse | ErrorResponse:
        game = self.game_manager.get_game(game_id)
        if game is None:
            return self._not_found(game_id)

        try:
            await game.client.send_chat(request.text)
        except FleetproofError as e:
            return self._error_response(e)
        return self._game_to_response(game)

    async def deliver_event(self, game_id: str, raw: dict[str, Any]) -> EventResponse | ErrorResponse:
        """Feed one relay message to the game's client."""
        game = self.game_manager.get_game(game_id)
        if game is None:
            return self._not_found(game_id)

        try:
            result = await game.client.handle_message(raw)
        except FleetproofError as e:
            return self._error_response(e)

        return EventResponse(
            applied=result.applied,
            dropped_reason=result.dropped_reason,
            changes=result.changes,
            game=self._game_to_response(game),
        )

    async def retry_pending(self, game_id: str) -> GameResponse | ErrorResponse:
        game = self.game_manager.get_game(game_id)
        if game is None:
            return self._not_found(game_id)

        try:
            await game.client.retry_pending()
        except FleetproofError as e:
            return self._error_response(e)
        return self._game_to_response(game)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _board_from_request(self, request: PlaceBoardRequest) -> Board:
        if request.ships is not None:
            return create_board([Ship(**ship.model_dump()) for ship in request.ships])
        rng = random.Random(request.seed) if request.seed is not None else None
        return generate_random_board(rng)

    def _not_found(self, game_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Game {game_id} not found",
            error_code=ErrorCode.GAME_NOT_FOUND,
        )

    def _error_response(self, error: FleetproofError) -> ErrorResponse:
        """Map a domain error to its error code."""
        details: dict[str, Any] | None = None

        if isinstance(error, PlacementError):
            code = ErrorCode.PLACEMENT_ERROR
            details = {
                "reason": error.reason.value,
                "x": error.x,
                "y": error.y,
                "ship_index": error.ship_index,
            }
        elif isinstance(error, GridMismatchError):
            code = ErrorCode.PLACEMENT_ERROR
            details = {"mismatched_cells": [list(c) for c in error.mismatched_cells]}
        elif isinstance(error, CompositionError):
            code = ErrorCode.COMPOSITION_ERROR
            details = {"expected": error.expected, "actual": error.actual}
        elif isinstance(error, (ClaimMismatchError, IncompleteSinkError)):
            code = ErrorCode.CLAIM_MISMATCH
        elif isinstance(error, InvalidActionError):
            if error.code == "NOT_YOUR_TURN":
                code = ErrorCode.NOT_YOUR_TURN
            elif error.code == "ALREADY_FIRED":
                code = ErrorCode.VALIDATION_ERROR
            else:
                code = ErrorCode.INVALID_PHASE
        elif isinstance(error, OutOfBoundsError):
            code = ErrorCode.VALIDATION_ERROR
        elif isinstance(error, ProtocolError):
            code = ErrorCode.PROTOCOL_ERROR
        elif isinstance(error, ExternalServiceError):
            code = ErrorCode.SERVICE_UNAVAILABLE
            details = {"service": error.service}
        else:
            code = ErrorCode.INTERNAL_ERROR

        logger.info("Request failed with %s: %s", code.value, error)
        return ErrorResponse(error=str(error), error_code=code, details=details)

    def _game_to_response(self, game: ManagedGame) -> GameResponse:
        view = game.client.view
        return GameResponse(
            game_id=game.game_id,
            session_id=view.session_id,
            player_id=view.local_player,
            phase=view.phase.value,
            players=list(view.players),
            opponent=view.opponent,
            turn_holder=view.turn_holder,
            is_local_turn=view.is_local_turn,
            local_board_submitted=view.local_board_submitted,
            opponent_board_submitted=view.opponent_board_submitted,
            board_commitment=view.local_board_commitment,
            pending_shot=_coordinate(view.pending_shot) if view.pending_shot else None,
            shots_at_player=_shot_map_info(view.shots_at_player),
            shots_at_opponent=_shot_map_info(view.shots_at_opponent),
            unanswered=[_coordinate(c) for c in view.unanswered],
            awaiting_game_end=view.awaiting_game_end,
            winner=view.winner,
            game_over_reason=view.game_over_reason,
            game_contract_address=view.game_contract_address,
            revision=view.revision,
            last_error=view.last_error,
        )


def _coordinate(coord: tuple[int, int]) -> CoordinateInfo:
    return CoordinateInfo(x=coord[0], y=coord[1])


def _shot_map_info(shot_map: ShotMap) -> ShotMapInfo:
    return ShotMapInfo(
        hits=[_coordinate(c) for c in shot_map.hits],
        misses=[_coordinate(c) for c in shot_map.misses],
    )
