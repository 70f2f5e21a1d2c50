"""
Pydantic Schemas for API - Request/response models for the local control API.

The control API drives one or more local GameClients: create a game,
commit a board, fire, forfeit, chat, and feed relay events in.

Error Codes:
- GAME_NOT_FOUND: Game does not exist or was ended
- PLACEMENT_ERROR: A ship is out of bounds, overlaps or touches another
- COMPOSITION_ERROR: Fleet sizes are not the standard fleet
- CLAIM_MISMATCH: A claim disagrees with the local board
- NOT_YOUR_TURN: Fired out of turn
- INVALID_PHASE: Action not allowed in the current phase
- PROTOCOL_ERROR: Relay event could not be parsed
- SERVICE_UNAVAILABLE: Prover, ledger or relay failed after retries
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..board.model import BOARD_SIZE


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    PLACEMENT_ERROR = "PLACEMENT_ERROR"
    COMPOSITION_ERROR = "COMPOSITION_ERROR"
    CLAIM_MISMATCH = "CLAIM_MISMATCH"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    INVALID_PHASE = "INVALID_PHASE"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class ShipInfo(BaseModel):
    """One ship placement."""
    size: int = Field(..., ge=1, le=BOARD_SIZE)
    x: int
    y: int
    horizontal: bool = True


class CoordinateInfo(BaseModel):
    x: int
    y: int


class ShotMapInfo(BaseModel):
    """Shots against one board, split by outcome."""
    hits: list[CoordinateInfo] = Field(default_factory=list)
    misses: list[CoordinateInfo] = Field(default_factory=list)


# =============================================================================
# Request Models
# =============================================================================

class CreateGameRequest(BaseModel):
    """Request to start a local game client."""
    player_id: str = Field(..., min_length=1, description="Local wallet address")
    session_id: Optional[str] = Field(None, description="Relay session id (generated if omitted)")


class PlaceBoardRequest(BaseModel):
    """Commit a board. Omit `ships` for a random legal fleet."""
    ships: Optional[list[ShipInfo]] = None
    seed: Optional[int] = Field(None, description="Seed for the random fleet")


class FireRequest(BaseModel):
    x: int = Field(..., ge=0, lt=BOARD_SIZE)
    y: int = Field(..., ge=0, lt=BOARD_SIZE)


class ChatRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameResponse(BaseModel):
    """Client view of one game. Never includes the board or salt."""
    game_id: str
    session_id: str
    player_id: str
    phase: str
    players: list[str] = Field(default_factory=list)
    opponent: Optional[str] = None
    turn_holder: Optional[str] = None
    is_local_turn: bool = False

    local_board_submitted: bool = False
    opponent_board_submitted: bool = False
    board_commitment: Optional[str] = None

    pending_shot: Optional[CoordinateInfo] = None
    shots_at_player: ShotMapInfo = Field(default_factory=ShotMapInfo)
    shots_at_opponent: ShotMapInfo = Field(default_factory=ShotMapInfo)
    unanswered: list[CoordinateInfo] = Field(default_factory=list)
    awaiting_game_end: bool = False

    winner: Optional[str] = None
    game_over_reason: Optional[str] = None
    game_contract_address: Optional[str] = None

    revision: int = 0
    last_error: Optional[str] = None


class BoardResponse(BaseModel):
    """Result of committing a board. The board is echoed to its owner only."""
    game_id: str
    board_commitment: str
    ships: list[ShipInfo]
    rendered: str


class ShotResponse(BaseModel):
    game_id: str
    x: int
    y: int
    tx_hash: str


class ForfeitResponse(BaseModel):
    game_id: str
    tx_hash: str


class EventResponse(BaseModel):
    """Outcome of feeding one relay event to a game."""
    applied: bool
    dropped_reason: Optional[str] = None
    changes: list[str] = Field(default_factory=list)
    game: GameResponse


class GameListResponse(BaseModel):
    """Response listing active games."""
    games: list[str]
    count: int


class EndGameResponse(BaseModel):
    """Response after ending a game."""
    success: bool
    game_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
