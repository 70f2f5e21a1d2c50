"""
Relay Events - Typed messages on the real-time session channel.

Inbound traffic is a closed set of variants discriminated by `type`.
parse_event() turns raw JSON into one of them, or raises ProtocolError.
Adding an event kind means adding a variant here and a handler in
SessionReducer; the reducer rejects variants it does not handle.

Wire field names are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from ..board.model import BOARD_SIZE
from ..errors import ProtocolError


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


GridIndex = Annotated[int, Field(ge=0, lt=BOARD_SIZE)]


# =============================================================================
# Inbound events
# =============================================================================

class PlayerJoined(_WireModel):
    type: Literal["player_joined"] = "player_joined"
    address: str
    players: list[str] = Field(default_factory=list)
    status: Optional[str] = None


class ContractRegistered(_WireModel):
    type: Literal["contract_registered"] = "contract_registered"
    game_contract_address: str
    game_id: Union[int, str]


class BoardSubmitted(_WireModel):
    type: Literal["board_submitted"] = "board_submitted"
    player: str
    all_boards_submitted: bool = False
    game_status: Optional[str] = None


class GameStarted(_WireModel):
    type: Literal["game_started"] = "game_started"
    status: Optional[str] = None
    current_turn: Optional[str] = None
    game_contract_address: Optional[str] = None
    game_id: Optional[Union[int, str]] = None
    turn_started_at: Optional[float] = None


class ShotFired(_WireModel):
    """`player` is the shooter; `next_turn` is who must act next."""
    type: Literal["shot_fired"] = "shot_fired"
    player: str
    x: GridIndex
    y: GridIndex
    next_turn: Optional[str] = None
    turn_started_at: Optional[float] = None


class ShotResult(_WireModel):
    """`player` is the shooter whose shot was resolved."""
    type: Literal["shot_result"] = "shot_result"
    player: str
    x: GridIndex
    y: GridIndex
    is_hit: bool


class GameOver(_WireModel):
    type: Literal["game_over"] = "game_over"
    status: Optional[str] = None
    winner: Optional[str] = None
    reason: Literal["COMPLETED", "FORFEIT", "TIMEOUT"] = "COMPLETED"


class SessionState(_WireModel):
    """Authoritative full snapshot of the relay's session record."""
    type: Literal["session_state"] = "session_state"
    session_id: str
    status: Literal["CREATED", "WAITING", "SETUP", "ACTIVE", "COMPLETED", "CANCELLED"]
    players: list[str] = Field(default_factory=list)
    current_turn: Optional[str] = None
    game_contract_address: Optional[str] = None
    game_id: Optional[Union[int, str]] = None
    turn_started_at: Optional[float] = None
    created_at: Optional[float] = None
    last_activity_at: Optional[float] = None
    winner: Optional[str] = None


class Chat(_WireModel):
    type: Literal["chat"] = "chat"
    sender: str
    text: str
    timestamp: Optional[float] = None


class Pong(_WireModel):
    type: Literal["pong"] = "pong"
    timestamp: Optional[float] = None


class RelayError(_WireModel):
    type: Literal["error"] = "error"
    error: str


RelayEvent = Annotated[
    Union[
        PlayerJoined,
        ContractRegistered,
        BoardSubmitted,
        GameStarted,
        ShotFired,
        ShotResult,
        GameOver,
        SessionState,
        Chat,
        Pong,
        RelayError,
    ],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(RelayEvent)


def parse_event(raw: dict[str, Any]) -> RelayEvent:
    """Parse a raw relay message. Raises ProtocolError for unknown or malformed ones."""
    try:
        return _event_adapter.validate_python(raw)
    except ValidationError as e:
        kind = raw.get("type") if isinstance(raw, dict) else None
        raise ProtocolError(f"Invalid relay event {kind!r}: {e.error_count()} error(s)") from e


# =============================================================================
# Outbound commands
# =============================================================================

class SubmitBoardCommand(_WireModel):
    type: Literal["submit_board"] = "submit_board"
    address: str
    board_commitment: str


class ChatCommand(_WireModel):
    type: Literal["chat"] = "chat"
    sender: str
    text: str


class PingCommand(_WireModel):
    type: Literal["ping"] = "ping"


RelayCommand = Union[SubmitBoardCommand, ChatCommand, PingCommand]
