"""
Claim Builder - Circuit-ready inputs for the proving service.

Every builder re-derives ground truth first and refuses to emit an
input that would prove a false statement. Commitments are recomputed
from the board and salt, never taken from the caller.

Builders are pure: no network or storage I/O. Requesting the proof
is a separate step (see session.client).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..board.model import Board, validate_board
from ..board.commitment import commit, normalize_salt, shot_history
from ..errors import ClaimMismatchError, IncompleteSinkError
from .shots import ShotMap, all_sunk, is_hit, remaining_cells


class CircuitId(str, Enum):
    """Named circuits understood by the proving service."""
    BOARD_PLACEMENT = "board_placement"
    SHOT_RESULT = "shot_result"
    GAME_END = "game_end"


@dataclass(frozen=True)
class CircuitInput:
    """Common fields of every circuit input."""
    cells: tuple[int, ...]
    salt: str
    board_commitment: str

    circuit = CircuitId.BOARD_PLACEMENT

    def to_payload(self) -> dict[str, Any]:
        """Input object in the circuit's field names."""
        return {
            "board": {"cells": list(self.cells)},
            "salt": self.salt,
            "board_commitment": self.board_commitment,
        }

    def redacted_payload(self) -> dict[str, Any]:
        """Payload safe for logs: salt and board cells hidden."""
        payload = self.to_payload()
        payload["salt"] = "***HIDDEN***"
        payload["board"] = "***HIDDEN***"
        return payload


@dataclass(frozen=True)
class BoardClaimInput(CircuitInput):
    """Input proving a committed board is a legal fleet."""
    ships: tuple[dict[str, int], ...] = field(default_factory=tuple)

    circuit = CircuitId.BOARD_PLACEMENT

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["ships"] = [dict(ship) for ship in self.ships]
        return payload


@dataclass(frozen=True)
class ShotClaimInput(CircuitInput):
    """Input proving the outcome of one shot against the committed board."""
    shot_x: int = 0
    shot_y: int = 0
    is_hit: int = 0

    circuit = CircuitId.SHOT_RESULT

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.update({
            "shot_x": self.shot_x,
            "shot_y": self.shot_y,
            "is_hit": self.is_hit,
        })
        return payload


@dataclass(frozen=True)
class GameEndClaimInput(CircuitInput):
    """Input proving every ship on the committed board was hit."""
    shot_history: tuple[int, ...] = ()
    shot_history_hash: str = ""

    circuit = CircuitId.GAME_END

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.update({
            "shot_history": list(self.shot_history),
            "shot_history_hash": self.shot_history_hash,
        })
        return payload


def build_board_claim(board: Board, salt: str) -> BoardClaimInput:
    """
    Input for the board placement circuit.

    Validates the board first; raises the board validation errors.
    """
    validate_board(board)
    salt = normalize_salt(salt)
    ships = tuple(
        {
            "size": ship.size,
            "x": ship.x,
            "y": ship.y,
            "horizontal": 1 if ship.horizontal else 0,
        }
        for ship in board.ships
    )
    return BoardClaimInput(
        cells=tuple(board.cells),
        salt=salt,
        board_commitment=commit(board, salt),
        ships=ships,
    )


def build_shot_claim(
    board: Board,
    x: int,
    y: int,
    claimed_is_hit: bool,
    salt: str,
) -> ShotClaimInput:
    """
    Input for the shot result circuit.

    Raises ClaimMismatchError when `claimed_is_hit` is not what the board says.
    """
    actual = is_hit(board, x, y)
    if actual != claimed_is_hit:
        raise ClaimMismatchError(x, y, claimed=claimed_is_hit, actual=actual)

    salt = normalize_salt(salt)
    return ShotClaimInput(
        cells=tuple(board.cells),
        salt=salt,
        board_commitment=commit(board, salt),
        shot_x=x,
        shot_y=y,
        is_hit=1 if actual else 0,
    )


def build_game_end_claim(board: Board, shot_map: ShotMap, salt: str) -> GameEndClaimInput:
    """
    Input for the game end circuit.

    Raises IncompleteSinkError unless every ship cell is in the hit set.
    """
    if not all_sunk(board, shot_map):
        raise IncompleteSinkError(remaining_cells(board, shot_map))

    salt = normalize_salt(salt)
    history = shot_history(shot_map)
    return GameEndClaimInput(
        cells=tuple(board.cells),
        salt=salt,
        board_commitment=commit(board, salt),
        shot_history=history.bitmap,
        shot_history_hash=history.digest,
    )
