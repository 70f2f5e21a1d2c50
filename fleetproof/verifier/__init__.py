"""
Verifier - Ground truth and claims.

Outcome functions compute what is actually true about a board.
Claim builders turn a checked claim into a circuit input.
"""

from .shots import (
    Coordinate,
    ShotMap,
    all_sunk,
    check_coordinate,
    inconsistent_hits,
    is_hit,
    remaining_cells,
    sunk_ships,
)
from .claims import (
    BoardClaimInput,
    CircuitId,
    CircuitInput,
    GameEndClaimInput,
    ShotClaimInput,
    build_board_claim,
    build_game_end_claim,
    build_shot_claim,
)

__all__ = [
    "Coordinate",
    "ShotMap",
    "all_sunk",
    "check_coordinate",
    "inconsistent_hits",
    "is_hit",
    "remaining_cells",
    "sunk_ships",
    "BoardClaimInput",
    "CircuitId",
    "CircuitInput",
    "GameEndClaimInput",
    "ShotClaimInput",
    "build_board_claim",
    "build_game_end_claim",
    "build_shot_claim",
]
