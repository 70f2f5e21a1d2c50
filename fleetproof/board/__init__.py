"""
Board - Fleet placement and commitments.

A board never leaves its owner's memory. Only its commitment is
published, and every later claim is proven against that commitment.
"""

from .model import (
    BOARD_SIZE,
    CELL_COUNT,
    SHIP_SIZES,
    Board,
    Ship,
    add_ship,
    create_board,
    empty_board,
    generate_random_board,
    is_valid_placement,
    validate_board,
)
from .commitment import (
    ShotHistoryDigest,
    commit,
    encode_salt,
    generate_salt,
    normalize_salt,
    serialize_cells,
    shot_history,
)

__all__ = [
    "BOARD_SIZE",
    "CELL_COUNT",
    "SHIP_SIZES",
    "Board",
    "Ship",
    "add_ship",
    "create_board",
    "empty_board",
    "generate_random_board",
    "is_valid_placement",
    "validate_board",
    "ShotHistoryDigest",
    "commit",
    "encode_salt",
    "generate_salt",
    "normalize_salt",
    "serialize_cells",
    "shot_history",
]
