"""
Outcome Verifier - Ground truth for shots and fleet sinking.

Pure functions over a board and a shot map. Safe to re-run any number
of times, which is what lets the reconciler re-derive outcomes when
relay events replay.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..board.model import Board, Ship, BOARD_SIZE
from ..errors import OutOfBoundsError


Coordinate = tuple[int, int]


def check_coordinate(x: int, y: int):
    """Raise OutOfBoundsError unless (x, y) is on the grid."""
    if not (0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE):
        raise OutOfBoundsError(x, y)


@dataclass(frozen=True)
class ShotMap:
    """
    Append-only record of shots against one board.

    Kept by the shooter (what they learned about the target) and by the
    owner (what the opponent has fired). A coordinate is in at most one
    of the two tuples, at most once.
    """
    hits: tuple[Coordinate, ...] = ()
    misses: tuple[Coordinate, ...] = ()

    @property
    def hit_count(self) -> int:
        return len(self.hits)

    @property
    def shot_count(self) -> int:
        return len(self.hits) + len(self.misses)

    def contains(self, x: int, y: int) -> bool:
        return (x, y) in self.hits or (x, y) in self.misses

    def classification(self, x: int, y: int) -> bool | None:
        """True for a recorded hit, False for a recorded miss, None if never fired."""
        if (x, y) in self.hits:
            return True
        if (x, y) in self.misses:
            return False
        return None

    def record(self, x: int, y: int, is_hit: bool) -> ShotMap:
        """
        Return a map including this shot.

        Re-recording a known coordinate is a no-op and returns self,
        whatever classification the repeat claims.
        """
        check_coordinate(x, y)
        if self.contains(x, y):
            return self
        if is_hit:
            return ShotMap(hits=self.hits + ((x, y),), misses=self.misses)
        return ShotMap(hits=self.hits, misses=self.misses + ((x, y),))

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": [{"x": x, "y": y} for x, y in self.hits],
            "misses": [{"x": x, "y": y} for x, y in self.misses],
        }


def is_hit(board: Board, x: int, y: int) -> bool:
    """Whether a shot at (x, y) hits a ship. Raises OutOfBoundsError off-grid."""
    check_coordinate(x, y)
    return board.is_occupied(x, y)


def all_sunk(board: Board, shot_map: ShotMap) -> bool:
    """
    Whether every ship cell on `board` has been hit.

    Checks each ship cell against the recorded hits, so a map with
    the right number of hits at the wrong coordinates is not sunk.
    """
    ship_cells = board.ship_cells()
    if not ship_cells:
        return False
    return ship_cells.issubset(set(shot_map.hits))


def remaining_cells(board: Board, shot_map: ShotMap) -> int:
    """Ship cells not yet hit."""
    return len(board.ship_cells() - set(shot_map.hits))


def sunk_ships(board: Board, shot_map: ShotMap) -> list[Ship]:
    """Ships whose every cell has been hit."""
    hits = set(shot_map.hits)
    return [ship for ship in board.ships if set(ship.cells()).issubset(hits)]


def inconsistent_hits(board: Board, shot_map: ShotMap) -> list[Coordinate]:
    """Recorded outcomes that contradict the board."""
    ship_cells = board.ship_cells()
    wrong_hits = [c for c in shot_map.hits if c not in ship_cells]
    wrong_misses = [c for c in shot_map.misses if c in ship_cells]
    return wrong_hits + wrong_misses
