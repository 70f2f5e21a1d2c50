"""
Board Model - Ship placement and the derived cell grid.

Design principles:
- Immutable: a Board is built once during setup and never edited
- The grid is always derived from ship placement via create_board()
- Owner-only: boards live in memory and are never transmitted

Grid coordinates are (x, y) with x the column and y the row,
both in [0, BOARD_SIZE).
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Any
import random

from ..errors import (
    CompositionError,
    GridMismatchError,
    PlacementError,
    PlacementReason,
)


BOARD_SIZE = 10
CELL_COUNT = BOARD_SIZE * BOARD_SIZE

# Carrier, battleship, cruiser, submarine, destroyer
SHIP_SIZES = (5, 4, 3, 3, 2)

MAX_PLACEMENT_ATTEMPTS = 100

_NEIGHBOR_OFFSETS = [
    (dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)
]


@dataclass(frozen=True)
class Ship:
    """
    A ship placement.

    The footprint starts at (x, y) and extends `size` cells to the
    right when horizontal, downward otherwise.
    """
    size: int
    x: int
    y: int
    horizontal: bool = True

    def cells(self) -> list[tuple[int, int]]:
        """Cells covered by this ship, bow first."""
        if self.horizontal:
            return [(self.x + i, self.y) for i in range(self.size)]
        return [(self.x, self.y + i) for i in range(self.size)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "x": self.x,
            "y": self.y,
            "horizontal": self.horizontal,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ship:
        return cls(
            size=int(data["size"]),
            x=int(data["x"]),
            y=int(data["y"]),
            horizontal=bool(data.get("horizontal", True)),
        )


def _empty_grid() -> tuple[tuple[int, ...], ...]:
    return tuple(tuple(0 for _ in range(BOARD_SIZE)) for _ in range(BOARD_SIZE))


@dataclass(frozen=True)
class Board:
    """
    A player's fleet and the cell grid it occupies.

    grid[y][x] is 1 when a ship covers (x, y), else 0.
    Build boards with create_board(); constructing one directly
    skips placement checks and is only meant for loading data
    that validate_board() will then check.
    """
    ships: tuple[Ship, ...] = ()
    grid: tuple[tuple[int, ...], ...] = field(default_factory=_empty_grid)

    @property
    def cells(self) -> list[int]:
        """Flattened grid, row-major from the origin."""
        return [cell for row in self.grid for cell in row]

    @property
    def occupied_count(self) -> int:
        return sum(self.cells)

    def is_occupied(self, x: int, y: int) -> bool:
        return self.grid[y][x] == 1

    def ship_cells(self) -> set[tuple[int, int]]:
        """All (x, y) cells covered according to the grid."""
        return {
            (x, y)
            for y, row in enumerate(self.grid)
            for x, cell in enumerate(row)
            if cell == 1
        }

    def render(self, marks: dict[tuple[int, int], str] | None = None) -> str:
        """Text rendering, one row per line. `marks` overrides individual cells."""
        marks = marks or {}
        header = "   " + " ".join(chr(ord("A") + x) for x in range(BOARD_SIZE))
        lines = [header]
        for y, row in enumerate(self.grid):
            symbols = [
                marks.get((x, y), "#" if cell else ".")
                for x, cell in enumerate(row)
            ]
            lines.append(f"{y + 1:>2} " + " ".join(symbols))
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {"ships": [ship.to_dict() for ship in self.ships]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Board:
        """Load a board from a ship list, running placement checks."""
        return create_board([Ship.from_dict(s) for s in data["ships"]])


def empty_board() -> Board:
    """A board with no ships."""
    return Board()


def _in_bounds(x: int, y: int) -> bool:
    return 0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE


def _check_ship(
    grid: list[list[int]],
    ship: Ship,
    ship_index: int | None = None,
) -> PlacementError | None:
    """Return the first placement violation for `ship` against `grid`, if any."""
    for x, y in ship.cells():
        if not _in_bounds(x, y):
            return PlacementError(PlacementReason.OUT_OF_BOUNDS, x, y, ship_index)
        if grid[y][x] != 0:
            return PlacementError(PlacementReason.OVERLAP, x, y, ship_index)
        for dx, dy in _NEIGHBOR_OFFSETS:
            nx, ny = x + dx, y + dy
            if _in_bounds(nx, ny) and grid[ny][nx] != 0:
                return PlacementError(PlacementReason.ADJACENT, x, y, ship_index)
    return None


def is_valid_placement(board: Board, ship: Ship) -> bool:
    """Check whether `ship` can be added to `board` without touching other ships."""
    grid = [list(row) for row in board.grid]
    return _check_ship(grid, ship) is None


def create_board(ships: list[Ship] | tuple[Ship, ...]) -> Board:
    """
    Place ships in order and derive the grid.

    Raises PlacementError on the first ship that leaves the grid,
    overlaps an earlier ship, or touches one (diagonals included).
    """
    grid = [[0] * BOARD_SIZE for _ in range(BOARD_SIZE)]

    for index, ship in enumerate(ships):
        error = _check_ship(grid, ship, index)
        if error:
            raise error
        for x, y in ship.cells():
            grid[y][x] = 1

    return Board(
        ships=tuple(ships),
        grid=tuple(tuple(row) for row in grid),
    )


def add_ship(board: Board, ship: Ship) -> Board:
    """Return a new board with `ship` added. Raises PlacementError if it doesn't fit."""
    return create_board(list(board.ships) + [ship])


def validate_board(board: Board) -> None:
    """
    Check a board is a complete, legal fleet.

    Raises:
        CompositionError: ship sizes are not exactly SHIP_SIZES
        PlacementError: ships leave the grid, overlap or touch
        GridMismatchError: the stored grid differs from the ship footprints
    """
    expected = sorted(SHIP_SIZES, reverse=True)
    actual = sorted((ship.size for ship in board.ships), reverse=True)
    if Counter(actual) != Counter(expected):
        raise CompositionError(expected=expected, actual=actual)

    rebuilt = create_board(board.ships)

    # Full per-cell comparison; equal counts at different cells still fail
    mismatched = [
        (x, y)
        for y in range(BOARD_SIZE)
        for x in range(BOARD_SIZE)
        if board.grid[y][x] != rebuilt.grid[y][x]
    ]
    if mismatched:
        raise GridMismatchError(mismatched)


def generate_random_board(rng: random.Random | None = None) -> Board:
    """
    Generate a random legal board.

    Each ship gets up to MAX_PLACEMENT_ATTEMPTS random positions. If one
    cannot be placed, the whole layout restarts so a crowded partial
    layout never blocks the remaining ships.
    """
    rng = rng or random.Random()

    while True:
        grid = [[0] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        ships: list[Ship] = []

        for size in SHIP_SIZES:
            placed = False
            for _ in range(MAX_PLACEMENT_ATTEMPTS):
                horizontal = rng.random() > 0.5
                max_x = BOARD_SIZE - size if horizontal else BOARD_SIZE - 1
                max_y = BOARD_SIZE - 1 if horizontal else BOARD_SIZE - size
                ship = Ship(
                    size=size,
                    x=rng.randint(0, max_x),
                    y=rng.randint(0, max_y),
                    horizontal=horizontal,
                )
                if _check_ship(grid, ship) is None:
                    for x, y in ship.cells():
                        grid[y][x] = 1
                    ships.append(ship)
                    placed = True
                    break

            if not placed:
                break
        else:
            return create_board(ships)
