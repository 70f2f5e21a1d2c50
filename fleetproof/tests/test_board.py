"""
Tests for the board model.

Tests:
- Placement checks (bounds, overlap, adjacency)
- Fleet validation
- Random generation
"""

import random

import pytest

from ..board.model import (
    BOARD_SIZE,
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
from ..errors import (
    CompositionError,
    GridMismatchError,
    PlacementError,
    PlacementReason,
)


class TestShip:
    """Tests for ship footprints."""

    def test_horizontal_cells(self):
        assert Ship(size=3, x=2, y=5).cells() == [(2, 5), (3, 5), (4, 5)]

    def test_vertical_cells(self):
        assert Ship(size=2, x=7, y=1, horizontal=False).cells() == [(7, 1), (7, 2)]


class TestCreateBoard:
    """Tests for create_board."""

    def test_standard_fleet_occupies_sum_of_sizes(self, standard_board):
        """Occupied cells equal the fleet's total size."""
        assert standard_board.occupied_count == sum(SHIP_SIZES) == 17
        validate_board(standard_board)

    def test_grid_is_union_of_footprints(self, standard_board):
        expected = {cell for ship in standard_board.ships for cell in ship.cells()}
        assert standard_board.ship_cells() == expected

    def test_out_of_bounds(self):
        with pytest.raises(PlacementError) as exc_info:
            create_board([Ship(size=5, x=7, y=0)])

        assert exc_info.value.reason == PlacementReason.OUT_OF_BOUNDS
        assert (exc_info.value.x, exc_info.value.y) == (10, 0)

    def test_negative_coordinate_is_out_of_bounds(self):
        with pytest.raises(PlacementError) as exc_info:
            create_board([Ship(size=2, x=-1, y=3)])

        assert exc_info.value.reason == PlacementReason.OUT_OF_BOUNDS

    def test_overlap(self):
        with pytest.raises(PlacementError) as exc_info:
            create_board([
                Ship(size=5, x=0, y=0),
                Ship(size=3, x=2, y=0, horizontal=False),
            ])

        assert exc_info.value.reason == PlacementReason.OVERLAP
        assert exc_info.value.ship_index == 1

    def test_diagonal_touch_is_adjacent(self):
        with pytest.raises(PlacementError) as exc_info:
            create_board([
                Ship(size=2, x=0, y=0),
                Ship(size=2, x=2, y=1),
            ])

        assert exc_info.value.reason == PlacementReason.ADJACENT

    def test_side_by_side_is_adjacent(self):
        with pytest.raises(PlacementError) as exc_info:
            create_board([
                Ship(size=3, x=0, y=0),
                Ship(size=3, x=0, y=1),
            ])

        assert exc_info.value.reason == PlacementReason.ADJACENT

    def test_first_violation_wins(self):
        """Ships are checked in order; the first bad one is reported."""
        with pytest.raises(PlacementError) as exc_info:
            create_board([
                Ship(size=2, x=9, y=9),
                Ship(size=2, x=0, y=0),
                Ship(size=2, x=0, y=0),
            ])

        assert exc_info.value.ship_index == 0

    def test_add_ship_and_is_valid_placement(self):
        board = add_ship(empty_board(), Ship(size=3, x=0, y=0))

        assert board.occupied_count == 3
        assert not is_valid_placement(board, Ship(size=2, x=0, y=1))
        assert is_valid_placement(board, Ship(size=2, x=0, y=2))

    def test_dict_round_trip(self, standard_board):
        assert Board.from_dict(standard_board.to_dict()) == standard_board


class TestValidateBoard:
    """Tests for validate_board."""

    def test_missing_ship_is_composition_error(self, standard_ships):
        board = create_board(standard_ships[:-1])

        with pytest.raises(CompositionError) as exc_info:
            validate_board(board)

        assert exc_info.value.actual == [5, 4, 3, 3]

    def test_wrong_sizes_is_composition_error(self, standard_ships):
        ships = standard_ships[:-1] + [Ship(size=3, x=0, y=8)]

        with pytest.raises(CompositionError):
            validate_board(create_board(ships))

    def test_grid_with_extra_cell(self, standard_board):
        grid = [list(row) for row in standard_board.grid]
        grid[9][9] = 1
        tampered = Board(ships=standard_board.ships, grid=tuple(tuple(r) for r in grid))

        with pytest.raises(GridMismatchError) as exc_info:
            validate_board(tampered)

        assert exc_info.value.mismatched_cells == [(9, 9)]

    def test_grid_with_moved_cell(self, standard_board):
        """Same occupied count at different cells still fails."""
        grid = [list(row) for row in standard_board.grid]
        grid[0][0] = 0
        grid[9][9] = 1
        tampered = Board(ships=standard_board.ships, grid=tuple(tuple(r) for r in grid))

        assert tampered.occupied_count == standard_board.occupied_count
        with pytest.raises(GridMismatchError) as exc_info:
            validate_board(tampered)

        assert set(exc_info.value.mismatched_cells) == {(0, 0), (9, 9)}

    def test_touching_ships_fail_validation(self):
        board = Board(ships=(
            Ship(size=5, x=0, y=0),
            Ship(size=4, x=0, y=1),
            Ship(size=3, x=0, y=4),
            Ship(size=3, x=0, y=6),
            Ship(size=2, x=0, y=8),
        ))

        with pytest.raises(PlacementError):
            validate_board(board)


class TestRandomBoard:
    """Tests for generate_random_board."""

    @pytest.mark.parametrize("seed", range(20))
    def test_random_boards_are_legal(self, seed):
        board = generate_random_board(random.Random(seed))

        validate_board(board)
        assert sorted(s.size for s in board.ships) == sorted(SHIP_SIZES)

    def test_seeded_generation_is_reproducible(self):
        first = generate_random_board(random.Random(42))
        second = generate_random_board(random.Random(42))

        assert first == second

    def test_render(self, standard_board):
        lines = standard_board.render().splitlines()

        assert len(lines) == BOARD_SIZE + 1
        assert lines[1].split()[1:6] == ["#"] * 5
