"""
Tests for shot outcomes and the game-end predicate.
"""

import pytest

from ..board.model import SHIP_SIZES, empty_board
from ..errors import OutOfBoundsError
from ..verifier.shots import (
    ShotMap,
    all_sunk,
    inconsistent_hits,
    is_hit,
    remaining_cells,
    sunk_ships,
)


class TestIsHit:
    """Tests for is_hit."""

    def test_agrees_with_every_cell(self, standard_board):
        ship_cells = {cell for ship in standard_board.ships for cell in ship.cells()}

        for x in range(10):
            for y in range(10):
                assert is_hit(standard_board, x, y) == ((x, y) in ship_cells)

    @pytest.mark.parametrize("x,y", [(-1, 0), (0, -1), (10, 0), (0, 10)])
    def test_out_of_bounds(self, standard_board, x, y):
        with pytest.raises(OutOfBoundsError):
            is_hit(standard_board, x, y)


class TestShotMap:
    """Tests for ShotMap."""

    def test_record_hit_and_miss(self):
        shots = ShotMap().record(1, 1, True).record(2, 2, False)

        assert shots.hits == ((1, 1),)
        assert shots.misses == ((2, 2),)
        assert shots.shot_count == 2

    def test_record_is_idempotent(self):
        shots = ShotMap().record(3, 3, True)

        assert shots.record(3, 3, True) is shots

    def test_known_coordinate_is_never_reclassified(self):
        shots = ShotMap().record(3, 3, True)
        again = shots.record(3, 3, False)

        assert again.classification(3, 3) is True
        assert (3, 3) not in again.misses

    def test_classification(self):
        shots = ShotMap(hits=((0, 0),), misses=((1, 0),))

        assert shots.classification(0, 0) is True
        assert shots.classification(1, 0) is False
        assert shots.classification(2, 0) is None

    def test_record_rejects_off_grid(self):
        with pytest.raises(OutOfBoundsError):
            ShotMap().record(10, 0, True)


class TestAllSunk:
    """Tests for all_sunk and friends."""

    def test_one_short_then_sunk(self, standard_board):
        cells = sorted(standard_board.ship_cells())
        assert len(cells) == sum(SHIP_SIZES)

        shots = ShotMap()
        for x, y in cells[:-1]:
            shots = shots.record(x, y, True)

        assert not all_sunk(standard_board, shots)
        assert remaining_cells(standard_board, shots) == 1

        x, y = cells[-1]
        shots = shots.record(x, y, True)

        assert all_sunk(standard_board, shots)
        assert remaining_cells(standard_board, shots) == 0

    def test_right_count_wrong_cells(self, standard_board):
        """A hit count equal to the fleet size at the wrong cells is not a sink."""
        cells = sorted(standard_board.ship_cells())
        hits = tuple(cells[:-1]) + ((9, 9),)

        assert len(hits) == len(cells)
        assert not all_sunk(standard_board, ShotMap(hits=hits))

    def test_misses_do_not_count(self, standard_board):
        shots = ShotMap(misses=tuple(standard_board.ship_cells()))

        assert not all_sunk(standard_board, shots)

    def test_empty_board_is_never_sunk(self):
        assert not all_sunk(empty_board(), ShotMap())

    def test_sunk_ships(self, standard_board):
        destroyer = standard_board.ships[-1]
        shots = ShotMap(hits=tuple(destroyer.cells()) + ((0, 0),))

        assert sunk_ships(standard_board, shots) == [destroyer]

    def test_inconsistent_hits(self, standard_board):
        shots = ShotMap(hits=((0, 0), (9, 9)), misses=((1, 0), (5, 5)))

        assert inconsistent_hits(standard_board, shots) == [(9, 9), (1, 0)]
