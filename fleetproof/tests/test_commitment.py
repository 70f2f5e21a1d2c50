"""
Tests for board commitments and shot history digests.
"""

import hashlib

import pytest

from ..board.commitment import (
    commit,
    encode_salt,
    generate_salt,
    normalize_salt,
    serialize_cells,
    shot_history,
)
from ..board.model import Ship, create_board
from ..verifier.shots import ShotMap


class TestSalt:
    """Tests for salt handling."""

    def test_generated_salt_is_16_bytes_hex(self):
        salt = generate_salt()

        assert len(salt) == 32
        assert normalize_salt(salt) == salt

    def test_generated_salts_differ(self):
        assert generate_salt() != generate_salt()

    def test_prefix_and_case_are_normalized(self, salt):
        assert normalize_salt("0x" + salt.upper()) == salt

    @pytest.mark.parametrize("bad", ["abc", "zz" * 16, "00" * 15, "00" * 17])
    def test_malformed_salt(self, bad):
        with pytest.raises(ValueError):
            normalize_salt(bad)

    def test_salt_word_is_left_padded(self, salt):
        word = encode_salt(salt)

        assert len(word) == 32
        assert word[:16] == b"\x00" * 16
        assert word[16:] == bytes.fromhex(salt)


class TestCommit:
    """Tests for commit()."""

    def test_cells_are_row_major(self):
        board = create_board([Ship(size=2, x=3, y=1, horizontal=False)])
        cells = serialize_cells(board)

        assert len(cells) == 100
        assert {i for i, c in enumerate(cells) if c == "1"} == {13, 23}

    def test_wire_format(self, standard_board, salt):
        expected = hashlib.sha3_256(
            serialize_cells(standard_board).encode("ascii")
            + b"\x00" * 16
            + bytes.fromhex(salt)
        ).hexdigest()

        assert commit(standard_board, salt) == "0x" + expected

    def test_deterministic(self, standard_board, salt):
        assert commit(standard_board, salt) == commit(standard_board, salt)

    def test_changes_with_salt(self, standard_board, salt):
        other_salt = "ff" + salt[2:]

        assert commit(standard_board, salt) != commit(standard_board, other_salt)

    def test_changes_with_any_cell(self, standard_ships, salt):
        original = create_board(standard_ships)
        moved = create_board(standard_ships[:-1] + [Ship(size=2, x=1, y=8)])

        assert commit(original, salt) != commit(moved, salt)


class TestShotHistory:
    """Tests for shot_history()."""

    def test_bitmap_covers_hits_and_misses(self):
        shots = ShotMap(hits=((0, 0),), misses=((9, 9), (4, 2)))
        history = shot_history(shots)

        assert history.shots_fired == 3
        assert history.bitmap[0] == 1
        assert history.bitmap[99] == 1
        assert history.bitmap[24] == 1

    def test_digest_is_order_independent(self):
        first = shot_history(ShotMap(hits=((1, 1), (2, 2))))
        second = shot_history(ShotMap(hits=((2, 2), (1, 1))))

        assert first.digest == second.digest

    def test_digest_wire_format(self):
        history = shot_history(ShotMap(misses=((5, 0),)))
        bitmap = "".join(str(b) for b in history.bitmap)

        assert history.digest == "0x" + hashlib.sha3_256(bitmap.encode("ascii")).hexdigest()
