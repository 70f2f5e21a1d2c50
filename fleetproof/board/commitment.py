"""
Commitment Engine - Binding, hiding digests for boards.

WIRE FORMAT (must match the proving circuits bit for bit):
- Cells: 100 ASCII symbols '0'/'1', row-major from (0, 0),
  index = y * BOARD_SIZE + x
- Salt: 16 secret bytes, carried as 32 hex characters, encoded as a
  32-byte big-endian word (left zero-padded)
- Commitment: "0x" + hex SHA3-256(cells || salt word)
- Shot history: 100 ASCII symbols, 1 = fired upon (hit or miss),
  hashed the same way without a salt

Changing any ordering or encoding here invalidates every proof.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING
import hashlib
import secrets

from .model import Board, BOARD_SIZE, CELL_COUNT

if TYPE_CHECKING:
    from ..verifier.shots import ShotMap


SALT_BYTES = 16
WORD_BYTES = 32


def generate_salt() -> str:
    """Fresh random salt as a hex string."""
    return secrets.token_hex(SALT_BYTES)


def normalize_salt(salt: str) -> str:
    """Lowercase hex without prefix. Raises ValueError for malformed salts."""
    text = salt[2:] if salt.startswith(("0x", "0X")) else salt
    try:
        raw = bytes.fromhex(text)
    except ValueError:
        raise ValueError("Salt must be a hex string") from None
    if len(raw) != SALT_BYTES:
        raise ValueError(f"Salt must be {SALT_BYTES} bytes, got {len(raw)}")
    return raw.hex()


def encode_salt(salt: str) -> bytes:
    """Salt as a fixed-width 32-byte word."""
    raw = bytes.fromhex(normalize_salt(salt))
    return raw.rjust(WORD_BYTES, b"\x00")


def serialize_cells(board: Board) -> str:
    """Board cells as the canonical '0'/'1' string."""
    return "".join("1" if cell else "0" for cell in board.cells)


def _digest(data: bytes) -> str:
    return "0x" + hashlib.sha3_256(data).hexdigest()


def commit(board: Board, salt: str) -> str:
    """
    Commitment for (board, salt).

    Deterministic: identical inputs always produce the same digest.
    """
    return _digest(serialize_cells(board).encode("ascii") + encode_salt(salt))


@dataclass(frozen=True)
class ShotHistoryDigest:
    """Order-independent record of every cell fired upon."""
    bitmap: tuple[int, ...]
    digest: str

    @property
    def shots_fired(self) -> int:
        return sum(self.bitmap)


def shot_history(shot_map: ShotMap) -> ShotHistoryDigest:
    """Bitmap and hash of all shots (hits and misses) in `shot_map`."""
    bitmap = [0] * CELL_COUNT
    for x, y in list(shot_map.hits) + list(shot_map.misses):
        bitmap[y * BOARD_SIZE + x] = 1
    encoded = "".join(str(bit) for bit in bitmap).encode("ascii")
    return ShotHistoryDigest(bitmap=tuple(bitmap), digest=_digest(encoded))
