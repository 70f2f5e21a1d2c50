"""
Ledger Client - The on-chain game contract, seen from one account.

Each call returns a confirmed transaction hash or raises LedgerError.
A returned hash means the ledger accepted the call; callers advance
local state only after that.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import hashlib
import logging

from ..errors import LedgerError

logger = logging.getLogger(__name__)


class LedgerClient(ABC):
    """Abstract game contract client bound to one player account."""

    @abstractmethod
    async def submit_board(self, game: str, commitment: str, proof: bytes) -> str:
        pass

    @abstractmethod
    async def make_shot(self, game: str, x: int, y: int) -> str:
        pass

    @abstractmethod
    async def submit_shot_result(
        self, game: str, x: int, y: int, is_hit: bool, proof: bytes
    ) -> str:
        pass

    @abstractmethod
    async def verify_game_end(self, game: str, commitment: str, proof: bytes) -> str:
        pass

    @abstractmethod
    async def forfeit(self, game: str) -> str:
        pass


@dataclass
class LedgerGame:
    """What the in-memory ledger knows about one game for its account."""
    commitment: str | None = None
    shots: list[tuple[int, int]] = field(default_factory=list)
    answers: dict[tuple[int, int], bool] = field(default_factory=dict)
    finished: bool = False
    forfeited: bool = False


class InMemoryLedger(LedgerClient):
    """
    Ledger stand-in for development and tests.

    Enforces the per-account rules the contract enforces: one board per
    game, no repeated shots or answers, nothing after the game ends, and
    a game-end proof only against the committed board. Proof bytes are
    not checked beyond being non-empty.

    `fail_times` makes the next N calls raise LedgerError.
    """

    def __init__(self, account: str, fail_times: int = 0):
        self.account = account
        self.fail_times = fail_times
        self.games: dict[str, LedgerGame] = {}
        self.transactions: list[tuple[str, str, tuple]] = []

    def _game(self, game: str) -> LedgerGame:
        if not game:
            raise LedgerError("No game contract registered")
        return self.games.setdefault(game, LedgerGame())

    def _open_game(self, game: str) -> LedgerGame:
        record = self._game(game)
        if record.finished:
            raise LedgerError(f"Game {game} is already finished")
        return record

    def _maybe_fail(self, method: str):
        if self.fail_times > 0:
            self.fail_times -= 1
            raise LedgerError(f"Ledger call {method} failed")

    def _record(self, method: str, game: str, *args) -> str:
        self.transactions.append((method, game, args))
        seed = f"{self.account}:{game}:{method}:{len(self.transactions)}"
        tx_hash = "0x" + hashlib.sha3_256(seed.encode("utf-8")).hexdigest()
        logger.debug("Ledger %s on %s confirmed: %s", method, game, tx_hash)
        return tx_hash

    async def submit_board(self, game: str, commitment: str, proof: bytes) -> str:
        self._maybe_fail("submit_board")
        record = self._open_game(game)
        if record.commitment is not None:
            raise LedgerError("Board already submitted")
        if not proof:
            raise LedgerError("Board proof is empty")
        record.commitment = commitment
        return self._record("submit_board", game, commitment)

    async def make_shot(self, game: str, x: int, y: int) -> str:
        self._maybe_fail("make_shot")
        record = self._open_game(game)
        if record.commitment is None:
            raise LedgerError("Board not submitted")
        if (x, y) in record.shots:
            raise LedgerError(f"Already fired at ({x}, {y})")
        record.shots.append((x, y))
        return self._record("make_shot", game, x, y)

    async def submit_shot_result(
        self, game: str, x: int, y: int, is_hit: bool, proof: bytes
    ) -> str:
        self._maybe_fail("submit_shot_result")
        record = self._open_game(game)
        if (x, y) in record.answers:
            raise LedgerError(f"Shot at ({x}, {y}) already answered")
        if not proof:
            raise LedgerError("Shot proof is empty")
        record.answers[(x, y)] = is_hit
        return self._record("submit_shot_result", game, x, y, is_hit)

    async def verify_game_end(self, game: str, commitment: str, proof: bytes) -> str:
        self._maybe_fail("verify_game_end")
        record = self._open_game(game)
        if record.commitment != commitment:
            raise LedgerError("Commitment does not match the submitted board")
        if not proof:
            raise LedgerError("Game end proof is empty")
        record.finished = True
        return self._record("verify_game_end", game, commitment)

    async def forfeit(self, game: str) -> str:
        self._maybe_fail("forfeit")
        record = self._open_game(game)
        record.finished = True
        record.forfeited = True
        return self._record("forfeit", game)
