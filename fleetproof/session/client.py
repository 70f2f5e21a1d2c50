"""
Game Client - Runs one player's side of a game.

The client owns the private board and salt, the Reconciler holding the
GameView, and injected collaborators (relay, ledger, prover). It turns
reducer effects into proof requests and ledger calls.

ORDERING RULES:
- Local state advances only after the ledger confirms a call
  (or a relay event / snapshot says so)
- A failed external call leaves view, board, salt and shot maps as
  they were; failed answers are parked for retry_pending()
- The salt and board never reach a log line or the relay
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar
import asyncio
import logging

from ..board.commitment import generate_salt
from ..board.model import Board, generate_random_board
from ..config import ClientConfig
from ..errors import (
    ChannelError,
    ExternalServiceError,
    InvalidActionError,
    LedgerError,
    ProvingError,
)
from ..services.retry import retry_async
from ..verifier.claims import (
    CircuitInput,
    build_board_claim,
    build_game_end_claim,
    build_shot_claim,
)
from ..verifier.shots import is_hit
from .events import ChatCommand, PingCommand, RelayCommand, SubmitBoardCommand
from .machine import AnswerShot, Effect, GamePhase, GameView, ProveGameEnd, TransitionResult
from .reconciler import Reconciler

if TYPE_CHECKING:
    from ..services.ledger import LedgerClient
    from ..services.proving import ProvingService
    from ..services.relay import RelayChannel

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GameClient:
    """
    One player's connection to one game session.

    Usage:
        client = GameClient("s1", "0xabc", relay, ledger, prover)
        await client.connect()
        await client.handle_message(raw_event)   # for every relay message
        await client.submit_board()
        await client.fire(3, 4)
        await client.close()
    """

    def __init__(
        self,
        session_id: str,
        player_id: str,
        relay: RelayChannel,
        ledger: LedgerClient,
        prover: ProvingService,
        config: ClientConfig | None = None,
    ):
        self.session_id = session_id
        self.player_id = player_id
        self.relay = relay
        self.ledger = ledger
        self.prover = prover
        self.config = config or ClientConfig()

        self.reconciler = Reconciler(GameView(session_id=session_id, local_player=player_id))

        self._board: Board | None = None
        self._salt: str | None = None
        self._heartbeat: asyncio.Task | None = None

    @property
    def view(self) -> GameView:
        return self.reconciler.view

    @property
    def board(self) -> Board | None:
        """The committed local board, if any. Never sent anywhere."""
        return self._board

    @property
    def connected(self) -> bool:
        return self._heartbeat is not None and not self._heartbeat.done()

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self):
        """Start the liveness heartbeat."""
        if self.connected:
            return
        self._heartbeat = asyncio.create_task(self._heartbeat_loop())
        logger.info("Client %s joined session %s", self.player_id, self.session_id)

    async def close(self):
        """Stop the heartbeat and close the relay channel."""
        task, self._heartbeat = self._heartbeat, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.relay.close()
        logger.info("Client %s left session %s", self.player_id, self.session_id)

    async def _heartbeat_loop(self):
        while True:
            await asyncio.sleep(self.config.heartbeat_interval)
            try:
                await self.relay.send(PingCommand())
            except ChannelError as e:
                logger.warning("Heartbeat for session %s failed: %s", self.session_id, e)

    # =========================================================================
    # Inbound
    # =========================================================================

    async def handle_message(self, raw: dict[str, Any]) -> TransitionResult:
        """
        Merge one relay message and run the effects it produces.

        Raises ProtocolError for malformed messages. Effect failures are
        logged and parked, not raised.
        """
        result = self.reconciler.apply_event(raw)
        await self._run_effects(result.effects)
        return result

    async def retry_pending(self):
        """Re-run answers and a game-end proof that previously failed."""
        for x, y in self.view.unanswered:
            result = self.reconciler.retry_answer(x, y)
            await self._run_effects(result.effects)
        if self.view.awaiting_game_end and not self.view.is_terminal:
            await self._prove_game_end()

    async def _run_effects(self, effects: list[Effect]):
        for effect in effects:
            if isinstance(effect, AnswerShot):
                await self._answer_shot(effect.x, effect.y)
            elif isinstance(effect, ProveGameEnd):
                await self._prove_game_end()

    async def _answer_shot(self, x: int, y: int):
        if self._board is None or self._salt is None:
            logger.error("Cannot answer shot at (%d, %d): no committed board", x, y)
            self.reconciler.abort_answer(x, y)
            return

        claim = build_shot_claim(self._board, x, y, is_hit(self._board, x, y), self._salt)
        game = self.view.game_contract_address
        try:
            proof = await self._prove(claim)
            await self._call_ledger(
                "submit_shot_result",
                lambda: self.ledger.submit_shot_result(game, x, y, bool(claim.is_hit), proof),
            )
        except ExternalServiceError as e:
            logger.error("Answer for shot at (%d, %d) failed: %s", x, y, e)
            self.reconciler.abort_answer(x, y)

    async def _prove_game_end(self):
        claim = build_game_end_claim(self._board, self.view.shots_at_player, self._salt)
        game = self.view.game_contract_address
        try:
            proof = await self._prove(claim)
            await self._call_ledger(
                "verify_game_end",
                lambda: self.ledger.verify_game_end(game, claim.board_commitment, proof),
            )
        except ExternalServiceError as e:
            logger.error("Game end proof for session %s failed: %s", self.session_id, e)
            return
        self.reconciler.confirm_game_end()

    # =========================================================================
    # Local actions
    # =========================================================================

    async def submit_board(self, board: Board | None = None, salt: str | None = None) -> str:
        """
        Prove and commit the local board; returns the commitment.

        A random legal board and a fresh salt are used when not given.
        Raises placement errors for an illegal board and
        ExternalServiceError subclasses when a collaborator fails.
        """
        if self.view.local_board_submitted:
            raise InvalidActionError("Board already submitted")
        if self.view.phase != GamePhase.PLACING_SHIPS:
            raise InvalidActionError(f"Cannot place ships during {self.view.phase.value}")
        game = self._require_game()

        board = board if board is not None else generate_random_board()
        claim = build_board_claim(board, salt if salt is not None else generate_salt())

        proof = await self._prove(claim)
        await self._call_ledger(
            "submit_board",
            lambda: self.ledger.submit_board(game, claim.board_commitment, proof),
        )

        self._board = board
        self._salt = claim.salt
        self.reconciler.attach_board(board)
        self.reconciler.confirm_board(claim.board_commitment)

        await self.announce_board()
        return claim.board_commitment

    async def announce_board(self):
        """Tell the relay about the committed board. Safe to repeat."""
        commitment = self.view.local_board_commitment
        if commitment is None:
            raise InvalidActionError("No board committed")
        await self._send(SubmitBoardCommand(address=self.player_id, board_commitment=commitment))

    async def fire(self, x: int, y: int) -> str:
        """
        Fire at the opponent; returns the transaction hash.

        The turn is only passed on when the relay confirms the shot.
        """
        game = self._require_game()
        self.reconciler.propose_shot(x, y)
        try:
            return await self._call_ledger("make_shot", lambda: self.ledger.make_shot(game, x, y))
        except ExternalServiceError:
            self.reconciler.reject_shot(x, y)
            raise

    async def forfeit(self) -> str:
        if self.view.is_terminal:
            raise InvalidActionError("Game is already over")
        game = self._require_game()
        tx_hash = await self._call_ledger("forfeit", lambda: self.ledger.forfeit(game))
        self.reconciler.confirm_forfeit()
        return tx_hash

    async def send_chat(self, text: str):
        await self._send(ChatCommand(sender=self.player_id, text=text))

    # =========================================================================
    # Collaborator calls
    # =========================================================================

    def _require_game(self) -> str:
        if not self.view.game_contract_address:
            raise InvalidActionError("No game contract registered yet")
        return self.view.game_contract_address

    async def _prove(self, claim: CircuitInput) -> bytes:
        logger.info("Requesting %s proof: %s", claim.circuit.value, claim.redacted_payload())
        return await self._retry(
            f"{claim.circuit.value} proof",
            ProvingError,
            lambda: self.prover.prove(claim.circuit, claim.to_payload()),
            cancellable=self.prover.cancellable,
        )

    async def _call_ledger(self, method: str, call: Callable[[], Awaitable[T]]) -> T:
        tx_hash = await self._retry(f"ledger {method}", LedgerError, call)
        logger.info("Ledger %s confirmed: %s", method, tx_hash)
        return tx_hash

    async def _send(self, command: RelayCommand):
        await self._retry(
            f"relay {command.type}",
            ChannelError,
            lambda: self.relay.send(command),
        )

    async def _retry(
        self,
        description: str,
        error_type: type[ExternalServiceError],
        operation: Callable[[], Awaitable[T]],
        cancellable: bool = True,
    ) -> T:
        return await retry_async(
            operation,
            description=description,
            error_type=error_type,
            attempts=self.config.retry_attempts,
            backoff=self.config.retry_backoff,
            timeout=self.config.call_timeout if cancellable else None,
        )
