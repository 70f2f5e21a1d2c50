"""
Session State Machine - Phase and turn engine for one game.

The reducer is the single point of view mutation:
- Pure function: (view, message) -> TransitionResult
- Messages are relay events or confirmed local actions
- Side effects the client must run (answer a shot, prove game end)
  are returned as effect records, never executed here

Phases:
    CONNECTING -> WAITING_FOR_OPPONENT -> PLACING_SHIPS
        -> WAITING_FOR_OPPONENT_BOARD -> PLAYING -> GAME_OVER

Turn possession is the single `turn_holder` field. Only confirmed
events and snapshots set it. A proposed local shot revokes the local
player's turn (pending_shot) without granting it to the opponent.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

from ..board.model import Board
from ..errors import InvalidActionError, ProtocolError
from ..verifier.shots import Coordinate, ShotMap, all_sunk, check_coordinate
from .events import (
    BoardSubmitted,
    Chat,
    ContractRegistered,
    GameOver,
    GameStarted,
    PlayerJoined,
    Pong,
    RelayError,
    SessionState,
    ShotFired,
    ShotResult,
)


class GamePhase(Enum):
    """Client-side game phase."""
    CONNECTING = "connecting"
    WAITING_FOR_OPPONENT = "waiting_for_opponent"
    PLACING_SHIPS = "placing_ships"
    WAITING_FOR_OPPONENT_BOARD = "waiting_for_opponent_board"
    PLAYING = "playing"
    GAME_OVER = "game_over"


PHASE_ORDER = list(GamePhase)


def phase_rank(phase: GamePhase) -> int:
    return PHASE_ORDER.index(phase)


# =============================================================================
# Local actions (two-stage: proposed, then confirmed)
# =============================================================================

@dataclass(frozen=True)
class ShotProposed:
    """Local player intends to fire; advisory only."""
    x: int
    y: int


@dataclass(frozen=True)
class ShotRejected:
    """The ledger refused or failed the proposed shot."""
    x: int
    y: int


@dataclass(frozen=True)
class BoardConfirmed:
    """Local board commitment confirmed on the ledger and relay."""
    commitment: str


@dataclass(frozen=True)
class AnswerAborted:
    """Answering an incoming shot failed; allow a later retry."""
    x: int
    y: int


@dataclass(frozen=True)
class AnswerRetried:
    """Try again to answer a previously aborted incoming shot."""
    x: int
    y: int


@dataclass(frozen=True)
class GameEndVerified:
    """Ledger confirmed our fleet-sunk proof."""


@dataclass(frozen=True)
class ForfeitConfirmed:
    """Ledger confirmed our forfeit."""


# =============================================================================
# Effects
# =============================================================================

@dataclass(frozen=True)
class AnswerShot:
    """Prove and submit the outcome of an opponent shot at (x, y)."""
    x: int
    y: int


@dataclass(frozen=True)
class ProveGameEnd:
    """Prove that the local fleet is sunk and submit it."""


Effect = AnswerShot | ProveGameEnd


# =============================================================================
# View
# =============================================================================

@dataclass(frozen=True)
class GameView:
    """
    Client replica of one game session.

    Phase and turn fields mirror the relay and are never more
    authoritative than the next snapshot. Shot maps and the board
    commitment belong to this client.
    """
    session_id: str
    local_player: str

    phase: GamePhase = GamePhase.CONNECTING
    furthest_phase: GamePhase = GamePhase.CONNECTING

    players: tuple[str, ...] = ()
    turn_holder: str | None = None
    turn_started_at: float | None = None

    # Setup
    local_board_submitted: bool = False
    local_board_commitment: str | None = None
    opponent_board_submitted: bool = False

    # Play
    pending_shot: Coordinate | None = None
    shots_at_player: ShotMap = field(default_factory=ShotMap)
    shots_at_opponent: ShotMap = field(default_factory=ShotMap)
    answering: tuple[Coordinate, ...] = ()
    unanswered: tuple[Coordinate, ...] = ()
    awaiting_game_end: bool = False

    # Outcome
    winner: str | None = None
    game_over_reason: str | None = None

    # On-chain reference
    game_contract_address: str | None = None
    game_id: int | str | None = None

    # Activity
    created_at: float | None = None
    last_activity_at: float | None = None
    last_pong_at: float | None = None
    last_error: str | None = None
    chat: tuple[Chat, ...] = ()

    revision: int = 0

    @property
    def opponent(self) -> str | None:
        for player in self.players:
            if not _same_player(player, self.local_player):
                return player
        return None

    @property
    def is_local_turn(self) -> bool:
        """Whether the local player may fire now."""
        return (
            self.phase == GamePhase.PLAYING
            and self.pending_shot is None
            and not self.answering
            and not self.awaiting_game_end
            and _same_player(self.turn_holder, self.local_player)
        )

    @property
    def is_terminal(self) -> bool:
        return self.phase == GamePhase.GAME_OVER

    @property
    def local_won(self) -> bool | None:
        if not self.is_terminal or self.winner is None:
            return None
        return _same_player(self.winner, self.local_player)

    def _copy_with(self, **kwargs) -> GameView:
        return replace(self, **kwargs)


def _same_player(a: str | None, b: str | None) -> bool:
    """Player ids are wallet addresses; compare case-insensitively."""
    if a is None or b is None:
        return False
    return a.lower() == b.lower()


@dataclass
class TransitionResult:
    """
    Result of applying one message.

    When `applied` is False the view is unchanged and `dropped_reason`
    says why (stale, duplicate, foreign session, terminal).
    """
    applied: bool
    view: GameView
    effects: list[Effect] = field(default_factory=list)
    changes: list[str] = field(default_factory=list)
    dropped_reason: str | None = None

    @classmethod
    def dropped(cls, view: GameView, reason: str) -> TransitionResult:
        return cls(applied=False, view=view, dropped_reason=reason)

    @classmethod
    def accepted(
        cls,
        view: GameView,
        changes: list[str] | None = None,
        effects: list[Effect] | None = None,
    ) -> TransitionResult:
        return cls(
            applied=True,
            view=view._copy_with(revision=view.revision + 1),
            effects=effects or [],
            changes=changes or [],
        )


# =============================================================================
# Reducer
# =============================================================================

@dataclass
class SessionReducer:
    """
    Applies relay events and confirmed local actions to a GameView.

    `local_board` is needed to decide whether an incoming hit sank the
    whole fleet; it stays in this process and is never serialized.
    """
    local_board: Board | None = None

    def apply(self, view: GameView, message: Any) -> TransitionResult:
        """Apply one message. Raises ProtocolError for message kinds with no handler."""
        handler = self._get_handler(message)
        if handler is None:
            raise ProtocolError(f"No handler for message type: {type(message).__name__}")

        if view.is_terminal and not isinstance(message, (Chat, Pong, RelayError, SessionState)):
            return TransitionResult.dropped(view, "game is over")

        return handler(view, message)

    def _get_handler(self, message: Any) -> Callable[[GameView, Any], TransitionResult] | None:
        handlers: dict[type, Callable[[GameView, Any], TransitionResult]] = {
            SessionState: self._apply_snapshot,
            PlayerJoined: self._apply_player_joined,
            ContractRegistered: self._apply_contract_registered,
            BoardSubmitted: self._apply_board_submitted,
            GameStarted: self._apply_game_started,
            ShotFired: self._apply_shot_fired,
            ShotResult: self._apply_shot_result,
            GameOver: self._apply_game_over,
            Chat: self._apply_chat,
            Pong: self._apply_pong,
            RelayError: self._apply_relay_error,
            ShotProposed: self._apply_shot_proposed,
            ShotRejected: self._apply_shot_rejected,
            BoardConfirmed: self._apply_board_confirmed,
            AnswerAborted: self._apply_answer_aborted,
            AnswerRetried: self._apply_answer_retried,
            GameEndVerified: self._apply_game_end_verified,
            ForfeitConfirmed: self._apply_forfeit_confirmed,
        }
        return handlers.get(type(message))

    # -------------------------------------------------------------------------
    # Phase derivation
    # -------------------------------------------------------------------------

    def _setup_phase(self, view: GameView) -> GamePhase:
        if view.local_board_submitted:
            return GamePhase.WAITING_FOR_OPPONENT_BOARD
        return GamePhase.PLACING_SHIPS

    def _phase_from_snapshot(self, view: GameView, snapshot: SessionState) -> GamePhase:
        if snapshot.status in ("COMPLETED", "CANCELLED"):
            return GamePhase.GAME_OVER
        if len(snapshot.players) < 2:
            return GamePhase.WAITING_FOR_OPPONENT
        if snapshot.status == "ACTIVE":
            return GamePhase.PLAYING
        return self._setup_phase(view)

    # -------------------------------------------------------------------------
    # Relay events
    # -------------------------------------------------------------------------

    def _apply_snapshot(self, view: GameView, snapshot: SessionState) -> TransitionResult:
        if snapshot.session_id != view.session_id:
            return TransitionResult.dropped(view, f"snapshot for other session {snapshot.session_id}")

        new_view = view._copy_with(
            players=tuple(snapshot.players),
            game_contract_address=snapshot.game_contract_address or view.game_contract_address,
            game_id=snapshot.game_id if snapshot.game_id is not None else view.game_id,
            created_at=snapshot.created_at or view.created_at,
            last_activity_at=snapshot.last_activity_at or view.last_activity_at,
        )

        # GAME_OVER is terminal; later snapshots only refresh metadata
        if view.is_terminal:
            return TransitionResult.accepted(new_view, ["Snapshot refreshed session metadata"])

        phase = self._phase_from_snapshot(new_view, snapshot)
        changes = []
        if phase != view.phase:
            changes.append(f"Phase {view.phase.value} -> {phase.value}")

        if phase == GamePhase.PLAYING:
            new_view = new_view._copy_with(
                phase=phase,
                turn_holder=snapshot.current_turn,
                turn_started_at=snapshot.turn_started_at,
                local_board_submitted=True,
                opponent_board_submitted=True,
            )
        elif phase == GamePhase.GAME_OVER:
            new_view = new_view._copy_with(
                phase=phase,
                turn_holder=None,
                winner=snapshot.winner,
                game_over_reason=snapshot.status,
                pending_shot=None,
            )
        else:
            new_view = new_view._copy_with(phase=phase, turn_holder=None)

        if new_view.turn_holder != view.turn_holder:
            changes.append(f"Turn holder set to {new_view.turn_holder}")

        return TransitionResult.accepted(new_view, changes)

    def _apply_player_joined(self, view: GameView, event: PlayerJoined) -> TransitionResult:
        players = tuple(event.players) if event.players else view.players
        if event.address not in players:
            players = players + (event.address,)

        new_view = view._copy_with(players=players)
        if len(players) < 2:
            phase = GamePhase.WAITING_FOR_OPPONENT
        elif phase_rank(view.phase) < phase_rank(GamePhase.PLACING_SHIPS):
            phase = self._setup_phase(view)
        else:
            phase = view.phase

        return TransitionResult.accepted(
            new_view._copy_with(phase=phase),
            [f"Player joined: {event.address}"],
        )

    def _apply_contract_registered(self, view: GameView, event: ContractRegistered) -> TransitionResult:
        new_view = view._copy_with(
            game_contract_address=event.game_contract_address,
            game_id=event.game_id,
        )
        return TransitionResult.accepted(
            new_view, [f"Game contract registered at {event.game_contract_address}"]
        )

    def _apply_board_submitted(self, view: GameView, event: BoardSubmitted) -> TransitionResult:
        changes = []
        if _same_player(event.player, view.local_player):
            new_view = view._copy_with(local_board_submitted=True)
            changes.append("Local board submitted")
        else:
            new_view = view._copy_with(opponent_board_submitted=True)
            changes.append("Opponent board submitted")

        if event.all_boards_submitted:
            # Turn holder arrives with the next snapshot or game_started
            new_view = new_view._copy_with(
                phase=GamePhase.PLAYING,
                local_board_submitted=True,
                opponent_board_submitted=True,
            )
            changes.append("All boards submitted, game is live")
        elif new_view.local_board_submitted:
            new_view = new_view._copy_with(phase=GamePhase.WAITING_FOR_OPPONENT_BOARD)

        return TransitionResult.accepted(new_view, changes)

    def _apply_game_started(self, view: GameView, event: GameStarted) -> TransitionResult:
        shots_so_far = view.shots_at_player.shot_count + view.shots_at_opponent.shot_count
        if view.phase == GamePhase.PLAYING and shots_so_far > 0:
            return TransitionResult.dropped(view, "game_started after play began")

        new_view = view._copy_with(
            phase=GamePhase.PLAYING,
            turn_holder=event.current_turn,
            turn_started_at=event.turn_started_at,
            local_board_submitted=True,
            opponent_board_submitted=True,
            game_contract_address=event.game_contract_address or view.game_contract_address,
            game_id=event.game_id if event.game_id is not None else view.game_id,
        )
        return TransitionResult.accepted(
            new_view, [f"Game started, {event.current_turn} to move"]
        )

    def _apply_shot_fired(self, view: GameView, event: ShotFired) -> TransitionResult:
        if view.phase != GamePhase.PLAYING:
            return TransitionResult.dropped(view, f"shot_fired during {view.phase.value}")

        coord = (event.x, event.y)
        turn_started_at = event.turn_started_at or view.turn_started_at

        if _same_player(event.player, view.local_player):
            turn_holder = event.next_turn if event.next_turn is not None else view.turn_holder
            if view.shots_at_opponent.contains(event.x, event.y):
                # Result arrived first and left the turn open
                if view.turn_holder is None and event.next_turn is not None:
                    return TransitionResult.accepted(
                        view._copy_with(turn_holder=turn_holder, turn_started_at=turn_started_at),
                        [f"Shot at {coord} confirmed late, {turn_holder} to move"],
                    )
                return TransitionResult.dropped(view, f"local shot {coord} already resolved")
            new_view = view._copy_with(
                turn_holder=turn_holder,
                turn_started_at=turn_started_at,
            )
            return TransitionResult.accepted(new_view, [f"Shot at {coord} confirmed"])

        if view.shots_at_player.contains(event.x, event.y) or coord in view.answering:
            return TransitionResult.dropped(view, f"incoming shot {coord} already handled")

        # The turn comes back only with the result against us
        turn_holder = None if _same_player(view.turn_holder, view.local_player) else view.turn_holder
        new_view = view._copy_with(
            turn_holder=turn_holder,
            turn_started_at=turn_started_at,
            answering=view.answering + (coord,),
            unanswered=tuple(c for c in view.unanswered if c != coord),
        )
        return TransitionResult.accepted(
            new_view,
            [f"Opponent fired at {coord}"],
            [AnswerShot(event.x, event.y)],
        )

    def _apply_shot_result(self, view: GameView, event: ShotResult) -> TransitionResult:
        if view.phase != GamePhase.PLAYING:
            return TransitionResult.dropped(view, f"shot_result during {view.phase.value}")

        coord = (event.x, event.y)
        outcome = "hit" if event.is_hit else "miss"

        if _same_player(event.player, view.local_player):
            known = view.shots_at_opponent.classification(event.x, event.y)
            if known is not None:
                return TransitionResult.dropped(
                    view, f"result for {coord} already recorded as {'hit' if known else 'miss'}"
                )
            # Without a confirming shot_fired the turn stays unassigned
            turn_holder = None if _same_player(view.turn_holder, view.local_player) else view.turn_holder
            new_view = view._copy_with(
                shots_at_opponent=view.shots_at_opponent.record(event.x, event.y, event.is_hit),
                pending_shot=None if view.pending_shot == coord else view.pending_shot,
                turn_holder=turn_holder,
            )
            return TransitionResult.accepted(new_view, [f"Our shot at {coord}: {outcome}"])

        known = view.shots_at_player.classification(event.x, event.y)
        if known is not None:
            return TransitionResult.dropped(
                view, f"incoming result for {coord} already recorded as {'hit' if known else 'miss'}"
            )

        shots_at_player = view.shots_at_player.record(event.x, event.y, event.is_hit)
        answering = tuple(c for c in view.answering if c != coord)
        changes = [f"Opponent shot at {coord}: {outcome}"]

        if event.is_hit and self.local_board is not None and all_sunk(self.local_board, shots_at_player):
            new_view = view._copy_with(
                shots_at_player=shots_at_player,
                answering=answering,
                awaiting_game_end=True,
                turn_holder=None,
            )
            changes.append("Fleet sunk, proving game end")
            return TransitionResult.accepted(new_view, changes, [ProveGameEnd()])

        new_view = view._copy_with(
            shots_at_player=shots_at_player,
            answering=answering,
            turn_holder=view.local_player,
        )
        changes.append("Turn passes to local player")
        return TransitionResult.accepted(new_view, changes)

    def _apply_game_over(self, view: GameView, event: GameOver) -> TransitionResult:
        new_view = view._copy_with(
            phase=GamePhase.GAME_OVER,
            turn_holder=None,
            pending_shot=None,
            winner=event.winner,
            game_over_reason=event.reason,
        )
        return TransitionResult.accepted(new_view, [f"Game over ({event.reason}), winner {event.winner}"])

    def _apply_chat(self, view: GameView, event: Chat) -> TransitionResult:
        return TransitionResult.accepted(view._copy_with(chat=view.chat + (event,)))

    def _apply_pong(self, view: GameView, event: Pong) -> TransitionResult:
        return TransitionResult.accepted(view._copy_with(last_pong_at=event.timestamp))

    def _apply_relay_error(self, view: GameView, event: RelayError) -> TransitionResult:
        return TransitionResult.accepted(
            view._copy_with(last_error=event.error), [f"Relay error: {event.error}"]
        )

    # -------------------------------------------------------------------------
    # Local actions
    # -------------------------------------------------------------------------

    def _apply_shot_proposed(self, view: GameView, action: ShotProposed) -> TransitionResult:
        check_coordinate(action.x, action.y)
        if view.phase != GamePhase.PLAYING:
            raise InvalidActionError(f"Cannot fire during {view.phase.value}")
        if not view.is_local_turn:
            raise InvalidActionError("Not your turn", code="NOT_YOUR_TURN")
        if view.shots_at_opponent.contains(action.x, action.y):
            raise InvalidActionError(
                f"Already fired at ({action.x}, {action.y})", code="ALREADY_FIRED"
            )

        new_view = view._copy_with(pending_shot=(action.x, action.y))
        return TransitionResult.accepted(new_view, [f"Firing at ({action.x}, {action.y})"])

    def _apply_shot_rejected(self, view: GameView, action: ShotRejected) -> TransitionResult:
        if view.pending_shot != (action.x, action.y):
            return TransitionResult.dropped(view, "no matching pending shot")
        return TransitionResult.accepted(
            view._copy_with(pending_shot=None),
            [f"Shot at ({action.x}, {action.y}) not confirmed"],
        )

    def _apply_board_confirmed(self, view: GameView, action: BoardConfirmed) -> TransitionResult:
        if phase_rank(view.phase) >= phase_rank(GamePhase.PLAYING):
            return TransitionResult.dropped(view, "board already locked in")

        new_view = view._copy_with(
            local_board_submitted=True,
            local_board_commitment=action.commitment,
            phase=GamePhase.WAITING_FOR_OPPONENT_BOARD,
        )
        return TransitionResult.accepted(new_view, ["Board commitment confirmed"])

    def _apply_answer_aborted(self, view: GameView, action: AnswerAborted) -> TransitionResult:
        coord = (action.x, action.y)
        if coord not in view.answering:
            return TransitionResult.dropped(view, f"no answer in flight for {coord}")
        answering = tuple(c for c in view.answering if c != coord)
        return TransitionResult.accepted(
            view._copy_with(answering=answering, unanswered=view.unanswered + (coord,)),
            [f"Answer for {coord} aborted"],
        )

    def _apply_answer_retried(self, view: GameView, action: AnswerRetried) -> TransitionResult:
        coord = (action.x, action.y)
        if coord not in view.unanswered:
            return TransitionResult.dropped(view, f"no aborted answer for {coord}")
        new_view = view._copy_with(
            answering=view.answering + (coord,),
            unanswered=tuple(c for c in view.unanswered if c != coord),
        )
        return TransitionResult.accepted(
            new_view,
            [f"Retrying answer for {coord}"],
            [AnswerShot(action.x, action.y)],
        )

    def _apply_game_end_verified(self, view: GameView, action: GameEndVerified) -> TransitionResult:
        new_view = view._copy_with(
            phase=GamePhase.GAME_OVER,
            turn_holder=None,
            awaiting_game_end=False,
            winner=view.opponent,
            game_over_reason="COMPLETED",
        )
        return TransitionResult.accepted(new_view, ["Game end verified, fleet sunk"])

    def _apply_forfeit_confirmed(self, view: GameView, action: ForfeitConfirmed) -> TransitionResult:
        new_view = view._copy_with(
            phase=GamePhase.GAME_OVER,
            turn_holder=None,
            pending_shot=None,
            winner=view.opponent,
            game_over_reason="FORFEIT",
        )
        return TransitionResult.accepted(new_view, ["Forfeit confirmed"])
