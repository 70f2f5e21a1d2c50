"""
Reconciler - Merges local actions, relay events and snapshots.

Three sources feed one GameView:
1. Local optimistic actions (proposed shot): advisory, only revoke turn
2. Push events: ordered, at-least-once, possibly duplicated
3. Snapshots: authoritative, overwrite phase/turn/players

Policy:
- Snapshots always win for derived phase/turn fields
- Events are idempotent: a known shot coordinate is never re-counted
  or reclassified
- Events never move the phase backward relative to the furthest phase
  reached, so a stale event arriving after a newer snapshot is dropped
- Drops are logged, not raised
"""

from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any
import json
import logging

from ..board.model import Board
from .events import (
    BoardSubmitted,
    Chat,
    ContractRegistered,
    GameOver,
    GameStarted,
    PlayerJoined,
    RelayError,
    SessionState,
    parse_event,
)
from .machine import (
    AnswerAborted,
    AnswerRetried,
    BoardConfirmed,
    ForfeitConfirmed,
    GameEndVerified,
    GameView,
    SessionReducer,
    ShotProposed,
    ShotRejected,
    TransitionResult,
    phase_rank,
)

logger = logging.getLogger(__name__)

# Event kinds whose exact repeats are redelivery noise. Shot events are
# deduplicated by coordinate in the reducer instead, which also lets a
# replayed shot_fired re-trigger an aborted answer.
_FINGERPRINTED = (
    PlayerJoined,
    ContractRegistered,
    BoardSubmitted,
    GameStarted,
    GameOver,
    Chat,
    RelayError,
)

MAX_FINGERPRINTS = 1024


@dataclass
class Reconciler:
    """
    Owns the client's GameView and applies every change to it.

    Usage:
        reconciler = Reconciler(GameView(session_id="s1", local_player="0xabc"))
        result = reconciler.apply_event(raw_message)
        for effect in result.effects:
            ...
    """
    view: GameView
    reducer: SessionReducer = field(default_factory=SessionReducer)

    _seen: OrderedDict[str, None] = field(default_factory=OrderedDict)

    def attach_board(self, board: Board):
        """Give the reducer the local board so incoming hits can be checked for a full sink."""
        self.reducer.local_board = board

    # -------------------------------------------------------------------------
    # Relay input
    # -------------------------------------------------------------------------

    def apply_event(self, event: Any) -> TransitionResult:
        """
        Merge one relay event (raw dict or parsed model).

        Raises ProtocolError for malformed messages.
        """
        if isinstance(event, dict):
            event = parse_event(event)

        if isinstance(event, SessionState):
            return self._apply_snapshot(event)

        if self._is_fingerprinted(event):
            fingerprint = self._fingerprint(event)
            if fingerprint in self._seen:
                return self._drop(f"duplicate {event.type} delivery")
        else:
            fingerprint = None

        result = self.reducer.apply(self.view, event)
        if not result.applied:
            return self._drop(result.dropped_reason or "rejected", event.type)

        if phase_rank(result.view.phase) < phase_rank(self.view.furthest_phase):
            return self._drop(
                f"{event.type} would regress phase to {result.view.phase.value} "
                f"(reached {self.view.furthest_phase.value})"
            )

        if fingerprint is not None:
            self._remember(fingerprint)
        return self._commit(result)

    def _apply_snapshot(self, snapshot: SessionState) -> TransitionResult:
        result = self.reducer.apply(self.view, snapshot)
        if not result.applied:
            return self._drop(result.dropped_reason or "rejected", snapshot.type)

        # Authoritative: the snapshot phase becomes the new high-water mark
        result.view = result.view._copy_with(furthest_phase=result.view.phase)
        self.view = result.view
        self._log_changes(result)
        return result

    # -------------------------------------------------------------------------
    # Local actions
    # -------------------------------------------------------------------------

    def propose_shot(self, x: int, y: int) -> TransitionResult:
        """Record an intended shot. Raises InvalidActionError out of turn."""
        return self._apply_local(ShotProposed(x, y))

    def reject_shot(self, x: int, y: int) -> TransitionResult:
        return self._apply_local(ShotRejected(x, y))

    def confirm_board(self, commitment: str) -> TransitionResult:
        return self._apply_local(BoardConfirmed(commitment))

    def abort_answer(self, x: int, y: int) -> TransitionResult:
        return self._apply_local(AnswerAborted(x, y))

    def retry_answer(self, x: int, y: int) -> TransitionResult:
        return self._apply_local(AnswerRetried(x, y))

    def confirm_game_end(self) -> TransitionResult:
        return self._apply_local(GameEndVerified())

    def confirm_forfeit(self) -> TransitionResult:
        return self._apply_local(ForfeitConfirmed())

    def _apply_local(self, action: Any) -> TransitionResult:
        result = self.reducer.apply(self.view, action)
        if not result.applied:
            return self._drop(result.dropped_reason or "rejected", type(action).__name__)
        return self._commit(result)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _commit(self, result: TransitionResult) -> TransitionResult:
        if phase_rank(result.view.phase) > phase_rank(result.view.furthest_phase):
            result.view = result.view._copy_with(furthest_phase=result.view.phase)
        self.view = result.view
        self._log_changes(result)
        return result

    def _drop(self, reason: str, kind: str | None = None) -> TransitionResult:
        logger.info(
            "Dropped %s for session %s: %s",
            kind or "message", self.view.session_id, reason,
        )
        return TransitionResult.dropped(self.view, reason)

    def _log_changes(self, result: TransitionResult):
        for change in result.changes:
            logger.debug("Session %s: %s", self.view.session_id, change)

    def _is_fingerprinted(self, event: Any) -> bool:
        # Two untimestamped chats with equal text are two messages
        if isinstance(event, Chat):
            return event.timestamp is not None
        return isinstance(event, _FINGERPRINTED)

    def _fingerprint(self, event: Any) -> str:
        return json.dumps(event.to_wire(), sort_keys=True)

    def _remember(self, fingerprint: str):
        self._seen[fingerprint] = None
        while len(self._seen) > MAX_FINGERPRINTS:
            self._seen.popitem(last=False)
