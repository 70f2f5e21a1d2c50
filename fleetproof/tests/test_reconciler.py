"""
Tests for the Reconciler.

Tests:
- Duplicate delivery
- Stale events after a newer snapshot
- Phase never regresses on events; snapshots win
"""

import pytest

from ..errors import InvalidActionError, ProtocolError
from ..session.machine import GamePhase
from ..session.reconciler import Reconciler
from .conftest import LOCAL, OPPONENT


@pytest.fixture
def reconciler(view):
    return Reconciler(view)


@pytest.fixture
def playing(reconciler, snapshot):
    """Reconciler in PLAYING with the local player to move."""
    reconciler.confirm_board("0xcommit")
    reconciler.apply_event(snapshot(status="ACTIVE", currentTurn=LOCAL))
    return reconciler


class TestDelivery:
    """Tests for parsing and duplicate handling."""

    def test_raw_messages_are_parsed(self, reconciler, snapshot):
        result = reconciler.apply_event(snapshot(status="SETUP"))

        assert result.applied
        assert reconciler.view.phase == GamePhase.PLACING_SHIPS

    def test_malformed_message(self, reconciler):
        with pytest.raises(ProtocolError):
            reconciler.apply_event({"type": "shot_fired", "player": OPPONENT, "x": 12, "y": 0})

    def test_unknown_message_type(self, reconciler):
        with pytest.raises(ProtocolError):
            reconciler.apply_event({"type": "teleport"})

    def test_duplicate_chat_is_dropped(self, reconciler):
        message = {"type": "chat", "sender": OPPONENT, "text": "hi", "timestamp": 1.0}

        assert reconciler.apply_event(message).applied
        result = reconciler.apply_event(message)

        assert not result.applied
        assert "duplicate" in result.dropped_reason
        assert len(reconciler.view.chat) == 1

    def test_repeated_chat_without_timestamp_is_kept(self, reconciler):
        message = {"type": "chat", "sender": OPPONENT, "text": "gg"}

        assert reconciler.apply_event(message).applied
        assert reconciler.apply_event(message).applied
        assert [chat.text for chat in reconciler.view.chat] == ["gg", "gg"]

    def test_duplicate_shot_result_not_recounted(self, playing, shot_result):
        message = shot_result(LOCAL, 3, 3, True)

        playing.apply_event(message)
        playing.apply_event(message)

        assert playing.view.shots_at_opponent.hit_count == 1


class TestStaleEvents:
    """Tests for ordering conflicts."""

    def test_stale_result_after_snapshot(self, playing, snapshot, shot_result):
        """A late conflicting result never reclassifies a known coordinate."""
        playing.apply_event(shot_result(LOCAL, 3, 3, True))
        playing.apply_event(snapshot(status="ACTIVE", currentTurn=OPPONENT))

        result = playing.apply_event(shot_result(LOCAL, 3, 3, False))

        assert not result.applied
        assert playing.view.shots_at_opponent.classification(3, 3) is True
        assert playing.view.turn_holder == OPPONENT

    def test_stale_setup_event_cannot_regress_phase(self, playing):
        result = playing.apply_event({"type": "board_submitted", "player": OPPONENT})

        assert not result.applied
        assert playing.view.phase == GamePhase.PLAYING

    def test_replayed_game_started_keeps_turn(self, playing, shot_fired, shot_result):
        playing.propose_shot(3, 3)
        playing.apply_event(shot_fired(LOCAL, 3, 3, next_turn=OPPONENT))
        playing.apply_event(shot_result(LOCAL, 3, 3, False))

        result = playing.apply_event({"type": "game_started", "currentTurn": LOCAL})

        assert not result.applied
        assert playing.view.turn_holder == OPPONENT

    def test_result_before_shot_fired_leaves_turn_open(self, playing, shot_fired, shot_result):
        playing.propose_shot(4, 4)
        playing.apply_event(shot_result(LOCAL, 4, 4, False))

        assert playing.view.pending_shot is None
        assert playing.view.turn_holder is None
        with pytest.raises(InvalidActionError):
            playing.propose_shot(6, 6)

        result = playing.apply_event(shot_fired(LOCAL, 4, 4, next_turn=OPPONENT))

        assert result.applied
        assert playing.view.turn_holder == OPPONENT
        assert playing.view.shots_at_opponent.classification(4, 4) is False

    def test_game_over_survives_snapshot(self, playing, snapshot):
        playing.apply_event({"type": "game_over", "winner": OPPONENT, "reason": "TIMEOUT"})
        assert playing.view.is_terminal

        # Terminal stays terminal; only metadata refreshes
        result = playing.apply_event(snapshot(status="ACTIVE", currentTurn=LOCAL))

        assert result.applied
        assert playing.view.is_terminal

    def test_snapshot_resets_furthest_phase(self, playing, snapshot):
        playing.apply_event(snapshot(status="SETUP"))

        assert playing.view.phase == GamePhase.WAITING_FOR_OPPONENT_BOARD
        assert playing.view.furthest_phase == GamePhase.WAITING_FOR_OPPONENT_BOARD

    def test_foreign_snapshot_dropped(self, playing, snapshot):
        result = playing.apply_event(snapshot(status="COMPLETED", session_id="elsewhere"))

        assert not result.applied
        assert playing.view.phase == GamePhase.PLAYING


class TestLocalActions:
    """Tests for local action wrappers."""

    def test_attach_board_enables_game_end(self, playing, standard_board, shot_result):
        playing.attach_board(standard_board)
        cells = sorted(standard_board.ship_cells())

        effects = []
        for x, y in cells:
            effects.extend(playing.apply_event(shot_result(OPPONENT, x, y, True)).effects)

        assert len(effects) == 1
        assert playing.view.awaiting_game_end

    def test_forfeit(self, playing):
        playing.confirm_forfeit()

        assert playing.view.is_terminal
        assert playing.view.winner == OPPONENT
        assert playing.view.game_over_reason == "FORFEIT"
