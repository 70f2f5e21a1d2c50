"""Session layer: relay events, phase reducer, reconciliation and the game client."""

from .events import (
    RelayCommand,
    RelayEvent,
    parse_event,
)
from .machine import (
    AnswerShot,
    GamePhase,
    GameView,
    ProveGameEnd,
    SessionReducer,
    TransitionResult,
)
from .reconciler import Reconciler
from .client import GameClient
from .manager import GameManager, ManagedGame, ServiceFactory

__all__ = [
    "AnswerShot",
    "GameClient",
    "GameManager",
    "GamePhase",
    "GameView",
    "ManagedGame",
    "ProveGameEnd",
    "Reconciler",
    "RelayCommand",
    "RelayEvent",
    "ServiceFactory",
    "SessionReducer",
    "TransitionResult",
    "parse_event",
]
