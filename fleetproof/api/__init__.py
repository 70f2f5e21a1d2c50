"""
API Module - Local control surface.

Exposes GameClients over REST so a UI or script can:
1. Create a game for a local wallet
2. Feed relay events in
3. Commit a board, fire and forfeit
4. Read the current game view

All state is process-local. Boards and salts are never returned.
"""

from .schemas import (
    # Requests
    ChatRequest,
    CreateGameRequest,
    FireRequest,
    PlaceBoardRequest,
    # Responses
    BoardResponse,
    ErrorResponse,
    EventResponse,
    GameResponse,
    ShotResponse,
    # Enums
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "ChatRequest",
    "CreateGameRequest",
    "FireRequest",
    "PlaceBoardRequest",
    # Responses
    "BoardResponse",
    "ErrorResponse",
    "EventResponse",
    "GameResponse",
    "ShotResponse",
    # Enums
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
