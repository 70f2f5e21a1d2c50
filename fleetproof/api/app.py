"""
FastAPI Application - Local control API for game clients.

Endpoints:
    POST   /api/v1/games                    Create a local game client
    GET    /api/v1/games                    List active games
    GET    /api/v1/games/{id}               Get the game view
    DELETE /api/v1/games/{id}               End a game
    POST   /api/v1/games/{id}/board         Commit a board (explicit or random)
    POST   /api/v1/games/{id}/shots         Fire at the opponent
    POST   /api/v1/games/{id}/forfeit       Forfeit the game
    POST   /api/v1/games/{id}/chat          Send a chat message
    POST   /api/v1/games/{id}/events        Deliver a relay event
    POST   /api/v1/games/{id}/retry         Retry failed answers / game-end proof

All responses are JSON with explicit Pydantic schemas. The board salt
never appears in any response.
"""

from typing import Any, Optional, Union

from ..config import ALLOWED_ORIGINS, FLEETPROOF_ENV


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import Body, FastAPI, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .. import __version__
    from .service import APIService
    from .schemas import (
        # Request models
        ChatRequest,
        CreateGameRequest,
        FireRequest,
        PlaceBoardRequest,
        # Response models
        BoardResponse,
        EndGameResponse,
        ErrorResponse,
        EventResponse,
        ForfeitResponse,
        GameListResponse,
        GameResponse,
        HealthResponse,
        ShotResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="Fleetproof API",
        description="""
Zero-knowledge Battleship client - local control surface.

## Error Codes

| Code | Description |
|------|-------------|
| `GAME_NOT_FOUND` | Game does not exist |
| `PLACEMENT_ERROR` | Ship out of bounds, overlapping or adjacent |
| `COMPOSITION_ERROR` | Fleet is not 5, 4, 3, 3, 2 |
| `NOT_YOUR_TURN` | Fired out of turn |
| `INVALID_PHASE` | Action not allowed in this phase |
| `SERVICE_UNAVAILABLE` | Prover, ledger or relay failed |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()

    # =========================================================================
    # Error helpers
    # =========================================================================

    status_codes = {
        ErrorCode.GAME_NOT_FOUND: 404,
        ErrorCode.NOT_YOUR_TURN: 409,
        ErrorCode.INVALID_PHASE: 409,
        ErrorCode.SERVICE_UNAVAILABLE: 503,
        ErrorCode.INTERNAL_ERROR: 500,
    }

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code or status_codes.get(error_code, 400),
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def respond(result):
        """Pass models through; turn ErrorResponse into a JSON error."""
        if isinstance(result, ErrorResponse):
            return make_error_response(result.error_code, result.error, details=result.details)
        return result

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games",
        response_model=GameResponse,
        status_code=201,
        tags=["Games"],
        summary="Create a local game client",
    )
    async def create_game(request: CreateGameRequest) -> GameResponse:
        """Create a client for a local player; feed it relay events via `/events`."""
        return await api_service.create_game(request)

    @app.get(
        "/api/v1/games",
        response_model=GameListResponse,
        tags=["Games"],
        summary="List active games",
    )
    async def list_games() -> GameListResponse:
        games = api_service.list_games()
        return GameListResponse(games=games, count=len(games))

    @app.get(
        "/api/v1/games/{game_id}",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get the game view",
    )
    async def get_game(game_id: str) -> Union[GameResponse, JSONResponse]:
        return respond(await api_service.get_game(game_id))

    @app.delete(
        "/api/v1/games/{game_id}",
        response_model=EndGameResponse,
        tags=["Games"],
        summary="End a game",
    )
    async def end_game(
        game_id: str,
        reason: str = Query("user_ended", description="Reason for ending"),
    ) -> EndGameResponse:
        """End a game and drop its board and salt."""
        success = await api_service.end_game(game_id, reason)
        return EndGameResponse(success=success, game_id=game_id)

    # =========================================================================
    # Play Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games/{game_id}/board",
        response_model=BoardResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Illegal fleet"},
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse, "description": "Wrong phase"},
        },
        tags=["Play"],
        summary="Commit a board",
    )
    async def place_board(
        game_id: str,
        request: Optional[PlaceBoardRequest] = None,
    ) -> Union[BoardResponse, JSONResponse]:
        """
        Prove and commit a fleet.

        Send `ships` for an explicit fleet, or an empty body (optionally
        with `seed`) for a random legal one.
        """
        return respond(await api_service.place_board(game_id, request or PlaceBoardRequest()))

    @app.post(
        "/api/v1/games/{game_id}/shots",
        response_model=ShotResponse,
        responses={
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse, "description": "Not your turn"},
            503: {"model": ErrorResponse, "description": "Ledger unavailable"},
        },
        tags=["Play"],
        summary="Fire at the opponent",
    )
    async def fire(game_id: str, request: FireRequest) -> Union[ShotResponse, JSONResponse]:
        return respond(await api_service.fire(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/forfeit",
        response_model=ForfeitResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Play"],
        summary="Forfeit the game",
    )
    async def forfeit(game_id: str) -> Union[ForfeitResponse, JSONResponse]:
        return respond(await api_service.forfeit(game_id))

    @app.post(
        "/api/v1/games/{game_id}/chat",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Play"],
        summary="Send a chat message",
    )
    async def chat(game_id: str, request: ChatRequest) -> Union[GameResponse, JSONResponse]:
        return respond(await api_service.send_chat(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/events",
        response_model=EventResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Malformed event"},
            404: {"model": ErrorResponse},
        },
        tags=["Relay"],
        summary="Deliver a relay event",
    )
    async def deliver_event(
        game_id: str,
        event: dict[str, Any] = Body(..., description="Raw relay message"),
    ) -> Union[EventResponse, JSONResponse]:
        """
        Merge one relay message into the game.

        Duplicates and stale events are accepted with `applied=false`.
        """
        return respond(await api_service.deliver_event(game_id, event))

    @app.post(
        "/api/v1/games/{game_id}/retry",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Relay"],
        summary="Retry failed answers",
    )
    async def retry_pending(game_id: str) -> Union[GameResponse, JSONResponse]:
        return respond(await api_service.retry_pending(game_id))

    # =========================================================================
    # System
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service=f"fleetproof-{FLEETPROOF_ENV}",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Fleetproof API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


app = create_app()
