"""
FastAPI application - thin HTTP surface over the GameService.

Endpoints:
    POST   /games                      Create a game (caller plays white)
    GET    /games?waiting_only=true    List games
    GET    /games/{id}                 Get a game
    POST   /games/{id}/join            Join as black
    POST   /games/{id}/move            Submit a move
    GET    /games/{id}/legal-moves     Legal moves for the player to move
    GET    /health                     Liveness + storage backend in use

Run with an ASGI server using the factory, e.g. `uvicorn --factory src.api.app:create_app`.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.models import (
    CreateGameRequest,
    ErrorResponse,
    GameListResponse,
    GameResponse,
    HealthResponse,
    JoinGameRequest,
    LegalMovesResponse,
    MoveRequest,
)
from src.chess.rules import StandardRules
from src.core.config import Settings
from src.core.exceptions import (
    ConflictError,
    GameError,
    InternalError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from src.core.logging_config import setup_logging
from src.db.database import Database, build_store
from src.services.game_service import GameService

logger = logging.getLogger(__name__)

# (HTTP status, error kind) per exception family. First match in the exception's MRO wins.
ERROR_RESPONSES: dict[type[GameError], tuple[int, str]] = {
    NotFoundError: (status.HTTP_404_NOT_FOUND, "not_found"),
    ConflictError: (status.HTTP_400_BAD_REQUEST, "conflict"),
    ValidationError: (status.HTTP_400_BAD_REQUEST, "validation_error"),
    StorageError: (status.HTTP_503_SERVICE_UNAVAILABLE, "storage_error"),
    InternalError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"),
}


def error_response(exc: GameError) -> tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in ERROR_RESPONSES:
            return ERROR_RESPONSES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"


def build_service(settings: Settings, database: Optional[Database]) -> GameService:
    store = build_store(settings, database)
    return GameService(
        store,
        StandardRules(),
        join_retries=settings.join_retries,
        move_retries=settings.move_retries,
    )


def create_app(
    settings: Optional[Settings] = None, service: Optional[GameService] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: defaults to Settings.from_env()
        service: pre-built GameService (tests). If omitted, one is built from the settings at start-up
            and its database connection is closed again at shutdown.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        database: Optional[Database] = None
        if getattr(app.state, "service", None) is None:
            setup_logging(settings.log_level, settings.log_format)
            if settings.storage == "sql":
                database = Database(settings.database_url, echo=settings.sql_echo)
            app.state.service = build_service(settings, database)
        try:
            yield
        finally:
            if database is not None:
                database.dispose()

    app = FastAPI(
        title="Chess game-session API",
        description="Create, join and play turn-based chess games between two remote parties.",
        lifespan=lifespan,
    )
    app.state.service = service

    def get_service(request: Request) -> GameService:
        return request.app.state.service

    # --- error handling ---
    @app.exception_handler(GameError)
    async def handle_game_error(request: Request, exc: GameError) -> JSONResponse:
        status_code, kind = error_response(exc)
        if status_code >= 500:
            logger.error("%s on %s %s: %s", kind, request.method, request.url.path, exc)
        body = ErrorResponse(error=kind, detail=str(exc))
        return JSONResponse(status_code=status_code, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        body = ErrorResponse(error="validation_error", detail=detail)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump()
        )

    # --- routes ---
    # NOTE: handlers are plain `def`, so FastAPI runs them in its threadpool and a slow
    # storage call never holds up requests for other games.
    @app.post(
        "/games",
        response_model=GameResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Games"],
    )
    def create_game(body: CreateGameRequest, request: Request) -> GameResponse:
        game = get_service(request).create_game(body.white_identity)
        return GameResponse.from_record(game)

    @app.get("/games", response_model=GameListResponse, tags=["Games"])
    def list_games(
        request: Request, waiting_only: bool = Query(default=False)
    ) -> GameListResponse:
        service = get_service(request)
        games = service.list_games(waiting_only=waiting_only)
        return GameListResponse(
            games=[GameResponse.from_record(game) for game in games],
            count=len(games),
            storage=service.store.name,
        )

    @app.get("/games/{game_id}", response_model=GameResponse, tags=["Games"])
    def get_game(game_id: str, request: Request) -> GameResponse:
        return GameResponse.from_record(get_service(request).get_game(game_id))

    @app.post("/games/{game_id}/join", response_model=GameResponse, tags=["Games"])
    def join_game(game_id: str, body: JoinGameRequest, request: Request) -> GameResponse:
        game = get_service(request).join_game(game_id, body.black_identity)
        return GameResponse.from_record(game)

    @app.post("/games/{game_id}/move", response_model=GameResponse, tags=["Games"])
    def make_move(game_id: str, body: MoveRequest, request: Request) -> GameResponse:
        game = get_service(request).apply_move(
            game_id,
            body.mover_identity,
            body.move_code,
            correlation_id=body.correlation_id,
        )
        return GameResponse.from_record(game)

    @app.get(
        "/games/{game_id}/legal-moves",
        response_model=LegalMovesResponse,
        tags=["Games"],
    )
    def legal_moves(
        game_id: str, request: Request, identity: str = Query(min_length=1)
    ) -> LegalMovesResponse:
        moves = get_service(request).legal_moves(game_id, identity)
        return LegalMovesResponse(game_id=game_id, identity=identity, legal_moves=moves)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health(request: Request) -> HealthResponse:
        return HealthResponse(status="ok", storage=get_service(request).store.name)

    return app
