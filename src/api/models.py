"""Requests and Response models"""

from datetime import datetime
from typing import Annotated, Optional, Self

from pydantic import BaseModel, ConfigDict, Field

from src.core.models import GameRecord, MoveLogEntry
from src.core.shared_types import Color, GameResult, Status

# Identities are opaque, but they must contain something besides whitespace
Identity = Annotated[str, Field(min_length=1, max_length=256)]


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


# --- REQUEST MODELS ---
class CreateGameRequest(RequestModel):
    white_identity: Identity


class JoinGameRequest(RequestModel):
    black_identity: Identity


class MoveRequest(RequestModel):
    mover_identity: Identity
    # format is checked by the rule engine, so malformed codes get the same error as everywhere else
    move_code: str = Field(min_length=1, max_length=16)
    correlation_id: Optional[str] = Field(default=None, max_length=256)


# --- RESPONSE MODELS ---
class MoveLogEntryResponse(BaseModel):
    move: str
    correlation_id: Optional[str]
    applied_at: datetime

    @classmethod
    def from_entry(cls, entry: MoveLogEntry) -> Self:
        return cls(
            move=entry.move,
            correlation_id=entry.correlation_id,
            applied_at=entry.applied_at,
        )


class GameResponse(BaseModel):
    id: str
    position: str
    side_to_move: Color
    white_identity: str
    black_identity: Optional[str]
    status: Status
    result: Optional[GameResult]
    termination: Optional[str]
    move_log: list[MoveLogEntryResponse]
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: GameRecord) -> Self:
        """Convert info in GameRecord to a GameResponse"""
        return cls(
            id=record.id,
            position=record.position,
            side_to_move=record.side_to_move,
            white_identity=record.white_identity,
            black_identity=record.black_identity,
            status=record.status,
            result=record.result,
            termination=record.termination,
            move_log=[MoveLogEntryResponse.from_entry(entry) for entry in record.move_log],
            version=record.version,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class GameListResponse(BaseModel):
    games: list[GameResponse]
    count: int
    storage: str


class LegalMovesResponse(BaseModel):
    game_id: str
    identity: str
    legal_moves: list[str]


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str
    storage: str
