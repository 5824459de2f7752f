from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.api.models import (
    CreateGameRequest,
    GameResponse,
    JoinGameRequest,
    MoveRequest,
)
from src.chess.fen import STARTING_FEN
from src.core.models import GameRecord, MoveLogEntry
from src.core.shared_types import Color, GameResult, Status


# -- Validation - CreateGameRequest / JoinGameRequest --
def test_identity_is_stripped() -> None:
    request = CreateGameRequest(white_identity="  alice ")
    assert request.white_identity == "alice"


@pytest.mark.parametrize("identity", ["", "    ", "x" * 257])
def test_invalid_identity(identity: str) -> None:
    """Blank identities (also after stripping whitespace) and absurdly long ones are rejected."""
    with pytest.raises(ValidationError):
        CreateGameRequest(white_identity=identity)
    with pytest.raises(ValidationError):
        JoinGameRequest(black_identity=identity)


def test_identity_is_required() -> None:
    with pytest.raises(ValidationError):
        CreateGameRequest.model_validate({})


# -- Validation - MoveRequest --
def test_move_request() -> None:
    request = MoveRequest(mover_identity="alice", move_code="e7e8q")
    assert request.move_code == "e7e8q"
    assert request.correlation_id is None


def test_move_code_is_not_interpreted() -> None:
    """Only the rule engine decides whether a move code makes sense"""
    request = MoveRequest(mover_identity="alice", move_code="nonsense", correlation_id="abc")
    assert request.move_code == "nonsense"
    assert request.correlation_id == "abc"


@pytest.mark.parametrize("move_code", ["", "e2e4" * 5])
def test_invalid_move_code(move_code: str) -> None:
    with pytest.raises(ValidationError):
        MoveRequest(mover_identity="alice", move_code=move_code)


# -- Responses --
def test_game_response_from_record() -> None:
    applied_at = datetime(2024, 5, 4, 20, 15, tzinfo=timezone.utc)
    record = GameRecord(
        id="abcdefgh",
        position=STARTING_FEN,
        side_to_move=Color.BLACK,
        white_identity="alice",
        black_identity="bob",
        status=Status.FINISHED,
        result=GameResult.DRAW,
        termination="stalemate",
        move_log=[MoveLogEntry("e2e4", applied_at, correlation_id="c-1")],
        version=7,
    )
    response = GameResponse.from_record(record)
    body = response.model_dump(mode="json")

    assert body["id"] == "abcdefgh"
    assert body["side_to_move"] == "black"
    assert body["status"] == "finished"
    assert body["result"] == "draw"
    assert body["termination"] == "stalemate"
    assert body["version"] == 7
    assert body["move_log"] == [
        {"move": "e2e4", "correlation_id": "c-1", "applied_at": "2024-05-04T20:15:00Z"}
    ]
