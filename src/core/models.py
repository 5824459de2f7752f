"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, the API layer (higher) and the storage layer (lower) will use the models defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or chess layer from the information needed to send across boundaries)
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Self

from src.core.shared_types import Color, GameResult, Status

# Type aliases to make GameRecord easier to read
GameId = str
Identity = str

# Avoids characters that are easily confused when read out loud / typed over (0/o, 1/l/i)
GAME_ID_ALPHABET = "abcdefghjkmnpqrstuvwxyz23456789"
GAME_ID_LENGTH = 8


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_game_id() -> GameId:
    """Short random identifier. Uniqueness within a store is guaranteed by the store itself."""
    return "".join(secrets.choice(GAME_ID_ALPHABET) for _ in range(GAME_ID_LENGTH))


@dataclass
class MoveLogEntry:
    """A single accepted move. correlation_id is opaque external metadata and never interpreted."""

    move: str
    applied_at: datetime
    correlation_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "move": self.move,
            "correlation_id": self.correlation_id,
            "applied_at": self.applied_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            move=data["move"],
            correlation_id=data.get("correlation_id"),
            applied_at=datetime.fromisoformat(data["applied_at"]),
        )


@dataclass
class GameRecord:
    """Transport-safe representation of a chess game used between API, Service, and Store layers."""

    id: GameId
    position: str
    side_to_move: Color
    white_identity: Identity
    black_identity: Optional[Identity] = None
    status: Status = Status.WAITING
    result: Optional[GameResult] = None
    termination: Optional[str] = None
    move_log: list[MoveLogEntry] = field(default_factory=list)
    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def moves(self) -> list[str]:
        return [entry.move for entry in self.move_log]

    def identity_to_move(self) -> Optional[Identity]:
        """The player whose turn it is (None while the black seat is still open)."""
        if self.side_to_move == Color.WHITE:
            return self.white_identity
        return self.black_identity
