"""Database tables / schema"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.core.models import GAME_ID_LENGTH, utc_now


class Base(DeclarativeBase):
    pass


class DBGame(Base):
    """
    One row per game, keyed by its ID. Mirrors GameRecord field for field.

    The index on `status` is the secondary index used for listing (e.g. all games still waiting for a second player).
    """

    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(GAME_ID_LENGTH), primary_key=True)
    position: Mapped[str]
    side_to_move: Mapped[str] = mapped_column(String(5))
    white_identity: Mapped[str]
    black_identity: Mapped[Optional[str]]
    status: Mapped[str] = mapped_column(String(16), index=True)
    result: Mapped[Optional[str]] = mapped_column(String(16))
    termination: Mapped[Optional[str]]
    move_log: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    version: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
