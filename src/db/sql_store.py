"""Implementation of the GameStore using SQLAlchemy (durable, can be shared by multiple processes)"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from src.core.exceptions import NotFoundError, StorageError, VersionConflictError
from src.core.models import GameId, GameRecord, MoveLogEntry, new_game_id, utc_now
from src.core.shared_types import Color, GameResult, Status
from src.db.repository import Mutator
from src.db.schema import DBGame

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Attempts at finding an unused ID before giving up (collisions are already very unlikely)
MAX_ID_ATTEMPTS = 5


def _is_transient(exc: DBAPIError) -> bool:
    """Lost connections / locked databases are worth another try. Anything else is a bug or a constraint."""
    return isinstance(exc, OperationalError) or exc.connection_invalidated


def _as_utc(moment: datetime) -> datetime:
    """Some backends (SQLite) hand back naive datetimes even for timezone aware columns."""
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class SQLGameStore:
    """
    Data stored using SQL / methods implemented using SQLAlchemy

    compare_and_swap relies on a conditional UPDATE (`WHERE id = :id AND version = :expected`):
    the database guarantees only one writer can move a row from a given version to the next one,
    also when several processes share the database.
    """

    name = "sql"

    def __init__(
        self, session_factory: sessionmaker[Session], storage_retries: int = 3
    ) -> None:
        self._session_factory = session_factory
        self.storage_retries = storage_retries

    def create(self, record: GameRecord) -> GameRecord:
        """Store new game under a freshly generated ID."""
        return self._with_retries(lambda: self._insert_with_unique_id(record))

    def get(self, game_id: GameId) -> GameRecord:
        def _get() -> GameRecord:
            with self._session_factory() as session:
                return self._to_record(self._fetch_game(session, game_id))

        return self._with_retries(_get)

    def compare_and_swap(
        self, game_id: GameId, expected_version: int, mutator: Mutator
    ) -> GameRecord:
        def _swap() -> GameRecord:
            with self._session_factory() as session:
                game_db = self._fetch_game(session, game_id)
                if game_db.version != expected_version:
                    raise VersionConflictError(
                        f"Game {game_id} changed in the meantime (expected version {expected_version}, found {game_db.version})."
                    )

                updated = mutator(self._to_record(game_db))
                updated.id = game_id
                updated.version = expected_version + 1
                updated.updated_at = utc_now()

                query = (
                    update(DBGame)
                    .where(DBGame.id == game_id, DBGame.version == expected_version)
                    .values(**self._to_columns(updated))
                    .execution_options(synchronize_session=False)
                )
                result = session.execute(query)
                if result.rowcount != 1:
                    # somebody else (maybe another process) got there between our read and our write
                    session.rollback()
                    still_there = session.scalar(select(DBGame.id).where(DBGame.id == game_id))
                    if still_there is None:
                        raise NotFoundError(f"Game with {game_id=} not found.")
                    raise VersionConflictError(
                        f"Game {game_id} changed in the meantime (expected version {expected_version})."
                    )
                session.commit()
                return updated

        return self._with_retries(_swap)

    def list(self, status: Optional[Status] = None) -> list[GameRecord]:
        def _list() -> list[GameRecord]:
            query = select(DBGame).order_by(DBGame.created_at)
            if status is not None:
                query = query.where(DBGame.status == status.value)
            with self._session_factory() as session:
                return [self._to_record(game_db) for game_db in session.scalars(query)]

        return self._with_retries(_list)

    # --- Internal helpers ---
    def _with_retries(self, operation: Callable[[], T]) -> T:
        """Run the operation, retrying transient database failures a bounded number of times."""
        attempt = 0
        while True:
            try:
                return operation()
            except DBAPIError as exc:
                attempt += 1
                if not _is_transient(exc) or attempt > self.storage_retries:
                    raise StorageError(
                        f"Storage backend failed after {attempt} attempt(s): {exc.orig!r}"
                    ) from exc
                logger.warning(
                    "Transient storage failure (attempt %d of %d): %s",
                    attempt,
                    self.storage_retries + 1,
                    exc.orig,
                )

    def _insert_with_unique_id(self, record: GameRecord) -> GameRecord:
        for _ in range(MAX_ID_ATTEMPTS):
            stored = replace(record, id=new_game_id())
            with self._session_factory() as session:
                session.add(DBGame(**self._to_columns(stored)))
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    logger.debug("Game ID %s already taken, generating another", stored.id)
                    continue
            logger.debug("Created game %s", stored.id)
            return stored
        raise StorageError(f"Could not find an unused game ID in {MAX_ID_ATTEMPTS} attempts.")

    def _fetch_game(self, session: Session, game_id: GameId) -> DBGame:
        game_db = session.get(DBGame, game_id)
        if game_db is None:
            raise NotFoundError(f"Game with {game_id=} not found.")
        return game_db

    def _to_columns(self, record: GameRecord) -> dict[str, Any]:
        """Convert data transfer model into column values."""
        return {
            "id": record.id,
            "position": record.position,
            "side_to_move": record.side_to_move.value,
            "white_identity": record.white_identity,
            "black_identity": record.black_identity,
            "status": record.status.value,
            "result": record.result.value if record.result else None,
            "termination": record.termination,
            "move_log": [entry.to_dict() for entry in record.move_log],
            "version": record.version,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }

    def _to_record(self, game_db: DBGame) -> GameRecord:
        """Convert SQLAlchemy model to data transfer model."""
        return GameRecord(
            id=game_db.id,
            position=game_db.position,
            side_to_move=Color(game_db.side_to_move),
            white_identity=game_db.white_identity,
            black_identity=game_db.black_identity,
            status=Status(game_db.status),
            result=GameResult(game_db.result) if game_db.result else None,
            termination=game_db.termination,
            move_log=[MoveLogEntry.from_dict(entry) for entry in game_db.move_log],
            version=game_db.version,
            created_at=_as_utc(game_db.created_at),
            updated_at=_as_utc(game_db.updated_at),
        )
