"""Tests specific to the SQL store: retries, ID collisions and writers in other processes"""

from pathlib import Path
from typing import Generator
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from src.chess.fen import STARTING_FEN
from src.core.exceptions import NotFoundError, StorageError, VersionConflictError
from src.core.models import GameRecord
from src.core.shared_types import Color, Status
from src.db.database import Database
from src.db.sql_store import MAX_ID_ATTEMPTS, SQLGameStore


def new_record() -> GameRecord:
    return GameRecord(
        id="", position=STARTING_FEN, side_to_move=Color.WHITE, white_identity="alice"
    )


def database_locked() -> OperationalError:
    return OperationalError("SELECT games", {}, Exception("database is locked"))


@pytest.fixture
def file_database(tmp_path: Path) -> Generator[Database, None, None]:
    """A database file, so that different sessions really use different connections"""
    database = Database(f"sqlite:///{tmp_path / 'games.db'}")
    database.connect()
    try:
        yield database
    finally:
        database.dispose()


# --- RETRIES ---
def test_transient_failures_are_retried(
    sql_store: SQLGameStore, session_factory: sessionmaker[Session]
) -> None:
    game_id = sql_store.create(new_record()).id

    flaky_factory = Mock(side_effect=[database_locked(), session_factory()])
    flaky_store = SQLGameStore(flaky_factory, storage_retries=2)

    assert flaky_store.get(game_id).id == game_id
    assert flaky_factory.call_count == 2


def test_giving_up_after_the_retries() -> None:
    broken_factory = Mock(side_effect=database_locked())
    store = SQLGameStore(broken_factory, storage_retries=2)

    with pytest.raises(StorageError, match="3 attempt"):
        store.get("abcdefgh")
    assert broken_factory.call_count == 3


def test_permanent_failures_are_not_retried() -> None:
    broken_factory = Mock(
        side_effect=IntegrityError("INSERT games", {}, Exception("constraint failed"))
    )
    store = SQLGameStore(broken_factory, storage_retries=2)

    with pytest.raises(StorageError):
        store.list()
    assert broken_factory.call_count == 1


def test_not_found_is_not_a_storage_error(sql_store: SQLGameStore) -> None:
    with pytest.raises(NotFoundError):
        sql_store.get("nosuchid")


# --- ID GENERATION ---
def test_id_collision_draws_a_new_id(sql_store: SQLGameStore) -> None:
    with patch(
        "src.db.sql_store.new_game_id",
        side_effect=["aaaaaaaa", "aaaaaaaa", "bbbbbbbb"],
    ):
        first = sql_store.create(new_record())
        second = sql_store.create(new_record())

    assert first.id == "aaaaaaaa"
    assert second.id == "bbbbbbbb"
    assert {game.id for game in sql_store.list()} == {"aaaaaaaa", "bbbbbbbb"}


def test_running_out_of_ids(sql_store: SQLGameStore) -> None:
    with patch(
        "src.db.sql_store.new_game_id", return_value="aaaaaaaa"
    ) as mock_new_id:
        sql_store.create(new_record())
        with pytest.raises(StorageError):
            sql_store.create(new_record())

    assert mock_new_id.call_count == 1 + MAX_ID_ATTEMPTS
    assert len(sql_store.list()) == 1


# --- CONCURRENT WRITERS ---
def test_write_in_between_read_and_update(file_database: Database) -> None:
    """
    Another process commits a new version after this store has read the row, but before it writes.
    The conditional update must notice and refuse to overwrite it.
    """
    store = SQLGameStore(file_database.session_factory)
    other_process = SQLGameStore(file_database.session_factory)
    game_id = store.create(new_record()).id

    def _join_as(name: str):
        def _join(record: GameRecord) -> GameRecord:
            record.black_identity = name
            record.status = Status.ACTIVE
            return record

        return _join

    def _sneaky(record: GameRecord) -> GameRecord:
        other_process.compare_and_swap(game_id, 0, _join_as("bob"))
        return _join_as("carol")(record)

    with pytest.raises(VersionConflictError):
        store.compare_and_swap(game_id, 0, _sneaky)

    stored = store.get(game_id)
    assert stored.black_identity == "bob"
    assert stored.version == 1


def test_games_survive_a_new_connection(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'games.db'}"
    database = Database(url)
    database.connect()
    game_id = SQLGameStore(database.session_factory).create(new_record()).id
    database.dispose()

    restarted = Database(url)
    restarted.connect()
    try:
        assert SQLGameStore(restarted.session_factory).get(game_id).white_identity == "alice"
    finally:
        restarted.dispose()
