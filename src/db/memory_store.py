"""
In-process implementation of the GameStore.

Games live in a dict and are lost when the process stops. A single lock serializes every
read-modify-write, which makes compare_and_swap trivially atomic within one process.
"""

import logging
from copy import deepcopy
from threading import Lock
from typing import Optional

from src.core.exceptions import NotFoundError, VersionConflictError
from src.core.models import GameId, GameRecord, new_game_id, utc_now
from src.core.shared_types import Status
from src.db.repository import Mutator

logger = logging.getLogger(__name__)


class InMemoryGameStore:
    """
    Dict-based storage.

    Records are deep-copied on the way in and on the way out, so a caller can never change stored
    state except through compare_and_swap.
    """

    name = "memory"

    def __init__(self) -> None:
        self._games: dict[GameId, GameRecord] = {}
        # secondary index, so listing by status does not have to scan every game
        self._ids_by_status: dict[Status, set[GameId]] = {status: set() for status in Status}
        self._lock = Lock()

    def create(self, record: GameRecord) -> GameRecord:
        with self._lock:
            game_id = new_game_id()
            while game_id in self._games:
                game_id = new_game_id()

            stored = deepcopy(record)
            stored.id = game_id
            self._games[game_id] = stored
            self._ids_by_status[stored.status].add(game_id)
            logger.debug("Created game %s, total: %d", game_id, len(self._games))
            return deepcopy(stored)

    def get(self, game_id: GameId) -> GameRecord:
        with self._lock:
            return deepcopy(self._fetch(game_id))

    def compare_and_swap(
        self, game_id: GameId, expected_version: int, mutator: Mutator
    ) -> GameRecord:
        with self._lock:
            current = self._fetch(game_id)
            if current.version != expected_version:
                raise VersionConflictError(
                    f"Game {game_id} changed in the meantime (expected version {expected_version}, found {current.version})."
                )

            # the mutator works on a copy: if it raises, the stored record is untouched
            updated = mutator(deepcopy(current))
            updated.id = game_id
            updated.version = current.version + 1
            updated.updated_at = utc_now()

            self._ids_by_status[current.status].discard(game_id)
            self._ids_by_status[updated.status].add(game_id)
            self._games[game_id] = updated
            return deepcopy(updated)

    def list(self, status: Optional[Status] = None) -> list[GameRecord]:
        with self._lock:
            ids = self._games.keys() if status is None else self._ids_by_status[status]
            records = [deepcopy(self._games[game_id]) for game_id in ids]
        return sorted(records, key=lambda record: record.created_at)

    def clear(self) -> None:
        """Remove every game (useful in between tests)"""
        with self._lock:
            self._games.clear()
            for ids in self._ids_by_status.values():
                ids.clear()

    def _fetch(self, game_id: GameId) -> GameRecord:
        """Caller must hold the lock."""
        record = self._games.get(game_id)
        if record is None:
            raise NotFoundError(f"Game with {game_id=} not found.")
        return record
