"""Protocol for the game store (implemented in memory_store.py and sql_store.py)"""

from typing import Callable, Optional, Protocol

from src.core.models import GameId, GameRecord
from src.core.shared_types import Status

# Receives a private copy of the stored record and returns the record to persist.
Mutator = Callable[[GameRecord], GameRecord]


class GameStore(Protocol):
    """Persistence layer orchestration"""

    name: str

    def create(self, record: GameRecord) -> GameRecord:
        """Assign a fresh ID (unique within the store), persist the record and return it."""
        ...

    def get(self, game_id: GameId) -> GameRecord:
        """Get game by ID. Raises NotFoundError."""
        ...

    def compare_and_swap(
        self, game_id: GameId, expected_version: int, mutator: Mutator
    ) -> GameRecord:
        """
        Atomic read-modify-write.

        Raises NotFoundError for an unknown ID and VersionConflictError if the stored version differs from expected_version
        (in which case nothing is written). Otherwise persists mutator(record) with version + 1 and returns it.
        """
        ...

    def list(self, status: Optional[Status] = None) -> list[GameRecord]:
        """All games (or only those with the given status), oldest first."""
        ...
