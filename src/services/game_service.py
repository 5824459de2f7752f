"""
Orchestration of communication from API router to rule engine and persistence layers (and the reverse direction).

The service is the only place where the lifecycle of a game (waiting -> active -> finished) is enforced.
Every change goes through GameStore.compare_and_swap, so concurrent requests against the same game can
never overwrite each other: the loser of a race re-reads the game and decides again.
"""

import logging
from typing import Callable, Optional, TypeVar

from src.chess.fen import STARTING_FEN
from src.chess.rules import MoveOutcome, RuleEngine
from src.core.exceptions import (
    ConflictError,
    InvalidRequestError,
    VersionConflictError,
)
from src.core.models import GameId, GameRecord, Identity, MoveLogEntry, utc_now
from src.core.shared_types import Color, Status
from src.db.repository import GameStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def side_to_move(position: str) -> Color:
    """Second field of a FEN string."""
    return Color.WHITE if position.split(" ")[1] == "w" else Color.BLACK


class GameService:
    """Orchestration of layers for chess game."""

    def __init__(
        self,
        store: GameStore,
        rules: RuleEngine,
        join_retries: int = 1,
        move_retries: int = 3,
    ) -> None:
        self.store = store
        self.rules = rules
        self.join_retries = join_retries
        self.move_retries = move_retries

    # -- API routes logic ---
    def create_game(self, white_identity: Identity) -> GameRecord:
        """First player requested to create a new game. They always play white."""
        if not white_identity or not white_identity.strip():
            raise InvalidRequestError("A white identity is required to create a game.")

        new_game = GameRecord(
            id="",
            position=STARTING_FEN,
            side_to_move=Color.WHITE,
            white_identity=white_identity,
        )
        created = self.store.create(new_game)
        logger.info("Game %s created by %s", created.id, white_identity)
        return created

    def get_game(self, game_id: GameId) -> GameRecord:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        return self.store.get(game_id)

    def list_games(self, waiting_only: bool = False) -> list[GameRecord]:
        return self.store.list(Status.WAITING if waiting_only else None)

    def join_game(self, game_id: GameId, black_identity: Identity) -> GameRecord:
        """Second player requested to join a game."""
        if not black_identity or not black_identity.strip():
            raise InvalidRequestError("A black identity is required to join a game.")

        def _attempt() -> GameRecord:
            game = self.store.get(game_id)
            if game.status != Status.WAITING:
                raise ConflictError(
                    f"Cannot join game {game_id}. Game is not accepting new players. status: {game.status}"
                )
            if black_identity == game.white_identity:
                raise ConflictError("Cannot join your own game.")

            def _register(record: GameRecord) -> GameRecord:
                record.black_identity = black_identity
                record.status = Status.ACTIVE
                return record

            return self.store.compare_and_swap(game_id, game.version, _register)

        joined = self._retry_on_conflict(_attempt, self.join_retries, game_id)
        logger.info("Game %s joined by %s", game_id, black_identity)
        return joined

    def apply_move(
        self,
        game_id: GameId,
        mover_identity: Identity,
        move_code: str,
        correlation_id: Optional[str] = None,
    ) -> GameRecord:
        """
        Make a move attempt.
        -----

        1. make sure the game is in progress and it is the mover's turn
        2. let the rule engine validate the move (ValidationErrors propagate, nothing is stored)
        3. store the new position + move log entry (and the result if the game ended)
        """

        def _attempt() -> GameRecord:
            game = self.store.get(game_id)
            self._assert_in_progress(game)
            self._assert_your_turn(game, mover_identity)

            outcome = self.rules.validate_and_apply(game.position, move_code)
            return self.store.compare_and_swap(
                game_id,
                game.version,
                lambda record: self._record_move(record, move_code, correlation_id, outcome),
            )

        updated = self._retry_on_conflict(_attempt, self.move_retries, game_id)
        logger.info("Game %s: %s played %s", game_id, mover_identity, move_code)
        if updated.status == Status.FINISHED:
            logger.info(
                "Game %s finished by %s: %s", game_id, updated.termination, updated.result
            )
        return updated

    def legal_moves(self, game_id: GameId, identity: Identity) -> list[str]:
        """The move codes the player could play right now (only available on their turn)."""
        game = self.store.get(game_id)
        self._assert_in_progress(game)
        self._assert_your_turn(game, identity)
        return self.rules.legal_moves(game.position)

    # -- Internal helpers --
    def _retry_on_conflict(
        self, attempt: Callable[[], T], retries: int, game_id: GameId
    ) -> T:
        """
        Lost a compare-and-swap race? Re-read and try again, at most `retries` more times.

        Each attempt re-checks the lifecycle rules against the fresh record, so a retry that finds
        the game already joined / the turn already passed raises its own ConflictError.
        """
        retry = 0
        while True:
            try:
                return attempt()
            except VersionConflictError:
                retry += 1
                if retry > retries:
                    raise
                logger.debug(
                    "Version conflict on game %s, retrying (%d of %d)",
                    game_id,
                    retry,
                    retries,
                )

    def _record_move(
        self,
        record: GameRecord,
        move_code: str,
        correlation_id: Optional[str],
        outcome: MoveOutcome,
    ) -> GameRecord:
        """Capture updated state in the GameRecord"""
        record.position = outcome.new_position
        record.side_to_move = side_to_move(outcome.new_position)
        record.move_log.append(
            MoveLogEntry(
                move=move_code, correlation_id=correlation_id, applied_at=utc_now()
            )
        )
        if outcome.terminal is not None:
            record.status = Status.FINISHED
            record.result = outcome.terminal.result
            record.termination = outcome.terminal.reason.value
        return record

    def _assert_in_progress(self, game: GameRecord) -> None:
        if game.status != Status.ACTIVE:
            raise ConflictError(
                f"Game {game.id} is not in progress. status: {game.status}"
            )

    def _assert_your_turn(self, game: GameRecord, identity: Identity) -> None:
        """You must wait for your turn before calculating legal moves / making a move."""
        player_to_move = game.identity_to_move()
        if identity != player_to_move:
            raise ConflictError(
                f"It is not your turn. Waiting for player {player_to_move} to make a move first."
            )
