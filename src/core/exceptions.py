"""
Custom exceptions shared by all layers.

Every error raised on purpose by the application derives from GameError, so the API layer
can translate the whole family into HTTP responses in one place.
"""


class GameError(Exception):
    """Top-level exception for anything the chess backend raises on purpose."""


# --- Lookup ---
class NotFoundError(GameError):
    """No game stored under the requested ID."""


# --- Lifecycle / concurrency ---
class ConflictError(GameError):
    """
    Request conflicts with the current state of the game.

    Covers lost version races, moving out of turn, joining a game that is no longer open,
    and playing on in a finished game.
    """


class VersionConflictError(ConflictError):
    """Lost a compare-and-swap race: the stored version moved on since the game was read."""


# --- Input validation ---
class ValidationError(GameError):
    """Rejected input: nothing has been changed."""


class MalformedMoveError(ValidationError):
    """Move code cannot be parsed (bad squares or promotion piece)."""


class IllegalMoveError(ValidationError):
    """Move code is well-formed but not allowed by the rules of chess in this position."""


class InvalidRequestError(ValidationError):
    """Request data that failed validation before reaching the game logic."""


# --- Infrastructure ---
class StorageError(GameError):
    """The durable storage backend failed (after retrying)."""


class InternalError(GameError):
    """Contract violation. Should never happen if the invariants of a GameRecord hold."""


class InvalidFENError(InternalError):
    """String does not follow FEN notation."""
