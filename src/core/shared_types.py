"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    """Lifecycle of a game. Only moves forward: waiting -> active -> finished."""

    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class GameResult(StrEnum):
    WHITE_WIN = "white_win"
    BLACK_WIN = "black_win"
    DRAW = "draw"


class Termination(StrEnum):
    """Why a finished game ended."""

    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    INSUFFICIENT_MATERIAL = "insufficient material"
    FIFTY_MOVE_RULE = "fifty-move rule"


# --- NOTE Color here is the transport-level name.
# --- The chess package has its own Enum version that includes an option for empty squares (see src/chess/pieces.py)


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"


class PromotionPiece(StrEnum):
    """The closed set of pieces a pawn may promote into. Values are the UCI suffix letters."""

    QUEEN = "q"
    ROOK = "r"
    BISHOP = "b"
    KNIGHT = "n"
