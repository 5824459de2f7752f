"""Unit tests for /src/chess/moves.py"""

from unittest.mock import patch

import pytest

import src.chess.moves as mv
from src.chess.board import Board
from src.chess.castling import CastlingDirection
from src.chess.moves import (
    DIAGONALS,
    KING_DELTAS,
    KNIGHT_DELTAS,
    STRAIGHTS,
    Color,
    Move,
    Piece,
    PieceType,
    Square,
    candidate_bishop_moves,
    candidate_castling_move,
    candidate_king_moves,
    candidate_knight_moves,
    candidate_pawn_moves,
    candidate_queen_moves,
    candidate_rook_moves,
    en_passant_capture_square,
    en_passant_moves,
    is_attacked_along_diagonals,
    is_attacked_along_straights,
    is_attacked_by_king,
    is_attacked_by_knight,
    is_attacked_by_pawn,
    is_pawn_push_to_promotion_square,
    pawn_pushes_w_promotion,
    raycasting_attack,
    raycasting_move,
    single_step_move,
)
from src.chess.square import BOARD_DIMENSIONS
from src.core.exceptions import MalformedMoveError

EMPTY_FEN = "/".join(["8"] * 8)


def ranks(*fen_ranks: str) -> str:
    """Build a piece placement from ranks 8 down to 1"""
    return "/".join(fen_ranks)


def uci_set(moves: list[Move]) -> set[str]:
    return {move.to_uci() for move in moves}


# -- MOVE CREATION, ENCODING/DECODING UCI NOTATION ---
@pytest.mark.parametrize(
    "uci_move, from_uci, to_uci",
    [
        ("e2e4", "e2", "e4"),
        ("a1a5", "a1", "a5"),
        ("g1f3", "g1", "f3"),
        ("h8a1", "h8", "a1"),
    ],
)
def test_creating_move_from_uci(uci_move: str, from_uci: str, to_uci: str) -> None:
    """Parsing of UCI notation for the move should be <from_square><to_square>"""
    move = Move.from_uci(uci_move)
    assert move.from_square == Square.from_algebraic(from_uci)
    assert move.to_square == Square.from_algebraic(to_uci)
    assert move.promote_to is None
    assert move.to_uci() == uci_move


@pytest.mark.parametrize(
    "uci_move, piece_type",
    [
        ("e7e8q", PieceType.QUEEN),
        ("a2a1r", PieceType.ROOK),
        ("b7c8b", PieceType.BISHOP),
        ("h7h8n", PieceType.KNIGHT),
    ],
)
def test_creating_move_incl_promotion(uci_move: str, piece_type: PieceType) -> None:
    move = Move.from_uci(uci_move)
    assert move.promote_to == piece_type
    assert move.to_uci() == uci_move


@pytest.mark.parametrize(
    "uci_move",
    [
        "",
        "e2",
        "e2e9",  # off the board
        "i2i4",
        "E2E4",  # upper case
        "e2e4 ",  # trailing whitespace
        "e2e4\n",
        "e2-e4",
        "e7e8k",  # cannot promote into a king
        "e7e8p",
        "e7e8qq",
        "Nf3",  # SAN is not accepted
    ],
)
def test_malformed_move_codes(uci_move: str) -> None:
    with pytest.raises(MalformedMoveError):
        Move.from_uci(uci_move)


# --- MOVEMENT RULES ---
def test_raycasting_move_empty_board() -> None:
    """On an empty board, movements are only restricted by board dimensions"""
    board = Board.from_fen(EMPTY_FEN)
    a5 = Square.from_algebraic("a5")

    moves = raycasting_move(a5, board, [(1, 0), (-1, 0)])
    assert len(moves) == BOARD_DIMENSIONS[0] - 1
    assert all(move.to_square.rank == a5.rank for move in moves)

    moves = raycasting_move(a5, board, [(0, 1), (0, -1)])
    assert len(moves) == BOARD_DIMENSIONS[1] - 1
    assert all(move.to_square.file == a5.file for move in moves)


def test_raycasting_move_w_blockers() -> None:
    """
    Capture the first enemy piece in sight, but stop in front of your own.
    """
    # white piece on a5, white piece on a7, black piece on a1
    board = Board.from_fen(ranks("8", "P7", "8", "P7", "8", "8", "8", "p7"))
    a5 = Square.from_algebraic("a5")
    moves = raycasting_move(a5, board, [(0, 1), (0, -1)])
    assert uci_set(moves) == {"a5a6", "a5a4", "a5a3", "a5a2", "a5a1"}

    # diagonals: own piece on b4 stops the ray, enemy on f4 is taken
    board = Board.from_fen(ranks("8", "8", "8", "8", "1P3p2", "8", "3P4", "8"))
    d2 = Square.from_algebraic("d2")
    moves = raycasting_move(d2, board, DIAGONALS)
    assert uci_set(moves) == {"d2c1", "d2e1", "d2e3", "d2f4", "d2c3"}


def test_single_step_move() -> None:
    # white on d4, black on d5, white on e4
    board = Board.from_fen(ranks("8", "8", "8", "3p4", "3PP3", "8", "8", "8"))
    d4 = Square.from_algebraic("d4")

    assert uci_set(single_step_move(d4, board, [(0, 1)])) == {"d4d5"}
    assert single_step_move(d4, board, [(1, 0)]) == []
    assert single_step_move(d4, board, [(42, 23)]) == []


@pytest.mark.parametrize(
    "fen_code, candidate_fn, expected_count",
    [
        ("B", candidate_bishop_moves, 13),
        ("R", candidate_rook_moves, 14),
        ("Q", candidate_queen_moves, 27),
        ("N", candidate_knight_moves, 8),
        ("K", candidate_king_moves, 8),
    ],
)
def test_piece_moves_from_the_center(
    fen_code: str, candidate_fn: mv.CandidateMovesFn, expected_count: int
) -> None:
    """A lone piece on d4: make sure there is no typo in the directions"""
    board = Board.from_fen(ranks("8", "8", "8", "8", f"3{fen_code}4", "8", "8", "8"))
    moves = candidate_fn(Square.from_algebraic("d4"), board)
    assert len(moves) == expected_count


def test_piece_moves_from_the_corner() -> None:
    board = Board.from_fen(ranks("8", "8", "8", "8", "8", "8", "8", "N6K"))
    assert uci_set(candidate_knight_moves(Square.from_algebraic("a1"), board)) == {
        "a1b3",
        "a1c2",
    }
    assert len(candidate_king_moves(Square.from_algebraic("h1"), board)) == 3


def test_sliding_pieces_use_raycasting() -> None:
    board = Board.from_fen(ranks("8", "8", "8", "8", "3Q4", "8", "8", "8"))
    d4 = Square.from_algebraic("d4")

    with patch.object(mv, "raycasting_move") as mock_raycasting:
        candidate_queen_moves(d4, board)
        args, _ = mock_raycasting.call_args
        assert set(args[2]) == set(DIAGONALS + STRAIGHTS)

    with patch.object(mv, "single_step_move") as mock_single_step:
        candidate_knight_moves(d4, board)
        mock_single_step.assert_called_once_with(d4, board, KNIGHT_DELTAS)


@pytest.mark.parametrize(
    "placement, square, expected",
    [
        # white pawn on its starting rank can push one or two squares
        (ranks("8", "8", "8", "8", "8", "8", "3P4", "8"), "d2", {"d2d3", "d2d4"}),
        # ... but not jump over a piece
        (ranks("8", "8", "8", "8", "8", "3n4", "3P4", "8"), "d2", set()),
        # ... and not land on one
        (ranks("8", "8", "8", "8", "3n4", "8", "3P4", "8"), "d2", {"d2d3"}),
        # off the starting rank: a single step only
        (ranks("8", "8", "8", "8", "3P4", "8", "8", "8"), "d4", {"d4d5"}),
        # black moves down the board
        (ranks("8", "3p4", "8", "8", "8", "8", "8", "8"), "d7", {"d7d6", "d7d5"}),
        (ranks("8", "8", "8", "8", "3p4", "8", "8", "8"), "d4", {"d4d3"}),
        # pawns never capture straight ahead
        (ranks("8", "8", "8", "3p4", "3P4", "8", "8", "8"), "d4", set()),
    ],
)
def test_pawn_pushes(placement: str, square: str, expected: set[str]) -> None:
    board = Board.from_fen(placement)
    moves = candidate_pawn_moves(Square.from_algebraic(square), board)
    assert uci_set(moves) == expected


def test_white_pawn_takes() -> None:
    """Only the diagonals one rank up the board count for white"""
    board = Board.from_fen(ranks("8", "8", "8", "2p1p3", "3P4", "2p1p3", "8", "8"))
    moves = candidate_pawn_moves(Square.from_algebraic("d4"), board)
    assert uci_set(moves) == {"d4d5", "d4e5", "d4c5"}


def test_black_pawn_takes() -> None:
    board = Board.from_fen(ranks("8", "8", "8", "2P1P3", "3p4", "2P1P3", "8", "8"))
    moves = candidate_pawn_moves(Square.from_algebraic("d4"), board)
    assert uci_set(moves) == {"d4d3", "d4e3", "d4c3"}


def test_pawn_on_the_edge_of_the_board() -> None:
    """Captures towards the edge fall off the board and must be skipped"""
    board = Board.from_fen(ranks("8", "8", "8", "8", "8", "1p6", "P7", "8"))
    moves = candidate_pawn_moves(Square.from_algebraic("a2"), board)
    assert uci_set(moves) == {"a2a3", "a2a4", "a2b3"}


# --- ATTACK RULES ---
def test_raycasting_attack_empty_board() -> None:
    """Sanity check: with the board empty, no square should be under attack."""
    board = Board.from_fen(EMPTY_FEN)
    a5 = Square.from_algebraic("a5")
    for color in (Color.WHITE, Color.BLACK):
        assert not raycasting_attack(a5, color, (PieceType.ROOK,), board, STRAIGHTS)
        assert not raycasting_attack(a5, color, (PieceType.BISHOP,), board, DIAGONALS)


def test_raycasting_attack_along_file() -> None:
    """Black rook on a8 attacks squares on the a-file until a piece blocks the line"""
    board = Board.from_fen(EMPTY_FEN)
    a5 = Square.from_algebraic("a5")
    board.place_piece(Piece.from_fen("r"), Square.from_algebraic("a8"))

    assert raycasting_attack(a5, Color.BLACK, (PieceType.ROOK,), board, STRAIGHTS)
    assert is_attacked_along_straights(a5, Color.BLACK, board)
    # wrong color
    assert not raycasting_attack(a5, Color.WHITE, (PieceType.ROOK,), board, STRAIGHTS)
    # wrong piece type
    assert not raycasting_attack(a5, Color.BLACK, (PieceType.QUEEN,), board, STRAIGHTS)
    # rooks do not attack along diagonals
    assert not is_attacked_along_diagonals(a5, Color.BLACK, board)

    board.place_piece(Piece.from_fen("R"), Square.from_algebraic("a6"))
    assert not is_attacked_along_straights(a5, Color.BLACK, board)


def test_queen_attacks_along_both() -> None:
    board = Board.from_fen(ranks("8", "8", "8", "8", "3q4", "8", "8", "8"))
    assert is_attacked_along_straights(Square.from_algebraic("d1"), Color.BLACK, board)
    assert is_attacked_along_diagonals(Square.from_algebraic("a1"), Color.BLACK, board)
    assert not is_attacked_along_diagonals(Square.from_algebraic("d1"), Color.BLACK, board)


def test_pawn_attacks_are_directional() -> None:
    """A white pawn on d4 attacks c5 and e5, but not c3 / e3 / d5"""
    board = Board.from_fen(ranks("8", "8", "8", "8", "3P4", "8", "8", "8"))
    for attacked in ("c5", "e5"):
        assert is_attacked_by_pawn(Square.from_algebraic(attacked), Color.WHITE, board)
    for safe in ("c3", "e3", "d5"):
        assert not is_attacked_by_pawn(Square.from_algebraic(safe), Color.WHITE, board)
    assert not is_attacked_by_pawn(Square.from_algebraic("c5"), Color.BLACK, board)


def test_knight_and_king_attacks() -> None:
    board = Board.from_fen(ranks("8", "8", "8", "8", "3n4", "8", "8", "7K"))
    assert is_attacked_by_knight(Square.from_algebraic("e2"), Color.BLACK, board)
    assert not is_attacked_by_knight(Square.from_algebraic("e3"), Color.BLACK, board)
    assert is_attacked_by_king(Square.from_algebraic("g2"), Color.WHITE, board)
    assert not is_attacked_by_king(Square.from_algebraic("f1"), Color.WHITE, board)


def test_deltas_are_unique() -> None:
    assert len(set(KING_DELTAS)) == 8
    assert len(set(KNIGHT_DELTAS)) == 8


# --- SPECIAL MOVES ---
def test_candidate_castling_move() -> None:
    move = candidate_castling_move(CastlingDirection.BLACK_QUEEN_SIDE)
    assert move.to_uci() == "e8c8"
    assert move.castling_direction == CastlingDirection.BLACK_QUEEN_SIDE


def test_en_passant_moves() -> None:
    """Black just played d7d5: both white pawns next to it may take on d6"""
    board = Board.from_fen(ranks("8", "8", "8", "2PpP3", "8", "8", "8", "8"))
    d6 = Square.from_algebraic("d6")

    moves = en_passant_moves(d6, Color.WHITE, board)
    assert uci_set(moves) == {"c5d6", "e5d6"}
    assert all(move.is_en_passant for move in moves)
    assert en_passant_capture_square(moves[0]) == Square.from_algebraic("d5")

    # black has no pawn that could use it
    assert en_passant_moves(d6, Color.BLACK, board) == []


def test_en_passant_on_the_edge() -> None:
    board = Board.from_fen(ranks("8", "8", "8", "8", "pP6", "8", "8", "8"))
    moves = en_passant_moves(Square.from_algebraic("b3"), Color.BLACK, board)
    assert uci_set(moves) == {"a4b3"}
    assert en_passant_capture_square(moves[0]) == Square.from_algebraic("b4")


def test_promotion_moves() -> None:
    board = Board.from_fen(ranks("8", "4P3", "8", "8", "8", "8", "4P3", "8"))
    to_last_rank = Move.from_uci("e7e8")
    assert is_pawn_push_to_promotion_square(to_last_rank, board)
    assert not is_pawn_push_to_promotion_square(Move.from_uci("e2e3"), board)

    moves = pawn_pushes_w_promotion(to_last_rank)
    assert uci_set(moves) == {"e7e8q", "e7e8r", "e7e8b", "e7e8n"}
