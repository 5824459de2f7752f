"""
The rule engine is the entrypoint into the chess layer for the service layer.

It answers a single question: "Given this position, is this move allowed, and what does the board look like afterwards?"
It has no knowledge of players, storage or game lifecycles, and it never mutates its input
(a position string goes in, a new position string comes out).
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Self

from src.chess.board import Board
from src.chess.castling import CASTLING_RULES, CastlingDirection, rights_lost_by_touching
from src.chess.fen import FENState
from src.chess.moves import (
    Move,
    candidate_castling_move,
    en_passant_capture_square,
    en_passant_moves,
    is_pawn_push_to_promotion_square,
    pawn_pushes_w_promotion,
)
from src.chess.pieces import MINOR_PIECES, Color, PieceType, opponent
from src.chess.square import Square
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import GameResult, Termination

# 50 moves by each player without a pawn move or capture
FIFTY_MOVE_RULE_HALF_MOVES = 100


@dataclass(frozen=True)
class TerminalState:
    result: GameResult
    reason: Termination


@dataclass(frozen=True)
class MoveOutcome:
    """What the rule engine hands back for an accepted move."""

    new_position: str
    terminal: Optional[TerminalState] = None


class RuleEngine(Protocol):
    """The rules capability the service depends on (so it can be swapped out in tests)."""

    def validate_and_apply(self, position: str, move_code: str) -> MoveOutcome:
        """Validate move against position. Raises a ValidationError subclass when it is rejected."""
        ...

    def legal_moves(self, position: str) -> list[str]:
        """All legal move codes for the side to move."""
        ...


@dataclass
class ChessPosition:
    """Board + the rest of the FEN state. Works out legal moves and plays them."""

    board: Board
    state: FENState

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Raises InvalidFENError (an InternalError) for anything that is not a usable position."""
        state = FENState.from_fen(fen)
        board = Board.from_fen(state.position)
        # both kings must be present, otherwise check detection is meaningless
        board.find_king(Color.WHITE)
        board.find_king(Color.BLACK)
        return cls(board, state)

    def to_fen(self) -> str:
        return self.state.to_fen()

    @property
    def color_to_move(self) -> Color:
        return self.state.color_to_move

    # --- LEGAL MOVES ---
    def legal_moves(self) -> list[Move]:
        """
        List of legal moves for the side to move
        ----

        **Combines the following**

        1. generate candidate moves, using the basic movement rules for all pieces (the board does this calculation)
        2. add candidate castling moves
        3. add candidate en passant moves
        4. remove illegal options --> a move that would put you in check or you are in check and the move does not get you out of it.
        5. Pawn push to promotion square? --> expand the set of moves to include one for every choice of piece type to promote into.
        """
        color = self.color_to_move
        candidate_moves = self.board.generate_candidate_moves(color)

        candidate_moves.extend(
            candidate_castling_move(direction)
            for direction in self._legal_castling_directions()
        )

        if self.state.en_passant_square is not None:
            candidate_moves.extend(
                en_passant_moves(self.state.en_passant_square, color, self.board)
            )

        legal_moves: list[Move] = []
        for move in candidate_moves:
            if self._is_putting_yourself_in_check(move):
                continue
            if is_pawn_push_to_promotion_square(move, self.board):
                legal_moves.extend(pawn_pushes_w_promotion(move))
            else:
                legal_moves.append(move)
        return legal_moves

    def is_check(self) -> bool:
        return self.board.is_check(self.color_to_move)

    # --- PLAYING A MOVE ---
    def play(self, move_code: str) -> Self:
        """
        Attempt to make a move, returning the position after it.
        -----

        1. parse the move (MalformedMoveError if it cannot be read)
        2. look it up among the legal moves (IllegalMoveError if it is not there)
        3. update the board (NOTE: if castling, move the king and the rook. if en passant, remove the captured pawn)
        4. update the rest of the FEN state
        """
        requested = Move.from_uci(move_code)
        legal_by_uci = {move.to_uci(): move for move in self.legal_moves()}

        move = legal_by_uci.get(requested.to_uci())
        if move is None:
            raise IllegalMoveError(self._explain_rejection(requested))

        new_board = self.board.copy()
        apply_to_board(new_board, move)
        new_state = self._next_state(move, new_board)
        return type(self)(new_board, new_state)

    def _explain_rejection(self, requested: Move) -> str:
        """Friendlier messages for the two most common mistakes."""
        uci = requested.to_uci()
        piece = self.board.piece(requested.from_square)
        if piece.is_empty() or piece.color != self.color_to_move:
            return f"Move not allowed: {uci}. No {self.color_to_move.name.lower()} piece on {requested.from_square.to_algebraic()}."
        if requested.promote_to is None and is_pawn_push_to_promotion_square(
            requested, self.board
        ):
            return f"Move not allowed: {uci}. A pawn reaching the last rank must promote (append q, r, b or n)."
        return f"Move not allowed: {uci}"

    def _next_state(self, move: Move, new_board: Board) -> FENState:
        """Create the FEN state after the move. The board has already been updated."""
        moving_piece = self.board.piece(move.from_square)
        is_capture = move.is_en_passant or not self.board.is_empty(move.to_square)
        is_pawn_move = moving_piece.type == PieceType.PAWN

        castling_rights = dict(self.state.castling_rights)
        for square in (move.from_square, move.to_square):
            for direction in rights_lost_by_touching(square):
                castling_rights[direction] = False

        state = FENState(
            position=new_board.to_fen(),
            color_to_move=opponent(self.color_to_move),
            castling_rights=castling_rights,
            en_passant_square=self._determine_en_passant_square(move, is_pawn_move),
            half_move_clock=self.state.half_move_clock,
            num_turns=self.state.num_turns,
        )

        if is_pawn_move or is_capture:
            state.reset_half_move_counter()
        else:
            state.increment_half_move_counter()

        if self.color_to_move == Color.BLACK:
            state.increment_full_move_counter()
        return state

    # --- CHECKS FOR ENDING THE GAME ---
    def terminal_state(self) -> Optional[TerminalState]:
        """
        Is the game over for the side to move?

        Checkmate takes priority over the draws: the side that just moved wins.
        """
        if not self.legal_moves():
            if self.is_check():
                winner = opponent(self.color_to_move)
                result = (
                    GameResult.WHITE_WIN
                    if winner == Color.WHITE
                    else GameResult.BLACK_WIN
                )
                return TerminalState(result, Termination.CHECKMATE)
            return TerminalState(GameResult.DRAW, Termination.STALEMATE)

        if self.is_insufficient_material():
            return TerminalState(GameResult.DRAW, Termination.INSUFFICIENT_MATERIAL)

        if self.state.half_move_clock >= FIFTY_MOVE_RULE_HALF_MOVES:
            return TerminalState(GameResult.DRAW, Termination.FIFTY_MOVE_RULE)
        return None

    def is_insufficient_material(self) -> bool:
        """
        Neither side can ever deliver mate:
        * king vs king
        * king + single minor piece vs king
        * kings + bishops only, all of them on squares of the same color
        """
        pieces = self.board.non_king_pieces()
        if any(piece.type not in MINOR_PIECES for _, piece in pieces):
            return False
        if len(pieces) <= 1:
            return True
        if all(piece.type == PieceType.BISHOP for _, piece in pieces):
            return len({square.is_light() for square, _ in pieces}) == 1
        return False

    # -- CASTLING RULE HELPERS ---
    def _legal_castling_directions(self) -> list[CastlingDirection]:
        """
        **you are allowed to castle if**

        * You are not currently in check (you cannot castle out of check).
        * Castling rights are not yet revoked (and king + rook are where they should be).
        * Every square between king and rook is empty.
        * The king does not pass over or land on a square that is under attack.
        """
        color = self.color_to_move
        options = self.state.castling_options(color)
        if not options or self.board.is_check(color):
            return []

        legal_directions: list[CastlingDirection] = []
        for direction in options:
            rule = CASTLING_RULES[direction]
            king = self.board.piece(rule.king_from)
            rook = self.board.piece(rule.rook_from)
            if (king.type, king.color) != (PieceType.KING, color):
                continue
            if (rook.type, rook.color) != (PieceType.ROOK, color):
                continue
            if self.board.is_any_occupied(rule.squares_between()):
                continue
            if self.board.is_any_under_attack(rule.king_path(), opponent(color)):
                continue
            legal_directions.append(direction)
        return legal_directions

    def _is_putting_yourself_in_check(self, move: Move) -> bool:
        """Play the move on a copy of the board and see if your own king is attacked afterwards."""
        board = self.board.copy()
        apply_to_board(board, move)
        return board.is_check(self.color_to_move)

    # --- EN PASSANT RULE HELPERS ----
    def _determine_en_passant_square(
        self, move: Move, is_pawn_move: bool
    ) -> Optional[Square]:
        """A double pawn push leaves the square it skipped over as en passant target for the next turn."""
        ranks_moved = abs(move.from_square.rank - move.to_square.rank)
        if not (is_pawn_move and ranks_moved == 2):
            return None
        skipped_rank = (move.from_square.rank + move.to_square.rank) // 2
        return Square(file=move.from_square.file, rank=skipped_rank)


def apply_to_board(board: Board, move: Move) -> None:
    """
    Update the board for a move already known to be a legal candidate.

    * castling moves both the king and the rook
    * en passant removes the pawn standing next to the capturing pawn
    * promotion replaces the pawn on the target square
    """
    if move.castling_direction:
        rule = CASTLING_RULES[move.castling_direction]
        board.move_piece(Move(rule.king_from, rule.king_to))
        board.move_piece(Move(rule.rook_from, rule.rook_to))
        return

    board.move_piece(move)
    if move.is_en_passant:
        board.remove_piece(en_passant_capture_square(move))
    if move.promote_to is not None:
        board.promote_piece(move.to_square, to=move.promote_to)


class StandardRules:
    """Classical chess rules. Stateless, so one instance can be shared by every request."""

    def validate_and_apply(self, position: str, move_code: str) -> MoveOutcome:
        after = ChessPosition.from_fen(position).play(move_code)
        return MoveOutcome(new_position=after.to_fen(), terminal=after.terminal_state())

    def legal_moves(self, position: str) -> list[str]:
        return [move.to_uci() for move in ChessPosition.from_fen(position).legal_moves()]


def validate_and_apply(position: str, move_code: str) -> MoveOutcome:
    """Module level shortcut for StandardRules().validate_and_apply"""
    return StandardRules().validate_and_apply(position, move_code)
