"""
Variant boards: one position of one chess variant, plus the notation bridge to the engine protocol.

A variant is composed from rule fragments rather than stacked subclasses:
* the standard fragment (`chessdriver.chess.rules`) provides orthodox movement, castling, en passant and promotions
* the drop overlay (`chessdriver.chess.hand`) adds a hand per side, drop moves and the variant's placement restrictions

Every variant exposes the same capabilities to the engine session layer:
legality queries, move enumeration, make/unmake, and encode/decode of move notation.
"""

from copy import deepcopy
from dataclasses import dataclass
from typing import ClassVar, Optional

from chessdriver.chess import rules
from chessdriver.chess.board import Board
from chessdriver.chess.fen import STARTING_FEN, FENState
from chessdriver.chess.hand import Hand, PlacementRule, candidate_drops, pawn_not_on_back_ranks
from chessdriver.chess.moves import Move
from chessdriver.chess.pieces import Color, Piece, PieceType
from chessdriver.chess.square import Square
from chessdriver.core.exceptions import (
    AmbiguousOrUnknownNotationError,
    GameError,
    IllegalMoveError,
    InvalidFENError,
    UnknownVariantError,
)


@dataclass
class MoveRecord:
    """Everything needed to take a move back"""

    move: Move
    moving_piece: Piece
    captured_piece: Piece
    captured_square: Optional[Square]
    previous_state: FENState


class VariantBoard:
    """
    Position of a western chess variant.

    Concrete variants only pick their name, starting position and (optionally) the drop overlay with its placement restrictions.
    `drop_restrictions = None` means the variant has no drops at all.
    """

    variant: ClassVar[str]
    default_fen: ClassVar[str]
    drop_restrictions: ClassVar[Optional[tuple[PlacementRule, ...]]] = None

    def __init__(self, fen: Optional[str] = None) -> None:
        self.state = FENState.from_fen(fen or self.default_fen)
        self.board = Board.from_fen(self.state.position)
        self.hand: Optional[Hand] = None
        if self.has_drops:
            self.hand = Hand.from_fen(self.state.holdings or "")
            self.state.holdings = self.hand.to_fen()
        elif self.state.holdings is not None:
            raise InvalidFENError(
                f"Variant {self.variant!r} has no pieces in hand: {fen}"
            )
        self._history: list[MoveRecord] = []

    # --- CAPABILITIES ---
    @property
    def has_drops(self) -> bool:
        return self.drop_restrictions is not None

    @property
    def side_to_move(self) -> Color:
        return self.state.color_to_move

    @property
    def moves(self) -> list[Move]:
        """moves played on this board so far"""
        return [record.move for record in self._history]

    def piece_at(self, square: Square) -> Piece:
        return self.board.piece(square)

    def hand_counts(self, side: Color) -> dict[PieceType, int]:
        """Pieces `side` can drop. Always empty for variants without drops"""
        if self.hand is None:
            return {}
        return self.hand.counts(side)

    def to_fen(self) -> str:
        return self.state.to_fen()

    # --- LEGALITY ---
    def legal_moves(self) -> list[Move]:
        """Candidate moves (and drops) that do not leave your own king in check"""
        candidates = rules.candidate_moves(self.board, self.state)
        if self.hand is not None and self.drop_restrictions is not None:
            candidates.extend(
                candidate_drops(
                    self.board, self.hand, self.side_to_move, self.drop_restrictions
                )
            )
        return [move for move in candidates if not self._leaves_king_in_check(move)]

    def is_legal(self, move: Move) -> bool:
        return move in self.legal_moves()

    def is_check(self) -> bool:
        return self.board.is_check(self.side_to_move)

    def is_checkmate(self) -> bool:
        return self.is_check() and not self.legal_moves()

    def is_stalemate(self) -> bool:
        return not self.is_check() and not self.legal_moves()

    # --- MAKE / UNMAKE ---
    def make_move(self, move: Move) -> None:
        if not self.is_legal(move):
            raise IllegalMoveError(f"Move not allowed: {move.to_uci()}")
        self._apply(move)

    def undo_move(self) -> Move:
        if not self._history:
            raise GameError("No move to take back.")
        return self._revert()

    # --- NOTATION BRIDGE ---
    def encode(self, move: Move) -> str:
        """Coordinate notation. Drops are written as 'N@f3'"""
        return move.to_uci()

    def decode(self, text: str) -> Move:
        """The unique legal move that encodes to `text`"""
        text = text.strip()
        matches = [move for move in self.legal_moves() if self.encode(move) == text]
        if len(matches) != 1:
            reason = "ambiguous" if matches else "unknown or illegal"
            raise AmbiguousOrUnknownNotationError(
                f"Move text {text!r} is {reason} in position {self.to_fen()}"
            )
        return matches[0]

    # -- PRIVATE HELPERS ---
    def _leaves_king_in_check(self, move: Move) -> bool:
        color = self.side_to_move
        self._apply(move)
        try:
            return self.board.is_check(color)
        finally:
            self._revert()

    def _apply(self, move: Move) -> None:
        color = self.side_to_move
        previous_state = deepcopy(self.state)
        captured_square: Optional[Square] = move.to_square
        captured = Piece.empty()

        if move.drop is not None:
            assert self.hand is not None
            self.hand.take(color, move.drop)
            moving_piece = Piece(move.drop, color)
            self.board.place_piece(moving_piece, move.to_square)
            captured_square = None
        elif move.castling_direction is not None:
            moving_piece = self.board.piece(move.from_square)
            rules.move_castling_pieces(self.board, move.castling_direction)
            captured_square = None
        elif move.is_en_passant:
            moving_piece = self.board.piece(move.from_square)
            self.board.move_piece(move)
            captured_square = rules.en_passant_capture_square(move)
            captured = self.board.remove_piece(captured_square)
        else:
            moving_piece = self.board.piece(move.from_square)
            captured = self.board.move_piece(move)
            if move.promote_to is not None:
                promoted = Piece(moving_piece.type, color, moving_piece.promoted_from)
                promoted.promote_to(move.promote_to)
                self.board.place_piece(promoted, move.to_square)

        # captured pieces change sides, in their demoted form
        if self.hand is not None and not captured.is_empty:
            self.hand.add(color, captured.demoted())

        rules.advance_state(
            self.state,
            self.board,
            move,
            moving_piece,
            captured,
            mark_promoted=self.has_drops,
        )
        if self.hand is not None:
            self.state.holdings = self.hand.to_fen()
        self._history.append(
            MoveRecord(move, moving_piece, captured, captured_square, previous_state)
        )

    def _revert(self) -> Move:
        record = self._history.pop()
        move = record.move
        color = record.moving_piece.color

        if move.drop is not None:
            assert self.hand is not None
            self.board.remove_piece(move.to_square)
            self.hand.add(color, move.drop)
        elif move.castling_direction is not None:
            rules.unmove_castling_pieces(self.board, move.castling_direction)
        else:
            self.board.remove_piece(move.to_square)
            self.board.place_piece(record.moving_piece, move.from_square)
            if record.captured_square is not None and not record.captured_piece.is_empty:
                self.board.place_piece(record.captured_piece, record.captured_square)

        if self.hand is not None and not record.captured_piece.is_empty:
            self.hand.take(color, record.captured_piece.demoted())

        self.state = record.previous_state
        return move


class StandardBoard(VariantBoard):
    variant = "standard"
    default_fen = STARTING_FEN


class CrazyhouseBoard(VariantBoard):
    """
    Captured pieces go into the capturer's hand and can be dropped back on an empty square.

    A captured promoted piece goes into the hand as the piece it was promoted from.
    Drop restrictions: pawns may not be dropped on the first or last rank. (Mating with a pawn drop is allowed.)
    """

    variant = "crazyhouse"
    default_fen = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR[] w KQkq - 0 1"
    drop_restrictions = (pawn_not_on_back_ranks,)


VARIANTS: dict[str, type[VariantBoard]] = {
    StandardBoard.variant: StandardBoard,
    CrazyhouseBoard.variant: CrazyhouseBoard,
}


def create_board(variant: str, fen: Optional[str] = None) -> VariantBoard:
    if variant not in VARIANTS:
        raise UnknownVariantError(
            f"Unknown variant {variant!r}. Pick one from {', '.join(VARIANTS)}"
        )
    return VARIANTS[variant](fen)
