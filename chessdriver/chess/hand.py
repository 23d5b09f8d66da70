"""
Drop overlay: pieces "in hand" and the rules for dropping them back onto the board.

Captured pieces change sides: the capturing player gets the (demoted) piece in hand and may later
drop it on any empty square instead of making a regular move.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Self

from chessdriver.chess.board import Board
from chessdriver.chess.moves import Move
from chessdriver.chess.pieces import PLAYING_COLORS, Color, Piece, PieceType
from chessdriver.chess.square import BOARD_DIMENSIONS, Square
from chessdriver.core.exceptions import IllegalMoveError

# order in which holdings are written in a FEN (strongest piece first)
HAND_ORDER: tuple[PieceType, ...] = (
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.PAWN,
)


@dataclass
class Hand:
    """Pieces held off-board by both sides"""

    pieces: dict[Color, Counter[PieceType]] = field(
        default_factory=lambda: {color: Counter() for color in PLAYING_COLORS}
    )

    @classmethod
    def from_fen(cls, holdings: str) -> Self:
        """'QNpp' -> white: queen + knight, black: two pawns"""
        hand = cls()
        for character in holdings:
            piece = Piece.from_fen(character)
            hand.add(piece.color, piece.type)
        return hand

    def to_fen(self) -> str:
        return "".join(
            Piece(piece_type, color).to_fen() * self.count(color, piece_type)
            for color in PLAYING_COLORS
            for piece_type in HAND_ORDER
        )

    def count(self, color: Color, piece_type: PieceType) -> int:
        return self.pieces[color][piece_type]

    def counts(self, color: Color) -> dict[PieceType, int]:
        """Only the piece types actually in hand"""
        return {
            piece_type: self.count(color, piece_type)
            for piece_type in HAND_ORDER
            if self.count(color, piece_type) > 0
        }

    def add(self, color: Color, piece_type: PieceType) -> None:
        self.pieces[color][piece_type] += 1

    def take(self, color: Color, piece_type: PieceType) -> None:
        """Remove one unit from the hand"""
        if self.count(color, piece_type) == 0:
            raise IllegalMoveError(
                f"No {piece_type.name.lower()} in hand for {color.name.lower()}."
            )
        self.pieces[color][piece_type] -= 1

    def total(self, color: Color) -> int:
        return sum(self.pieces[color].values())


# --- PLACEMENT RESTRICTIONS ---
# Returns True if the piece type may be dropped (by the given color) on the square
PlacementRule = Callable[[PieceType, Square, Color], bool]


def pawn_not_on_back_ranks(piece_type: PieceType, square: Square, color: Color) -> bool:
    """Pawns can never be dropped on the first or last rank"""
    if piece_type != PieceType.PAWN:
        return True
    return square.rank not in (1, BOARD_DIMENSIONS[1])


def candidate_drops(
    board: Board, hand: Hand, color: Color, restrictions: tuple[PlacementRule, ...]
) -> list[Move]:
    """Every piece type in hand onto every empty square, unless a placement rule forbids it"""
    moves: list[Move] = []
    empty_squares = board.empty_squares()
    for piece_type in hand.counts(color):
        for square in empty_squares:
            if all(rule(piece_type, square, color) for rule in restrictions):
                moves.append(Move.drop_piece(piece_type, square))
    return moves
