"""Helpers for implementing Castling rules. Need to be imported by multiple sources"""

from dataclasses import dataclass
from enum import Enum
from typing import Self

from chessdriver.chess.pieces import Color
from chessdriver.chess.square import BOARD_DIMENSIONS, Square


class CastlingDirection(Enum):
    """The four castling directions. Values represent their encodings in FEN string."""

    WHITE_KING_SIDE = "K"
    WHITE_QUEEN_SIDE = "Q"
    BLACK_KING_SIDE = "k"
    BLACK_QUEEN_SIDE = "q"

    @property
    def color(self) -> Color:
        return Color.WHITE if self.value.isupper() else Color.BLACK


CASTLING_ORDER: tuple[CastlingDirection, ...] = (
    CastlingDirection.WHITE_KING_SIDE,
    CastlingDirection.WHITE_QUEEN_SIDE,
    CastlingDirection.BLACK_KING_SIDE,
    CastlingDirection.BLACK_QUEEN_SIDE,
)


@dataclass(frozen=True)
class CastlingSquares:
    """Where king and rook stand before and after castling. While a right is kept, both are still on their start squares."""

    king_from: Square
    king_to: Square
    rook_from: Square
    rook_to: Square

    @classmethod
    def from_algebraic(cls, k_from: str, k_to: str, r_from: str, r_to: str) -> Self:
        return cls(*(Square.from_algebraic(name) for name in (k_from, k_to, r_from, r_to)))

    def squares_to_clear(self) -> list[Square]:
        """Everything strictly between king and rook must be empty"""
        return _squares_between(self.king_from, self.rook_from)

    def king_path(self) -> list[Square]:
        """The king may not start on, cross, or land on an attacked square"""
        return [self.king_from, *_squares_between(self.king_from, self.king_to), self.king_to]


def _squares_between(from_square: Square, to_square: Square) -> list[Square]:
    """Squares strictly between two squares on the same rank"""
    if from_square.rank != to_square.rank:
        raise ValueError(
            f"Castling squares must lie on the same rank. \n from: {from_square}\n to:{to_square}"
        )
    step = 1 if to_square.file > from_square.file else -1
    return [
        Square(file, from_square.rank)
        for file in range(from_square.file + step, to_square.file, step)
    ]


# king destination, rook start, rook destination (the king always starts on the e-file)
_CASTLING_FILES: dict[str, tuple[str, str, str]] = {"K": ("g", "h", "f"), "Q": ("c", "a", "d")}


def _back_rank_squares(direction: CastlingDirection) -> CastlingSquares:
    rank = 1 if direction.color == Color.WHITE else BOARD_DIMENSIONS[1]
    files = ("e", *_CASTLING_FILES[direction.value.upper()])
    return CastlingSquares.from_algebraic(*(f"{file}{rank}" for file in files))


CASTLING_RULES: dict[CastlingDirection, CastlingSquares] = {
    direction: _back_rank_squares(direction) for direction in CASTLING_ORDER
}


def castling_directions(color: Color) -> list[CastlingDirection]:
    return [direction for direction in CASTLING_ORDER if direction.color == color]
