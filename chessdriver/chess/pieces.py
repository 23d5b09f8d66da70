"""Defines the types of chess pieces"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Self


class PieceType(Enum):
    EMPTY = auto()
    PAWN = auto()
    KNIGHT = auto()
    BISHOP = auto()
    ROOK = auto()
    QUEEN = auto()
    KING = auto()


class Color(Enum):
    NONE = auto()
    WHITE = auto()
    BLACK = auto()

    def opponent(self) -> "Color":
        if self == Color.NONE:
            return Color.NONE
        return Color.WHITE if self == Color.BLACK else Color.BLACK


PLAYING_COLORS: tuple[Color, Color] = (Color.WHITE, Color.BLACK)

FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}

# Crazyhouse FEN marks a piece that was promoted (and thus will be demoted when captured) with a trailing "~"
PROMOTED_MARKER = "~"


@dataclass
class Piece:
    type: PieceType
    color: Color
    # the type this piece had before it promoted (None if it never promoted)
    promoted_from: Optional[PieceType] = None

    @classmethod
    def empty(cls) -> Self:
        return cls(PieceType.EMPTY, Color.NONE)

    @classmethod
    def from_fen(cls, character: str) -> Self:
        """
        lower case: Black pieces, upper case: White pieces.
        A trailing '~' (Crazyhouse) means the piece is a promoted pawn.
        """
        promoted_from = None
        if character.endswith(PROMOTED_MARKER):
            promoted_from = PieceType.PAWN
            character = character[:-1]
        color = Color.WHITE if character.isupper() else Color.BLACK
        piece_type = FEN_TO_PIECE[character.lower()]
        return cls(piece_type, color, promoted_from)

    def to_fen(self, mark_promoted: bool = False) -> str:
        character = (
            PIECE_TO_FEN[self.type].upper()
            if self.color == Color.WHITE
            else PIECE_TO_FEN[self.type].lower()
        )
        if mark_promoted and self.is_promoted:
            character += PROMOTED_MARKER
        return character

    @property
    def is_empty(self) -> bool:
        return self.type == PieceType.EMPTY

    @property
    def is_promoted(self) -> bool:
        return self.promoted_from is not None

    def promote_to(self, new_type: PieceType) -> None:
        """Only the first promotion is remembered: demoting always returns the original type."""
        if self.promoted_from is None:
            self.promoted_from = self.type
        self.type = new_type

    def demoted(self) -> PieceType:
        """The type this piece reverts to when it is captured and goes into a hand."""
        return self.promoted_from if self.promoted_from is not None else self.type
