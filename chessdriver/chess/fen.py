"""
FEN: the textual form of a position, and the part of a position that is not piece placement (`FENState`).

    <placement>[<holdings>] <active color> <castling rights> <en passant square> <half move clock> <full move number>

Crazyhouse extends the placement field in two ways:
* pieces in hand are listed between brackets right after the placement, ex. `.../RNBQKBNR[Qnp]`
* a promoted piece carries a trailing '~', ex. `Q~` is a white queen that used to be a pawn
"""

import re
from dataclasses import dataclass
from string import ascii_lowercase
from typing import Optional, Self

from chessdriver.chess.castling import CASTLING_ORDER, CastlingDirection, castling_directions
from chessdriver.chess.pieces import FEN_TO_PIECE, PROMOTED_MARKER, Color
from chessdriver.chess.square import BOARD_DIMENSIONS, Square
from chessdriver.core.exceptions import InvalidFENError

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

_FILES = ascii_lowercase[: BOARD_DIMENSIONS[0]]
_PIECE_LETTERS = "".join(FEN_TO_PIECE) + "".join(FEN_TO_PIECE).upper()
# Kings never go into a hand
_HAND_LETTERS = _PIECE_LETTERS.replace("k", "").replace("K", "")

RANK_PATTERN = re.compile(rf"(?:\d|[{_PIECE_LETTERS}]{re.escape(PROMOTED_MARKER)}?)+")
HOLDINGS_PATTERN = re.compile(rf"[{_HAND_LETTERS}]*")

# The fields after the placement, in FEN order
FIELD_PATTERNS: dict[str, re.Pattern] = {
    "active color": re.compile(r"[wb]"),
    # either "-" or at least one of KQkq, in that order
    "castling rights": re.compile(r"-|(?=.)K?Q?k?q?"),
    "en passant square": re.compile(rf"-|[{_FILES}][1-{BOARD_DIMENSIONS[1]}]"),
    "half move clock": re.compile(r"\d+"),
    "full move number": re.compile(r"\d+"),
}


def split_holdings(position: str) -> tuple[str, Optional[str]]:
    """'<placement>[<holdings>]' -> (placement, holdings). Holdings is None if there is no bracket at all."""
    if not position.endswith("]") or "[" not in position:
        return position, None
    placement, _, holdings = position[:-1].partition("[")
    return placement, holdings


def is_valid_holdings(holdings: str) -> bool:
    return HOLDINGS_PATTERN.fullmatch(holdings) is not None


def _rank_width(rank_fen: str) -> int:
    """Number of files a rank covers. Every digit is a run of empty squares, every letter one piece"""
    return sum(int(character) if character.isdigit() else 1 for character in rank_fen if character != PROMOTED_MARKER)


def is_valid_position(position: str) -> bool:
    """Placement field (including the optional holdings): the right number of ranks, each exactly as wide as the board."""
    placement, holdings = split_holdings(position)
    if holdings is not None and not is_valid_holdings(holdings):
        return False

    num_files, num_ranks = BOARD_DIMENSIONS
    rank_fens = placement.split("/")
    if len(rank_fens) != num_ranks:
        return False
    return all(
        RANK_PATTERN.fullmatch(rank_fen) is not None and _rank_width(rank_fen) == num_files
        for rank_fen in rank_fens
    )


def is_valid_field(field_name: str, value: str) -> bool:
    return FIELD_PATTERNS[field_name].fullmatch(value) is not None


def is_valid_fen(fen: str) -> bool:
    """Exactly six single-space separated fields, each one valid on its own."""
    position, *fields = fen.split(" ")
    if len(fields) != len(FIELD_PATTERNS):
        return False
    return is_valid_position(position) and all(
        is_valid_field(field_name, value) for field_name, value in zip(FIELD_PATTERNS, fields)
    )


@dataclass
class FENState:
    """
    Everything a FEN says about a position besides where the pieces stand.
    ---

    * position: the placement field without holdings (the Board parses it)
    * holdings: pieces in hand, only for drop variants. None means the FEN had no bracket at all
    * castling_rights: per direction, whether it is still allowed
    * en_passant_square: the square a pawn can capture on, None if there is none
    * half_move_clock: moves since the last pawn move or capture
    * num_turns: starts at 1 and increments after every move black makes
    """

    position: str
    color_to_move: Color
    castling_rights: dict[CastlingDirection, bool]
    en_passant_square: Optional[Square]
    half_move_clock: int
    num_turns: int
    holdings: Optional[str] = None

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        if not is_valid_fen(fen):
            raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen}")

        position, active_color, castling, en_passant, half_move_clock, num_turns = fen.split(" ")
        placement, holdings = split_holdings(position)
        return cls(
            position=placement,
            color_to_move=Color.WHITE if active_color == "w" else Color.BLACK,
            castling_rights={direction: direction.value in castling for direction in CastlingDirection},
            en_passant_square=None if en_passant == "-" else Square.from_algebraic(en_passant),
            half_move_clock=int(half_move_clock),
            num_turns=int(num_turns),
            holdings=holdings,
        )

    def to_fen(self) -> str:
        position = self.position if self.holdings is None else f"{self.position}[{self.holdings}]"
        fields = [
            position,
            "w" if self.color_to_move == Color.WHITE else "b",
            "".join(direction.value for direction in CASTLING_ORDER if self.castling_rights[direction]) or "-",
            self.en_passant_square.to_algebraic() if self.en_passant_square is not None else "-",
            str(self.half_move_clock),
            str(self.num_turns),
        ]
        return " ".join(fields)

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    # --- castling rights bookkeeping ---
    def castling_options(self, color: Color) -> list[CastlingDirection]:
        return castling_directions(color)

    def can_castle(self, color: Color) -> bool:
        return any(self.castling_rights[direction] for direction in castling_directions(color))

    def revoke_castling_rights(self, direction: CastlingDirection) -> None:
        self.castling_rights[direction] = False

    def revoke_all_castling_rights(self, color: Color) -> None:
        for direction in castling_directions(color):
            self.revoke_castling_rights(direction)

    # --- move counters ---
    def increment_half_move_counter(self) -> None:
        self.half_move_clock += 1

    def reset_half_move_counter(self) -> None:
        self.half_move_clock = 0

    def increment_full_move_counter(self) -> None:
        self.num_turns += 1
