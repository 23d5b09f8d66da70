"""The board holds the `position` (in chess: the configuration of pieces on the board) and answers geometric questions about it"""

from dataclasses import dataclass
from typing import Self

from chessdriver.chess.moves import ATTACK_RULES, MOVEMENT_RULES, CandidateMovesFn, Move
from chessdriver.chess.pieces import PROMOTED_MARKER, Color, Piece, PieceType
from chessdriver.chess.square import BOARD_DIMENSIONS, Square, all_squares


@dataclass
class Board:
    position: dict[Square, Piece]

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using a given FEN string.

        That is, we supply the first part of the FEN string that denotes the board position
        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank, starting with rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank are the white pieces.

        A '~' directly after a piece marks it as promoted (Crazyhouse).
        """
        position: dict[Square, Piece] = {}
        fen_by_ranks = fen_str.split("/")
        for rank_idx, fen_one_rank in enumerate(fen_by_ranks):
            # FEN string is read from top rank (8th) to bottom rank (1st)
            rank = BOARD_DIMENSIONS[1] - rank_idx
            # ... but the first character is the a-file, so reads in normal direction
            file = 1
            for character in fen_one_rank:
                if character == PROMOTED_MARKER:
                    # belongs to the piece we just placed
                    position[Square(file - 1, rank)].promoted_from = PieceType.PAWN
                elif character.isalpha():
                    position[Square(file, rank)] = Piece.from_fen(character)
                    file += 1
                else:
                    # A number denotes the amount of empty squares after each other
                    for _ in range(int(character)):
                        position[Square(file, rank)] = Piece.empty()
                        file += 1
        return cls(position)

    def to_fen(self, mark_promoted: bool = False) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank, mark_promoted)
            for rank in range(BOARD_DIMENSIONS[1], 0, -1)
        )

    def _rank_to_fen(self, rank: int, mark_promoted: bool) -> str:
        """FEN string of a single rank"""
        fen_characters: list[str] = []
        empty_count = 0
        for file in range(1, BOARD_DIMENSIONS[0] + 1):
            piece = self.piece(Square(file, rank))

            if not piece.is_empty:
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(piece.to_fen(mark_promoted))
            else:
                empty_count += 1

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    @classmethod
    def empty(cls) -> Self:
        return cls({square: Piece.empty() for square in all_squares()})

    # --- QUERIES ---
    def piece(self, square: Square) -> Piece:
        return self.position[square]

    def is_occupied(self, square: Square) -> bool:
        return not self.position[square].is_empty

    def is_any_occupied(self, squares: list[Square]) -> bool:
        return any(self.is_occupied(square) for square in squares)

    def locate_pieces(self, piece_type: PieceType) -> list[Square]:
        return [
            square
            for square, piece in self.position.items()
            if piece.type == piece_type
        ]

    def locate_color(self, color: Color) -> list[Square]:
        return [
            square for square, piece in self.position.items() if piece.color == color
        ]

    def locate_king(self, color: Color) -> Square | None:
        return next(
            (
                square
                for square, piece in self.position.items()
                if piece.type == PieceType.KING and piece.color == color
            ),
            None,
        )

    def empty_squares(self) -> list[Square]:
        return self.locate_pieces(PieceType.EMPTY)

    def is_under_attack(self, square: Square, by_color: Color) -> bool:
        return any(rule(square, by_color, self) for rule in ATTACK_RULES)

    def is_any_under_attack(self, squares: list[Square], by_color: Color) -> bool:
        return any(self.is_under_attack(square, by_color) for square in squares)

    def is_check(self, color: Color) -> bool:
        """Is the king of `color` attacked? (A board without that king is never in check)"""
        king_square = self.locate_king(color)
        if king_square is None:
            return False
        return self.is_under_attack(king_square, color.opponent())

    def generate_candidate_moves(self, color: Color) -> list[Move]:
        """
        Before knowing the set of legal moves, we use raycasting to find candidate moves, which will later be tested for legality
        (making sure it does not put yourself in check.)

        ---
        NOTE: Castling, en passant and promotions are added later by the rules of the variant.
        """
        candidate_moves: list[Move] = []
        for starting_square in self.locate_color(color):
            piece_type = self.piece(starting_square).type
            movement_rule: CandidateMovesFn = MOVEMENT_RULES[piece_type]
            candidate_moves.extend(movement_rule(starting_square, self))
        return candidate_moves

    # --- UPDATES ---
    def place_piece(self, piece: Piece, square: Square) -> None:
        self.position[square] = piece

    def remove_piece(self, square: Square) -> Piece:
        """Clear the square. Returns whatever stood there"""
        removed = self.position[square]
        self.position[square] = Piece.empty()
        return removed

    def move_piece(self, move: Move) -> Piece:
        """Update the position on the board. Returns the piece that was on the target square (possibly an empty one)"""
        piece_that_moved = self.remove_piece(move.from_square)
        captured = self.position[move.to_square]
        self.position[move.to_square] = piece_that_moved
        return captured
