"""
Geometry/Base movement and capturing/attacking rules

Key idea: Use strategy pattern to define candidate move sets for each piece type.

Legality (not leaving your own king in check, castling conditions, drops) is checked later by the variant board.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Self

from chessdriver.chess.castling import CASTLING_RULES, CastlingDirection
from chessdriver.chess.pieces import FEN_TO_PIECE, PIECE_TO_FEN, Color, Piece, PieceType
from chessdriver.chess.square import BOARD_DIMENSIONS, OFF_BOARD, Square

DROP_MARKER = "@"


class Board(Protocol):
    """Just the parts the movement strategies need"""

    def piece(self, square: Square) -> Piece: ...
    def is_occupied(self, square: Square) -> bool: ...


Vector = tuple[int, int]


@dataclass
class Move:
    """
    basic definition of a move to be made
    ---

    A move is either a board-to-board move (optionally promoting), or a drop of a piece from the hand.
    For a drop the source is the OFF_BOARD sentinel and `drop` holds the type of the dropped piece.
    `promote_to` and `drop` describe the same slot and are mutually exclusive.
    """

    from_square: Square
    to_square: Square
    promote_to: Optional[PieceType] = None
    castling_direction: Optional[CastlingDirection] = None
    is_en_passant: bool = False
    drop: Optional[PieceType] = None

    def __post_init__(self):
        if self.drop is not None and self.promote_to is not None:
            raise ValueError("A move cannot be both a drop and a promotion.")
        if (self.drop is not None) != self.from_square.is_off_board:
            raise ValueError(
                "A drop must come from off the board, and only drops may do so."
            )

    @classmethod
    def drop_piece(cls, piece_type: PieceType, to_square: Square) -> Self:
        return cls(OFF_BOARD, to_square, drop=piece_type)

    @property
    def is_drop(self) -> bool:
        return self.drop is not None

    @classmethod
    def from_uci(cls, uci: str) -> Self:
        """
        Universal Chess Interface:
        ---
        ---
        One of the standard chess notations for moves (coordinate notation)

        examples:
        * "e2e4": move the piece that was on e2 to e4
        * "e7e8q" : (pawn) moves from e7 to e8 and promotes to a queen (the q)
        * "N@f3": drop a knight from the hand on f3 (drops always use upper case piece letters)

        NOTE: Castling / En Passant will be set later by the variant board
        """
        if uci[1:2] == DROP_MARKER:
            return cls.drop_piece(
                FEN_TO_PIECE[uci[0].lower()], Square.from_algebraic(uci[2:4])
            )
        from_sq = Square.from_algebraic(uci[:2])
        to_sq = Square.from_algebraic(uci[2:4])
        move = cls(from_sq, to_sq)
        if len(uci) == 5:
            move.promote_to = FEN_TO_PIECE[uci[4]]
        return move

    def to_uci(self) -> str:
        """Convert into UCI notation"""
        if self.drop is not None:
            return f"{PIECE_TO_FEN[self.drop].upper()}{DROP_MARKER}{self.to_square.to_algebraic()}"
        piece_char = PIECE_TO_FEN[self.promote_to] if self.promote_to else ""
        return f"{self.from_square.to_algebraic()}{self.to_square.to_algebraic()}{piece_char}"


# --- MOVEMENT RULES ---
def raycasting_move(
    square: Square, board: Board, directions: list[Vector]
) -> list[Move]:
    """
    Raycasting algorithm
    -----

    ---
    The main trick we use to check the 'line of sight of a piece'.
    We define move directions and move along them until we hit another piece or
    the edge of the board.
    """

    opponent_color = board.piece(square).color.opponent()

    moves: list[Move] = []
    for df, dr in directions:
        file = square.file
        rank = square.rank
        while True:
            file += df
            rank += dr
            target_square = Square(file, rank)
            if not target_square.is_within_bounds():
                break

            if board.is_occupied(target_square):
                # only need to add the first occupied square found if it is the opponent's: then it can be captured.
                if board.piece(target_square).color == opponent_color:
                    moves.append(Move(from_square=square, to_square=target_square))
                break

            moves.append(Move(from_square=square, to_square=target_square))
    return moves


def single_step_move(square: Square, board: Board, deltas: list[Vector]) -> list[Move]:
    """Raycasting is for sliding pieces. This is the equivalent for kings and knights that just can move a single step along a direction"""
    moves: list[Move] = []
    player_color = board.piece(square).color
    for df, dr in deltas:
        target_square = Square(square.file + df, square.rank + dr)
        if not target_square.is_within_bounds():
            continue

        if board.piece(target_square).color != player_color:
            moves.append(Move(from_square=square, to_square=target_square))

    return moves


def pawn_direction(color: Color) -> int:
    """White moves UP the board, black moves DOWN"""
    return 1 if color == Color.WHITE else -1


def pawn_starting_rank(color: Color) -> int:
    return 2 if color == Color.WHITE else BOARD_DIMENSIONS[1] - 1


def candidate_pawn_moves(square: Square, board: Board) -> list[Move]:
    """
    A pawn:
    - moves by a single square forward, onto an empty square.
    - It can move by two in their first move (so when on their starting rank), if both squares are empty
    - takes diagonally

    NOTE: En passant and promotions are taken care of by the variant board
    """
    moves: list[Move] = []
    color = board.piece(square).color
    direction = pawn_direction(color)

    one_step = Square(square.file, square.rank + direction)
    if one_step.is_within_bounds() and not board.is_occupied(one_step):
        moves.append(Move(from_square=square, to_square=one_step))

        two_steps = Square(square.file, square.rank + 2 * direction)
        if square.rank == pawn_starting_rank(color) and not board.is_occupied(
            two_steps
        ):
            moves.append(Move(from_square=square, to_square=two_steps))

    # pawns take diagonally:
    opponent_color = color.opponent()
    for df in (1, -1):
        target_square = Square(square.file + df, square.rank + direction)
        if not target_square.is_within_bounds():
            continue
        if board.piece(target_square).color == opponent_color:
            moves.append(Move(from_square=square, to_square=target_square))
    return moves


KNIGHT_DELTAS: list[Vector] = [
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
]
KING_DELTAS: list[Vector] = [
    (0, 1),
    (0, -1),
    (1, 0),
    (-1, 0),
    (1, 1),
    (1, -1),
    (-1, 1),
    (-1, -1),
]
DIAGONALS: list[Vector] = [(1, 1), (-1, 1), (1, -1), (-1, -1)]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]


def candidate_knight_moves(square: Square, board: Board) -> list[Move]:
    """Knights always move such that |delta_rank| + |delta_file| = 3"""
    return single_step_move(square, board, KNIGHT_DELTAS)


def candidate_bishop_moves(square: Square, board: Board) -> list[Move]:
    """Bishops move diagonally: |delta_rank| = |delta_file|"""
    return raycasting_move(square, board, DIAGONALS)


def candidate_rook_moves(square: Square, board: Board) -> list[Move]:
    """Rooks move either horizontally or vertically"""
    return raycasting_move(square, board, STRAIGHTS)


def candidate_queen_moves(square: Square, board: Board) -> list[Move]:
    """
    The Queen combines the rook moves (horizontal + vertical movements) and bishop moves (diagonal movement)
    """
    return candidate_bishop_moves(square, board) + candidate_rook_moves(square, board)


def candidate_king_moves(square: Square, board: Board) -> list[Move]:
    """
    The king can move by a single square at the time.

    Castling is modelled as a special king move (handled separately).
    """
    return single_step_move(square, board, KING_DELTAS)


# -- STRATEGY PATTERN: MOVEMENT RULES ---
CandidateMovesFn = Callable[[Square, Board], list[Move]]
MOVEMENT_RULES: dict[PieceType, CandidateMovesFn] = {
    PieceType.PAWN: candidate_pawn_moves,
    PieceType.KNIGHT: candidate_knight_moves,
    PieceType.BISHOP: candidate_bishop_moves,
    PieceType.ROOK: candidate_rook_moves,
    PieceType.QUEEN: candidate_queen_moves,
    PieceType.KING: candidate_king_moves,
}


# --- CAPTURING RULES / ATTACKING RULES ---
def raycasting_attack(
    square: Square,
    by_color: Color,
    by_piece_types: tuple[PieceType, ...],
    board: Board,
    directions: list[Vector],
) -> bool:
    """
    Raycasting algorithm for attacks.
    ---

    Where `raycasting_move()` determines
    _"What is the line-of-sight of the piece standing on the specified square?"_

    This function determines:
    _"Is the specified square in the line-of-sight of a piece of the specified color and that
    is allowed to move along the given direction?"_
    """
    for df, dr in directions:
        file = square.file
        rank = square.rank
        while True:
            file += df
            rank += dr
            target_square = Square(file, rank)

            if not target_square.is_within_bounds():
                break

            if board.is_occupied(target_square):
                # only the first occupied square along the ray can be an attacker
                piece_found = board.piece(target_square)
                if (piece_found.color == by_color) and (
                    piece_found.type in by_piece_types
                ):
                    return True
                break
    return False


def single_step_attack(
    square: Square,
    by_color: Color,
    by_piece_type: PieceType,
    board: Board,
    deltas: list[Vector],
) -> bool:
    """Equivalent of `raycasting_attack()` for pieces that only step a single square."""
    for df, dr in deltas:
        target_square = Square(square.file + df, square.rank + dr)
        if not target_square.is_within_bounds():
            continue

        piece_found = board.piece(target_square)
        if (piece_found.color == by_color) and (piece_found.type == by_piece_type):
            return True

    return False


def is_attacked_by_pawn(square: Square, by_color: Color, board: Board) -> bool:
    """
    Pawns take diagonally
    ----

    NOTE: Pawn moves are not symmetric, so to check IF a white pawn could take on your square -->
    Must look one rank DOWN the board.
    """
    direction = pawn_direction(by_color)
    inverse_pawn_take_deltas: list[Vector] = [(1, -direction), (-1, -direction)]
    return single_step_attack(
        square, by_color, PieceType.PAWN, board, inverse_pawn_take_deltas
    )


def is_attacked_by_knight(square: Square, by_color: Color, board: Board) -> bool:
    return single_step_attack(square, by_color, PieceType.KNIGHT, board, KNIGHT_DELTAS)


def is_attacked_along_diagonal(square: Square, by_color: Color, board: Board) -> bool:
    """Bishops and queens"""
    return raycasting_attack(
        square, by_color, (PieceType.BISHOP, PieceType.QUEEN), board, DIAGONALS
    )


def is_attacked_along_straight(square: Square, by_color: Color, board: Board) -> bool:
    """Rooks and queens"""
    return raycasting_attack(
        square, by_color, (PieceType.ROOK, PieceType.QUEEN), board, STRAIGHTS
    )


def is_attacked_by_king(square: Square, by_color: Color, board: Board) -> bool:
    return single_step_attack(square, by_color, PieceType.KING, board, KING_DELTAS)


# --- STRATEGY PATTERN: ATTACKING RULES ---
IsAttackedFn = Callable[[Square, Color, Board], bool]
ATTACK_RULES: list[IsAttackedFn] = [
    is_attacked_by_pawn,
    is_attacked_by_knight,
    is_attacked_along_diagonal,
    is_attacked_along_straight,
    is_attacked_by_king,
]


# -- CASTLING MOVES ---
def candidate_castling_move(direction: CastlingDirection) -> Move:
    rule = CASTLING_RULES[direction]
    return Move(rule.king_from, rule.king_to, castling_direction=direction)


# -- EN PASSANT MOVES ---
def en_passant_moves(
    en_passant_square: Square, color: Color, board: Board
) -> list[Move]:
    """Given a target en passant square, check the adjacent files (in the rank one up/down from the en passant square) for pawns of the correct color."""

    # NOTE: En passant square is behind the opponent's pawn, so our pawns stand one rank "back" from it.
    opposite_direction = -pawn_direction(color)

    moves: list[Move] = []
    own_pawn = Piece(PieceType.PAWN, color)
    for df in [-1, 1]:
        maybe_pawn_square = Square(
            file=en_passant_square.file + df,
            rank=en_passant_square.rank + opposite_direction,
        )
        if not maybe_pawn_square.is_within_bounds():
            continue
        piece_on_square = board.piece(maybe_pawn_square)
        if (piece_on_square.type, piece_on_square.color) == (own_pawn.type, own_pawn.color):
            moves.append(
                Move(
                    from_square=maybe_pawn_square,
                    to_square=en_passant_square,
                    is_en_passant=True,
                )
            )

    return moves


# -- PAWN PROMOTION MOVES --
PROMOTION_OPTIONS: list[PieceType] = [
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.ROOK,
    PieceType.QUEEN,
]


def is_pawn_push_to_promotion_square(move: Move, board: Board) -> bool:
    """check if the move is a pawn move and if it reaches either the first or the final rank"""
    if move.is_drop:
        return False
    moving_piece = board.piece(move.from_square)
    is_pawn_move = moving_piece.type == PieceType.PAWN
    reaches_promotion_square = move.to_square.rank in [1, BOARD_DIMENSIONS[1]]
    return is_pawn_move and reaches_promotion_square


def pawn_pushes_w_promotion(pawn_push: Move) -> list[Move]:
    """Return multiple copies of the pawn push with the piece type to promote into filled in."""
    return [
        Move(
            from_square=pawn_push.from_square,
            to_square=pawn_push.to_square,
            promote_to=piece_type,
        )
        for piece_type in PROMOTION_OPTIONS
    ]
