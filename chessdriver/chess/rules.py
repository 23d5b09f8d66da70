"""
Standard rule fragment: the orthodox chess rules shared by every western variant.

These functions answer "what else is a candidate move?" (castling, en passant, promotions)
and "how does the position state change after a move?" (castling rights, en passant square, clocks).
They never decide legality on their own: the variant board combines them and filters out moves that leave the king in check.
"""

from typing import Optional

from chessdriver.chess.board import Board
from chessdriver.chess.castling import CASTLING_RULES, CastlingDirection
from chessdriver.chess.fen import FENState
from chessdriver.chess.moves import (
    Move,
    candidate_castling_move,
    en_passant_moves,
    is_pawn_push_to_promotion_square,
    pawn_direction,
    pawn_pushes_w_promotion,
)
from chessdriver.chess.pieces import Color, Piece, PieceType
from chessdriver.chess.square import Square


def candidate_moves(board: Board, state: FENState) -> list[Move]:
    """
    Pseudo-legal moves of the side to move
    ----

    **Combines the following**

    1. candidate moves from the basic movement rules for all pieces (the board does this calculation)
    2. castling moves (these are already fully checked)
    3. en passant moves
    4. Pawn push to promotion square? --> one move for every choice of piece type to promote into.
    """
    color = state.color_to_move
    moves = board.generate_candidate_moves(color)
    moves.extend(castling_moves(board, state))
    if state.en_passant_square is not None:
        moves.extend(en_passant_moves(state.en_passant_square, color, board))

    expanded: list[Move] = []
    for move in moves:
        if is_pawn_push_to_promotion_square(move, board):
            expanded.extend(pawn_pushes_w_promotion(move))
        else:
            expanded.append(move)
    return expanded


# -- CASTLING ---
def castling_moves(board: Board, state: FENState) -> list[Move]:
    return [
        candidate_castling_move(direction)
        for direction in legal_castling_directions(board, state)
    ]


def legal_castling_directions(board: Board, state: FENState) -> list[CastlingDirection]:
    """
    **you are allowed to castle if**

    * Castling rights are not yet revoked (and king/rook still stand on their squares).
    * You are not currently in check (you cannot castle out of check).
    * All squares between king and rook are empty.
    * The king does not cross or land on a square that is under attack.
    """
    color = state.color_to_move
    if not state.can_castle(color) or board.is_check(color):
        return []

    opponent_color = color.opponent()
    legal_directions: list[CastlingDirection] = []
    for direction in state.castling_options(color):
        if not state.castling_rights[direction]:
            continue

        squares = CASTLING_RULES[direction]
        if board.piece(squares.king_from) != Piece(PieceType.KING, color):
            continue
        if board.piece(squares.rook_from).type != PieceType.ROOK:
            continue

        if board.is_any_occupied(squares.squares_to_clear()):
            continue

        if board.is_any_under_attack(squares.king_path(), opponent_color):
            continue

        legal_directions.append(direction)

    return legal_directions


def move_castling_pieces(board: Board, direction: CastlingDirection) -> None:
    """Move both the King and the Rook"""
    squares = CASTLING_RULES[direction]
    board.move_piece(Move(squares.king_from, squares.king_to))
    board.move_piece(Move(squares.rook_from, squares.rook_to))


def unmove_castling_pieces(board: Board, direction: CastlingDirection) -> None:
    squares = CASTLING_RULES[direction]
    board.move_piece(Move(squares.king_to, squares.king_from))
    board.move_piece(Move(squares.rook_to, squares.rook_from))


def revoke_castling_rights(
    state: FENState, move: Move, moving_piece: Piece, captured_piece: Piece
) -> None:
    """
    Checks which rights should get revoked
    ----

    1. If you are moving your king (castling included) --> revoke both
    2. If you are moving your rook away from its starting square --> revoke that direction
    3. If you capture a rook on its starting square --> revoke the opponent's right in that direction
    """
    color = moving_piece.color
    if moving_piece.type == PieceType.KING:
        state.revoke_all_castling_rights(color)

    for direction, squares in CASTLING_RULES.items():
        if direction.color == color and move.from_square == squares.rook_from:
            state.revoke_castling_rights(direction)
        if (
            direction.color == color.opponent()
            and captured_piece.type == PieceType.ROOK
            and move.to_square == squares.rook_from
        ):
            state.revoke_castling_rights(direction)


# --- EN PASSANT ---
def next_en_passant_square(move: Move, moving_piece: Piece) -> Optional[Square]:
    """The possible en passant square for the next turn: the square a double pawn push skipped over."""
    if move.is_drop or moving_piece.type != PieceType.PAWN:
        return None
    if abs(move.from_square.rank - move.to_square.rank) != 2:
        return None
    return Square(
        file=move.from_square.file,
        rank=move.from_square.rank + pawn_direction(moving_piece.color),
    )


def en_passant_capture_square(move: Move) -> Square:
    """The pawn taken en passant stands on the file of the target square, on the rank the moving pawn came from."""
    return Square(file=move.to_square.file, rank=move.from_square.rank)


# --- STATE UPDATE ---
def advance_state(
    state: FENState,
    board: Board,
    move: Move,
    moving_piece: Piece,
    captured_piece: Piece,
    mark_promoted: bool = False,
) -> None:
    """
    Update the FEN state to reflect the state after the move.
    NOTE this is performed AFTER the board has been updated
    """
    color = state.color_to_move
    state.position = board.to_fen(mark_promoted)

    if not move.is_drop:
        revoke_castling_rights(state, move, moving_piece, captured_piece)
    state.en_passant_square = next_en_passant_square(move, moving_piece)

    # a drop is neither a pawn move nor a capture (unless a pawn is dropped)
    is_reset = moving_piece.type == PieceType.PAWN or not captured_piece.is_empty
    if is_reset:
        state.reset_half_move_counter()
    else:
        state.increment_half_move_counter()

    if color == Color.BLACK:
        state.increment_full_move_counter()
    state.color_to_move = color.opponent()
