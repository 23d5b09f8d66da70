"""
Unit tests for the Crazyhouse board (drop overlay on top of the standard rules).

Captured pieces change sides in their demoted form; hands are always conserved.
"""

import pytest

from chessdriver.chess.moves import Move
from chessdriver.chess.pieces import Color, Piece, PieceType
from chessdriver.chess.square import Square
from chessdriver.chess.variants import CrazyhouseBoard
from chessdriver.core.exceptions import AmbiguousOrUnknownNotationError, IllegalMoveError

KINGS_ONLY = "4k3/8/8/8/8/8/8/4K3"


def _hand_total(board: CrazyhouseBoard, color: Color) -> int:
    return sum(board.hand_counts(color).values())


def test_default_position_has_empty_hands() -> None:
    board = CrazyhouseBoard()
    assert board.has_drops
    assert board.to_fen() == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR[] w KQkq - 0 1"
    assert board.hand_counts(Color.WHITE) == {}
    assert board.hand_counts(Color.BLACK) == {}


def test_fen_without_brackets_means_empty_hands() -> None:
    board = CrazyhouseBoard(f"{KINGS_ONLY} w - - 0 1")
    assert board.to_fen() == f"{KINGS_ONLY}[] w - - 0 1"


@pytest.mark.parametrize(
    "fen",
    [
        "r1bQ~kb1r/pppp1ppp/8/8/8/8/PPPPPPPP/RNB1KBNR[Pn] b KQ - 0 7",
        "4k3/8/8/8/8/8/8/3Kq~3[QRBNPqrbnp] w - - 0 30",
    ],
)
def test_fen_with_holdings_and_promoted_pieces_roundtrips(fen: str) -> None:
    assert CrazyhouseBoard(fen).to_fen() == fen


def test_capture_goes_to_capturers_hand() -> None:
    board = CrazyhouseBoard("4k3/8/8/3p4/4P3/8/8/4K3[] w - - 0 1")
    board.make_move(board.decode("e4d5"))
    assert board.hand_counts(Color.WHITE) == {PieceType.PAWN: 1}
    assert board.hand_counts(Color.BLACK) == {}
    assert board.to_fen() == "4k3/8/8/3P4/8/8/8/4K3[P] b - - 0 1"


def test_capturing_promoted_piece_adds_its_original_type() -> None:
    """A knight promoted to a queen is captured: the capturer gains a knight, not a queen"""
    board = CrazyhouseBoard("4k3/8/8/3q4/4P3/8/8/4K3[] w - - 0 1")
    promoted_queen = Piece(PieceType.QUEEN, Color.BLACK, promoted_from=PieceType.KNIGHT)
    board.board.place_piece(promoted_queen, Square.from_algebraic("d5"))

    board.make_move(board.decode("e4d5"))
    assert board.hand_counts(Color.WHITE) == {PieceType.KNIGHT: 1}
    # the opponent's hand is never touched by a capture
    assert board.hand_counts(Color.BLACK) == {}

    board.undo_move()
    assert board.hand_counts(Color.WHITE) == {}
    restored = board.piece_at(Square.from_algebraic("d5"))
    assert restored == promoted_queen
    assert restored.demoted() == PieceType.KNIGHT


def test_capturing_promoted_pawn_from_fen() -> None:
    """'q~' on d5 is a former pawn"""
    board = CrazyhouseBoard("4k3/8/8/3q~4/4P3/8/8/4K3[] w - - 0 1")
    board.make_move(board.decode("e4d5"))
    assert board.hand_counts(Color.WHITE) == {PieceType.PAWN: 1}


def test_promotion_is_marked_in_fen() -> None:
    board = CrazyhouseBoard("8/P3k3/8/8/8/8/8/4K3[] w - - 0 1")
    board.make_move(board.decode("a7a8q"))
    assert board.piece_at(Square.from_algebraic("a8")).promoted_from == PieceType.PAWN
    assert board.to_fen() == "Q~7/4k3/8/8/8/8/8/4K3[] b - - 0 1"


def test_promoted_piece_captured_after_promotion() -> None:
    """Promote, get captured: the opponent gets a pawn. Undo both: hands are empty again"""
    board = CrazyhouseBoard("1r6/P3k3/8/8/8/8/8/4K3[] w - - 0 1")
    board.make_move(board.decode("a7a8q"))
    board.make_move(board.decode("b8a8"))
    assert board.hand_counts(Color.BLACK) == {PieceType.PAWN: 1}
    assert board.hand_counts(Color.WHITE) == {}

    board.undo_move()
    board.undo_move()
    assert board.hand_counts(Color.BLACK) == {}
    assert board.piece_at(Square.from_algebraic("a7")) == Piece(PieceType.PAWN, Color.WHITE)


# --- DROPS ---
def test_drop_consumes_hand_and_undo_returns_it() -> None:
    board = CrazyhouseBoard(f"{KINGS_ONLY}[N] w - - 0 1")
    move = board.decode("N@f3")
    assert move.is_drop

    board.make_move(move)
    assert board.piece_at(Square.from_algebraic("f3")) == Piece(PieceType.KNIGHT, Color.WHITE)
    assert board.hand_counts(Color.WHITE) == {}
    assert board.to_fen() == "4k3/8/8/8/8/5N2/8/4K3[] b - - 1 1"

    board.undo_move()
    assert board.hand_counts(Color.WHITE) == {PieceType.KNIGHT: 1}
    assert not board.board.is_occupied(Square.from_algebraic("f3"))


def test_drop_without_piece_in_hand() -> None:
    board = CrazyhouseBoard(f"{KINGS_ONLY}[n] w - - 0 1")
    with pytest.raises(AmbiguousOrUnknownNotationError):
        board.decode("N@f3")
    with pytest.raises(IllegalMoveError):
        board.make_move(Move.drop_piece(PieceType.KNIGHT, Square.from_algebraic("f3")))


def test_drop_on_occupied_square() -> None:
    board = CrazyhouseBoard(f"{KINGS_ONLY}[R] w - - 0 1")
    with pytest.raises(IllegalMoveError):
        board.make_move(Move.drop_piece(PieceType.ROOK, Square.from_algebraic("e8")))


@pytest.mark.parametrize("square", ["a1", "h1", "a8", "d8"])
def test_no_pawn_drops_on_back_ranks(square: str) -> None:
    board = CrazyhouseBoard(f"{KINGS_ONLY}[P] w - - 0 1")
    with pytest.raises(AmbiguousOrUnknownNotationError):
        board.decode(f"P@{square}")


def test_pawn_drop_elsewhere() -> None:
    board = CrazyhouseBoard(f"{KINGS_ONLY}[P] w - - 0 1")
    board.make_move(board.decode("P@d7"))
    # a dropped pawn resets the half move clock like any pawn move
    assert board.to_fen() == "4k3/3P4/8/8/8/8/8/4K3[] b - - 0 1"


def test_drop_to_block_check() -> None:
    """In check by a rook: only interposing drops (or king moves) are legal"""
    board = CrazyhouseBoard("4r2k/8/8/8/8/8/8/4K3[B] w - - 0 1")
    drops = [move for move in board.legal_moves() if move.is_drop]
    assert {move.to_square.to_algebraic() for move in drops} == {"e2", "e3", "e4", "e5", "e6", "e7"}


def test_hands_are_conserved_over_a_game() -> None:
    """pieces in hand == captured - dropped, for each side, after every move"""
    board = CrazyhouseBoard()
    captured = {Color.WHITE: 0, Color.BLACK: 0}
    dropped = {Color.WHITE: 0, Color.BLACK: 0}
    for uci in ["e2e4", "d7d5", "e4d5", "d8d5", "b1c3", "d5a5", "P@d4", "P@e5", "d4e5"]:
        color = board.side_to_move
        move = board.decode(uci)
        target = board.piece_at(move.to_square)
        if move.is_drop:
            dropped[color] += 1
        elif not target.is_empty:
            captured[color] += 1
        board.make_move(move)
        for side in (Color.WHITE, Color.BLACK):
            assert _hand_total(board, side) == captured[side] - dropped[side]

    # unwinding the whole game empties the hands again
    while board.moves:
        board.undo_move()
    assert board.to_fen() == CrazyhouseBoard().to_fen()
