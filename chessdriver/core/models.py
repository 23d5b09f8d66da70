"""
Boundary layer data model(s).

These objects are handed from an engine session to the game driver (the layer above).
(Decouples the result bookkeeping of the driver from the session internals that produce it)
"""

from dataclasses import dataclass
from typing import Optional, Self

from chessdriver.chess.pieces import Color
from chessdriver.core.shared_types import ResultCause


@dataclass(frozen=True)
class GameResult:
    """Outcome of a game. `winner` is None for a draw or for a result without a side (ex. aborted)."""

    winner: Optional[Color]
    cause: ResultCause
    description: str = ""

    @classmethod
    def forfeit(cls, loser: Optional[Color], cause: ResultCause) -> Self:
        """The player playing `loser` forfeits: the opponent wins."""
        winner = loser.opponent() if loser in (Color.WHITE, Color.BLACK) else None
        side_name = loser.name.lower() if loser is not None else "unknown side"
        return cls(winner, cause, f"{side_name} forfeits by {cause}")

    @property
    def is_forfeit(self) -> bool:
        return self.cause in FORFEIT_CAUSES


FORFEIT_CAUSES: frozenset[ResultCause] = frozenset(
    {
        ResultCause.TIMEOUT,
        ResultCause.DISCONNECTION,
        ResultCause.STALLED_CONNECTION,
        ResultCause.ILLEGAL_MOVE,
    }
)
