"""
Player lifecycle shared by every kind of player (engines are the only kind implemented here).

This is the part of a player the game driver talks to: state, starting/ending games, turns, and the signals it listens to.
"""

from typing import Optional

from loguru import logger

from chessdriver.chess.pieces import Color
from chessdriver.chess.variants import VariantBoard
from chessdriver.core.models import GameResult
from chessdriver.core.settings import TimeControl
from chessdriver.core.shared_types import PlayerState, ResultCause
from chessdriver.engine.events import Signal

# A player in these states is busy with something the driver has to wait for
NOT_READY_STATES: frozenset[PlayerState] = frozenset(
    {PlayerState.NOT_STARTED, PlayerState.STARTING, PlayerState.FINISHING_GAME}
)


class ChessPlayer:
    def __init__(self, name: str = "player") -> None:
        self.name = name
        # sessions replace this with a logger bound to their context
        self.log = logger
        self._state = PlayerState.NOT_STARTED
        self.side: Optional[Color] = None
        self.board: Optional[VariantBoard] = None
        self.time_control = TimeControl()

        # --- signals the driver can connect to ---
        self.ready = Signal("ready")
        self.forfeit = Signal("forfeit")  # (player, GameResult)
        self.disconnected = Signal("disconnected")
        self.move_made = Signal("move_made")  # (Move)
        self.debug_message = Signal("debug_message")  # (str)

    def rename(self, name: str) -> None:
        self.name = name

    # --- STATE ---
    @property
    def state(self) -> PlayerState:
        return self._state

    def set_state(self, state: PlayerState) -> None:
        if state != self._state:
            self.log.debug(f"{self.name}: {self._state.name} -> {state.name}")
        self._state = state

    def is_ready(self) -> bool:
        return self._state not in NOT_READY_STATES

    # --- GAME LIFECYCLE ---
    def new_game(self, side: Color, board: VariantBoard) -> None:
        """Join a game as `side`: the player watches until it's asked to move"""
        self.side = side
        self.board = board
        self.set_state(PlayerState.OBSERVING)
        self.start_game()

    def start_game(self) -> None:
        """Hook: whatever a concrete player has to do when a game starts"""

    def go(self) -> None:
        """Player's turn to move"""
        self.set_state(PlayerState.THINKING)

    def end_game(self, result: GameResult) -> None:
        self.log.info(f"{self.name}: game ended, {result.description or result.cause}")
        if self._state in (PlayerState.OBSERVING, PlayerState.THINKING):
            self.set_state(PlayerState.FINISHING_GAME)

    def set_time_control(self, time_control: TimeControl) -> None:
        self.time_control = time_control

    def close_connection(self) -> None:
        self.set_state(PlayerState.DISCONNECTED)

    # --- SIGNAL HELPERS ---
    def emit_ready(self) -> None:
        self.ready.emit()

    def emit_forfeit(self, cause: ResultCause) -> GameResult:
        result = GameResult.forfeit(self.side, cause)
        self.forfeit.emit(self, result)
        return result
