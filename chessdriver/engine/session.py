"""
Engine session: one external engine process, seen through a line-oriented byte stream.

The session multiplexes protocol negotiation against a live game:
    * writes are deferred (buffered) until the process is provably responsive
    * option edits are deferred until the protocol has started
    * liveness is enforced with a heartbeat (ping) and a single-shot timer

Everything that happens to a session from the outside arrives as a tagged event (see `events`)
and is consumed by `handle_event`. Driver calls (start, go, end_game, ...) run on the same loop,
so no locks are needed.

The protocol dialect itself (what a ping or an option command looks like on the wire) is left to subclasses.
"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from typing import Optional, Protocol

from loguru import logger

from chessdriver.chess.moves import Move
from chessdriver.core.config import settings as driver_settings
from chessdriver.core.exceptions import SessionStateError
from chessdriver.core.models import GameResult
from chessdriver.core.settings import EngineSettings, OptionValue
from chessdriver.core.shared_types import PlayerState, ResultCause
from chessdriver.engine.buffer import OutboundBuffer
from chessdriver.engine.events import HeartbeatFired, LineReceived, SessionEvent, Signal, StreamClosed
from chessdriver.engine.liveness import LivenessMonitor, Scheduler
from chessdriver.engine.options import EngineOption, OptionRegistry
from chessdriver.engine.player import ChessPlayer

GAME_STATES = (PlayerState.OBSERVING, PlayerState.THINKING)


class SessionIdGenerator:
    """Monotonic session ids. Owned by the driver and handed to every session it creates: ids are never reused."""

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)

    def next_id(self) -> int:
        return next(self._counter)


class LineStream(Protocol):
    """What a session needs from its byte stream (ex. the pipes of a child process)"""

    @property
    def is_open(self) -> bool: ...

    def write(self, data: bytes) -> None: ...

    def close(self) -> None: ...


class EngineSession(ChessPlayer, ABC):
    def __init__(
        self,
        stream: LineStream,
        id_generator: SessionIdGenerator,
        name: str = "engine",
        heartbeat_timeout: Optional[float] = None,
        scheduler: Optional[Scheduler] = None,
        trace_io: Optional[bool] = None,
    ) -> None:
        super().__init__(name)
        self.id = id_generator.next_id()
        self.stream = stream
        self.trace_io = driver_settings.trace_io if trace_io is None else trace_io
        self.white_eval_pov = False
        # engines that don't say otherwise only play standard chess
        self.variants: set[str] = {"standard"}

        self.options = OptionRegistry()
        self.outbound = OutboundBuffer()
        # edits made before the protocol start, replayed under the exact name the driver used
        self.pending_option_edits: list[tuple[str, OptionValue]] = []
        self.liveness = LivenessMonitor(
            heartbeat_timeout or driver_settings.heartbeat_timeout,
            on_expired=lambda generation: self.post(HeartbeatFired(generation)),
            scheduler=scheduler,
        )
        self.inbox: asyncio.Queue[SessionEvent] = asyncio.Queue()
        # cleared by close_connection/quit: a stream closing after that is expected, not a disconnection
        self._watch_disconnect = True
        self.log = logger.bind(session=self.id, engine=name)

        # --- signals on top of the player's ---
        self.option_declared = Signal("option_declared")  # (EngineOption)
        self.illegal_move = Signal("illegal_move")  # (text, error)
        self.protocol_ready = Signal("protocol_ready")

    # --- PROTOCOL HOOKS ---
    @abstractmethod
    def start_protocol(self) -> None:
        """Send whatever starts the protocol. The dialect must call `on_protocol_start` once the engine confirms."""

    @abstractmethod
    def send_ping(self) -> bool:
        """Send a heartbeat. False if it could not be sent"""

    @abstractmethod
    def send_option(self, option: EngineOption, value: OptionValue) -> None: ...

    @abstractmethod
    def send_quit(self) -> None: ...

    @abstractmethod
    def send_move(self, text: str) -> None:
        """Tell the engine about a move (already encoded by the board)"""

    @abstractmethod
    def parse_line(self, line: str) -> None:
        """Interpret one (simplified) line received from the engine"""

    # --- LIFECYCLE ---
    def start(self) -> None:
        if self.state != PlayerState.NOT_STARTED:
            return
        self.liveness.disarm()
        self.set_state(PlayerState.STARTING)
        self.flush()
        self.start_protocol()
        # nothing else goes out until the engine confirms the protocol start
        self.liveness.mark_awaiting()

    def on_protocol_start(self) -> None:
        self.liveness.disarm()
        self.set_state(PlayerState.IDLE)
        if not self.is_ready():
            raise SessionStateError(f"{self.name}({self.id}) finished starting while not ready ({self.state.name}).")

        self.flush()
        pending, self.pending_option_edits = self.pending_option_edits, []
        for name, value in pending:
            self.set_option(name, value)
        self.protocol_ready.emit()
        self.emit_ready()

    def is_ready(self) -> bool:
        if self.liveness.awaiting:
            return False
        return super().is_ready()

    def go(self) -> None:
        # confirm the engine is alive before handing it the turn
        if self.state == PlayerState.OBSERVING:
            self.heartbeat()
        super().go()

    def end_game(self, result: GameResult) -> None:
        super().end_game(result)
        self.heartbeat()

    def close_connection(self) -> None:
        if self.state == PlayerState.DISCONNECTED:
            return
        super().close_connection()
        self.liveness.disarm()
        self.outbound.clear()
        self.emit_ready()
        self._watch_disconnect = False
        self.stream.close()
        self.log.info(f"{self.name}({self.id}): connection closed")
        # wake up `run` so it notices the session is gone
        self.post(StreamClosed())

    def quit(self) -> None:
        """Ask the engine to terminate. Does nothing if the stream or the session is already closed"""
        if not self.stream.is_open or self.state == PlayerState.DISCONNECTED:
            return
        self._watch_disconnect = False
        self.liveness.disarm()
        self.send_quit()
        self.set_state(PlayerState.DISCONNECTED)
        self.post(StreamClosed())

    def rename(self, name: str) -> None:
        super().rename(name)
        self.log = self.log.bind(engine=name)

    def supports_variant(self, variant: str) -> bool:
        return variant in self.variants

    # --- HEARTBEAT ---
    def heartbeat(self) -> None:
        if (
            self.liveness.awaiting
            or self.state in (PlayerState.NOT_STARTED, PlayerState.DISCONNECTED)
            or not self.send_ping()
        ):
            return
        self.liveness.arm(self.state)

    def on_heartbeat_ack(self) -> None:
        if not self.liveness.awaiting:
            return
        baseline = self.liveness.baseline
        self.liveness.disarm()
        self.flush()

        if self.state == PlayerState.FINISHING_GAME:
            if baseline == PlayerState.FINISHING_GAME:
                self.set_state(PlayerState.IDLE)
                self.liveness.baseline = PlayerState.IDLE
            else:
                # the state changed while waiting (ex. a new game was set up): check again before moving on
                self.heartbeat()
                return
        self.emit_ready()

    def on_heartbeat_timeout(self) -> None:
        self.log.error(f"Engine {self.name}({self.id}) failed to respond to ping")
        self.liveness.disarm()
        self.outbound.clear()
        self.close_connection()
        self.emit_forfeit(ResultCause.STALLED_CONNECTION)

    # --- OUTBOUND ---
    def write(self, line: str) -> None:
        if self.state == PlayerState.DISCONNECTED:
            return
        if self.state == PlayerState.NOT_STARTED or self.liveness.awaiting:
            self.outbound.append(line)
            return

        self._trace(">", line)
        self.stream.write((line + "\n").encode())

    def flush(self) -> None:
        if self.liveness.awaiting or self.state == PlayerState.NOT_STARTED:
            return
        for line in self.outbound.drain():
            self.write(line)

    def _trace(self, direction: str, line: str) -> None:
        if not self.trace_io:
            return
        message = f"{direction}{self.name}({self.id}): {line}"
        self.log.debug(message)
        self.debug_message.emit(message)

    # --- OPTIONS ---
    def declare_option(self, option: EngineOption) -> None:
        self.options.declare(option)
        self.option_declared.emit(option)

    def get_option(self, name: str) -> Optional[EngineOption]:
        return self.options.get(name)

    def set_option(self, name: str, value: OptionValue) -> None:
        if self.state in (PlayerState.NOT_STARTED, PlayerState.STARTING):
            self.pending_option_edits.append((name, value))
            return

        option = self.options.get(name)
        if option is None:
            self.log.warning(f"{self.name} doesn't have option {name}")
            return
        if not option.validate(value):
            self.log.warning(f"Invalid value for option {name}: {value}")
            return

        option.set_value(value)
        self.send_option(option, value)

    def apply_settings(self, settings: EngineSettings) -> None:
        for line in settings.init_strings:
            self.write(line)
        for setting in settings.custom_settings:
            self.set_option(setting.name, setting.value)
        if settings.time_control.is_valid():
            self.set_time_control(settings.time_control)
        self.white_eval_pov = settings.white_eval_pov

    # --- MOVES ---
    def make_move(self, move: Move) -> None:
        """The opponent moved: update our view of the game and tell the engine"""
        if self.board is None:
            raise SessionStateError(f"{self.name}({self.id}) is not playing a game.")
        text = self.board.encode(move)
        self.board.make_move(move)
        self.send_move(text)

    # --- EVENTS ---
    def post(self, event: SessionEvent) -> None:
        self.inbox.put_nowait(event)

    def handle_event(self, event: SessionEvent) -> None:
        match event:
            case LineReceived(line=raw):
                if self.state == PlayerState.DISCONNECTED:
                    return
                line = " ".join(raw.split())
                self._trace("<", line)
                self.parse_line(line)
            case StreamClosed():
                if self._watch_disconnect:
                    self._on_stream_closed()
            case HeartbeatFired(generation=generation):
                if self.liveness.is_current(generation):
                    self.on_heartbeat_timeout()
                else:
                    self.log.debug(f"Ignoring stale heartbeat timer #{generation}")

    def _on_stream_closed(self) -> None:
        was_playing = self.state in GAME_STATES
        self.log.warning(f"{self.name}({self.id}): stream closed by the engine")
        self.close_connection()
        self.disconnected.emit(self)
        if was_playing:
            self.emit_forfeit(ResultCause.DISCONNECTION)

    async def run(self) -> None:
        """Consume inbound events until the session is disconnected"""
        while self.state != PlayerState.DISCONNECTED:
            event = await self.inbox.get()
            self.handle_event(event)
