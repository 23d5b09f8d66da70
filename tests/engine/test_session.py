"""
Unit tests for chessdriver/engine/session.py

The session is driven by hand: events are handed to `handle_event` directly
and heartbeat timers only fire when a test fires them.
"""

import asyncio
from typing import Callable

import pytest

from chessdriver.chess.moves import Move
from chessdriver.chess.pieces import Color
from chessdriver.chess.variants import StandardBoard
from chessdriver.core.exceptions import SessionStateError
from chessdriver.core.models import GameResult
from chessdriver.core.settings import CustomSetting, EngineSettings, TimeControl
from chessdriver.core.shared_types import PlayerState, ResultCause
from chessdriver.engine.events import HeartbeatFired, LineReceived, StreamClosed
from chessdriver.engine.options import CheckOption, SpinOption
from chessdriver.engine.session import SessionIdGenerator


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def started(session, signals):
    """A session whose engine confirmed the protocol start (signals are recorded from the very beginning)"""
    session.start()
    session.on_protocol_start()
    return session


@pytest.fixture
def signals(session) -> dict[str, list]:
    """Record every emission of the session's signals"""
    received: dict[str, list] = {"ready": [], "forfeit": [], "disconnected": [], "debug": []}
    session.ready.connect(lambda: received["ready"].append(True))
    session.forfeit.connect(lambda player, result: received["forfeit"].append(result))
    session.disconnected.connect(lambda player: received["disconnected"].append(player))
    session.debug_message.connect(received["debug"].append)
    return received


def _fire_active_timer(session, fake_scheduler) -> None:
    """Let the (only) active heartbeat timer expire and process what it posted"""
    (timer,) = fake_scheduler.active
    timer.fire()
    session.handle_event(session.inbox.get_nowait())


# --- IDS ---
def test_session_ids_are_unique(make_session) -> None:
    assert [make_session().id for _ in range(3)] == [0, 1, 2]


def test_id_generator_start() -> None:
    generator = SessionIdGenerator(start=10)
    assert generator.next_id() == 10
    assert generator.next_id() == 11


# --- STARTING ---
def test_start(session, fake_stream) -> None:
    session.start()
    assert session.state == PlayerState.STARTING
    assert fake_stream.lines == ["start"]
    assert session.liveness.awaiting
    assert not session.is_ready()

    # a second start does nothing
    session.start()
    assert fake_stream.lines == ["start"]


def test_protocol_start(session, signals) -> None:
    protocol_ready: list[bool] = []
    session.protocol_ready.connect(lambda: protocol_ready.append(True))
    session.start()
    session.on_protocol_start()

    assert session.state == PlayerState.IDLE
    assert session.is_ready()
    assert protocol_ready == [True]
    assert signals["ready"] == [True]


def test_writes_before_start_are_buffered_in_order(session, fake_stream) -> None:
    session.write("hard")
    session.write("post")
    assert fake_stream.lines == []
    assert session.outbound.lines == ["hard", "post"]

    session.start()
    assert fake_stream.lines == ["hard", "post", "start"]

    # waiting for the protocol start: held back until the engine confirms
    session.write("easy")
    assert fake_stream.lines == ["hard", "post", "start"]
    session.on_protocol_start()
    assert fake_stream.lines == ["hard", "post", "start", "easy"]


def test_write_while_disconnected_is_dropped(started, fake_stream) -> None:
    started.close_connection()
    started.write("go")
    assert "go" not in fake_stream.lines
    assert len(started.outbound) == 0


def test_trace_io(started, signals) -> None:
    started.write("go")
    assert signals["debug"] == [">fake(0): start", ">fake(0): go"]


def test_trace_io_disabled(make_session, fake_stream) -> None:
    session = make_session(trace_io=False)
    messages: list[str] = []
    session.debug_message.connect(messages.append)
    session.start()
    assert fake_stream.lines == ["start"]
    assert messages == []


# --- OPTIONS ---
def test_option_edit_while_starting_is_sent_once_started(session, fake_stream) -> None:
    session.start()
    session.declare_option(SpinOption("Hash", 16, minimum=1, maximum=1024))
    session.set_option("Hash", "128")
    assert fake_stream.lines == ["start"]
    assert session.pending_option_edits == [("Hash", "128")]

    session.on_protocol_start()
    assert fake_stream.lines == ["start", "option Hash=128"]
    assert session.pending_option_edits == []
    assert session.get_option("Hash").value == "128"


def test_pending_option_edits_keep_their_order(session, fake_stream) -> None:
    session.set_option("Ponder", True)
    session.set_option("Hash", 64)
    session.start()
    session.declare_option(SpinOption("Hash", 16, minimum=1, maximum=1024))
    session.declare_option(CheckOption("Ponder", False))
    session.on_protocol_start()
    assert fake_stream.lines[1:] == ["option Ponder=true", "option Hash=64"]


def test_blank_option_name_before_start(session, fake_stream, log_records) -> None:
    """Queued as given: nothing is raised, the edit is dropped with a warning once the engine has started"""
    session.set_option("", "x")
    assert session.pending_option_edits == [("", "x")]

    session.start()
    session.on_protocol_start()
    assert fake_stream.lines == ["start"]
    assert "WARNING fake doesn't have option " in log_records


def test_pending_option_edit_keeps_the_exact_name(session, fake_stream) -> None:
    session.set_option(" Hash", "5")
    session.start()
    session.declare_option(SpinOption(" Hash", 16, minimum=1, maximum=1024))
    session.on_protocol_start()
    assert session.get_option(" Hash").value == "5"
    assert fake_stream.lines == ["start", "option  Hash=5"]


def test_unknown_option(started, fake_stream, log_records) -> None:
    started.set_option("Contempt", 20)
    assert fake_stream.lines == ["start"]
    assert "WARNING fake doesn't have option Contempt" in log_records


def test_invalid_option_value(started, fake_stream, log_records) -> None:
    started.declare_option(SpinOption("Hash", 16, minimum=1, maximum=1024))
    started.set_option("Hash", 4096)
    assert fake_stream.lines == ["start"]
    assert started.get_option("Hash").value == 16
    assert "WARNING Invalid value for option Hash: 4096" in log_records


def test_declare_option_signal(session) -> None:
    declared: list = []
    session.option_declared.connect(declared.append)
    option = CheckOption("Ponder", False)
    session.declare_option(option)
    assert declared == [option]
    assert session.get_option("Ponder") is option


def test_apply_settings_before_start(session, fake_stream) -> None:
    time_control = TimeControl(time_per_tc_ms=60_000)
    session.apply_settings(
        EngineSettings(
            init_strings=["hard", "post"],
            custom_settings=[CustomSetting(name="Hash", value=64)],
            time_control=time_control,
            white_eval_pov=True,
        )
    )
    assert session.time_control == time_control
    assert session.white_eval_pov

    session.start()
    session.declare_option(SpinOption("Hash", 16, minimum=1, maximum=1024))
    session.on_protocol_start()
    assert fake_stream.lines == ["hard", "post", "start", "option Hash=64"]


def test_apply_settings_ignores_invalid_time_control(session) -> None:
    default_time_control = session.time_control
    session.apply_settings(EngineSettings(time_control=TimeControl(moves_per_tc=40)))
    assert session.time_control is default_time_control


# --- HEARTBEAT ---
def test_heartbeat_arms_timer(started, fake_stream, fake_scheduler) -> None:
    started.heartbeat()
    assert fake_stream.lines == ["start", "ping"]
    assert [timer.delay for timer in fake_scheduler.active] == [10.0]
    assert not started.is_ready()


def test_duplicate_heartbeat_is_a_noop(started, fake_scheduler) -> None:
    started.heartbeat()
    started.heartbeat()
    assert started.pings_sent == 1
    assert len(fake_scheduler.timers) == 1


def test_heartbeat_not_started(session, fake_scheduler) -> None:
    session.heartbeat()
    assert session.pings_sent == 0
    assert fake_scheduler.timers == []


def test_heartbeat_not_sent(started, fake_scheduler) -> None:
    """No timer if the ping could not be written"""
    started.ping_succeeds = False
    started.heartbeat()
    assert fake_scheduler.timers == []
    assert not started.liveness.awaiting


def test_writes_held_back_until_ack(started, fake_stream, fake_scheduler, signals) -> None:
    started.heartbeat()
    started.write("go")
    assert fake_stream.lines == ["start", "ping"]

    started.on_heartbeat_ack()
    assert fake_stream.lines == ["start", "ping", "go"]
    assert fake_scheduler.active == []
    # one ready for the protocol start, one for the ack
    assert signals["ready"] == [True, True]


def test_unexpected_ack_is_ignored(started, signals) -> None:
    started.on_heartbeat_ack()
    assert started.state == PlayerState.IDLE
    assert signals["ready"] == [True]


def test_ack_after_game_end_goes_idle(started, signals) -> None:
    started.new_game(Color.WHITE, StandardBoard())
    started.end_game(GameResult(Color.WHITE, ResultCause.NORMAL))
    assert started.state == PlayerState.FINISHING_GAME
    assert started.liveness.baseline == PlayerState.FINISHING_GAME
    signals["ready"].clear()

    started.on_heartbeat_ack()
    assert started.state == PlayerState.IDLE
    assert started.is_ready()
    assert signals["ready"] == [True]


def test_game_ended_while_waiting_pings_again(started, fake_scheduler, signals) -> None:
    """The ack belongs to a heartbeat sent during the game: the end of the game still needs its own"""
    started.new_game(Color.WHITE, StandardBoard())
    started.heartbeat()
    started.end_game(GameResult(Color.BLACK, ResultCause.RESIGNATION))
    assert started.pings_sent == 1
    signals["ready"].clear()

    started.on_heartbeat_ack()
    assert started.state == PlayerState.FINISHING_GAME
    assert started.pings_sent == 2
    assert started.liveness.baseline == PlayerState.FINISHING_GAME
    assert signals["ready"] == []

    started.on_heartbeat_ack()
    assert started.state == PlayerState.IDLE
    assert signals["ready"] == [True]


def test_heartbeat_timeout(started, fake_stream, fake_scheduler, signals, log_records) -> None:
    started.new_game(Color.BLACK, StandardBoard())
    started.heartbeat()
    started.write("go")

    _fire_active_timer(started, fake_scheduler)
    assert started.state == PlayerState.DISCONNECTED
    assert len(started.outbound) == 0
    assert "go" not in fake_stream.lines
    assert fake_stream.close_calls == 1
    assert "ERROR Engine fake(0) failed to respond to ping" in log_records

    (result,) = signals["forfeit"]
    assert result.cause == ResultCause.STALLED_CONNECTION
    assert result.winner == Color.WHITE


def test_stale_timer_is_ignored(started, fake_scheduler) -> None:
    started.heartbeat()
    started.on_heartbeat_ack()
    started.heartbeat()

    started.handle_event(HeartbeatFired(1))
    assert started.state == PlayerState.IDLE
    assert started.liveness.awaiting


def test_timer_after_ack_is_ignored(started, fake_scheduler, signals) -> None:
    started.heartbeat()
    (timer,) = fake_scheduler.timers
    started.on_heartbeat_ack()

    # the event loop had already queued the callback when the timer got cancelled
    timer.fire()
    started.handle_event(started.inbox.get_nowait())
    assert started.state == PlayerState.IDLE
    assert signals["forfeit"] == []


# --- TURNS / MOVES ---
def test_go_checks_liveness_first(started, fake_stream) -> None:
    started.new_game(Color.WHITE, StandardBoard())
    started.go()
    assert started.state == PlayerState.THINKING
    assert fake_stream.lines[-1] == "ping"
    assert started.liveness.awaiting


def test_make_move(started, fake_stream) -> None:
    board = StandardBoard()
    started.new_game(Color.BLACK, board)
    started.make_move(Move.from_uci("e2e4"))
    assert fake_stream.lines[-1] == "move e2e4"
    assert board.side_to_move == Color.BLACK


def test_make_move_without_game(started) -> None:
    with pytest.raises(SessionStateError):
        started.make_move(Move.from_uci("e2e4"))


@pytest.mark.parametrize("variant, supported", [("standard", True), ("crazyhouse", False)])
def test_default_variants(session, variant: str, supported: bool) -> None:
    assert session.supports_variant(variant) == supported


# --- CLOSING ---
def test_close_connection_is_idempotent(started, fake_stream, signals) -> None:
    signals["ready"].clear()
    started.close_connection()
    started.close_connection()
    assert started.state == PlayerState.DISCONNECTED
    assert fake_stream.close_calls == 1
    assert signals["ready"] == [True]


def test_quit(started, fake_stream) -> None:
    started.quit()
    assert fake_stream.lines[-1] == "quit"
    assert started.state == PlayerState.DISCONNECTED

    started.quit()
    assert fake_stream.lines.count("quit") == 1


def test_quit_after_close_does_nothing(started, fake_stream) -> None:
    started.close_connection()
    started.quit()
    assert "quit" not in fake_stream.lines


def test_quit_stops_the_heartbeat(started, fake_scheduler) -> None:
    started.heartbeat()
    started.quit()
    assert fake_scheduler.active == []


# --- INBOUND EVENTS ---
def test_lines_are_simplified_and_traced(started, signals) -> None:
    started.handle_event(LineReceived("  pong \t 1 \n"))
    assert started.parsed == ["pong 1"]
    assert signals["debug"][-1] == "<fake(0): pong 1"


def test_lines_after_disconnect_are_ignored(started) -> None:
    started.close_connection()
    started.handle_event(LineReceived("move e7e5"))
    assert started.parsed == []


def test_stream_closed_by_engine(started, signals) -> None:
    started.handle_event(StreamClosed())
    assert started.state == PlayerState.DISCONNECTED
    assert signals["disconnected"] == [started]
    # not in a game: nothing to forfeit
    assert signals["forfeit"] == []


def test_stream_closed_during_game_forfeits(started, signals) -> None:
    started.new_game(Color.WHITE, StandardBoard())
    started.handle_event(StreamClosed())

    (result,) = signals["forfeit"]
    assert result.cause == ResultCause.DISCONNECTION
    assert result.winner == Color.BLACK


def test_stream_closed_after_quit_is_expected(started, signals) -> None:
    started.quit()
    started.handle_event(StreamClosed())
    assert signals["disconnected"] == []


@pytest.mark.asyncio
async def test_run_until_disconnected(make_session) -> None:
    session = make_session()
    session.start()
    session.on_protocol_start()
    session.post(LineReceived("hello"))
    session.post(StreamClosed())

    await asyncio.wait_for(session.run(), timeout=1)
    assert session.parsed == ["hello"]
    assert session.state == PlayerState.DISCONNECTED


@pytest.mark.asyncio
async def test_run_stops_after_close_connection(make_session: Callable) -> None:
    session = make_session()
    session.start()
    runner = asyncio.create_task(session.run())
    await asyncio.sleep(0)

    session.close_connection()
    await asyncio.wait_for(runner, timeout=1)
    assert runner.done()
