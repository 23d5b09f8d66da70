"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/fakes required for testing multiple layers.

The session tests never talk to a real process: a fake stream records what gets written,
and a fake scheduler hands out timers that only fire when the test says so.
"""

from dataclasses import dataclass, field
from typing import Callable, Generator, Optional

import pytest
from loguru import logger

from chessdriver.core.settings import OptionValue
from chessdriver.engine.options import EngineOption
from chessdriver.engine.session import EngineSession, SessionIdGenerator


# --- FAKE STREAM ---
class FakeStream:
    """Records everything written, line by line"""

    def __init__(self) -> None:
        self.written: list[bytes] = []
        self.is_open = True
        self.close_calls = 0

    def write(self, data: bytes) -> None:
        self.written.append(data)

    def close(self) -> None:
        self.close_calls += 1
        self.is_open = False

    @property
    def lines(self) -> list[str]:
        return [data.decode().rstrip("\n") for data in self.written]


# --- FAKE TIMERS ---
@dataclass
class FakeTimer:
    delay: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.callback()


@dataclass
class FakeScheduler:
    timers: list[FakeTimer] = field(default_factory=list)

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]


# --- A MINIMAL CONCRETE SESSION ---
class RecordingSession(EngineSession):
    """Protocol hooks write plain, easy to assert lines"""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.ping_succeeds = True
        self.pings_sent = 0
        self.parsed: list[str] = []

    def start_protocol(self) -> None:
        self.write("start")

    def send_ping(self) -> bool:
        if not self.ping_succeeds:
            return False
        self.pings_sent += 1
        self.write("ping")
        return True

    def send_option(self, option: EngineOption, value: OptionValue) -> None:
        self.write(f"option {option.name}={option.to_protocol(value)}")

    def send_quit(self) -> None:
        self.write("quit")

    def send_move(self, text: str) -> None:
        self.write(f"move {text}")

    def parse_line(self, line: str) -> None:
        self.parsed.append(line)


@pytest.fixture
def fake_stream() -> FakeStream:
    return FakeStream()


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def id_generator() -> SessionIdGenerator:
    return SessionIdGenerator()


@pytest.fixture
def make_session(
    fake_stream: FakeStream,
    fake_scheduler: FakeScheduler,
    id_generator: SessionIdGenerator,
) -> Callable[..., RecordingSession]:
    """Call the inner function to create a session (optionally of another session class)"""

    def _create_session(
        session_class: Optional[type[EngineSession]] = None, **kwargs
    ) -> RecordingSession:
        session_class = session_class or RecordingSession
        return session_class(
            fake_stream,
            id_generator,
            name=kwargs.pop("name", "fake"),
            heartbeat_timeout=kwargs.pop("heartbeat_timeout", 10.0),
            scheduler=fake_scheduler,
            **kwargs,
        )

    return _create_session


@pytest.fixture
def log_records() -> Generator[list[str], None, None]:
    """'<LEVEL> <message>' for everything logged while the test runs"""
    records: list[str] = []
    handler_id = logger.add(lambda message: records.append(message.rstrip("\n")), level="DEBUG", format="{level} {message}")
    yield records
    logger.remove(handler_id)
