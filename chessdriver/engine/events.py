"""
Events flowing into and out of an engine session.

Inbound: everything that can happen to a session from the outside (a line from the process,
the process going away, the heartbeat timer expiring) is posted as a tagged event on the session's
channel and consumed by a single stepping function. That keeps the state machine testable without a live stream.

Outbound: `Signal` objects notify the game driver (ready, forfeit, engine moves, debug output, ...).
"""

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class LineReceived:
    line: str


@dataclass(frozen=True)
class StreamClosed:
    pass


@dataclass(frozen=True)
class HeartbeatFired:
    # which armed heartbeat this timer belonged to (stale timers are ignored)
    generation: int


SessionEvent = LineReceived | StreamClosed | HeartbeatFired


class Signal:
    """Minimal synchronous observer: listeners are called in connection order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Callable[..., Any]] = []

    def connect(self, listener: Callable[..., Any]) -> None:
        self._listeners.append(listener)

    def disconnect(self, listener: Callable[..., Any]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, *args: Any) -> None:
        for listener in list(self._listeners):
            listener(*args)

    def __len__(self) -> int:
        return len(self._listeners)
