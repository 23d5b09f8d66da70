"""
Liveness monitor: a single-shot timer plus the "awaiting heartbeat ack" flag.

An engine process talks to us asynchronously and never acknowledges what we write.
A heartbeat (ping) with a bounded time to answer is the only way to tell a hung process from one that is thinking.
"""

import asyncio
from typing import Callable, Optional, Protocol

from chessdriver.core.shared_types import PlayerState


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


# (delay in seconds, callback) -> handle. Default: the running asyncio loop's call_later
Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class LivenessMonitor:
    """
    State of one session's heartbeat.
    ---

    * awaiting: a heartbeat (or the protocol startup) is outstanding. Nothing may be written meanwhile.
    * baseline: the session state recorded when the heartbeat was sent.
    * generation: increases with every armed timer, so a timer that fired for an older heartbeat can be recognised and ignored.
    """

    def __init__(
        self,
        timeout: float,
        on_expired: Callable[[int], None],
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.timeout = timeout
        self._on_expired = on_expired
        self._schedule: Scheduler = scheduler or loop_scheduler
        self._timer: Optional[TimerHandle] = None
        self.awaiting = False
        self.baseline: Optional[PlayerState] = None
        self.generation = 0

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    def arm(self, state: PlayerState) -> None:
        """Heartbeat sent: start waiting for the ack, and start the clock"""
        self._cancel_timer()
        self.generation += 1
        self.awaiting = True
        self.baseline = state
        generation = self.generation
        self._timer = self._schedule(self.timeout, lambda: self._on_expired(generation))

    def mark_awaiting(self) -> None:
        """Wait without a deadline (used while the protocol starts up)"""
        self._cancel_timer()
        self.awaiting = True

    def disarm(self) -> None:
        """Ack received (or session closing): stop the clock and stop waiting"""
        self._cancel_timer()
        self.awaiting = False

    def is_current(self, generation: int) -> bool:
        """Does an expired timer of `generation` still matter?"""
        return self.awaiting and self.is_armed and generation == self.generation

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
