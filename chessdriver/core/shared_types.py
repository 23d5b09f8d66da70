"""
Type definitions used across layers
"""

from enum import Enum, StrEnum, auto


class PlayerState(Enum):
    """
    Lifecycle of a player (and therefore of an engine session).

    The session layer only cares about NOT_STARTED / STARTING / DISCONNECTED versus "active";
    the other states belong to the game driver.
    """

    NOT_STARTED = auto()
    STARTING = auto()
    IDLE = auto()
    OBSERVING = auto()
    THINKING = auto()
    FINISHING_GAME = auto()
    DISCONNECTED = auto()


class ResultCause(StrEnum):
    NORMAL = "normal"
    RESIGNATION = "resignation"
    TIMEOUT = "timeout"
    ADJUDICATION = "adjudication"
    DISCONNECTION = "disconnection"
    STALLED_CONNECTION = "stalled connection"
    ILLEGAL_MOVE = "illegal move"
