"""
Custom exceptions used across layers.

Rules errors (GameError) are raised to whoever queried the board.
Session errors (SessionError) only signal programming mistakes or invalid configuration:
misbehaving engines are logged and absorbed by the session, never raised to the driver.
"""


class ChessDriverError(Exception):
    """Top-level exception for everything raised by this package."""


# --- RULES / BOARD ---
class GameError(ChessDriverError):
    """Base class for errors coming from the chess rules."""


class InvalidFENError(GameError):
    """The string cannot be interpreted as a (variant) FEN."""


class IllegalMoveError(GameError):
    """The move is not legal in the current position."""


class AmbiguousOrUnknownNotationError(GameError):
    """The move text does not correspond to exactly one legal move in the current position."""


class UnknownVariantError(GameError):
    """No board implementation is registered under the requested variant name."""


# --- ENGINE SESSION ---
class SessionError(ChessDriverError):
    """Base class for errors coming from the engine session layer."""


class SessionStateError(SessionError):
    """An operation was requested in a session state where it can never be valid."""


class InvalidSettingsError(SessionError):
    """Engine settings failed validation."""
