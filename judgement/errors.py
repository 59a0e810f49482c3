"""Domain errors shared by every part of the round engine."""

from __future__ import annotations


class EngineError(ValueError):
    """Base class for recoverable rejections.

    ``kind`` is a stable identifier reported to callers; the message is the
    human readable explanation surfaced to the end user.
    """

    kind = "EngineError"


class Forbidden(EngineError):
    """Raised when the actor is neither the game owner nor an operator."""

    kind = "Forbidden"


class GameNotFound(EngineError):
    kind = "GameNotFound"


class RoundNotFound(EngineError):
    kind = "RoundNotFound"


class InsufficientPlayers(EngineError):
    """Raised when START is attempted with fewer players than the minimum."""

    kind = "InsufficientPlayers"


class InvalidAction(EngineError):
    """Raised when an action is not legal in the current round state."""

    kind = "InvalidAction"


class GameStarted(EngineError):
    """Raised when the roster is edited after the game has started."""

    kind = "GameStarted"


class PlayerExists(EngineError):
    kind = "PlayerExists"
