"""Expected, recoverable failures of draft and transfer actions.

All of these are surfaced to the caller as user-visible messages; none is
process-fatal. Each carries the HTTP status the routers answer with.
"""

from __future__ import annotations


class TurnEngineError(ValueError):
    status_code = 400


class InvalidTurnError(TurnEngineError):
    """Action submitted by a participant who is not on the clock."""

    status_code = 403


class StepOutOfOrderError(TurnEngineError):
    """Transfer step attempted out of drop -> pickup order."""

    status_code = 409


class AlreadyTakenError(TurnEngineError):
    """Lost the race for a player (create-if-absent precondition failed)."""

    status_code = 409


class SessionClosedError(TurnEngineError):
    """Draft or transfer window already completed."""

    status_code = 409


class SessionNotStartedError(TurnEngineError):
    status_code = 409


class PersistenceConflict(TurnEngineError):
    """Optimistic-concurrency rejection; re-read the canonical state."""

    status_code = 409


class NotOwnedError(TurnEngineError):
    status_code = 409


class NotFoundError(TurnEngineError):
    status_code = 404


class InvalidSettingsError(TurnEngineError):
    status_code = 400
