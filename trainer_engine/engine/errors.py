"""Failure kinds reported by the engine session."""


class EngineSessionError(Exception):
    """Base class for every failure surfaced by the engine layer."""

    # Expected failures are part of normal control flow (a newer request,
    # an explicit stop) and are not logged as errors.
    expected = False


class NotInitializedError(EngineSessionError):
    """The session is not ready; call initialize() first."""


class SpawnError(EngineSessionError):
    """The engine executable could not be started."""


class InitializationTimeoutError(EngineSessionError):
    """The engine did not complete the UCI handshake in time."""


class SupersededError(EngineSessionError):
    """A newer request replaced this one."""

    expected = True


class RequestCancelledError(EngineSessionError):
    """The calculation was stopped explicitly."""

    expected = True


class CalculationTimeoutError(EngineSessionError):
    """The engine did not report a move before the deadline."""


class NoLegalMoveError(EngineSessionError):
    """The engine reported no move (checkmate or stalemate)."""


class NoCandidatesError(EngineSessionError):
    """A multipv search finished without any candidate move."""


class EngineFailureError(EngineSessionError):
    """The engine reported an error or its process died."""


class UciParseError(EngineSessionError, ValueError):
    """A move token does not have the UCI long-algebraic shape."""
