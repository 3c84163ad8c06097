"""Engine module: UCI session, move quality and AI move selection."""

from .errors import (
    CalculationTimeoutError,
    EngineFailureError,
    EngineSessionError,
    InitializationTimeoutError,
    NoCandidatesError,
    NoLegalMoveError,
    NotInitializedError,
    RequestCancelledError,
    SpawnError,
    SupersededError,
    UciParseError,
)
from .evaluation import EngineEvaluation, MoveQuality, MoveQualityResult, PositionEvaluation
from .move_quality import MoveQualityEvaluator
from .selector import DIFFICULTY_PRESETS, MoveSelector, SelectedMove
from .session import EngineSession, SessionState
from .transport import SubprocessTransport, UciTransport

__all__ = [
    # Session
    "EngineSession",
    "SessionState",
    "UciTransport",
    "SubprocessTransport",
    # Evaluation
    "EngineEvaluation",
    "PositionEvaluation",
    "MoveQuality",
    "MoveQualityResult",
    "MoveQualityEvaluator",
    # Move selection
    "DIFFICULTY_PRESETS",
    "MoveSelector",
    "SelectedMove",
    # Errors
    "EngineSessionError",
    "NotInitializedError",
    "SpawnError",
    "InitializationTimeoutError",
    "SupersededError",
    "RequestCancelledError",
    "CalculationTimeoutError",
    "NoLegalMoveError",
    "NoCandidatesError",
    "EngineFailureError",
    "UciParseError",
]
