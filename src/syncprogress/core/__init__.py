"""UI-agnostic building blocks: phase selection, ETA estimation, progress state, errors."""

from syncprogress.core.errors import ClassifiedError, ErrorCategory, ErrorKind, classify_error
from syncprogress.core.estimate import EstimateResult, EstimateState, EstimateTracker, advance_estimate
from syncprogress.core.messages import ProgressMessages, compose_progress_message
from syncprogress.core.phase import PhaseCounters, PhaseSelection, SyncPhase, select_phase
from syncprogress.core.state import ProgressState

__all__ = [
    "ClassifiedError",
    "ErrorCategory",
    "ErrorKind",
    "EstimateResult",
    "EstimateState",
    "EstimateTracker",
    "PhaseCounters",
    "PhaseSelection",
    "ProgressMessages",
    "ProgressState",
    "SyncPhase",
    "advance_estimate",
    "classify_error",
    "compose_progress_message",
    "select_phase",
]
