"""Progress, ETA and error reporting for a two-phase wallet sync."""

from syncprogress.controllers.loading_controller import LoadingController
from syncprogress.sources import ErrorSource, ModeSource, ProgressSource, ResetControl, SyncSources

__version__ = "0.1.0"

__all__ = [
    "ErrorSource",
    "LoadingController",
    "ModeSource",
    "ProgressSource",
    "ResetControl",
    "SyncSources",
]
