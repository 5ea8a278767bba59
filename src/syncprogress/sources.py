"""Handles for the external collaborators feeding the loading controller.

Each handle is a small object exposing psygnal signals. The host application
(node wrapper, wallet model, settings page) emits on them; the controller
connects to them at construction and disconnects on teardown. Tests use the
same classes as fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from psygnal import Signal

from syncprogress.core.errors import ErrorKind


class ProgressSource:
    """Reports (done, total) counters for one sync phase.

    Signals:
        progress_updated: Emitted with (done, total).
    """

    progress_updated = Signal(int, int)

    def __init__(self, name: str = "") -> None:
        self.name = name

    def report(self, done: int, total: int) -> None:
        self.progress_updated.emit(done, total)

    def __repr__(self) -> str:
        return f"ProgressSource({self.name!r})"


class ErrorSource:
    """Reports connectivity errors and node connection changes.

    Signals:
        error_occurred: Emitted with (ErrorKind, description).
        connection_changed: Emitted with True/False when the node connects/drops.
    """

    error_occurred = Signal(object, str)
    connection_changed = Signal(bool)

    def report(self, kind: ErrorKind, description: str = "") -> None:
        self.error_occurred.emit(kind, description)

    def set_connected(self, connected: bool) -> None:
        self.connection_changed.emit(connected)


class ModeSource:
    """Reports toggles of creation mode.

    Signals:
        mode_changed: Emitted with True while the sync is part of initial setup.
    """

    mode_changed = Signal(bool)

    def set_creating(self, is_creating: bool) -> None:
        self.mode_changed.emit(is_creating)


class ResetControl:
    """Two-step reset handshake with the host application.

    The controller calls `request_reset()`; the host tears down its wallet
    and calls `complete()` once done.

    Signals:
        reset_requested: Emitted when a reset is requested.
        reset_completed: Emitted when the host finished the reset.
    """

    reset_requested = Signal()
    reset_completed = Signal()

    def request_reset(self) -> None:
        self.reset_requested.emit()

    def complete(self) -> None:
        self.reset_completed.emit()


@dataclass
class SyncSources:
    """Bundle of collaborator handles injected into `LoadingController`.

    Attributes:
        scan: Unit scan progress (always present).
        errors: Connectivity errors and node connection changes.
        mode: Creation mode toggles.
        reset: Reset handshake.
        node: Block download progress, only used with a local node.
    """

    scan: ProgressSource = field(default_factory=lambda: ProgressSource("scan"))
    errors: ErrorSource = field(default_factory=ErrorSource)
    mode: ModeSource = field(default_factory=ModeSource)
    reset: ResetControl = field(default_factory=ResetControl)
    node: Optional[ProgressSource] = field(default_factory=lambda: ProgressSource("node"))
