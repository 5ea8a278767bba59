"""Controller behind the loading screen shown while the wallet syncs.

Wires the collaborator handles (`SyncSources`) to the progress pipeline:

    node/scan progress -> select_phase() -> EstimateTracker -> ProgressState
    connectivity errors -> classify_error() -> error_raised / completion

All handlers run on the thread that emits the source signals, one at a time.
Nothing in here blocks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from psygnal import Signal

from syncprogress.core.errors import ClassifiedError, ErrorCategory, classify_error
from syncprogress.core.estimate import MAX_ESTIMATE_SECONDS, Clock, EstimateTracker
from syncprogress.core.messages import ProgressMessages, compose_progress_message
from syncprogress.core.phase import PhaseCounters, PhaseSelection, SyncPhase, select_phase
from syncprogress.core.state import ProgressState
from syncprogress.core.utils.logging import get_logger
from syncprogress.sources import SyncSources

if TYPE_CHECKING:
    from syncprogress.core.app_config import SyncConfig

logger = get_logger(__name__)


class LoadingController:
    """Turn raw sync events into progress, status text and error signals.

    Subscriptions to the sources are made in the constructor and removed by
    `detach()` or `reset_wallet()`. Once detached, events that still arrive
    from the old sources are dropped. A controller is used for one sync
    attempt only; build a new one after a reset.

    Attributes:
        state: ProgressState exposing progress_changed/message_changed.
        tracker: EstimateTracker computing the smoothed fraction and ETA.
        last_error: Most recent ClassifiedError, or None.

    Signals:
        sync_completed: Emitted when the scan phase reaches its total.
        sync_completed_with_error: Emitted when an unhandled error in normal
            mode ends the loading screen in an error state.
        error_raised: Emitted with (ErrorCategory, description).
        wallet_reset: Emitted when the host finished a requested reset.
    """

    sync_completed = Signal()
    sync_completed_with_error = Signal()
    error_raised = Signal(object, str)
    wallet_reset = Signal()

    def __init__(
        self,
        sources: SyncSources,
        *,
        has_local_source: bool,
        is_creating: bool = False,
        messages: Optional[ProgressMessages] = None,
        clock: Optional[Clock] = None,
        max_estimate_seconds: float = MAX_ESTIMATE_SECONDS,
    ) -> None:
        """Initialize the controller and subscribe to the sources.

        Args:
            sources: Collaborator handles.
            has_local_source: Whether a local node feeds the download phase.
                The node source is only subscribed when this is True.
            is_creating: Initial creation mode flag.
            messages: Status line templates.
            clock: Seconds clock used for the ETA, defaults to time.monotonic.
            max_estimate_seconds: Cap on the elapsed time between two updates.
        """
        self._sources: SyncSources = sources
        self._has_local_source: bool = bool(has_local_source and sources.node is not None)
        self._messages: ProgressMessages = messages or ProgressMessages()

        self.state = ProgressState(is_creating=is_creating)
        self.tracker = EstimateTracker(clock=clock, max_seconds=max_estimate_seconds, messages=self._messages)
        self.last_error: Optional[ClassifiedError] = None

        self._node = PhaseCounters()
        self._scan = PhaseCounters()
        self._phase: Optional[SyncPhase] = None
        self._terminal: bool = False
        self._failed: bool = False
        self._attached: bool = False
        self._resetting: bool = False

        self._attach()

    @classmethod
    def from_config(cls, sources: SyncSources, config: "SyncConfig", **kwargs: Any) -> "LoadingController":
        """Build a controller using `run_local_node` and `max_estimate_seconds` from config."""
        kwargs.setdefault("max_estimate_seconds", config.max_estimate_seconds)
        return cls(sources, has_local_source=config.run_local_node, **kwargs)

    # -----------------------------
    # Read-only state
    # -----------------------------
    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def failed(self) -> bool:
        """True after a fatal error ended this attempt."""
        return self._failed

    @property
    def resetting(self) -> bool:
        return self._resetting

    @property
    def has_local_source(self) -> bool:
        return self._has_local_source

    @property
    def phase(self) -> Optional[SyncPhase]:
        return self._phase

    @property
    def progress(self) -> float:
        return self.state.fraction

    @property
    def progress_message(self) -> str:
        return self.state.message

    @property
    def is_creating(self) -> bool:
        return self.state.is_creating

    def set_is_creating(self, value: bool) -> None:
        self.state.set_is_creating(value)

    # -----------------------------
    # Subscription lifecycle
    # -----------------------------
    def _attach(self) -> None:
        s = self._sources
        s.scan.progress_updated.connect(self._on_scan_progress)
        s.errors.error_occurred.connect(self._on_error)
        s.errors.connection_changed.connect(self._on_connection_changed)
        s.mode.mode_changed.connect(self._on_mode_changed)
        if self._has_local_source:
            s.node.progress_updated.connect(self._on_node_progress)
        self._attached = True
        logger.info(f"attached to sync sources (local node: {self._has_local_source})")

    def detach(self) -> None:
        """Disconnect from all progress, error and mode sources.

        Safe to call more than once. Events emitted afterwards are not
        delivered, and any already queued are dropped by the handlers.
        """
        if not self._attached:
            return
        s = self._sources
        s.scan.progress_updated.disconnect(self._on_scan_progress)
        s.errors.error_occurred.disconnect(self._on_error)
        s.errors.connection_changed.disconnect(self._on_connection_changed)
        s.mode.mode_changed.disconnect(self._on_mode_changed)
        if s.node is not None:
            s.node.progress_updated.disconnect(self._on_node_progress)
        self._attached = False
        logger.info("detached from sync sources")

    def reset_wallet(self) -> None:
        """Detach and ask the host to reset the wallet.

        `wallet_reset` is emitted once the host signals completion through
        `ResetControl.complete()`. The caller then builds a new controller.
        """
        if self._resetting:
            logger.debug("reset already in progress")
            return
        self.detach()
        self._resetting = True
        self._sources.reset.reset_completed.connect(self._on_reset_completed)
        logger.info("requesting wallet reset")
        self._sources.reset.request_reset()

    def _on_reset_completed(self) -> None:
        self._sources.reset.reset_completed.disconnect(self._on_reset_completed)
        self._resetting = False
        logger.info("--> emit wallet_reset")
        self.wallet_reset.emit()

    # -----------------------------
    # Inbound handlers
    # -----------------------------
    def _accepts_events(self, what: str) -> bool:
        if not self._attached:
            logger.debug(f"dropping {what} from detached source")
            return False
        return True

    def _on_node_progress(self, done: int, total: int) -> None:
        if not self._accepts_events("node progress"):
            return
        counters = self._make_counters("node", done, total)
        if counters is None:
            return
        self._node = counters
        self._update_if_running()

    def _on_scan_progress(self, done: int, total: int) -> None:
        if not self._accepts_events("scan progress"):
            return
        counters = self._make_counters("scan", done, total)
        if counters is None:
            return
        self._scan = counters
        self._update_if_running()

    def _on_connection_changed(self, connected: bool) -> None:
        if not self._accepts_events("connection change"):
            return
        logger.debug(f"node connection changed: {connected}")

    def _on_mode_changed(self, is_creating: bool) -> None:
        if not self._accepts_events("mode change"):
            return
        self.state.set_is_creating(is_creating)

    def _on_error(self, kind: Any, description: str) -> None:
        if not self._accepts_events(f"error {kind!r}"):
            return

        classified = classify_error(kind, description, is_creating=self.state.is_creating)
        self.last_error = classified
        category = classified.category

        if category is ErrorCategory.DEGRADED_COMPLETION:
            if self._failed:
                logger.warning(f"unhandled error {classified.kind.value} after fatal error: {description!r}")
                return
            # Unhandled error: finish loading and show the wallet in an erroneous state.
            logger.warning(f"unhandled error {classified.kind.value}: {description!r}, completing with error")
            self._update_if_running()
            logger.info("--> emit sync_completed_with_error")
            self.sync_completed_with_error.emit()
            return

        if category is ErrorCategory.CONNECTION_ERROR:
            logger.warning(f"{category.label} ({classified.kind.value}): {description!r}")
        else:
            logger.error(f"{category.label} ({classified.kind.value}): {description!r}")

        if category.is_fatal:
            self._failed = True

        self.error_raised.emit(category, description)

    @staticmethod
    def _make_counters(name: str, done: int, total: int) -> Optional[PhaseCounters]:
        try:
            return PhaseCounters(done=done, total=total)
        except ValueError as e:
            logger.warning(f"ignoring invalid {name} progress ({done!r}, {total!r}): {e}")
            return None

    # -----------------------------
    # Progress pipeline
    # -----------------------------
    def _update_if_running(self) -> None:
        if self._failed:
            logger.debug("attempt failed, ignoring progress update")
            return
        self.update_progress()

    def update_progress(self) -> PhaseSelection:
        """Recompute phase, fraction, ETA and status line from the latest counters."""
        selection = select_phase(self._has_local_source, self._node, self._scan)
        if selection.phase is not self._phase:
            logger.info(f"sync phase: {self._phase} -> {selection.phase.value}")
            self._phase = selection.phase

        result = self.tracker.advance(selection.raw_fraction)
        message = compose_progress_message(selection, self._scan, result.eta_text, self._messages)

        self.state.set_message(message)
        self.state.set_fraction(result.fraction)

        if selection.is_terminal and not self._terminal:
            self._terminal = True
            logger.info("--> emit sync_completed")
            self.sync_completed.emit()
        elif not selection.is_terminal:
            self._terminal = False

        return selection
