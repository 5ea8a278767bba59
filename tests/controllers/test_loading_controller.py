"""Tests for LoadingController wiring, completion, errors and reset."""

from __future__ import annotations

import pytest

from syncprogress.controllers.loading_controller import LoadingController
from syncprogress.core.app_config import SyncConfig
from syncprogress.core.errors import ErrorCategory, ErrorKind
from syncprogress.core.phase import SyncPhase
from syncprogress.sources import SyncSources


@pytest.fixture
def controller(sources: SyncSources, clock) -> LoadingController:
    return LoadingController(sources, has_local_source=True, clock=clock)


def _connect(controller: LoadingController, recorder_factory):
    recs = {name: recorder_factory() for name in (
        "progress", "message", "completed", "completed_with_error", "error", "reset")}
    controller.state.progress_changed.connect(recs["progress"].record)
    controller.state.message_changed.connect(recs["message"].record)
    controller.sync_completed.connect(recs["completed"].record)
    controller.sync_completed_with_error.connect(recs["completed_with_error"].record)
    controller.error_raised.connect(recs["error"].record)
    controller.wallet_reset.connect(recs["reset"].record)
    return recs


def test_download_then_scan_pipeline(controller, sources, clock, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)

    clock.advance(10)
    sources.node.report(5, 10)
    assert controller.phase is SyncPhase.DOWNLOADING
    assert controller.progress == pytest.approx(0.5)
    assert controller.progress_message.startswith("Downloading blocks 50.00%")
    assert "Estimate time:" in controller.progress_message

    clock.advance(10)
    sources.scan.report(3, 10)
    assert controller.phase is SyncPhase.DOWNLOADING
    sources.node.report(10, 10)
    assert controller.phase is SyncPhase.SCANNING
    # scan fraction 0.3 is below the 0.5 already shown: the bar holds
    assert controller.progress == pytest.approx(0.5)
    assert controller.progress_message.startswith("Scanning UTXO 3/10 30.00%")

    assert recs["progress"].values == [pytest.approx(0.5)]
    assert len(recs["completed"]) == 0


def test_progress_is_monotonic_across_interleavings(controller, sources, clock) -> None:
    observed = []
    controller.state.progress_changed.connect(lambda v: observed.append(v))

    events = [("node", 2, 10), ("scan", 9, 10), ("node", 6, 10), ("node", 10, 10),
              ("scan", 1, 10), ("node", 3, 10), ("scan", 10, 10), ("node", 8, 10)]
    for source, done, total in events:
        clock.advance(1)
        getattr(sources, source).report(done, total)

    assert observed == sorted(observed)
    assert controller.progress <= 1.0


def test_sync_completed_fires_once_per_transition(sources, clock, recorder_factory) -> None:
    controller = LoadingController(sources, has_local_source=False, clock=clock)
    recs = _connect(controller, recorder_factory)

    sources.scan.report(5, 10)
    assert len(recs["completed"]) == 0

    sources.scan.report(10, 10)
    sources.scan.report(10, 10)
    assert len(recs["completed"]) == 1
    assert controller.progress == pytest.approx(1.0)
    assert controller.progress_message.startswith(" 100.00%")


def test_node_source_ignored_without_local_node(sources, clock) -> None:
    controller = LoadingController(sources, has_local_source=False, clock=clock)
    sources.node.report(5, 10)
    assert controller.phase is None
    assert controller.progress == 0.0


def test_invalid_counters_are_dropped(controller, sources) -> None:
    sources.node.report(-1, 10)
    assert controller.phase is None
    sources.node.report(1, 10)
    assert controller.progress == pytest.approx(0.1)


def test_creation_mode_connection_error(controller, sources, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)
    sources.mode.set_creating(True)
    assert controller.is_creating is True

    sources.errors.report(ErrorKind.CONNECTION_REFUSED, "refused by 1.2.3.4")

    assert recs["error"].calls == [(ErrorCategory.CONNECTION_ERROR, "refused by 1.2.3.4")]
    assert len(recs["completed_with_error"]) == 0
    assert controller.failed is False
    assert controller.last_error.kind is ErrorKind.CONNECTION_REFUSED


def test_creation_mode_unmapped_error_is_surfaced(controller, sources, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)
    controller.set_is_creating(True)

    sources.errors.report(ErrorKind.TIME_OUT_OF_SYNC, "clock skew")

    assert recs["error"].calls == [(ErrorCategory.UNCLASSIFIED, "clock skew")]
    assert controller.attached is True


def test_fatal_error_stops_progress(controller, sources, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)
    controller.set_is_creating(True)

    sources.node.report(2, 10)
    sources.errors.report(ErrorKind.NODE_PROTOCOL_INCOMPATIBLE, "v1 peer")

    assert recs["error"].calls == [(ErrorCategory.FATAL_PEER_INCOMPATIBLE, "v1 peer")]
    assert controller.failed is True

    sources.node.report(8, 10)
    assert controller.progress == pytest.approx(0.2)


def test_normal_mode_port_error(controller, sources, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)
    sources.errors.report(ErrorKind.CONNECTION_ADDR_IN_USE, "port busy")
    assert recs["error"].calls == [(ErrorCategory.CONNECTION_ERROR, "port busy")]
    assert len(recs["completed_with_error"]) == 0


def test_normal_mode_fallback_completes_with_error(controller, sources, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)
    sources.node.report(4, 10)

    sources.errors.report(ErrorKind.NODE_PROTOCOL_INCOMPATIBLE, "incompatible")

    assert len(recs["completed_with_error"]) == 1
    assert recs["error"].calls == []
    assert controller.last_error.category is ErrorCategory.DEGRADED_COMPLETION
    assert controller.last_error.description == "incompatible"
    assert controller.progress == pytest.approx(0.4)


def test_detach_drops_later_events(controller, sources, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)
    controller.detach()
    controller.detach()

    sources.node.report(5, 10)
    sources.scan.report(10, 10)
    sources.errors.report(ErrorKind.CONNECTION_ADDR_IN_USE, "port busy")
    sources.mode.set_creating(True)

    assert controller.attached is False
    assert controller.progress == 0.0
    assert controller.is_creating is False
    assert len(recs["error"]) == 0
    assert len(recs["completed"]) == 0


def test_queued_event_after_detach_is_dropped(controller) -> None:
    """An event already in flight when detaching reaches the handler but is ignored."""
    controller.detach()
    controller._on_node_progress(5, 10)
    controller._on_error(ErrorKind.CONNECTION_ADDR_IN_USE, "late")
    assert controller.progress == 0.0
    assert controller.last_error is None


def test_reset_handshake(controller, sources, clock, recorder_factory) -> None:
    recs = _connect(controller, recorder_factory)
    requested = []
    sources.reset.reset_requested.connect(lambda: requested.append(True))

    controller.reset_wallet()
    assert requested == [True]
    assert controller.attached is False
    assert controller.resetting is True
    assert len(recs["reset"]) == 0

    sources.node.report(5, 10)
    assert controller.progress == 0.0

    sources.reset.complete()
    assert len(recs["reset"]) == 1
    assert controller.resetting is False

    # the completion is only handled once
    sources.reset.complete()
    assert len(recs["reset"]) == 1

    fresh = LoadingController(sources, has_local_source=True, clock=clock)
    sources.node.report(5, 10)
    assert fresh.progress == pytest.approx(0.5)
    assert controller.progress == 0.0


def test_from_config(tmp_path, sources, clock) -> None:
    cfg = SyncConfig.load(config_path=tmp_path / "sync_config.json")
    cfg.set_attribute("run_local_node", True)
    cfg.set_attribute("max_estimate_seconds", 60)

    controller = LoadingController.from_config(sources, cfg, clock=clock)
    assert controller.has_local_source is True

    clock.advance(5000)
    sources.node.report(5, 10)
    # elapsed capped at 60s, rate 0.5 -> 120s
    assert controller.tracker.state.last_estimate_seconds == pytest.approx(120.0)
    assert controller.progress_message == "Downloading blocks 50.00% Estimate time: 2 min."


def test_node_done_before_scan_reports_completes(controller, sources, recorder_factory) -> None:
    """With nothing to scan yet, a finished download counts as a finished sync."""
    recs = _connect(controller, recorder_factory)
    sources.node.report(10, 10)
    assert controller.phase is SyncPhase.SCANNING
    assert len(recs["completed"]) == 1


def test_completion_fires_again_after_total_grows(sources, clock, recorder_factory) -> None:
    controller = LoadingController(sources, has_local_source=False, clock=clock)
    recs = _connect(controller, recorder_factory)

    sources.scan.report(10, 10)
    sources.scan.report(10, 12)
    sources.scan.report(12, 12)
    assert len(recs["completed"]) == 2


def test_failed_attempt_never_completes(controller, sources, recorder_factory) -> None:
    """Once a fatal error ended the attempt, a later normal-mode error completes nothing."""
    recs = _connect(controller, recorder_factory)
    controller.set_is_creating(True)

    sources.errors.report(ErrorKind.NODE_PROTOCOL_INCOMPATIBLE, "v1 peer")
    sources.scan.report(10, 10)
    sources.mode.set_creating(False)
    sources.errors.report(ErrorKind.CONNECTION_TIMED_OUT, "timed out")

    assert controller.failed is True
    assert len(recs["completed"]) == 0
    assert len(recs["completed_with_error"]) == 0
    assert controller.progress == 0.0
    assert controller.last_error.category is ErrorCategory.DEGRADED_COMPLETION
    assert controller.last_error.description == "timed out"


def test_previous_fraction_is_kept_by_the_estimator(controller, sources, clock) -> None:
    clock.advance(10)
    sources.node.report(2, 10)
    clock.advance(10)
    sources.node.report(4, 10)

    assert controller.progress == pytest.approx(0.4)
    assert controller.tracker.state.current_fraction == pytest.approx(0.4)
    assert controller.tracker.state.last_fraction == pytest.approx(0.2)
    assert not hasattr(controller.state, "last_fraction")
