"""Text templates and composition of the progress status line.

Templates are plain `str.format` strings supplied by the caller so the host
application can localise them. Defaults are English.
"""

from __future__ import annotations

from dataclasses import dataclass

from syncprogress.core.phase import PhaseCounters, PhaseSelection, SyncPhase


@dataclass(frozen=True)
class ProgressMessages:
    """Templates for the status line.

    Attributes:
        downloading: Label while blocks are downloaded.
        scanning: Label while units are scanned, receives ``done`` and ``total``.
        percent: Percentage suffix, receives ``percent`` (0-100 float).
        estimate: ETA suffix, receives ``value`` (e.g. "4 min.").
        minutes_unit: Unit appended to minute values.
        seconds_unit: Unit appended to second values.
    """

    downloading: str = "Downloading blocks"
    scanning: str = "Scanning UTXO {done}/{total}"
    percent: str = " {percent:.2f}%"
    estimate: str = " Estimate time: {value}"
    minutes_unit: str = "min."
    seconds_unit: str = "sec."


def phase_label(selection: PhaseSelection, scan: PhaseCounters, messages: ProgressMessages) -> str:
    """Label for the active phase; empty once the scan is terminal."""
    if selection.phase is SyncPhase.DOWNLOADING:
        return messages.downloading
    if selection.is_terminal:
        return ""
    return messages.scanning.format(done=scan.done, total=scan.total)


def compose_progress_message(
    selection: PhaseSelection,
    scan: PhaseCounters,
    eta_text: str,
    messages: ProgressMessages | None = None,
) -> str:
    """Build the full status line: phase label, percentage and ETA.

    The percentage is that of the active phase, so it matches the label.
    Percentage and ETA are only appended once the phase has progressed.
    """
    messages = messages or ProgressMessages()
    text = phase_label(selection, scan, messages)
    if selection.raw_fraction > 0.0:
        text += messages.percent.format(percent=selection.raw_fraction * 100.0)
        text += eta_text
    return text
