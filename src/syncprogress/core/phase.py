"""Phase selection for the two-phase sync (block download, then unit scan).

The node source reports block download progress and the scan source reports
unit scan progress. Either may be stale or absent at any moment; this module
only looks at the latest counters of both and decides which one drives the
display.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SyncPhase(str, Enum):
    """Phase of the sync shown to the user.

    Values:
        DOWNLOADING: Block download from the local node.
        SCANNING: Unit (UTXO) scan against the downloaded data.
    """

    DOWNLOADING = "downloading"
    SCANNING = "scanning"


@dataclass(frozen=True, slots=True)
class PhaseCounters:
    """Latest (done, total) pair reported by one progress source.

    Attributes:
        done: Units completed so far.
        total: Units expected in total, 0 while unknown.
    """

    done: int = 0
    total: int = 0

    def __post_init__(self) -> None:
        for name in ("done", "total"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"PhaseCounters.{name} must be an int, got {value!r}")
            if value < 0:
                raise ValueError(f"PhaseCounters.{name} must be >= 0, got {value}")

    def fraction(self) -> float:
        """done/total clamped to [0, 1]; 0.0 while total is unknown."""
        if self.total <= 0:
            return 0.0
        return min(1.0, self.done / float(self.total))


@dataclass(frozen=True, slots=True)
class PhaseSelection:
    """Result of `select_phase()`.

    Attributes:
        phase: Phase that drives the display.
        raw_fraction: done/total of that phase in [0, 1].
        is_terminal: True once the scan phase has caught up with its total.
    """

    phase: SyncPhase
    raw_fraction: float
    is_terminal: bool


def select_phase(
    has_local_source: bool,
    node: PhaseCounters,
    scan: PhaseCounters,
) -> PhaseSelection:
    """Pick the active phase and compute its raw fraction.

    The download phase is active while a local node is running and has either
    not reported a total yet or not caught up with it. Otherwise the scan
    phase is active, and it is terminal once ``scan.done >= scan.total``
    (including the 0/0 case where there is nothing to scan).

    Args:
        has_local_source: Whether a local node feeds the download phase.
        node: Latest node counters.
        scan: Latest scan counters.

    Returns:
        PhaseSelection for the current counters.
    """
    if has_local_source and (node.total == 0 or node.done < node.total):
        return PhaseSelection(
            phase=SyncPhase.DOWNLOADING,
            raw_fraction=node.fraction(),
            is_terminal=False,
        )

    return PhaseSelection(
        phase=SyncPhase.SCANNING,
        raw_fraction=scan.fraction(),
        is_terminal=scan.done >= scan.total,
    )
