"""Time-remaining estimation for the sync progress line.

The estimate is a linear extrapolation from the two most recent accepted
fractions and the wall time between them. The only smoothing is a single-step
dampening: when a new projection is more than twice the previous one, the two
are averaged. This keeps short stalls in the sources from making the ETA jump.

The algorithm is split into small pure functions operating on an explicit
`EstimateState` record so each step can be tested without a controller.
`EstimateTracker` owns one state record plus a clock and is what the
controller uses.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from syncprogress.core.messages import ProgressMessages
from syncprogress.core.utils.logging import get_logger

logger = get_logger(__name__)

# Longest gap between two updates that is taken into account (2 hours).
MAX_ESTIMATE_SECONDS: float = 2 * 60 * 60
SECONDS_IN_MINUTE: float = 60.0
# Smallest projection kept in the state; matches the "1 sec." shown for 0.
MIN_ESTIMATE_SECONDS: float = 1.0

Clock = Callable[[], float]


@dataclass
class EstimateState:
    """Mutable smoothing state carried between two `advance_estimate()` calls.

    Attributes:
        last_update_timestamp: Clock reading of the previous call.
        last_fraction: Accepted fraction before the most recent accepted one.
        last_estimate_seconds: Previously stored (smoothed) projection.
        current_fraction: Most recently accepted fraction.
        eta_text: Rendered ETA of the most recent accepted fraction.
    """

    last_update_timestamp: float = 0.0
    last_fraction: float = 0.0
    last_estimate_seconds: float = 0.0
    current_fraction: float = 0.0
    eta_text: str = ""


@dataclass(frozen=True, slots=True)
class EstimateResult:
    """Output of `advance_estimate()`.

    Attributes:
        fraction: Smoothed (never decreasing) fraction.
        eta_text: Rendered ETA, empty while nothing has progressed.
        estimate_seconds: Stored projection in seconds, None when not recomputed.
        advanced: True when the raw fraction was accepted.
    """

    fraction: float
    eta_text: str
    estimate_seconds: Optional[float] = None
    advanced: bool = False


def elapsed_seconds(
    state: EstimateState,
    now: float,
    max_seconds: float = MAX_ESTIMATE_SECONDS,
) -> float:
    """Seconds since the previous call, clamped to [0, max_seconds].

    Always moves `state.last_update_timestamp` to `now`.
    """
    elapsed = now - state.last_update_timestamp
    state.last_update_timestamp = now
    return max(0.0, min(float(max_seconds), elapsed))


def project_seconds(
    elapsed: float,
    fraction: float,
    last_fraction: float,
    last_estimate_seconds: float,
) -> float:
    """Extrapolate the time remaining from the latest rate of progress.

    A rate of zero has no meaningful projection; the previous estimate is
    returned unchanged in that case.
    """
    rate = fraction - last_fraction
    if rate <= 0.0:
        logger.debug(
            f"zero progress rate (fraction={fraction}, last_fraction={last_fraction}), "
            f"keeping estimate {last_estimate_seconds}"
        )
        return last_estimate_seconds
    return elapsed / rate


def dampen_estimate(estimate_seconds: float, last_estimate_seconds: float) -> float:
    """Average with the previous estimate when the new one more than doubles it."""
    if last_estimate_seconds > 0.0 and estimate_seconds / last_estimate_seconds > 2.0:
        return (estimate_seconds + last_estimate_seconds) / 2.0
    return estimate_seconds


def format_estimate(estimate_seconds: float, messages: Optional[ProgressMessages] = None) -> str:
    """Render seconds as the ETA suffix, e.g. " Estimate time: 4 min."."""
    messages = messages or ProgressMessages()
    if estimate_seconds > SECONDS_IN_MINUTE:
        value = math.ceil(estimate_seconds / SECONDS_IN_MINUTE)
        unit = messages.minutes_unit
    else:
        value = math.ceil(estimate_seconds) if estimate_seconds > 0.0 else 1
        unit = messages.seconds_unit
    return messages.estimate.format(value=f"{value} {unit}")


def advance_estimate(
    state: EstimateState,
    raw_fraction: float,
    now: float,
    *,
    max_seconds: float = MAX_ESTIMATE_SECONDS,
    messages: Optional[ProgressMessages] = None,
) -> EstimateResult:
    """Feed one raw fraction into the tracker state.

    Steps:
        1. Measure elapsed time since the previous call (always).
        2. Ignore fractions that do not exceed the current one; the previous
           fraction and ETA text are returned unchanged.
        3. Project the remaining time from the rate since the previous
           accepted fraction. A zero projection keeps the previous estimate
           (or MIN_ESTIMATE_SECONDS before the first one), so the stored
           estimate is never 0 once something has progressed.
        4. Dampen large upward jumps and store the result.
        5. Render the ETA text.

    Args:
        state: Tracker state, mutated in place.
        raw_fraction: Fraction of the active phase in [0, 1].
        now: Current clock reading in seconds.
        max_seconds: Upper bound on the elapsed time taken into account.
        messages: Templates used to render the ETA.

    Returns:
        EstimateResult with the smoothed fraction and ETA text.
    """
    elapsed = elapsed_seconds(state, now, max_seconds)

    if raw_fraction <= state.current_fraction:
        return EstimateResult(fraction=state.current_fraction, eta_text=state.eta_text)

    state.last_fraction = state.current_fraction
    state.current_fraction = raw_fraction

    if raw_fraction <= 0.0:
        state.eta_text = ""
        return EstimateResult(fraction=raw_fraction, eta_text="", advanced=True)

    estimate = project_seconds(elapsed, raw_fraction, state.last_fraction, state.last_estimate_seconds)
    if estimate <= 0.0:
        # No time passed since the previous update (same clock tick).
        estimate = state.last_estimate_seconds if state.last_estimate_seconds > 0.0 else MIN_ESTIMATE_SECONDS
    estimate = dampen_estimate(estimate, state.last_estimate_seconds)
    state.last_estimate_seconds = estimate

    state.eta_text = format_estimate(estimate, messages)
    return EstimateResult(
        fraction=raw_fraction,
        eta_text=state.eta_text,
        estimate_seconds=estimate,
        advanced=True,
    )


class EstimateTracker:
    """Owns an `EstimateState` and the clock used to timestamp updates.

    The state is created once per tracker; there is no reset. A fresh tracker
    is built for every sync attempt.
    """

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        max_seconds: float = MAX_ESTIMATE_SECONDS,
        messages: Optional[ProgressMessages] = None,
    ) -> None:
        self._clock: Clock = clock or time.monotonic
        self._max_seconds = float(max_seconds)
        self._messages = messages or ProgressMessages()
        self.state = EstimateState(last_update_timestamp=self._clock())

    @property
    def fraction(self) -> float:
        return self.state.current_fraction

    @property
    def eta_text(self) -> str:
        return self.state.eta_text

    def advance(self, raw_fraction: float, now: Optional[float] = None) -> EstimateResult:
        """Advance with `raw_fraction`, reading the clock unless `now` is given."""
        if now is None:
            now = self._clock()
        return advance_estimate(
            self.state,
            raw_fraction,
            now,
            max_seconds=self._max_seconds,
            messages=self._messages,
        )
