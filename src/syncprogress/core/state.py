"""Psygnal-powered progress state for the loading screen."""

from __future__ import annotations

from psygnal import Signal

from syncprogress.core.utils.logging import get_logger

logger = get_logger(__name__)


class ProgressState:
    """Progress fraction, status message and creation-mode flag.

    The fraction is a ratchet: it only ever increases. Writes that would keep
    it equal or lower it are ignored. Message and flag writes are
    de-duplicated. Every accepted write emits exactly one signal.

    Attributes:
        fraction: Progress value between 0.0 and 1.0, never decreasing.
        message: Status line shown next to the progress bar.
        is_creating: Whether the sync is part of initial setup.

    Signals:
        progress_changed: Emitted with the new fraction (float).
        message_changed: Emitted with the new message (str).
        is_creating_changed: Emitted with the new flag (bool).
    """

    progress_changed = Signal(float)
    message_changed = Signal(str)
    is_creating_changed = Signal(bool)

    def __init__(self, *, is_creating: bool = False) -> None:
        self._fraction: float = 0.0
        self._message: str = ""
        self._is_creating: bool = is_creating

    @property
    def fraction(self) -> float:
        return self._fraction

    @property
    def message(self) -> str:
        return self._message

    @property
    def is_creating(self) -> bool:
        return self._is_creating

    def set_fraction(self, value: float) -> bool:
        """Accept `value` if it is strictly greater than the current fraction.

        Returns:
            True if the fraction changed and progress_changed was emitted.
        """
        if not value > self._fraction:
            return False
        self._fraction = float(value)
        self.progress_changed.emit(self._fraction)
        return True

    def set_message(self, text: str) -> bool:
        """Replace the message if it differs; returns True when emitted."""
        if text == self._message:
            return False
        self._message = text
        self.message_changed.emit(text)
        return True

    def set_is_creating(self, value: bool) -> bool:
        """Toggle creation mode; returns True when emitted."""
        value = bool(value)
        if value == self._is_creating:
            return False
        self._is_creating = value
        logger.info(f"--> emit is_creating_changed: {value}")
        self.is_creating_changed.emit(value)
        return True
