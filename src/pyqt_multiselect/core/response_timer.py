"""Coalescing single-shot timer for flushing pending actions."""

from typing import Callable, Optional
from PyQt6.QtCore import QTimer


class ResponseTimer:
    """
    Runs a handler on the next event-loop turn, once per burst of schedules.

    Unlike a debounce, scheduling again while a run is pending does not push
    the run back; it is simply absorbed.

    Usage:
        self._response_timer = ResponseTimer(handler=self.flush)

        def request_range(self, ...):
            ...
            self._response_timer.schedule()
    """

    def __init__(self, handler: Callable[[], None], delay_ms: int = 0):
        self._delay_ms = delay_ms
        self._handler = handler
        self._timer: Optional[QTimer] = None

    @property
    def is_pending(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def schedule(self):
        """Arm the timer unless a run is already pending."""
        if self.is_pending:
            return

        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)
        self._timer.start(self._delay_ms)

    def _fire(self):
        self._timer = None
        self._handler()

    def cancel(self):
        """Drop a pending run."""
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
