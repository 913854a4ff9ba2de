from __future__ import annotations

from PySide6.QtCore import QObject, QTimer, Signal


class SessionClock(QObject):
    """
    One-second metronome for a breathing session.

    Emits ``ticked`` once per interval while started. ``stop()`` cancels the
    timer on the spot; a later ``start()`` waits a full interval before the
    next tick, so paused time is never made up for.
    """

    ticked = Signal()

    def __init__(self, parent: QObject | None = None, interval_ms: int = 1_000) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setInterval(max(1, interval_ms))
        self._timer.timeout.connect(self._handle_timeout)

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def start(self) -> None:
        if self._timer.isActive():
            return
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def _handle_timeout(self) -> None:
        # stop() 直後にキューに残ったイベントが届いても転送しない
        if not self._timer.isActive():
            return
        self.ticked.emit()
