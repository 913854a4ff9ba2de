from __future__ import annotations

import logging

from PySide6.QtCore import QObject, Signal

from ..models import SessionRecord
from . import session
from .clock import SessionClock
from .recorder import SessionRecorder
from .session import SessionState
from .techniques import DEFAULT_TECHNIQUE_KEY, Technique, get_technique

logger = logging.getLogger(__name__)


class BreathingController(QObject):
    """
    Owns the live ``SessionState`` and the clock that drives it.

    The clock runs exactly while the state is running; every other transition
    stops it first so no tick can land on a paused, reset or replaced session.
    """

    state_changed = Signal(object)  # SessionState
    session_recorded = Signal(object)  # SessionRecord

    def __init__(
        self,
        recorder: SessionRecorder,
        technique: Technique | None = None,
        clock: SessionClock | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._recorder = recorder
        self._clock = clock or SessionClock(self)
        self._clock.ticked.connect(self._handle_tick)
        self._state = session.initial_state(technique or get_technique(DEFAULT_TECHNIQUE_KEY))

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def clock(self) -> SessionClock:
        return self._clock

    def start(self) -> None:
        self._set_state(session.start(self._state))
        self._clock.start()

    def pause(self) -> None:
        self._clock.stop()
        self._set_state(session.pause(self._state))

    def resume(self) -> None:
        self._set_state(session.resume(self._state))
        self._clock.start()

    def toggle(self) -> None:
        if self._state.running:
            self.pause()
        else:
            self.start()

    def reset(self) -> None:
        self._clock.stop()
        self._set_state(session.reset(self._state))

    def select_technique(self, key: str) -> None:
        technique = get_technique(key)
        self._clock.stop()
        self._set_state(session.change_technique(self._state, technique))

    def finish(self, mood_after: str | None = None) -> SessionRecord:
        """
        Persist the current session and start over.

        EmptySessionError and StorageError propagate; in both cases the
        (paused) session is left exactly as it was so the user can retry.
        """

        self.pause()
        record = self._recorder.finish(self._state, mood_after)
        self._set_state(session.reset(self._state))
        self.session_recorded.emit(record)
        return record

    # Internal helpers ---------------------------------------------------
    def _handle_tick(self) -> None:
        if not self._state.running:
            logger.debug("Ignoring tick for a session that is not running")
            return
        self._set_state(session.tick(self._state))

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        self.state_changed.emit(state)
