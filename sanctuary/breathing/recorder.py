from __future__ import annotations

import logging
from typing import Callable

from ..models import SESSION_MOODS, SessionRecord, utc_now_iso
from ..storage import SessionRecordRepository
from .session import SessionState

logger = logging.getLogger(__name__)


class EmptySessionError(ValueError):
    """Raised when finishing a session that has not completed a single cycle."""


class SessionRecorder:
    """Turns a finished breathing session into a persisted ``SessionRecord``."""

    def __init__(
        self,
        repository: SessionRecordRepository,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._repository = repository
        self._clock = clock

    def finish(self, state: SessionState, mood_after: str | None = None) -> SessionRecord:
        if state.cycles < 1:
            raise EmptySessionError("Complete at least one breathing cycle before saving.")
        if mood_after is not None and mood_after not in SESSION_MOODS:
            raise ValueError(f"Unknown post-session mood: {mood_after}")

        record = SessionRecord(
            technique=state.technique.name,
            cycles=state.cycles,
            mood_after=mood_after,
            date=self._clock(),
        )
        records = self._repository.load()
        records.append(record)
        # StorageError はそのまま呼び出し側へ。セッション状態は呼び出し側が保持している
        self._repository.save(records)
        logger.info("Recorded %s session with %d cycle(s)", record.technique, record.cycles)
        return record

    def records(self) -> list[SessionRecord]:
        return self._repository.load()
