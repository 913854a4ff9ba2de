from __future__ import annotations

import logging
from datetime import date

from .models import JournalEntry
from .storage import JournalRepository

logger = logging.getLogger(__name__)

DEFAULT_SLEEP_HOURS = 7.0
DEFAULT_STRESS = 3


class Journal:
    """One entry per calendar day; saving the same day again replaces it."""

    def __init__(self, repository: JournalRepository) -> None:
        self._repository = repository

    def entries(self) -> dict[str, JournalEntry]:
        return self._repository.load()

    def entry_for(self, day: date) -> JournalEntry | None:
        return self._repository.load().get(day.isoformat())

    def has_entry(self, day: date) -> bool:
        return self.entry_for(day) is not None

    def save_entry(
        self,
        day: date,
        text: str,
        mood: str | None = None,
        sleep: float | None = DEFAULT_SLEEP_HOURS,
        stress: int | None = DEFAULT_STRESS,
        today: date | None = None,
    ) -> JournalEntry:
        today = today or date.today()
        if day > today:
            raise ValueError("You cannot journal for the future.")
        if sleep is not None and not 0 <= sleep <= 24:
            raise ValueError(f"Sleep must be between 0 and 24 hours, got {sleep}")
        if stress is not None and not 1 <= stress <= 5:
            raise ValueError(f"Stress must be between 1 and 5, got {stress}")

        entry = JournalEntry(
            date=day,
            text=text,
            mood=mood or None,
            sleep=float(sleep) if sleep is not None else None,
            stress=stress,
        )
        entries = self._repository.load()
        entries[entry.key] = entry
        self._repository.save(entries)
        logger.debug("Saved journal entry for %s", entry.key)
        return entry

    def recent(self, limit: int = 3) -> list[JournalEntry]:
        entries = sorted(self._repository.load().values(), key=lambda e: e.date, reverse=True)
        return entries[: max(0, limit)]
