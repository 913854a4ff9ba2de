"""
Device-local persistence.

A small string-keyed key-value store (one JSON document per key) and the
typed repositories built on top of it. Every save replaces the whole
collection; there is no incremental append.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Iterable, Protocol

from .models import DAILY_MOODS, DailyMood, JournalEntry, SessionRecord

logger = logging.getLogger(__name__)

JOURNAL_KEY = "journal"
SESSIONS_KEY = "breathe_stats"
DAILY_MOOD_KEY = "daily_mood"
APP_KEYS: tuple[str, ...] = (JOURNAL_KEY, SESSIONS_KEY, DAILY_MOOD_KEY)


class StorageError(RuntimeError):
    """Raised when a value cannot be written to (or cleared from) storage."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStore:
    """In-process store used by tests and as a throwaway fallback."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def clear(self) -> None:
        self._values.clear()


class JsonFileStore:
    """
    Keeps each key in ``<directory>/<key>.json``.

    ``clear()`` only removes the files for *known_keys* and keys written
    through this store, so pointing the data directory at a folder shared
    with other files (the settings file, for one) is safe.
    """

    def __init__(self, directory: Path, known_keys: Iterable[str] = APP_KEYS) -> None:
        self._directory = Path(directory)
        self._keys: set[str] = set(known_keys)

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        self._keys.add(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            # 途中で落ちても壊れたファイルが残らないよう一時ファイル経由で置き換える
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Could not save {key}: {exc}") from exc

    def clear(self) -> None:
        try:
            for key in sorted(self._keys):
                self._path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not clear local data: {exc}") from exc

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"


class JournalRepository:
    """Journal entries keyed by calendar day."""

    def __init__(self, store: KeyValueStore, key: str = JOURNAL_KEY) -> None:
        self._store = store
        self._key = key

    def load(self) -> dict[str, JournalEntry]:
        payload = _load_json(self._store, self._key)
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring %s: expected an object, got %s", self._key, type(payload).__name__)
            return {}

        entries: dict[str, JournalEntry] = {}
        for key, raw in payload.items():
            if not isinstance(raw, dict):
                continue
            try:
                entry = JournalEntry.from_dict({"date": key, **raw})
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping journal entry %r: %s", key, exc)
                continue
            entries[entry.key] = entry
        return entries

    def save(self, entries: dict[str, JournalEntry]) -> None:
        payload = {key: entries[key].to_dict() for key in sorted(entries)}
        self._store.set(self._key, json.dumps(payload, ensure_ascii=False))


class SessionRecordRepository:
    """Append-only list of finished breathing sessions."""

    def __init__(self, store: KeyValueStore, key: str = SESSIONS_KEY) -> None:
        self._store = store
        self._key = key

    def load(self) -> list[SessionRecord]:
        payload = _load_json(self._store, self._key)
        if payload is None:
            return []
        if not isinstance(payload, list):
            logger.warning("Ignoring %s: expected a list, got %s", self._key, type(payload).__name__)
            return []

        records: list[SessionRecord] = []
        for index, raw in enumerate(payload):
            if not isinstance(raw, dict):
                continue
            try:
                records.append(SessionRecord.from_dict(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping session record %d: %s", index, exc)
        return records

    def save(self, records: list[SessionRecord]) -> None:
        payload = [record.to_dict() for record in records]
        self._store.set(self._key, json.dumps(payload, ensure_ascii=False))


class DailyMoodRepository:
    """Today's quick mood check-in; a value saved on another day reads as unset."""

    def __init__(self, store: KeyValueStore, key: str = DAILY_MOOD_KEY) -> None:
        self._store = store
        self._key = key

    def load(self) -> DailyMood | None:
        payload = _load_json(self._store, self._key)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            logger.warning("Ignoring %s: expected an object, got %s", self._key, type(payload).__name__)
            return None
        try:
            return DailyMood.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring %s: %s", self._key, exc)
            return None

    def mood_for(self, day: date) -> str | None:
        current = self.load()
        if current is None or current.date != day:
            return None
        return current.mood

    def save(self, day: date, mood: str) -> DailyMood:
        if mood not in DAILY_MOODS:
            raise ValueError(f"Unknown daily mood: {mood}")
        record = DailyMood(date=day, mood=mood)
        self._store.set(self._key, json.dumps(record.to_dict(), ensure_ascii=False))
        return record


def _load_json(store: KeyValueStore, key: str) -> object | None:
    raw = store.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed %s data: %s", key, exc)
        return None
