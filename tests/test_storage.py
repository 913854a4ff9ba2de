import json
from datetime import date

import pytest

from sanctuary.models import DailyMood, JournalEntry, SessionRecord
from sanctuary.storage import (
    DAILY_MOOD_KEY,
    JOURNAL_KEY,
    SESSIONS_KEY,
    DailyMoodRepository,
    JournalRepository,
    JsonFileStore,
    MemoryStore,
    SessionRecordRepository,
    StorageError,
)


def test_json_file_store_round_trip(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "data")
    assert store.get("journal") is None
    store.set("journal", '{"a": 1}')
    assert store.get("journal") == '{"a": 1}'
    assert (tmp_path / "data" / "journal.json").exists()
    assert not list((tmp_path / "data").glob("*.tmp"))


def test_json_file_store_clear(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    store.set("journal", "{}")
    store.set("breathe_stats", "[]")
    store.clear()
    assert store.get("journal") is None
    assert store.get("breathe_stats") is None


def test_json_file_store_clear_keeps_unrelated_files(tmp_path) -> None:
    (tmp_path / "sanctuary_settings.json").write_text('{"app": {}}', encoding="utf-8")
    (tmp_path / "notes.json").write_text("[]", encoding="utf-8")
    store = JsonFileStore(tmp_path)
    store.set("journal", "{}")
    store.set("daily_mood", "{}")

    store.clear()

    assert sorted(p.name for p in tmp_path.glob("*.json")) == ["notes.json", "sanctuary_settings.json"]


def test_json_file_store_clear_removes_known_keys_from_earlier_runs(tmp_path) -> None:
    (tmp_path / "breathe_stats.json").write_text("[]", encoding="utf-8")
    JsonFileStore(tmp_path).clear()
    assert not (tmp_path / "breathe_stats.json").exists()


def test_json_file_store_clear_removes_keys_it_wrote(tmp_path) -> None:
    store = JsonFileStore(tmp_path, known_keys=())
    store.set("scratch", "1")
    store.clear()
    assert store.get("scratch") is None


def test_json_file_store_write_failure(tmp_path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory", encoding="utf-8")
    store = JsonFileStore(blocker)
    with pytest.raises(StorageError):
        store.set("journal", "{}")


def test_json_file_store_rejects_path_keys(tmp_path) -> None:
    with pytest.raises(ValueError):
        JsonFileStore(tmp_path).set("../escape", "{}")


def test_missing_keys_load_as_empty() -> None:
    store = MemoryStore()
    assert JournalRepository(store).load() == {}
    assert SessionRecordRepository(store).load() == []


@pytest.mark.parametrize("raw", ["{not json", "[]", "42", ""])
def test_malformed_journal_loads_as_empty(raw: str) -> None:
    store = MemoryStore({JOURNAL_KEY: raw})
    assert JournalRepository(store).load() == {}


@pytest.mark.parametrize("raw", ["[{broken", "{}", "null"])
def test_malformed_sessions_load_as_empty(raw: str) -> None:
    store = MemoryStore({SESSIONS_KEY: raw})
    assert SessionRecordRepository(store).load() == []


def test_bad_items_are_skipped() -> None:
    payload = [
        {"id": 1, "date": "2026-10-01T09:00:00Z", "technique": "Box Breathing", "cycles": 3, "moodAfter": "Calm"},
        {"date": "2026-10-02T09:00:00Z", "cycles": 2},
        "garbage",
    ]
    records = SessionRecordRepository(MemoryStore({SESSIONS_KEY: json.dumps(payload)})).load()
    assert records == [
        SessionRecord(
            id="1",
            date="2026-10-01T09:00:00Z",
            technique="Box Breathing",
            cycles=3,
            mood_after="Calm",
        )
    ]


def test_journal_accepts_legacy_mood_objects() -> None:
    payload = {
        "2026-10-18": {
            "text": "Long walk",
            "mood": {"emoji": "😊", "label": "Great"},
            "sleep": 7,
            "stress": 2,
            "date": "2026-10-18",
        },
        "not-a-date": {"text": "?"},
    }
    entries = JournalRepository(MemoryStore({JOURNAL_KEY: json.dumps(payload)})).load()
    assert list(entries) == ["2026-10-18"]
    entry = entries["2026-10-18"]
    assert entry.mood == "Great"
    assert entry.sleep == 7.0
    assert entry.stress == 2


def test_journal_round_trip(tmp_path) -> None:
    repository = JournalRepository(JsonFileStore(tmp_path))
    entry = JournalEntry(date=date(2026, 10, 19), text="Quiet day", mood="Okay", sleep=6.5, stress=3)
    repository.save({entry.key: entry})
    assert repository.load() == {"2026-10-19": entry}


def test_daily_mood_is_only_returned_for_its_day() -> None:
    repository = DailyMoodRepository(MemoryStore())
    today = date(2024, 5, 10)
    assert repository.mood_for(today) is None

    assert repository.save(today, "Okay") == DailyMood(date=today, mood="Okay")
    assert repository.mood_for(today) == "Okay"
    assert repository.mood_for(date(2024, 5, 11)) is None


def test_daily_mood_accepts_legacy_index() -> None:
    store = MemoryStore({DAILY_MOOD_KEY: json.dumps({"date": "2024-05-10T08:30:00.000Z", "mood": 3})})
    assert DailyMoodRepository(store).mood_for(date(2024, 5, 10)) == "Anxious"


def test_daily_mood_rejects_unknown_mood() -> None:
    store = MemoryStore()
    with pytest.raises(ValueError):
        DailyMoodRepository(store).save(date(2024, 5, 10), "Dreamy")
    assert store.get(DAILY_MOOD_KEY) is None


@pytest.mark.parametrize(
    "raw",
    ["not json", "[]", '{"date": "2024-05-10"}', '{"date": "2024-05-10", "mood": 9}', '{"date": "x", "mood": "Low"}'],
)
def test_malformed_daily_mood_loads_as_unset(raw: str) -> None:
    repository = DailyMoodRepository(MemoryStore({DAILY_MOOD_KEY: raw}))
    assert repository.load() is None
