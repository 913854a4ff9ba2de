"""
Wellness analytics.

Everything here is a pure function of the journal map and the session-record
list, recomputed on every call. Collections are personal-sized, so there is
no caching.
"""

from __future__ import annotations

import statistics
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Literal, Mapping, Sequence

from .models import JournalEntry, SessionRecord

TimeRange = Literal["week", "month", "year"]

MOOD_SCALE: dict[str, int] = {"Great": 5, "Okay": 3, "Dreamy": 3, "Low": 2, "Anxious": 1}
MOOD_LABELS: dict[int, str] = {5: "Great", 4: "Good", 3: "Okay", 2: "Low", 1: "Anxious"}

TIME_RANGES: tuple[str, ...] = ("week", "month", "year")
RANGE_DAYS: dict[str, int] = {"week": 7, "month": 30}
YEAR_MONTHS = 12
EXCERPT_LENGTH = 280


@dataclass(frozen=True)
class AggregateStats:
    total_entries: int = 0
    average_mood: float | None = None
    average_mood_label: str | None = None
    current_streak: int = 0
    total_sessions: int = 0
    total_cycles: int = 0
    top_session_mood: str | None = None


@dataclass(frozen=True)
class SeriesBucket:
    key: str
    label: str
    mood: float | None = None
    sleep: float | None = None
    stress: float | None = None
    mood_label: str | None = None


@dataclass(frozen=True)
class ConsistencyCell:
    day: date
    has_entry: bool
    is_future: bool


def mood_score(label: str | None) -> int | None:
    if not label:
        return None
    return MOOD_SCALE.get(label)


def mood_label_for(value: float | None) -> str | None:
    if value is None:
        return None
    # 四捨五入（0.5 は切り上げ）して最も近いラベルに寄せる
    return MOOD_LABELS.get(int(value + 0.5))


def average_mood(entries: Iterable[JournalEntry]) -> float | None:
    scores = [score for score in (mood_score(e.mood) for e in entries) if score is not None]
    if not scores:
        return None
    return statistics.fmean(scores)


def current_streak(days: Iterable[date], today: date) -> int:
    """Consecutive journaled days ending today or yesterday."""

    ordered = sorted(set(days), reverse=True)
    if not ordered:
        return 0
    if ordered[0] not in (today, today - timedelta(days=1)):
        return 0

    streak = 1
    for newer, older in zip(ordered, ordered[1:]):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


def most_frequent(values: Iterable[str | None]) -> str | None:
    """Most common non-empty value; ties go to the alphabetically first value."""

    counts = Counter(value for value in values if value)
    if not counts:
        return None
    return min(counts.items(), key=lambda item: (-item[1], item[0]))[0]


def breathing_stats(records: Sequence[SessionRecord]) -> tuple[int, int, str | None]:
    total_cycles = sum(record.cycles for record in records)
    return len(records), total_cycles, most_frequent(record.mood_after for record in records)


def compute_stats(
    journal: Mapping[str, JournalEntry],
    records: Sequence[SessionRecord],
    today: date | None = None,
) -> AggregateStats:
    today = today or date.today()
    entries = list(journal.values())
    avg = average_mood(entries)
    total_sessions, total_cycles, top_mood = breathing_stats(records)
    return AggregateStats(
        total_entries=len(entries),
        average_mood=avg,
        average_mood_label=mood_label_for(avg),
        current_streak=current_streak((e.date for e in entries), today),
        total_sessions=total_sessions,
        total_cycles=total_cycles,
        top_session_mood=top_mood,
    )


def build_series(
    journal: Mapping[str, JournalEntry],
    time_range: TimeRange,
    today: date | None = None,
) -> list[SeriesBucket]:
    today = today or date.today()
    if time_range in RANGE_DAYS:
        return daily_series(journal, RANGE_DAYS[time_range], today)
    if time_range == "year":
        return monthly_series(journal.values(), YEAR_MONTHS, today)
    raise ValueError(f"Unknown time range: {time_range}")


def daily_series(journal: Mapping[str, JournalEntry], days: int, today: date) -> list[SeriesBucket]:
    buckets: list[SeriesBucket] = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        entry = journal.get(day.isoformat())
        label = f"{day:%b} {day.day}"
        if entry is None:
            buckets.append(SeriesBucket(key=day.isoformat(), label=label))
            continue
        score = mood_score(entry.mood)
        buckets.append(
            SeriesBucket(
                key=day.isoformat(),
                label=label,
                mood=float(score) if score is not None else None,
                sleep=entry.sleep,
                stress=float(entry.stress) if entry.stress is not None else None,
                mood_label=entry.mood if score is not None else None,
            )
        )
    return buckets


def monthly_series(entries: Iterable[JournalEntry], months: int, today: date) -> list[SeriesBucket]:
    by_month: dict[tuple[int, int], list[JournalEntry]] = {}
    for entry in entries:
        by_month.setdefault((entry.date.year, entry.date.month), []).append(entry)

    buckets: list[SeriesBucket] = []
    for year, month in _trailing_months(today, months):
        month_entries = by_month.get((year, month), [])
        mood = _mean_or_none(mood_score(e.mood) for e in month_entries)
        buckets.append(
            SeriesBucket(
                key=f"{year:04d}-{month:02d}",
                label=f"{date(year, month, 1):%b}",
                mood=mood,
                sleep=_mean_or_none(e.sleep for e in month_entries),
                stress=_mean_or_none(e.stress for e in month_entries),
                mood_label=mood_label_for(mood),
            )
        )
    return buckets


def consistency_map(
    journal: Mapping[str, JournalEntry],
    today: date | None = None,
    weeks: int = 52,
) -> list[list[ConsistencyCell]]:
    """Sunday-first week columns, oldest first, the last one holding today."""

    today = today or date.today()
    days_since_sunday = (today.weekday() + 1) % 7
    first_sunday = today - timedelta(days=days_since_sunday + 7 * (weeks - 1))
    columns: list[list[ConsistencyCell]] = []
    for week in range(weeks):
        start = first_sunday + timedelta(days=7 * week)
        column = []
        for offset in range(7):
            day = start + timedelta(days=offset)
            column.append(
                ConsistencyCell(
                    day=day,
                    has_entry=day.isoformat() in journal,
                    is_future=day > today,
                )
            )
        columns.append(column)
    return columns


def reflection_summary(
    journal: Mapping[str, JournalEntry],
    records: Sequence[SessionRecord],
    today: date | None = None,
    window_days: int = 7,
) -> dict:
    """Metrics plus a short journal excerpt, shaped for the reflection prompt."""

    today = today or date.today()
    since = today - timedelta(days=window_days - 1)
    recent = [e for e in journal.values() if since <= e.date <= today]
    recent_sessions = [r for r in records if (_record_day(r) or date.min) >= since]
    stats = compute_stats(journal, records, today)
    avg_mood = average_mood(recent)

    latest = max(journal.values(), key=lambda e: e.date, default=None)
    excerpt = ""
    if latest is not None and latest.text.strip():
        excerpt = " ".join(latest.text.split())[:EXCERPT_LENGTH]

    return {
        "metrics": {
            "window_days": window_days,
            "journal_entries": len(recent),
            "average_sleep_hours": _round_or_none(_mean_or_none(e.sleep for e in recent)),
            "average_stress": _round_or_none(_mean_or_none(e.stress for e in recent)),
            "average_mood": _round_or_none(avg_mood),
            "average_mood_label": mood_label_for(avg_mood),
            "journal_streak_days": stats.current_streak,
            "breathing_sessions": len(recent_sessions),
            "breathing_cycles": sum(r.cycles for r in recent_sessions),
            "most_common_mood_after_breathing": stats.top_session_mood,
        },
        "journal_excerpt": excerpt,
    }


def _trailing_months(today: date, months: int) -> list[tuple[int, int]]:
    index = today.year * 12 + (today.month - 1)
    return [(i // 12, i % 12 + 1) for i in range(index - months + 1, index + 1)]


def _mean_or_none(values: Iterable[float | int | None]) -> float | None:
    valid = [float(v) for v in values if v is not None]
    if not valid:
        return None
    return round(statistics.fmean(valid), 1)


def _round_or_none(value: float | None) -> float | None:
    return round(value, 1) if value is not None else None


def _record_day(record: SessionRecord) -> date | None:
    try:
        return datetime.fromisoformat(record.date.replace("Z", "+00:00")).date()
    except ValueError:
        return None
