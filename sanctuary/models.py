from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Literal


def utc_now_iso() -> str:
    # タイムゾーン付き ISO 文字列（秒精度）で現在時刻を取得するユーティリティ
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()


ChatRole = Literal["user", "assistant"]

JOURNAL_MOODS: tuple[str, ...] = ("Great", "Okay", "Low", "Anxious", "Dreamy")
SESSION_MOODS: tuple[str, ...] = ("Calm", "Better", "Same", "Sleepy", "Energized")
# 「今の気分」チェックイン用。旧データは選択肢の添字で保存されている
DAILY_MOODS: tuple[str, ...] = ("Great", "Okay", "Low", "Anxious", "Upset")

MOOD_EMOJI: dict[str, str] = {
    "Great": "😊",
    "Okay": "😐",
    "Low": "😔",
    "Anxious": "😰",
    "Dreamy": "☁️",
    "Upset": "😡",
    "Calm": "😌",
    "Better": "🙂",
    "Same": "😶",
    "Sleepy": "😴",
    "Energized": "⚡",
}


@dataclass(frozen=True)
class ChatMessage:
    """One chat turn. Conversations live in memory only and are never stored."""

    role: ChatRole
    content: str
    created_at: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True)
class SessionRecord:
    """A finished breathing session as written to storage."""

    technique: str
    cycles: int
    mood_after: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    date: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "technique": self.technique,
            "cycles": self.cycles,
            "moodAfter": self.mood_after,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "SessionRecord":
        mood = payload.get("moodAfter", payload.get("mood_after"))
        return cls(
            id=str(payload["id"]),
            date=str(payload.get("date", utc_now_iso())),
            technique=str(payload["technique"]),
            cycles=int(payload.get("cycles", 0)),
            mood_after=mood if isinstance(mood, str) and mood else None,
        )


@dataclass
class JournalEntry:
    date: date
    text: str = ""
    mood: str | None = None
    sleep: float | None = None
    stress: int | None = None

    @property
    def key(self) -> str:
        return self.date.isoformat()

    def to_dict(self) -> dict:
        return {
            "date": self.key,
            "text": self.text,
            "mood": self.mood,
            "sleep": self.sleep,
            "stress": self.stress,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "JournalEntry":
        mood = payload.get("mood")
        if isinstance(mood, dict):
            # 旧フォーマットは {"emoji": ..., "label": ...} で気分を保存していた
            mood = mood.get("label")
        if not isinstance(mood, str) or not mood:
            mood = None
        text = payload.get("text")
        return cls(
            date=date.fromisoformat(str(payload["date"])[:10]),
            text=text if isinstance(text, str) else "",
            mood=mood,
            sleep=_optional_float(payload.get("sleep")),
            stress=_optional_int(payload.get("stress")),
        )


def _optional_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class DailyMood:
    """The "how are you feeling right now?" check-in. Only today's value is shown."""

    date: date
    mood: str

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "mood": self.mood}

    @classmethod
    def from_dict(cls, payload: dict) -> "DailyMood":
        mood = payload["mood"]
        if isinstance(mood, int) and not isinstance(mood, bool) and 0 <= mood < len(DAILY_MOODS):
            mood = DAILY_MOODS[mood]
        if mood not in DAILY_MOODS:
            raise ValueError(f"Unknown daily mood: {mood!r}")
        return cls(date=date.fromisoformat(str(payload["date"])[:10]), mood=mood)
