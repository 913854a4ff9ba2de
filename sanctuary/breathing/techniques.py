from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Phase = Literal["inhale", "hold_in", "exhale", "hold_out"]

# 1 サイクルの固定順序。長さ 0 のフェーズは飛ばす
PHASE_ORDER: tuple[Phase, ...] = ("inhale", "hold_in", "exhale", "hold_out")

PHASE_INSTRUCTIONS: dict[str, str] = {
    "inhale": "Breathe In",
    "hold_in": "Hold",
    "exhale": "Breathe Out",
    "hold_out": "Hold",
}


@dataclass(frozen=True)
class Technique:
    key: str
    name: str
    inhale: int
    hold_in: int = 0
    exhale: int = 0
    hold_out: int = 0

    def __post_init__(self) -> None:
        for phase in PHASE_ORDER:
            value = getattr(self, phase)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{self.key}: {phase} must be a non-negative whole number of seconds")
        if self.inhale <= 0:
            raise ValueError(f"{self.key}: inhale must last at least one second")

    def duration(self, phase: Phase) -> int:
        return getattr(self, phase)

    @property
    def phases(self) -> tuple[Phase, ...]:
        return tuple(phase for phase in PHASE_ORDER if self.duration(phase) > 0)

    @property
    def cycle_seconds(self) -> int:
        return sum(self.duration(phase) for phase in PHASE_ORDER)

    def next_phase(self, phase: Phase) -> Phase:
        index = PHASE_ORDER.index(phase)
        for offset in range(1, len(PHASE_ORDER) + 1):
            candidate = PHASE_ORDER[(index + offset) % len(PHASE_ORDER)]
            if self.duration(candidate) > 0:
                return candidate
        return "inhale"


TECHNIQUES: dict[str, Technique] = {
    "box": Technique("box", "Box Breathing", inhale=4, hold_in=4, exhale=4, hold_out=4),
    "478": Technique("478", "4-7-8 Technique", inhale=4, hold_in=7, exhale=8),
    "calm": Technique("calm", "Calm Breathing", inhale=4, exhale=6),
}

DEFAULT_TECHNIQUE_KEY = "box"


def get_technique(key: str) -> Technique:
    try:
        return TECHNIQUES[key]
    except KeyError:
        raise KeyError(f"Unknown breathing technique: {key}") from None
