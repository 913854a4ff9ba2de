"""
Phase state machine for guided breathing.

``SessionState`` is an immutable value; every operation takes a state and
returns the next one, so whoever owns the state (the controller, a test)
decides when it changes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .techniques import Phase, Technique


@dataclass(frozen=True)
class SessionState:
    technique: Technique
    phase: Phase
    remaining: int
    cycles: int = 0
    running: bool = False


def initial_state(technique: Technique) -> SessionState:
    return SessionState(
        technique=technique,
        phase="inhale",
        remaining=technique.inhale,
        cycles=0,
        running=False,
    )


def start(state: SessionState) -> SessionState:
    if state.running:
        return state
    return replace(state, running=True)


def pause(state: SessionState) -> SessionState:
    if not state.running:
        return state
    return replace(state, running=False)


# resume と start は同じ遷移。UI 上の呼び名が違うだけ
resume = start


def reset(state: SessionState) -> SessionState:
    return initial_state(state.technique)


def change_technique(state: SessionState, technique: Technique) -> SessionState:
    """Switch technique; nothing from the current cycle carries over."""

    return initial_state(technique)


def tick(state: SessionState) -> SessionState:
    """Advance one second. Ticks that arrive while paused are ignored."""

    if not state.running:
        return state
    if state.remaining > 1:
        return replace(state, remaining=state.remaining - 1)

    technique = state.technique
    next_phase = technique.next_phase(state.phase)
    cycles = state.cycles
    if next_phase == "inhale":
        cycles += 1
    return replace(
        state,
        phase=next_phase,
        remaining=technique.duration(next_phase),
        cycles=cycles,
    )
