import pytest

from sanctuary.breathing import session
from sanctuary.breathing.techniques import PHASE_ORDER, TECHNIQUES, Technique, get_technique


def run_ticks(state: session.SessionState, count: int) -> list[session.SessionState]:
    seen = []
    for _ in range(count):
        state = session.tick(state)
        seen.append(state)
    return seen


def test_initial_state_starts_on_inhale() -> None:
    technique = TECHNIQUES["478"]
    state = session.initial_state(technique)
    assert state.phase == "inhale"
    assert state.remaining == technique.inhale
    assert state.cycles == 0
    assert state.running is False


@pytest.mark.parametrize("key", sorted(TECHNIQUES))
def test_full_cycle_returns_to_inhale_with_one_cycle(key: str) -> None:
    technique = TECHNIQUES[key]
    state = session.start(session.initial_state(technique))
    state = run_ticks(state, technique.cycle_seconds)[-1]
    assert state.phase == "inhale"
    assert state.cycles == 1
    assert state.remaining == technique.inhale


@pytest.mark.parametrize("key", sorted(TECHNIQUES))
def test_zero_duration_phases_are_never_entered(key: str) -> None:
    technique = TECHNIQUES[key]
    state = session.start(session.initial_state(technique))
    for current in run_ticks(state, technique.cycle_seconds * 5 + 3):
        assert technique.duration(current.phase) > 0
        assert current.remaining >= 1


def test_calm_breathing_skips_holds() -> None:
    state = session.start(session.initial_state(TECHNIQUES["calm"]))
    phases = [s.phase for s in run_ticks(state, 10)]
    assert phases == ["inhale"] * 3 + ["exhale"] * 6 + ["inhale"]


def test_box_breathing_visits_every_phase_in_order() -> None:
    state = session.start(session.initial_state(TECHNIQUES["box"]))
    visited = []
    for current in run_ticks(state, 16):
        if not visited or visited[-1] != current.phase:
            visited.append(current.phase)
    assert visited == ["inhale", "hold_in", "exhale", "hold_out", "inhale"]


def test_inhale_only_technique_counts_each_inhale_as_a_cycle() -> None:
    technique = Technique("solo", "Solo", inhale=2)
    state = session.start(session.initial_state(technique))
    state = run_ticks(state, 6)[-1]
    assert state.phase == "inhale"
    assert state.cycles == 3


def test_tick_while_paused_changes_nothing() -> None:
    state = session.initial_state(TECHNIQUES["box"])
    assert session.tick(state) is state


def test_pause_and_resume_match_uninterrupted_run() -> None:
    technique = TECHNIQUES["478"]
    uninterrupted = session.start(session.initial_state(technique))
    uninterrupted = run_ticks(uninterrupted, 13)[-1]

    state = session.start(session.initial_state(technique))
    state = run_ticks(state, 5)[-1]
    state = session.pause(state)
    # ticks that slip through while paused must not count
    state = run_ticks(state, 40)[-1]
    state = session.resume(state)
    state = run_ticks(state, 8)[-1]

    assert state == uninterrupted


def test_change_technique_mid_cycle_resets_everything() -> None:
    state = session.start(session.initial_state(TECHNIQUES["box"]))
    state = run_ticks(state, 21)[-1]
    assert state.cycles == 1

    switched = session.change_technique(state, TECHNIQUES["calm"])
    assert switched.technique == TECHNIQUES["calm"]
    assert switched.phase == "inhale"
    assert switched.remaining == TECHNIQUES["calm"].inhale
    assert switched.cycles == 0
    assert switched.running is False


def test_reset_returns_to_initial_state_of_same_technique() -> None:
    technique = TECHNIQUES["478"]
    state = session.start(session.initial_state(technique))
    state = run_ticks(state, 30)[-1]
    assert session.reset(state) == session.initial_state(technique)


def test_start_does_not_bump_cycle_count() -> None:
    state = session.start(session.initial_state(TECHNIQUES["box"]))
    assert state.running is True
    assert state.cycles == 0


def test_technique_requires_positive_inhale() -> None:
    with pytest.raises(ValueError):
        Technique("broken", "Broken", inhale=0, exhale=4)
    with pytest.raises(ValueError):
        Technique("negative", "Negative", inhale=4, hold_in=-1)


def test_next_phase_follows_fixed_order() -> None:
    technique = TECHNIQUES["box"]
    assert [technique.next_phase(p) for p in PHASE_ORDER] == ["hold_in", "exhale", "hold_out", "inhale"]
    assert TECHNIQUES["478"].next_phase("exhale") == "inhale"


def test_unknown_technique_key() -> None:
    with pytest.raises(KeyError):
        get_technique("square")
