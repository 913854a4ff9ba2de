import pytest
from PySide6.QtCore import QEventLoop, QTimer

from sanctuary.breathing.clock import SessionClock
from sanctuary.breathing.controller import BreathingController
from sanctuary.breathing.recorder import EmptySessionError, SessionRecorder
from sanctuary.breathing.techniques import TECHNIQUES
from sanctuary.storage import SessionRecordRepository, StorageError

from .conftest import FailingStore, FakeClock


def make_controller(repository: SessionRecordRepository, clock: FakeClock, key: str = "box") -> BreathingController:
    return BreathingController(SessionRecorder(repository), technique=TECHNIQUES[key], clock=clock)


def spin(ms: int) -> None:
    loop = QEventLoop()
    QTimer.singleShot(ms, loop.quit)
    loop.exec()


def test_clock_emits_only_while_started(qapp) -> None:
    clock = SessionClock(interval_ms=10)
    ticks = []
    clock.ticked.connect(lambda: ticks.append(1))

    clock.start()
    assert clock.is_running
    spin(120)
    clock.stop()
    assert not clock.is_running
    seen = len(ticks)
    assert seen > 0

    spin(80)
    assert len(ticks) == seen


def test_clock_default_interval_is_one_second(qapp) -> None:
    assert SessionClock().interval_ms == 1000


def test_ticks_drive_state_while_running(session_repository, fake_clock) -> None:
    controller = make_controller(session_repository, fake_clock)
    controller.start()
    assert fake_clock.is_running
    fake_clock.fire(16)
    assert controller.state.cycles == 1
    assert controller.state.phase == "inhale"


def test_pause_stops_clock_and_ignores_stray_ticks(session_repository, fake_clock) -> None:
    controller = make_controller(session_repository, fake_clock)
    controller.start()
    fake_clock.fire(3)
    controller.pause()
    paused = controller.state

    assert not fake_clock.is_running
    fake_clock.fire(10)
    assert controller.state == paused

    controller.resume()
    fake_clock.fire(1)
    assert controller.state.phase == "hold_in"
    assert controller.state.remaining == 4


def test_technique_change_stops_clock_and_resets(session_repository, fake_clock) -> None:
    controller = make_controller(session_repository, fake_clock)
    controller.start()
    fake_clock.fire(20)
    controller.select_technique("478")

    assert not fake_clock.is_running
    state = controller.state
    assert state.technique.key == "478"
    assert (state.phase, state.remaining, state.cycles, state.running) == ("inhale", 4, 0, False)
    fake_clock.fire(5)
    assert controller.state == state


def test_reset_discards_progress(session_repository, fake_clock) -> None:
    controller = make_controller(session_repository, fake_clock)
    controller.start()
    fake_clock.fire(40)
    controller.reset()
    assert controller.state.cycles == 0
    assert not controller.state.running
    assert not fake_clock.is_running


def test_state_changed_signal(session_repository, fake_clock) -> None:
    controller = make_controller(session_repository, fake_clock)
    states = []
    controller.state_changed.connect(states.append)
    controller.start()
    fake_clock.fire(2)
    assert [s.remaining for s in states] == [4, 3, 2]


def test_finish_records_and_resets(session_repository, fake_clock) -> None:
    controller = make_controller(session_repository, fake_clock, key="calm")
    recorded = []
    controller.session_recorded.connect(recorded.append)
    controller.start()
    fake_clock.fire(20)

    record = controller.finish("Calm")

    assert record.cycles == 2
    assert record.technique == "Calm Breathing"
    assert recorded == [record]
    assert session_repository.load() == [record]
    assert controller.state.cycles == 0
    assert not fake_clock.is_running


def test_finish_without_cycles_writes_nothing(session_repository, fake_clock) -> None:
    controller = make_controller(session_repository, fake_clock)
    controller.start()
    fake_clock.fire(3)
    with pytest.raises(EmptySessionError):
        controller.finish("Calm")
    assert session_repository.load() == []
    assert controller.state.remaining == 1


def test_failed_save_keeps_session(fake_clock) -> None:
    controller = make_controller(SessionRecordRepository(FailingStore()), fake_clock)
    controller.start()
    fake_clock.fire(17)
    controller.pause()
    before = controller.state

    with pytest.raises(StorageError):
        controller.finish("Better")

    assert controller.state == before
    assert controller.state.cycles == 1
