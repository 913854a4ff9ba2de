from __future__ import annotations

import os
from datetime import date

import pytest

# ウィジェットのテストをディスプレイなしで動かす
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QObject, Signal  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from sanctuary.models import JournalEntry  # noqa: E402
from sanctuary.storage import JournalRepository, MemoryStore, SessionRecordRepository, StorageError  # noqa: E402


@pytest.fixture(scope="session")
def qapp() -> QApplication:
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def journal_repository(store: MemoryStore) -> JournalRepository:
    return JournalRepository(store)


@pytest.fixture()
def session_repository(store: MemoryStore) -> SessionRecordRepository:
    return SessionRecordRepository(store)


class FakeClock(QObject):
    """Stands in for SessionClock; ``fire`` emits a tick even while stopped."""

    ticked = Signal()

    def __init__(self) -> None:
        super().__init__()
        self.is_running = False
        self.starts = 0

    def start(self) -> None:
        self.is_running = True
        self.starts += 1

    def stop(self) -> None:
        self.is_running = False

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            self.ticked.emit()


class FailingStore(MemoryStore):
    def set(self, key: str, value: str) -> None:
        raise StorageError("disk full")


@pytest.fixture()
def fake_clock(qapp: QApplication) -> FakeClock:
    return FakeClock()


def make_entry(
    day: date,
    mood: str | None = None,
    sleep: float | None = None,
    stress: int | None = None,
    text: str = "",
) -> JournalEntry:
    return JournalEntry(date=day, text=text, mood=mood, sleep=sleep, stress=stress)
