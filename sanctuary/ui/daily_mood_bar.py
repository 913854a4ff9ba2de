from __future__ import annotations

import logging
from datetime import date

from PySide6.QtCore import Signal
from PySide6.QtWidgets import QButtonGroup, QHBoxLayout, QLabel, QPushButton, QWidget

from ..models import DAILY_MOODS, MOOD_EMOJI
from ..storage import DailyMoodRepository, StorageError

logger = logging.getLogger(__name__)


class DailyMoodBar(QWidget):
    """One-tap "how are you feeling right now?" picker shown above the tabs."""

    mood_selected = Signal(str)

    def __init__(self, repository: DailyMoodRepository, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._repository = repository
        self._selected: str | None = None

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.addWidget(QLabel("How are you feeling right now?", self))

        self._group = QButtonGroup(self)
        self._group.setExclusive(False)
        self._buttons: dict[str, QPushButton] = {}
        for mood in DAILY_MOODS:
            button = QPushButton(f"{MOOD_EMOJI.get(mood, '')} {mood}", self)
            button.setCheckable(True)
            button.clicked.connect(lambda _checked=False, value=mood: self._choose(value))
            self._group.addButton(button)
            self._buttons[mood] = button
            layout.addWidget(button)

        self._status = QLabel("", self)
        self._status.setStyleSheet("color: #64748B;")
        layout.addWidget(self._status)
        layout.addStretch()

        self.refresh()

    @property
    def selected_mood(self) -> str | None:
        return self._selected

    @property
    def status_text(self) -> str:
        return self._status.text()

    def refresh(self, today: date | None = None) -> None:
        self._selected = self._repository.mood_for(today or date.today())
        self._status.clear()
        self._sync_buttons()

    def select(self, mood: str, today: date | None = None) -> None:
        self._choose(mood, today)

    def _choose(self, mood: str, today: date | None = None) -> None:
        try:
            self._repository.save(today or date.today(), mood)
        except StorageError as exc:
            logger.warning("Saving daily mood failed: %s", exc)
            self._status.setText(str(exc))
            # 保存できなかった場合は前の選択に戻す
            self._sync_buttons()
            return
        self._selected = mood
        self._status.setText("Thanks for checking in.")
        self._sync_buttons()
        self.mood_selected.emit(mood)

    def _sync_buttons(self) -> None:
        for mood, button in self._buttons.items():
            button.setChecked(mood == self._selected)
