from __future__ import annotations

import logging

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QButtonGroup,
    QDialog,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..breathing.controller import BreathingController
from ..breathing.recorder import EmptySessionError
from ..breathing.session import SessionState
from ..breathing.techniques import PHASE_INSTRUCTIONS, TECHNIQUES
from ..models import MOOD_EMOJI, SESSION_MOODS
from ..storage import StorageError

logger = logging.getLogger(__name__)

SKIPPED = "__skipped__"


class MoodFeedbackDialog(QDialog):
    """Asks how the user feels; Save stays disabled until a mood is picked."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("How do you feel now?")
        self._selected: str | None = None

        grid = QGridLayout()
        self._group = QButtonGroup(self)
        self._group.setExclusive(True)
        for index, mood in enumerate(SESSION_MOODS):
            button = QPushButton(f"{MOOD_EMOJI.get(mood, '')}  {mood}", self)
            button.setCheckable(True)
            button.clicked.connect(lambda _checked=False, m=mood: self._select(m))
            self._group.addButton(button)
            grid.addWidget(button, index // 3, index % 3)

        self._skip_button = QPushButton("Skip", self)
        self._skip_button.clicked.connect(self._skip)
        self._save_button = QPushButton("Save Progress", self)
        self._save_button.setEnabled(False)
        self._save_button.clicked.connect(self.accept)
        cancel_button = QPushButton("Cancel", self)
        cancel_button.clicked.connect(self.reject)

        buttons = QHBoxLayout()
        buttons.addWidget(cancel_button)
        buttons.addStretch()
        buttons.addWidget(self._skip_button)
        buttons.addWidget(self._save_button)

        layout = QVBoxLayout()
        layout.addLayout(grid)
        layout.addLayout(buttons)
        self.setLayout(layout)

    @property
    def selected_mood(self) -> str | None:
        return self._selected

    def _select(self, mood: str) -> None:
        self._selected = mood
        self._save_button.setEnabled(True)

    def _skip(self) -> None:
        self._selected = SKIPPED
        self.accept()


class BreathingPanel(QWidget):
    session_saved = Signal()

    def __init__(self, controller: BreathingController, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._controller = controller

        title = QLabel("Guided Breathing", self)
        title.setFont(QFont("Arial", 20, QFont.Bold))
        subtitle = QLabel("Take a moment to center yourself. Follow the rhythm.", self)

        technique_row = QHBoxLayout()
        self._technique_group = QButtonGroup(self)
        self._technique_group.setExclusive(True)
        for key, technique in TECHNIQUES.items():
            button = QPushButton(technique.name, self)
            button.setCheckable(True)
            button.setProperty("technique_key", key)
            button.clicked.connect(lambda _checked=False, k=key: self._controller.select_technique(k))
            self._technique_group.addButton(button)
            technique_row.addWidget(button)

        self._instruction_label = QLabel("", self)
        self._instruction_label.setAlignment(Qt.AlignCenter)
        self._instruction_label.setFont(QFont("Arial", 24, QFont.DemiBold))
        self._counter_label = QLabel("", self)
        self._counter_label.setAlignment(Qt.AlignCenter)
        self._counter_label.setFont(QFont("Arial", 40, QFont.Bold))
        self._cycle_label = QLabel("", self)
        self._cycle_label.setAlignment(Qt.AlignCenter)
        self._cycle_label.setStyleSheet("color: #94A3B8;")

        self._start_button = QPushButton("", self)
        self._start_button.clicked.connect(self._controller.toggle)
        self._secondary_button = QPushButton("", self)
        self._secondary_button.clicked.connect(self._handle_secondary)

        controls = QHBoxLayout()
        controls.addStretch()
        controls.addWidget(self._start_button)
        controls.addWidget(self._secondary_button)
        controls.addStretch()

        layout = QVBoxLayout()
        layout.addWidget(title, alignment=Qt.AlignHCenter)
        layout.addWidget(subtitle, alignment=Qt.AlignHCenter)
        layout.addLayout(technique_row)
        layout.addStretch()
        layout.addWidget(self._instruction_label)
        layout.addWidget(self._counter_label)
        layout.addWidget(self._cycle_label)
        layout.addStretch()
        layout.addLayout(controls)
        self.setLayout(layout)

        self._controller.state_changed.connect(self._render)
        self._render(self._controller.state)

    def _render(self, state: SessionState) -> None:
        for button in self._technique_group.buttons():
            button.setChecked(button.property("technique_key") == state.technique.key)
        self._instruction_label.setText(PHASE_INSTRUCTIONS[state.phase])
        self._counter_label.setText(str(state.remaining))
        if state.running or state.cycles > 0:
            self._cycle_label.setText(f"Completed cycles: {state.cycles}")
        else:
            self._cycle_label.setText("Ready to Start")
        self._start_button.setText("Pause" if state.running else "Start")
        # 1 サイクル以上終えて一時停止中のときだけ Finish を出す
        self._secondary_button.setText("Finish" if self._can_finish(state) else "Reset")

    @staticmethod
    def _can_finish(state: SessionState) -> bool:
        return state.cycles > 0 and not state.running

    def _handle_secondary(self) -> None:
        if self._can_finish(self._controller.state):
            self._finish()
        else:
            self._controller.reset()

    def _finish(self) -> None:
        dialog = MoodFeedbackDialog(self)
        if dialog.exec() != QDialog.Accepted:
            return
        mood = dialog.selected_mood
        try:
            self._controller.finish(None if mood == SKIPPED else mood)
        except EmptySessionError as exc:
            QMessageBox.information(self, "Nothing to save", str(exc))
            return
        except StorageError as exc:
            logger.warning("Saving breathing session failed: %s", exc)
            QMessageBox.warning(
                self,
                "Could not save",
                f"Your session is still here. Press Finish to try again.\n\n{exc}",
            )
            return
        self.session_saved.emit()
