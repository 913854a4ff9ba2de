from __future__ import annotations

import logging
from datetime import date

from PySide6.QtCore import QDate, Qt, Signal
from PySide6.QtGui import QTextCharFormat, QColor
from PySide6.QtWidgets import (
    QCalendarWidget,
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from ..journal import DEFAULT_SLEEP_HOURS, DEFAULT_STRESS, Journal
from ..models import JOURNAL_MOODS, MOOD_EMOJI
from ..storage import StorageError

logger = logging.getLogger(__name__)


class JournalPanel(QWidget):
    entry_saved = Signal()

    def __init__(self, journal: Journal, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._journal = journal

        self._calendar = QCalendarWidget(self)
        self._calendar.setMaximumDate(QDate.currentDate())
        self._calendar.selectionChanged.connect(self._load_selected)

        self._recent_list = QListWidget(self)
        self._recent_list.itemClicked.connect(self._handle_recent_clicked)

        sidebar = QVBoxLayout()
        sidebar.addWidget(self._calendar)
        sidebar.addWidget(QLabel("Recent entries", self))
        sidebar.addWidget(self._recent_list, stretch=1)

        self._date_label = QLabel("", self)
        self._date_label.setStyleSheet("font-size: 18px; font-weight: 600;")

        self._text = QPlainTextEdit(self)
        self._text.setPlaceholderText("Take a deep breath. Write it out.")
        self._text.textChanged.connect(self._mark_dirty)

        self._mood_combo = QComboBox(self)
        self._mood_combo.addItem("No mood", None)
        for mood in JOURNAL_MOODS:
            self._mood_combo.addItem(f"{MOOD_EMOJI.get(mood, '')} {mood}", mood)
        self._mood_combo.currentIndexChanged.connect(self._mark_dirty)

        self._sleep_spin = QDoubleSpinBox(self)
        self._sleep_spin.setRange(0.0, 24.0)
        self._sleep_spin.setSingleStep(0.5)
        self._sleep_spin.setSuffix(" h")
        self._sleep_spin.valueChanged.connect(self._mark_dirty)

        self._stress_spin = QSpinBox(self)
        self._stress_spin.setRange(1, 5)
        self._stress_spin.valueChanged.connect(self._mark_dirty)

        metrics = QFormLayout()
        metrics.addRow("Mood", self._mood_combo)
        metrics.addRow("Sleep", self._sleep_spin)
        metrics.addRow("Stress (1-5)", self._stress_spin)

        self._status_label = QLabel("", self)
        self._status_label.setStyleSheet("color: #666666;")
        self._save_button = QPushButton("Save entry", self)
        self._save_button.clicked.connect(self._handle_save)

        footer = QHBoxLayout()
        footer.addWidget(self._status_label, stretch=1)
        footer.addWidget(self._save_button)

        editor = QVBoxLayout()
        editor.addWidget(self._date_label)
        editor.addWidget(self._text, stretch=1)
        editor.addLayout(metrics)
        editor.addLayout(footer)

        layout = QHBoxLayout()
        layout.addLayout(sidebar, stretch=1)
        layout.addLayout(editor, stretch=2)
        self.setLayout(layout)

        self.refresh()

    def refresh(self) -> None:
        self._calendar.setMaximumDate(QDate.currentDate())
        self._highlight_entries()
        self._refresh_recent()
        self._load_selected()

    # Internal helpers ---------------------------------------------------
    def _selected_day(self) -> date:
        return self._calendar.selectedDate().toPython()

    def _load_selected(self) -> None:
        day = self._selected_day()
        self._date_label.setText(f"{day:%A, %B} {day.day}")
        entry = self._journal.entry_for(day)

        # 値の読み込み中は dirty 判定を走らせない
        self._set_editor_signals_blocked(True)
        if entry:
            self._text.setPlainText(entry.text)
            index = self._mood_combo.findData(entry.mood)
            self._mood_combo.setCurrentIndex(max(0, index))
            self._sleep_spin.setValue(entry.sleep if entry.sleep is not None else DEFAULT_SLEEP_HOURS)
            self._stress_spin.setValue(entry.stress if entry.stress is not None else DEFAULT_STRESS)
        else:
            self._text.clear()
            self._mood_combo.setCurrentIndex(0)
            self._sleep_spin.setValue(DEFAULT_SLEEP_HOURS)
            self._stress_spin.setValue(DEFAULT_STRESS)
        self._set_editor_signals_blocked(False)
        self._status_label.setText("Saved" if entry else "")

    def _handle_save(self) -> None:
        day = self._selected_day()
        try:
            self._journal.save_entry(
                day,
                self._text.toPlainText(),
                mood=self._mood_combo.currentData(),
                sleep=self._sleep_spin.value(),
                stress=self._stress_spin.value(),
            )
        except ValueError as exc:
            self._status_label.setText(str(exc))
            return
        except StorageError as exc:
            # エディタの内容は残したまま再試行できるようにする
            logger.warning("Saving journal entry failed: %s", exc)
            self._status_label.setText("Could not save. Your text is still here, press Save to retry.")
            return
        self._status_label.setText("Saved")
        self._highlight_entries()
        self._refresh_recent()
        self.entry_saved.emit()

    def _handle_recent_clicked(self, item: QListWidgetItem) -> None:
        day = item.data(Qt.UserRole)
        if isinstance(day, date):
            self._calendar.setSelectedDate(QDate(day.year, day.month, day.day))

    def _refresh_recent(self) -> None:
        self._recent_list.clear()
        recent = self._journal.recent(3)
        if not recent:
            self._recent_list.addItem("No entries stored yet.")
            return
        for entry in recent:
            preview = " ".join(entry.text.split())[:60] or "No text..."
            emoji = MOOD_EMOJI.get(entry.mood or "", "")
            item = QListWidgetItem(f"{entry.date:%a, %b} {entry.date.day}\n{emoji} {preview}")
            item.setData(Qt.UserRole, entry.date)
            self._recent_list.addItem(item)

    def _highlight_entries(self) -> None:
        self._calendar.setDateTextFormat(QDate(), QTextCharFormat())
        fmt = QTextCharFormat()
        fmt.setBackground(QColor("#D1E8D5"))
        for entry in self._journal.entries().values():
            self._calendar.setDateTextFormat(QDate(entry.date.year, entry.date.month, entry.date.day), fmt)

    def _mark_dirty(self, *_args) -> None:
        self._status_label.setText("Unsaved changes")

    def _set_editor_signals_blocked(self, blocked: bool) -> None:
        for widget in (self._text, self._mood_combo, self._sleep_spin, self._stress_spin):
            widget.blockSignals(blocked)
