from __future__ import annotations

from datetime import date

from PySide6.QtCore import QRectF, QSize, Qt, Signal
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import (
    QButtonGroup,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .. import analytics
from ..analytics import AggregateStats, ConsistencyCell, SeriesBucket
from ..storage import JournalRepository, SessionRecordRepository

CELL_SIZE = 12
CELL_GAP = 4


class ConsistencyMapWidget(QWidget):
    """GitHub-style grid: one column per week, one row per weekday."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._columns: list[list[ConsistencyCell]] = []

    def set_columns(self, columns: list[list[ConsistencyCell]]) -> None:
        self._columns = columns
        self.updateGeometry()
        self.update()

    def sizeHint(self) -> QSize:  # type: ignore[override]
        step = CELL_SIZE + CELL_GAP
        return QSize(max(1, len(self._columns)) * step, 7 * step)

    def paintEvent(self, event) -> None:  # type: ignore[override]
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        step = CELL_SIZE + CELL_GAP
        for x, column in enumerate(self._columns):
            for y, cell in enumerate(column):
                rect = QRectF(x * step, y * step, CELL_SIZE, CELL_SIZE)
                if cell.is_future:
                    painter.setPen(QPen(QColor("#E2E8F0"), 1, Qt.DashLine))
                    painter.setBrush(Qt.NoBrush)
                else:
                    painter.setPen(Qt.NoPen)
                    painter.setBrush(QColor("#10B981" if cell.has_entry else "#F1F5F9"))
                painter.drawRoundedRect(rect, 3, 3)
        painter.end()


class InsightsPanel(QWidget):
    reflection_requested = Signal()

    def __init__(
        self,
        journal_repository: JournalRepository,
        session_repository: SessionRecordRepository,
        default_range: str = "month",
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._journal_repository = journal_repository
        self._session_repository = session_repository
        self._range = default_range if default_range in analytics.TIME_RANGES else "month"

        self._stat_labels: dict[str, QLabel] = {}
        stats_grid = QGridLayout()
        captions = [
            ("total_entries", "Entries Logged"),
            ("average_mood", "Average Mood"),
            ("streak", "Consistency"),
            ("sessions", "Breathing Sessions"),
            ("cycles", "Total Cycles"),
            ("top_mood", "Feeling After Breathing"),
        ]
        for index, (key, caption) in enumerate(captions):
            box = QVBoxLayout()
            caption_label = QLabel(caption, self)
            caption_label.setStyleSheet("color: #64748B;")
            value_label = QLabel("", self)
            value_label.setStyleSheet("font-size: 20px; font-weight: 700; color: #2D3E50;")
            box.addWidget(caption_label)
            box.addWidget(value_label)
            self._stat_labels[key] = value_label
            stats_grid.addLayout(box, index // 3, index % 3)

        self._map = ConsistencyMapWidget(self)

        range_row = QHBoxLayout()
        range_row.addWidget(QLabel("Mood trends", self))
        range_row.addStretch()
        self._range_group = QButtonGroup(self)
        for key in analytics.TIME_RANGES:
            button = QPushButton(key.capitalize(), self)
            button.setCheckable(True)
            button.setChecked(key == self._range)
            button.clicked.connect(lambda _checked=False, k=key: self._set_range(k))
            self._range_group.addButton(button)
            range_row.addWidget(button)

        self._table = QTableWidget(0, 4, self)
        self._table.setHorizontalHeaderLabels(["Date", "Mood", "Sleep (h)", "Stress"])
        self._table.verticalHeader().setVisible(False)
        self._table.setEditTriggers(QTableWidget.NoEditTriggers)

        self._reflection_label = QLabel("", self)
        self._reflection_label.setWordWrap(True)
        self._reflection_button = QPushButton("Reflect on my week", self)
        self._reflection_button.clicked.connect(self.reflection_requested.emit)

        reflection_row = QHBoxLayout()
        reflection_row.addWidget(self._reflection_label, stretch=1)
        reflection_row.addWidget(self._reflection_button)

        layout = QVBoxLayout()
        layout.addLayout(stats_grid)
        layout.addWidget(QLabel("Consistency map (last year)", self))
        layout.addWidget(self._map)
        layout.addLayout(range_row)
        layout.addWidget(self._table, stretch=1)
        layout.addLayout(reflection_row)
        self.setLayout(layout)

        self.refresh()

    def refresh(self) -> None:
        # 毎回ストレージから読み直して集計する（キャッシュしない）
        today = date.today()
        journal = self._journal_repository.load()
        records = self._session_repository.load()
        self._render_stats(analytics.compute_stats(journal, records, today))
        self._map.set_columns(analytics.consistency_map(journal, today))
        self._render_series(analytics.build_series(journal, self._range, today))

    def reflection_summary(self) -> dict:
        return analytics.reflection_summary(
            self._journal_repository.load(),
            self._session_repository.load(),
        )

    def set_reflection_busy(self, busy: bool) -> None:
        self._reflection_button.setDisabled(busy)
        if busy:
            self._reflection_label.setText("Reflecting...")

    def set_reflection_text(self, text: str) -> None:
        self._reflection_label.setText(text)

    @property
    def reflection_text(self) -> str:
        return self._reflection_label.text()

    @property
    def reflection_busy(self) -> bool:
        return not self._reflection_button.isEnabled()

    # Internal helpers ---------------------------------------------------
    def _set_range(self, time_range: str) -> None:
        self._range = time_range
        self.refresh()

    def _render_stats(self, stats: AggregateStats) -> None:
        self._stat_labels["total_entries"].setText(str(stats.total_entries))
        self._stat_labels["average_mood"].setText(stats.average_mood_label or "N/A")
        self._stat_labels["streak"].setText(f"{stats.current_streak} Day Streak")
        self._stat_labels["sessions"].setText(str(stats.total_sessions))
        self._stat_labels["cycles"].setText(str(stats.total_cycles))
        self._stat_labels["top_mood"].setText(stats.top_session_mood or "N/A")

    def _render_series(self, buckets: list[SeriesBucket]) -> None:
        self._table.setRowCount(len(buckets))
        for row, bucket in enumerate(reversed(buckets)):
            mood = f"{bucket.mood_label} ({bucket.mood:g})" if bucket.mood is not None else "-"
            values = [
                bucket.label,
                mood,
                _format_optional(bucket.sleep),
                _format_optional(bucket.stress),
            ]
            for column, value in enumerate(values):
                self._table.setItem(row, column, QTableWidgetItem(value))


def _format_optional(value: float | None) -> str:
    return "-" if value is None else f"{value:g}"
