from __future__ import annotations

import html
from typing import Sequence

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import QDialog, QDialogButtonBox, QLabel, QVBoxLayout, QWidget

from ..helplines import EMERGENCY_NOTE, HELPLINES, Helpline


def helpline_html(helpline: Helpline) -> str:
    title = html.escape(helpline.name)
    if helpline.phone:
        title = f"{title}: {html.escape(helpline.phone)}"
    link = helpline.link
    if link:
        title = f'<a href="{html.escape(link, quote=True)}">{title}</a>'
    return f"<b>{title}</b><br>{html.escape(helpline.description)}"


class HelplinesDialog(QDialog):
    """Free, confidential crisis lines. Links open the system dialer or browser."""

    def __init__(self, parent: QWidget | None = None, helplines: Sequence[Helpline] = HELPLINES) -> None:
        super().__init__(parent)
        self.setWindowTitle("You are not alone")
        self.setMinimumWidth(460)

        intro = QLabel(
            "You are important. If you are in pain, please reach out to one of these "
            "free, confidential resources.",
            self,
        )
        intro.setWordWrap(True)
        intro.setFont(QFont("Arial", 12))

        layout = QVBoxLayout()
        layout.addWidget(intro)
        self._cards: list[QLabel] = []
        for helpline in helplines:
            card = QLabel(helpline_html(helpline), self)
            card.setWordWrap(True)
            card.setTextFormat(Qt.RichText)
            card.setOpenExternalLinks(True)
            card.setStyleSheet("border: 1px solid #FCA5A5; border-radius: 8px; padding: 8px;")
            self._cards.append(card)
            layout.addWidget(card)

        note = QLabel(EMERGENCY_NOTE, self)
        note.setWordWrap(True)
        note.setStyleSheet("color: #64748B;")
        layout.addWidget(note)

        buttons = QDialogButtonBox(QDialogButtonBox.Close, self)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)
        self.setLayout(layout)

    @property
    def card_count(self) -> int:
        return len(self._cards)
