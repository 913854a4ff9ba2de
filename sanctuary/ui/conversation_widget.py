from __future__ import annotations

import html
from typing import Iterable

import markdown
from PySide6.QtCore import Signal
from PySide6.QtGui import QFont, QKeySequence, QShortcut, QTextCursor
from PySide6.QtWidgets import (
    QComboBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QTextBrowser,
    QVBoxLayout,
    QWidget,
)

from ..models import ChatMessage

ASSISTANT_NAME = "Sanctuary"
TONES = (("Calm", "calm"), ("Gen-Z", "genz"))
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "nl2br"]

CRISIS_TEXT = (
    "If you are in immediate danger, please reach out now. Call your local emergency number "
    "or one of the free helplines."
)


def message_html(message: ChatMessage) -> str:
    """Render one chat turn as the HTML fragment appended to the transcript."""

    if message.role == "user":
        speaker, color = "You", "#1F3846"
        body = html.escape(message.content).replace("\n", "<br>")
    else:
        speaker, color = ASSISTANT_NAME, "#166534"
        body = markdown.markdown(message.content, extensions=MARKDOWN_EXTENSIONS)
        # QTextBrowser に挿入すると外側の <p> が余白を作るので外す
        if body.startswith("<p>") and body.endswith("</p>"):
            body = body[3:-4]
    return (
        f'<div style="margin-bottom: 10px;">'
        f'<p style="margin-bottom:0px;"><b style="color:{color}">{speaker}</b></p>{body}</div>'
    )


class ConversationWidget(QWidget):
    message_submitted = Signal(str)
    new_conversation_requested = Signal()
    tone_changed = Signal(str)
    helplines_requested = Signal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._busy = False

        header = QHBoxLayout()
        header.addWidget(QLabel("I'm here to listen. How are you feeling right now?", self))
        header.addStretch()
        header.addWidget(QLabel("Tone:", self))
        self._tone_combo = QComboBox(self)
        for label, key in TONES:
            self._tone_combo.addItem(label, key)
        self._tone_combo.currentIndexChanged.connect(lambda _index: self.tone_changed.emit(self.tone))
        header.addWidget(self._tone_combo)
        new_button = QPushButton("New chat", self)
        new_button.clicked.connect(self.new_conversation_requested.emit)
        header.addWidget(new_button)

        self._crisis_banner = QFrame(self)
        self._crisis_banner.setObjectName("CrisisBanner")
        self._crisis_banner.setStyleSheet(
            "#CrisisBanner { background: #FEF2F2; border-radius: 8px; }"
            " QLabel { color: #991B1B; }"
        )
        crisis_label = QLabel(CRISIS_TEXT, self._crisis_banner)
        crisis_label.setWordWrap(True)
        helplines_button = QPushButton("View helplines", self._crisis_banner)
        helplines_button.clicked.connect(self.helplines_requested.emit)
        banner_layout = QHBoxLayout(self._crisis_banner)
        banner_layout.addWidget(crisis_label, stretch=1)
        banner_layout.addWidget(helplines_button)
        self._crisis_banner.hide()

        self._transcript = QTextBrowser(self)
        self._transcript.setOpenExternalLinks(True)
        transcript_font = QFont()
        transcript_font.setPointSize(13)
        self._transcript.setFont(transcript_font)

        self._status = QLabel("", self)
        self._status.setWordWrap(True)
        self._status.setStyleSheet("color: #64748B;")

        self._editor = QPlainTextEdit(self)
        self._editor.setPlaceholderText("Type your thoughts... (Ctrl+Enter to send)")
        self._editor.setFixedHeight(90)
        self._send_button = QPushButton("Send", self)
        self._send_button.clicked.connect(self._submit)
        send_shortcut = QShortcut(QKeySequence("Ctrl+Return"), self._editor)
        send_shortcut.activated.connect(self._submit)

        composer = QHBoxLayout()
        composer.addWidget(self._editor, stretch=1)
        composer.addWidget(self._send_button)

        layout = QVBoxLayout(self)
        layout.addLayout(header)
        layout.addWidget(self._crisis_banner)
        layout.addWidget(self._transcript, stretch=1)
        layout.addWidget(self._status)
        layout.addLayout(composer)

    @property
    def tone(self) -> str:
        return self._tone_combo.currentData() or "calm"

    def set_tone(self, tone: str) -> None:
        index = self._tone_combo.findData(tone)
        if index >= 0:
            self._tone_combo.blockSignals(True)
            self._tone_combo.setCurrentIndex(index)
            self._tone_combo.blockSignals(False)

    def show_messages(self, messages: Iterable[ChatMessage]) -> None:
        self._transcript.clear()
        for message in messages:
            self.append_message(message)

    def append_message(self, message: ChatMessage) -> None:
        cursor = self._transcript.textCursor()
        cursor.movePosition(QTextCursor.End)
        cursor.insertHtml(message_html(message))
        cursor.insertText("\n")
        self._transcript.setTextCursor(cursor)
        self._transcript.ensureCursorVisible()

    def set_busy(self, busy: bool, status_text: str | None = None) -> None:
        self._busy = busy
        self._send_button.setDisabled(busy)
        self._editor.setReadOnly(busy)
        if status_text:
            self._status.setText(status_text)
        elif not busy:
            self._status.clear()

    def set_status_text(self, text: str) -> None:
        self._status.setText(text)

    @property
    def status_text(self) -> str:
        return self._status.text()

    @property
    def is_busy(self) -> bool:
        return self._busy

    def show_crisis_banner(self, visible: bool) -> None:
        self._crisis_banner.setVisible(visible)

    @property
    def crisis_banner_shown(self) -> bool:
        # ウィンドウ未表示でも判定できるよう isHidden を使う
        return not self._crisis_banner.isHidden()

    def select_tone(self, tone: str) -> None:
        """Like picking from the combo box; emits ``tone_changed``."""

        index = self._tone_combo.findData(tone)
        if index >= 0:
            self._tone_combo.setCurrentIndex(index)

    def _submit(self) -> None:
        if self._busy:
            return
        text = self._editor.toPlainText().strip()
        if not text:
            return
        self._editor.clear()
        self.message_submitted.emit(text)
