from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QThread, Slot
from PySide6.QtGui import QAction
from PySide6.QtWidgets import QMainWindow, QMessageBox, QTabWidget, QVBoxLayout, QWidget

from ..analytics import TIME_RANGES
from ..breathing.clock import SessionClock
from ..breathing.controller import BreathingController
from ..breathing.recorder import SessionRecorder
from ..breathing.techniques import DEFAULT_TECHNIQUE_KEY, TECHNIQUES
from ..config import AppConfig
from ..gemini_client import CHAT_FALLBACK_REPLY, REFLECTION_FALLBACK, TONE_PROMPTS, ChatReply, GeminiClient
from ..journal import Journal
from ..models import ChatMessage
from ..settings import get_choice_setting, get_int_setting
from ..storage import (
    DailyMoodRepository,
    JournalRepository,
    JsonFileStore,
    SessionRecordRepository,
    StorageError,
)
from .breathing_panel import BreathingPanel
from .conversation_widget import TONES, ConversationWidget
from .daily_mood_bar import DailyMoodBar
from .helplines_dialog import HelplinesDialog
from .insights_panel import InsightsPanel
from .journal_panel import JournalPanel
from .workers import ChatWorker, ReflectionWorker

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, config: AppConfig, client: GeminiClient | None = None) -> None:
        super().__init__()
        self._config = config
        self.setWindowTitle("Sanctuary")
        self.resize(1100, 760)

        self._store = JsonFileStore(config.paths.data_dir)
        self._journal_repository = JournalRepository(self._store)
        self._session_repository = SessionRecordRepository(self._store)
        self._client = client or GeminiClient(config)

        self._messages: list[ChatMessage] = []
        self._chat_request_id = 0
        self._reflection_request_id = 0
        # PySide は親のない QObject を参照が切れた時点で破棄するので、終了まで worker を握っておく
        self._workers: dict[QThread, QObject] = {}

        settings = config.settings
        technique_key = get_choice_setting(
            settings, "breathing.default_technique", TECHNIQUES, DEFAULT_TECHNIQUE_KEY
        )
        interval = get_int_setting(settings, "breathing.tick_interval_ms", 1000, minimum=1)
        self._breathing = BreathingController(
            SessionRecorder(self._session_repository),
            technique=TECHNIQUES[technique_key],
            clock=SessionClock(interval_ms=interval),
            parent=self,
        )

        self._conversation = ConversationWidget(self)
        self._conversation.set_tone(get_choice_setting(settings, "app.default_tone", TONE_PROMPTS, "calm"))
        self._conversation.message_submitted.connect(self._handle_message_submitted)
        self._conversation.new_conversation_requested.connect(self._start_new_conversation)
        self._conversation.tone_changed.connect(self._handle_tone_changed)
        self._conversation.helplines_requested.connect(self._show_helplines)

        self._mood_bar = DailyMoodBar(DailyMoodRepository(self._store), self)

        self._journal_panel = JournalPanel(Journal(self._journal_repository), self)
        self._breathing_panel = BreathingPanel(self._breathing, self)
        self._insights_panel = InsightsPanel(
            self._journal_repository,
            self._session_repository,
            default_range=get_choice_setting(settings, "insights.default_range", TIME_RANGES, "month"),
            parent=self,
        )
        self._journal_panel.entry_saved.connect(self._insights_panel.refresh)
        self._breathing_panel.session_saved.connect(self._insights_panel.refresh)
        self._insights_panel.reflection_requested.connect(self._handle_reflection_requested)

        self._tabs = QTabWidget(self)
        self._tabs.addTab(self._conversation, "Chat")
        self._tabs.addTab(self._journal_panel, "Journal")
        self._tabs.addTab(self._breathing_panel, "Breathe")
        self._tabs.addTab(self._insights_panel, "Insights")
        self._tabs.currentChanged.connect(self._handle_tab_changed)

        central = QWidget(self)
        central_layout = QVBoxLayout(central)
        central_layout.setContentsMargins(0, 0, 0, 0)
        central_layout.addWidget(self._mood_bar)
        central_layout.addWidget(self._tabs, stretch=1)
        self.setCentralWidget(central)

        clear_action = QAction("Clear all data...", self)
        clear_action.triggered.connect(self._handle_clear_data)
        self.menuBar().addMenu("Settings").addAction(clear_action)
        helplines_action = QAction("Crisis helplines...", self)
        helplines_action.triggered.connect(self._show_helplines)
        self.menuBar().addMenu("Help").addAction(helplines_action)

        self._start_new_conversation()
        error = self._client.availability_error()
        if error:
            self._conversation.set_status_text(error)

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    # Chat ---------------------------------------------------------------
    def _start_new_conversation(self) -> None:
        # 進行中の応答はリクエスト ID を進めることで破棄扱いにする
        self._chat_request_id += 1
        self._messages = []
        self._conversation.show_messages([])
        self._conversation.show_crisis_banner(False)
        self._conversation.set_busy(False)

    def _handle_message_submitted(self, text: str) -> None:
        history = list(self._messages)
        message = ChatMessage(role="user", content=text)
        self._messages.append(message)
        self._conversation.append_message(message)
        self._conversation.set_busy(True, "Sanctuary is thinking...")

        self._chat_request_id += 1
        worker = ChatWorker(self._client, history, text, self._conversation.tone, self._chat_request_id)
        worker.finished.connect(self._handle_chat_finished)
        worker.failed.connect(self._handle_chat_failed)
        self._run_in_thread(worker)

    def _handle_chat_finished(self, reply: ChatReply, request_id: int) -> None:
        if request_id != self._chat_request_id:
            logger.debug("Discarding stale chat reply %d", request_id)
            return
        if reply.crisis:
            self._conversation.show_crisis_banner(True)
        self._append_assistant(reply.text)
        self._conversation.set_busy(False)

    def _handle_chat_failed(self, error: str, request_id: int) -> None:
        if request_id != self._chat_request_id:
            return
        logger.warning("Chat request failed: %s", error)
        self._append_assistant(CHAT_FALLBACK_REPLY)
        self._conversation.set_busy(False)

    def _append_assistant(self, text: str) -> None:
        message = ChatMessage(role="assistant", content=text)
        self._messages.append(message)
        self._conversation.append_message(message)

    def _handle_tone_changed(self, tone: str) -> None:
        # 送信中は "thinking" 表示を上書きしない。次の送信から反映される
        if self._conversation.is_busy:
            return
        label = next((label for label, key in TONES if key == tone), tone)
        self._conversation.set_status_text(f"Replies will use the {label} tone.")

    def _show_helplines(self) -> None:
        HelplinesDialog(self).exec()

    # Insights -----------------------------------------------------------
    def _handle_reflection_requested(self) -> None:
        self._reflection_request_id += 1
        self._insights_panel.set_reflection_busy(True)
        worker = ReflectionWorker(
            self._client,
            self._insights_panel.reflection_summary(),
            self._reflection_request_id,
        )
        worker.finished.connect(self._handle_reflection_finished)
        worker.failed.connect(self._handle_reflection_failed)
        self._run_in_thread(worker)

    def _handle_reflection_finished(self, text: str, request_id: int) -> None:
        if request_id != self._reflection_request_id:
            return
        self._insights_panel.set_reflection_busy(False)
        self._insights_panel.set_reflection_text(text)

    def _handle_reflection_failed(self, error: str, request_id: int) -> None:
        if request_id != self._reflection_request_id:
            return
        logger.warning("Reflection request failed: %s", error)
        self._insights_panel.set_reflection_busy(False)
        self._insights_panel.set_reflection_text(REFLECTION_FALLBACK)

    def _handle_tab_changed(self, index: int) -> None:
        widget = self._tabs.widget(index)
        if widget is self._insights_panel:
            self._insights_panel.refresh()
        elif widget is self._journal_panel:
            self._journal_panel.refresh()

    # Data ---------------------------------------------------------------
    def _confirm_clear(self) -> bool:
        answer = QMessageBox.question(
            self,
            "Clear all data",
            "This permanently deletes every journal entry, breathing session and mood check-in "
            "on this device.",
        )
        return answer == QMessageBox.Yes

    def _handle_clear_data(self) -> None:
        if not self._confirm_clear():
            return
        try:
            self._store.clear()
        except StorageError as exc:
            QMessageBox.warning(self, "Could not clear data", str(exc))
            return
        self._breathing.reset()
        self._reflection_request_id += 1
        self._insights_panel.set_reflection_busy(False)
        self._insights_panel.set_reflection_text("")
        self._start_new_conversation()
        self._journal_panel.refresh()
        self._insights_panel.refresh()
        self._mood_bar.refresh()

    # Threads ------------------------------------------------------------
    @property
    def has_pending_work(self) -> bool:
        return bool(self._workers)

    def _run_in_thread(self, worker: QObject) -> None:
        thread = QThread(self)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.finished.connect(thread.quit)
        worker.failed.connect(thread.quit)
        thread.finished.connect(worker.deleteLater)
        thread.finished.connect(self._release_worker)
        thread.finished.connect(thread.deleteLater)
        self._workers[thread] = worker
        thread.start()

    @Slot()
    def _release_worker(self) -> None:
        self._workers.pop(self.sender(), None)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._breathing.pause()
        for thread in list(self._workers):
            thread.quit()
            thread.wait(2_000)
        super().closeEvent(event)
