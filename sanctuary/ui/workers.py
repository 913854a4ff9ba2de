from __future__ import annotations

from typing import Iterable

from PySide6.QtCore import QObject, Signal, Slot

from ..gemini_client import GeminiClient
from ..models import ChatMessage


class ChatWorker(QObject):
    finished = Signal(object, int)  # ChatReply, request_id
    failed = Signal(str, int)

    def __init__(
        self,
        client: GeminiClient,
        history: Iterable[ChatMessage],
        message: str,
        tone: str,
        request_id: int,
    ) -> None:
        super().__init__()
        self._client = client
        self._history = list(history)
        self._message = message
        self._tone = tone
        self._request_id = request_id

    @Slot()
    def run(self) -> None:
        try:
            # GUI スレッドと呼吸タイマーを塞がないよう別スレッドで問い合わせる
            reply = self._client.generate_reply(self._history, self._message, self._tone)
        except Exception as exc:
            self.failed.emit(str(exc), self._request_id)
            return
        self.finished.emit(reply, self._request_id)


class ReflectionWorker(QObject):
    finished = Signal(str, int)
    failed = Signal(str, int)

    def __init__(self, client: GeminiClient, summary: dict, request_id: int) -> None:
        super().__init__()
        self._client = client
        self._summary = summary
        self._request_id = request_id

    @Slot()
    def run(self) -> None:
        try:
            text = self._client.generate_reflection(self._summary)
        except Exception as exc:
            self.failed.emit(str(exc), self._request_id)
            return
        self.finished.emit(text, self._request_id)
