from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Literal, Sequence

from .config import AppConfig
from .models import ChatMessage
from .settings import get_float_setting, get_int_setting, get_str_setting

try:
    import google.generativeai as genai  # type: ignore
except ImportError:  # pragma: no cover - optional runtime dependency
    genai = None

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "GEMINI_API_KEY"

Tone = Literal["calm", "genz"]

CRISIS_MARKERS = ("[REDIRECT_SOS]", "[CRISIS_FLAG]")
CRISIS_PHRASES = ("help line", "helpline", "988")
CRISIS_TRIGGERS = ("help", "unsafe")

BASE_PROMPT = """
ROLE:
You are "Sanctuary," an emotionally intelligent mental health support assistant.
Your replies may be read aloud, so write the way a person would naturally say them.

SPEECH-REASONING RULES:
1. Prioritize how a human would naturally SAY something, not how it is typed.
2. Expand shorthand for natural speech (e.g., "fr" -> "for real", "idk" -> "I don't know").
3. Avoid spelling out abbreviations letter-by-letter unless it sounds natural.

SAFETY RULES:
1. You are not a medical professional. Do not diagnose or make clinical claims.
2. If distress escalates, shift to calm, grounding language and encourage real-world support.

CRISIS OVERRIDE:
If the user mentions self-harm, suicide, or immediate danger:
1. STOP all other persona logic.
2. Output ONLY the text: "[REDIRECT_SOS]" followed by a very brief, supportive sentence.
3. Do not ask follow-up questions. Focus on safety.
"""

TONE_PROMPTS: dict[str, str] = {
    "calm": """
TONE: CALM MODE
- Use warm, empathetic, and reassuring language.
- Keep a clear, steady pace.
- Avoid slang or modern shorthand.
""",
    "genz": """
TONE: GEN-Z MODE
- Use a light, Gen-Z friendly conversational tone.
- Sound relatable and human, but remain serious and respectful.
- Never trivialize emotional distress.
""",
}

PROMOTION_PROTOCOL = """
[Suggestion: If the user feels lonely, briefly mention they can come back and talk anytime.]
"""

REFLECTION_SYSTEM_PROMPT = """
You are a supportive, non-clinical mental health reflection assistant focused on "Logical Empathy."

Analyze the user's wellness metrics (sleep, stress, mood, breathing) and journal excerpt
and offer ONE or TWO brief, gentle observations.

STRICT CONSTRAINTS:
1. Base your response entirely on the data provided. Avoid one-size-fits-all advice.
2. Use soft language: "might," "could," "may be connected." Never state conclusions as facts.
3. Start directly with the observation. Avoid "Based on your data..." fillers.
4. 60-100 words.
"""

CHAT_FALLBACK_REPLY = (
    "I'm having a little trouble connecting right now. But I'm still here with you. Can we try again?"
)
REFLECTION_FALLBACK = (
    "I can't be sure what's causing this, but being gentle with yourself and noticing patterns can help."
)


class GeminiClientError(RuntimeError):
    """Raised when the hosted model cannot produce a reply."""


@dataclass(frozen=True)
class ChatReply:
    text: str
    crisis: bool = False


ModelFactory = Callable[[str, dict[str, Any]], Any]


class GeminiClient:
    """
    Thin wrapper around the Gemini SDK.

    The SDK is configured lazily on first use so the window can open without
    a key; ``availability_error`` tells the UI what is missing.
    """

    def __init__(self, config: AppConfig, model_factory: ModelFactory | None = None) -> None:
        settings = config.settings
        self._api_key = os.getenv(API_KEY_ENV_VAR) or get_str_setting(settings, "llm.api_key", "")
        self._model_name = get_str_setting(settings, "llm.model", "gemini-2.5-flash")
        self._generation_config = {
            "temperature": get_float_setting(settings, "llm.chat_temperature", 0.9),
            "max_output_tokens": get_int_setting(settings, "llm.chat_max_output_tokens", 15000, minimum=1),
        }
        self._history_limit = get_int_setting(settings, "llm.history_limit", 6, minimum=0)
        self._timeout = get_float_setting(settings, "llm.request_timeout_sec", 60.0, minimum=1.0)
        self._model_factory = model_factory
        self._model: Any | None = None
        self._lock = threading.Lock()

    def availability_error(self) -> str | None:
        if self._model_factory is not None:
            return None
        if genai is None:
            return "The Gemini SDK (google-generativeai) is not installed."
        if not self._api_key:
            return f"Missing {API_KEY_ENV_VAR}. Set it in the environment or in the settings file."
        return None

    def generate_reply(
        self,
        history: Sequence[ChatMessage],
        message: str,
        tone: Tone = "calm",
    ) -> ChatReply:
        if not message.strip():
            raise ValueError("Message is empty.")

        model = self._ensure_model()
        trimmed = list(history)[-self._history_limit :] if self._history_limit else []
        sdk_history = [
            {"role": "user" if item.role == "user" else "model", "parts": [item.content]}
            for item in trimmed
        ]

        effective_tone = effective_tone_for(message, tone)
        if history:
            prompt = (
                f"[System Reminder: Maintain {effective_tone} tone and speech instructions. "
                f"Avoid text-slang in output, expansion required.]\n\nUser: {message}"
            )
        else:
            prompt = f"{system_instruction(effective_tone)}\n\nUser: {message}"

        try:
            chat = model.start_chat(history=sdk_history)
            response = chat.send_message(prompt, request_options={"timeout": self._timeout})
            text = _response_text(response)
        except Exception as exc:
            logger.warning("Gemini chat request failed: %s", exc)
            raise GeminiClientError(str(exc)) from exc
        return parse_reply(text)

    def generate_reflection(self, summary: dict) -> str:
        model = self._ensure_model()
        user_prompt = (
            "Here is a summary of recent wellness signals.\n"
            "Please reflect gently on possible connections without making conclusions.\n\n"
            f"{json.dumps(summary, indent=2, ensure_ascii=False)}\n\n"
            "Respond in a calm, empathetic tone."
        )
        try:
            response = model.generate_content(
                [REFLECTION_SYSTEM_PROMPT, user_prompt],
                request_options={"timeout": self._timeout},
            )
            return _response_text(response).strip()
        except Exception as exc:
            logger.warning("Gemini reflection request failed: %s", exc)
            raise GeminiClientError(str(exc)) from exc

    # Internal helpers ---------------------------------------------------
    def _ensure_model(self):
        error = self.availability_error()
        if error:
            raise GeminiClientError(error)

        with self._lock:
            if self._model is not None:
                return self._model
            if self._model_factory is not None:
                self._model = self._model_factory(self._model_name, dict(self._generation_config))
                return self._model
            try:
                genai.configure(api_key=self._api_key)  # type: ignore[union-attr]
                self._model = genai.GenerativeModel(  # type: ignore[union-attr]
                    self._model_name,
                    generation_config=genai.GenerationConfig(**self._generation_config),  # type: ignore[union-attr]
                )
            except Exception as exc:
                logger.warning("Gemini model initialisation failed: %s", exc)
                raise GeminiClientError(f"Gemini initialisation failed: {exc}") from exc
            return self._model


def effective_tone_for(message: str, tone: str) -> str:
    lowered = message.lower()
    # 危険を示唆する語が含まれる場合は常に落ち着いたトーンへ
    if any(trigger in lowered for trigger in CRISIS_TRIGGERS):
        return "calm"
    return tone if tone in TONE_PROMPTS else "calm"


def system_instruction(tone: str) -> str:
    return BASE_PROMPT + TONE_PROMPTS.get(tone, TONE_PROMPTS["calm"]) + PROMOTION_PROTOCOL


def parse_reply(text: str) -> ChatReply:
    lowered = text.lower()
    crisis = any(marker in text for marker in CRISIS_MARKERS) or any(
        phrase in lowered for phrase in CRISIS_PHRASES
    )
    cleaned = text
    for marker in CRISIS_MARKERS:
        cleaned = cleaned.replace(marker, "")
    return ChatReply(text=cleaned.strip(), crisis=crisis)


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if not isinstance(text, str) or not text.strip():
        raise GeminiClientError("Empty response from Gemini.")
    return text
