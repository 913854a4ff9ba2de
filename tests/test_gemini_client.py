from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from sanctuary import gemini_client
from sanctuary.config import AppConfig
from sanctuary.gemini_client import GeminiClient, GeminiClientError, effective_tone_for, parse_reply
from sanctuary.models import ChatMessage


class StubChat:
    def __init__(self, model: "StubModel", history) -> None:
        self._model = model
        self.history = history

    def send_message(self, prompt, request_options=None):
        self._model.prompts.append(prompt)
        self._model.request_options.append(request_options)
        if isinstance(self._model.reply, Exception):
            raise self._model.reply
        return SimpleNamespace(text=self._model.reply)


class StubModel:
    def __init__(self, reply="I'm here with you.") -> None:
        self.reply = reply
        self.histories: list = []
        self.prompts: list = []
        self.request_options: list = []
        self.contents: list = []

    def start_chat(self, history=None):
        self.histories.append(history)
        return StubChat(self, history)

    def generate_content(self, contents, request_options=None):
        self.contents.append(contents)
        if isinstance(self.reply, Exception):
            raise self.reply
        return SimpleNamespace(text=self.reply)


@pytest.fixture()
def config(tmp_path) -> AppConfig:
    return AppConfig(root=tmp_path)


@pytest.fixture()
def model() -> StubModel:
    return StubModel()


@pytest.fixture()
def client(config, model) -> GeminiClient:
    created = []

    def factory(name, generation_config):
        created.append((name, generation_config))
        return model

    instance = GeminiClient(config, model_factory=factory)
    instance.created = created
    return instance


def conversation(turns: int) -> list[ChatMessage]:
    return [
        ChatMessage(role="user" if i % 2 == 0 else "assistant", content=f"message {i}")
        for i in range(turns)
    ]


def test_first_turn_carries_full_instruction(client, model) -> None:
    reply = client.generate_reply([], "I can't sleep", tone="genz")

    assert reply.text == "I'm here with you."
    assert not reply.crisis
    assert model.histories == [[]]
    prompt = model.prompts[0]
    assert "GEN-Z MODE" in prompt
    assert "CRISIS OVERRIDE" in prompt
    assert prompt.endswith("User: I can't sleep")
    assert model.request_options == [{"timeout": 60.0}]


def test_factory_gets_configured_model(client) -> None:
    client.generate_reply([], "hi")
    client.generate_reply([], "again")
    assert client.created == [("gemini-2.5-flash", {"temperature": 0.9, "max_output_tokens": 15000})]


def test_later_turns_send_reminder_and_trimmed_history(client, model) -> None:
    history = conversation(10)
    client.generate_reply(history, "still anxious", tone="calm")

    sent = model.histories[0]
    assert len(sent) == 6
    assert [item["parts"][0] for item in sent] == [f"message {i}" for i in range(4, 10)]
    assert [item["role"] for item in sent] == ["user", "model"] * 3
    prompt = model.prompts[0]
    assert prompt.startswith("[System Reminder: Maintain calm tone")
    assert "CRISIS OVERRIDE" not in prompt


def test_history_limit_comes_from_settings(tmp_path, model) -> None:
    (tmp_path / "sanctuary_settings.json").write_text(
        json.dumps({"llm": {"history_limit": 2}}), encoding="utf-8"
    )
    client = GeminiClient(AppConfig(root=tmp_path), model_factory=lambda name, cfg: model)
    client.generate_reply(conversation(5), "hello")
    assert [item["parts"][0] for item in model.histories[0]] == ["message 3", "message 4"]


@pytest.mark.parametrize(
    "message, tone, expected",
    [
        ("I need help", "genz", "calm"),
        ("I feel UNSAFE tonight", "genz", "calm"),
        ("vibes are off", "genz", "genz"),
        ("hello", "pirate", "calm"),
    ],
)
def test_effective_tone(message, tone, expected) -> None:
    assert effective_tone_for(message, tone) == expected


def test_crisis_message_forces_calm_instruction(client, model) -> None:
    client.generate_reply([], "please help me", tone="genz")
    assert "CALM MODE" in model.prompts[0]
    assert "GEN-Z MODE" not in model.prompts[0]


def test_crisis_marker_is_flagged_and_stripped(client, model) -> None:
    model.reply = "[REDIRECT_SOS] Please reach out to someone you trust right now."
    reply = client.generate_reply([], "hi")
    assert reply.crisis
    assert reply.text == "Please reach out to someone you trust right now."


@pytest.mark.parametrize(
    "text, crisis",
    [
        ("[CRISIS_FLAG] You matter.", True),
        ("You can call or text 988 any time.", True),
        ("A helpline can support you.", True),
        ("Let's take a slow breath together.", False),
    ],
)
def test_parse_reply(text, crisis) -> None:
    reply = parse_reply(text)
    assert reply.crisis is crisis
    assert "[" not in reply.text


def test_sdk_errors_are_wrapped(client, model) -> None:
    model.reply = TimeoutError("deadline exceeded")
    with pytest.raises(GeminiClientError):
        client.generate_reply([], "hello")


def test_empty_response_is_an_error(client, model) -> None:
    model.reply = "   "
    with pytest.raises(GeminiClientError):
        client.generate_reply([], "hello")


def test_blank_message_is_rejected(client, model) -> None:
    with pytest.raises(ValueError):
        client.generate_reply([], "   ")
    assert model.prompts == []


def test_missing_key_is_reported(config, monkeypatch) -> None:
    monkeypatch.delenv(gemini_client.API_KEY_ENV_VAR, raising=False)
    monkeypatch.setattr(gemini_client, "genai", object())
    client = GeminiClient(config)

    assert gemini_client.API_KEY_ENV_VAR in client.availability_error()
    with pytest.raises(GeminiClientError):
        client.generate_reply([], "hello")


def test_missing_sdk_is_reported(config, monkeypatch) -> None:
    monkeypatch.setenv(gemini_client.API_KEY_ENV_VAR, "test-key")
    monkeypatch.setattr(gemini_client, "genai", None)
    assert "google-generativeai" in GeminiClient(config).availability_error()


def test_reflection(client, model) -> None:
    model.reply = "  Shorter sleep might be connected to higher stress.  "
    summary = {"metrics": {"average_sleep_hours": 5.0}, "journal_excerpt": "tired"}

    text = client.generate_reflection(summary)

    assert text == "Shorter sleep might be connected to higher stress."
    system, user = model.contents[0]
    assert system == gemini_client.REFLECTION_SYSTEM_PROMPT
    assert '"average_sleep_hours": 5.0' in user


def test_reflection_errors_are_wrapped(client, model) -> None:
    model.reply = RuntimeError("quota")
    with pytest.raises(GeminiClientError):
        client.generate_reflection({"metrics": {}})
