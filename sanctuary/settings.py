from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "sanctuary_settings.json"

DEFAULT_SETTINGS: dict[str, Any] = {
    "app": {
        "log_level": "INFO",
        "default_tone": "calm",
    },
    "breathing": {
        "default_technique": "box",
        "tick_interval_ms": 1000,
    },
    "insights": {
        "default_range": "month",
    },
    "llm": {
        "api_key": None,
        "model": "gemini-2.5-flash",
        "chat_temperature": 0.9,
        "chat_max_output_tokens": 15000,
        "history_limit": 6,
        "request_timeout_sec": 60,
    },
    "storage": {
        "data_dir": None,
    },
}


def settings_path(root: Path) -> Path:
    return root / SETTINGS_FILENAME


def load_settings(root: Path) -> dict[str, Any]:
    """Read ``sanctuary_settings.json`` under *root*, layered over the defaults."""

    path = settings_path(root)
    if not path.exists():
        return deepcopy(DEFAULT_SETTINGS)

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return deepcopy(DEFAULT_SETTINGS)
    if not isinstance(payload, Mapping):
        logger.warning("Ignoring settings file %s: top level must be an object", path)
        return deepcopy(DEFAULT_SETTINGS)

    return _merge_over(DEFAULT_SETTINGS, payload)


def get_setting(settings: Mapping[str, Any], dotted_key: str, default: Any = None) -> Any:
    node: Any = settings
    for part in dotted_key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def get_int_setting(
    settings: Mapping[str, Any],
    dotted_key: str,
    default: int,
    minimum: int | None = None,
) -> int:
    value = get_setting(settings, dotted_key)
    # bool は int のサブクラスなので数値として扱わない
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning("Setting %s=%r is not an integer; using %s", dotted_key, value, default)
        return default
    if minimum is not None and number < minimum:
        return minimum
    return number


def get_float_setting(
    settings: Mapping[str, Any],
    dotted_key: str,
    default: float,
    minimum: float | None = None,
) -> float:
    value = get_setting(settings, dotted_key)
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Setting %s=%r is not a number; using %s", dotted_key, value, default)
        return default
    if minimum is not None and number < minimum:
        return minimum
    return number


def get_str_setting(settings: Mapping[str, Any], dotted_key: str, default: str) -> str:
    value = get_setting(settings, dotted_key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def get_choice_setting(
    settings: Mapping[str, Any],
    dotted_key: str,
    choices: Iterable[str],
    default: str,
) -> str:
    """String setting restricted to *choices*; anything else falls back to *default*."""

    allowed = set(choices)
    value = get_str_setting(settings, dotted_key, default)
    if value not in allowed:
        logger.warning("Setting %s=%r is not one of %s; using %s", dotted_key, value, sorted(allowed), default)
        return default
    return value


def resolve_path_setting(settings: Mapping[str, Any], dotted_key: str, root: Path) -> Path | None:
    raw = get_str_setting(settings, dotted_key, "")
    if not raw:
        return None
    path = Path(raw).expanduser()
    # 相対パスは設定ファイルのあるルートからの位置とみなす
    return (path if path.is_absolute() else root / path).resolve()


def _merge_over(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge_over(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged
