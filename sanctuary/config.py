from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .settings import load_settings, resolve_path_setting

HOME_ENV_VAR = "SANCTUARY_HOME"


@dataclass(frozen=True)
class AppPaths:
    root: Path
    data_dir: Path


def default_root() -> Path:
    override = os.getenv(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".sanctuary"


@dataclass
class AppConfig:
    """Resolved locations and merged user settings for one application run."""

    root: Path = field(default_factory=default_root)
    settings: dict[str, Any] = field(init=False)
    paths: AppPaths = field(init=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        self.settings = load_settings(self.root)
        data_dir = resolve_path_setting(self.settings, "storage.data_dir", self.root)
        # ローカルストレージ相当の JSON 置き場。未指定ならアプリルート直下
        self.paths = AppPaths(root=self.root, data_dir=data_dir or self.root / "data")
