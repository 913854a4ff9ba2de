from __future__ import annotations

import logging
import sys

from PySide6.QtWidgets import QApplication

from .config import AppConfig
from .settings import get_choice_setting
from .ui import MainWindow

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def main() -> None:
    # Qt アプリのエントリポイント。設定→ログ→メインウィンドウの順に用意して実行する。
    app = QApplication(sys.argv)
    config = AppConfig()
    level = get_choice_setting(config.settings, "app.log_level", LOG_LEVELS, "INFO")
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    window = MainWindow(config)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
