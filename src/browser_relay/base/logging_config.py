"""
日誌設定模組

Relay 的日誌輸出規則：
- 控制台：依 LOG_LEVEL 輸出，TTY 上加 ANSI 顏色；stdio 模式改寫到 stderr
- 檔案：WARNING 以上寫入 LOG_DIR/browser-relay.log，自動輪替
- 外部套件：依 RELAY_EXTERNAL_LOG_LEVELS 壓低雜訊
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

from browser_relay.config import LOG_DIR, SERVER_NAME

# 外部套件的日誌上限；uvicorn.access 每個 /mcp 請求都會記一筆，只保留警告
RELAY_EXTERNAL_LOG_LEVELS = {
    "asyncio": logging.INFO,
    "httpx": logging.INFO,
    "httpcore": logging.INFO,
    "websockets": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.WARNING,
}

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FORMAT = "[%(asctime)s][%(levelname)-8s][%(name)s:%(lineno)d] %(message)s"

LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

# 日誌等級 → ANSI 256 色碼（前景, 背景）
_LEVEL_COLORS: dict[int, tuple[int, int | None]] = {
    logging.DEBUG: (7, None),     # 白色
    logging.INFO: (2, None),      # 綠色
    logging.WARNING: (3, None),   # 黃色
    logging.ERROR: (1, None),     # 紅色
    logging.CRITICAL: (6, 1),     # 青字紅底
}


def _colorize(text: str, levelno: int) -> str:
    colors = _LEVEL_COLORS.get(levelno)
    if colors is None:
        return text
    fg, bg = colors
    codes = f"38;5;{fg}" + (f";48;5;{bg}" if bg is not None else "")
    return f"\033[{codes}m{text}\033[0m"


class ColoredFormatter(logging.Formatter):
    """控制台用格式化器，依等級上色"""

    def format(self, record: logging.LogRecord) -> str:
        return _colorize(super().format(record), record.levelno)


def _file_handler(log_dir: Path, log_file: str, level: int) -> logging.Handler | None:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        sys.stderr.write(f"警告: 無法建立日誌目錄 {log_dir}: {e}\n")
        return None

    handler = RotatingFileHandler(
        filename=str(log_dir / log_file),
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _console_handler(stream: TextIO, level: int | str) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)

    # 被 Agent 以管線啟動時不輸出 ANSI 顏色
    isatty = getattr(stream, "isatty", None)
    if sys.platform != "win32" and isatty is not None and isatty():
        handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    log_file: str = f"{SERVER_NAME}.log",
    console_log_level: int | str = logging.DEBUG,
    file_log_level: int = logging.WARNING,
    log_dir: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    設定全域日誌系統，重複呼叫會先移除既有的 handler。

    Args:
        log_file: 日誌檔名（位於 log_dir 下）
        console_log_level: 控制台日誌等級，NOTSET 表示不輸出到控制台
        file_log_level: 檔案日誌等級，NOTSET 表示不寫檔
        log_dir: 日誌目錄，預設為設定中的 LOG_DIR
        stream: 控制台串流，預設 stdout；stdio 模式必須傳入 stderr，
            否則日誌會混入 JSON-RPC 回應
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    if file_log_level != logging.NOTSET:
        file_handler = _file_handler(Path(log_dir or LOG_DIR), log_file, file_log_level)
        if file_handler is not None:
            root_logger.addHandler(file_handler)

    if console_log_level != logging.NOTSET:
        root_logger.addHandler(_console_handler(stream or sys.stdout, console_log_level))

    for name, level in RELAY_EXTERNAL_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    root_logger.debug(f"日誌系統設定完成 (console={console_log_level}, file={logging.getLevelName(file_log_level)})")
