"""
環境設定與常數

集中管理所有配置項，從環境變數載入。
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# 基本設定
# ═══════════════════════════════════════════════════════════════════════════════
# 專案根目錄
PROJECT_ROOT = Path(__file__).parent.parent.parent

# 載入 .env 檔案
ENV_PATH = PROJECT_ROOT / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
    logger.info(f"📁 已載入環境設定檔: {ENV_PATH}")


class ConfigError(Exception):
    """設定值無效，伺服器無法啟動"""


def _env_float(key: str, default: float) -> float:
    """讀取浮點數環境變數，格式錯誤時回傳 NaN 交由 validate_config 處理"""
    raw = os.getenv(key, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"⚠️ 環境變數 {key} 不是數字: {raw!r}")
        return float("nan")


def _env_int(key: str, default: int) -> int:
    """讀取整數環境變數，格式錯誤時回傳 -1 交由 validate_config 處理"""
    raw = os.getenv(key, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️ 環境變數 {key} 不是整數: {raw!r}")
        return -1


# ═══════════════════════════════════════════════════════════════════════════════
# 伺服器設定
# ═══════════════════════════════════════════════════════════════════════════════
SERVER_NAME = "browser-relay"
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 3001)

# CORS_ORIGIN 可為 "*" 或以逗號分隔的多個來源
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")
CORS_ORIGINS = [origin.strip() for origin in CORS_ORIGIN.split(",") if origin.strip()] or ["*"]

# 傳輸模式：http（HTTP + WebSocket）或 stdio（stdio JSON-RPC + WebSocket）
MCP_TRANSPORT = os.getenv("MCP_TRANSPORT", "http").lower()
SUPPORTED_TRANSPORTS = ("http", "stdio")

# ═══════════════════════════════════════════════════════════════════════════════
# 日誌設定
# ═══════════════════════════════════════════════════════════════════════════════
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", str(PROJECT_ROOT / "logs"))

# ═══════════════════════════════════════════════════════════════════════════════
# Tool 逾時設定（秒）
# ═══════════════════════════════════════════════════════════════════════════════
QUERY_TIMEOUT = _env_float("QUERY_TIMEOUT", 5.0)  # getCurrentPage / getClickableElements
ACTION_TIMEOUT = _env_float("ACTION_TIMEOUT", 10.0)  # clickElement / navigatePage
FORM_TIMEOUT = _env_float("FORM_TIMEOUT", 15.0)  # fillBookingForm

# ═══════════════════════════════════════════════════════════════════════════════
# Session 管理
# ═══════════════════════════════════════════════════════════════════════════════
SESSION_IDLE_TIMEOUT = _env_float("SESSION_IDLE_TIMEOUT", 300.0)  # 5 分鐘無活動即移除
SESSION_SWEEP_INTERVAL = _env_float("SESSION_SWEEP_INTERVAL", 30.0)

# ═══════════════════════════════════════════════════════════════════════════════
# 協作 API（訂房表單轉送）
# ═══════════════════════════════════════════════════════════════════════════════
NEXT_API_URL = os.getenv("NEXT_API_URL", "http://localhost:3000/api").rstrip("/")
NEXT_API_TIMEOUT = _env_float("NEXT_API_TIMEOUT", 10.0)


def validate_config() -> None:
    """
    檢查設定值是否可用

    Raises:
        ConfigError: 任何設定值無效時拋出
    """
    errors: list[str] = []

    if not 0 < PORT < 65536:
        errors.append(f"PORT 必須介於 1-65535，目前為 {os.getenv('PORT')!r}")

    if MCP_TRANSPORT not in SUPPORTED_TRANSPORTS:
        errors.append(f"MCP_TRANSPORT 必須是 {'/'.join(SUPPORTED_TRANSPORTS)}，目前為 {MCP_TRANSPORT!r}")

    if not NEXT_API_URL:
        errors.append("NEXT_API_URL 不可為空")

    for name, value in (
        ("QUERY_TIMEOUT", QUERY_TIMEOUT),
        ("ACTION_TIMEOUT", ACTION_TIMEOUT),
        ("FORM_TIMEOUT", FORM_TIMEOUT),
        ("SESSION_IDLE_TIMEOUT", SESSION_IDLE_TIMEOUT),
        ("SESSION_SWEEP_INTERVAL", SESSION_SWEEP_INTERVAL),
        ("NEXT_API_TIMEOUT", NEXT_API_TIMEOUT),
    ):
        # NaN 與非正數都視為無效
        if not value > 0:
            errors.append(f"{name} 必須為正數")

    if errors:
        raise ConfigError("; ".join(errors))
