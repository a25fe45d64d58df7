"""
輔助函數工具箱

包含通用工具函數與格式化功能
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def format_tool_result(tool_name: str, payload: Any) -> dict[str, Any]:
    """
    格式化 Client 回傳的資料為 MCP 回應格式

    Args:
        tool_name: Tool 名稱
        payload: 瀏覽器 Client 回傳的資料（原樣序列化）

    Returns:
        MCP 格式的字典
    """
    text_output = json.dumps(payload, indent=2, ensure_ascii=False)
    response = {
        "content": [{"type": "text", "text": text_output}],
        "isError": False,
    }

    logger.info(f"📊 MCP 回覆格式化完成 | 文本長度: {len(text_output):,} 字符 | Tool: {tool_name}")
    return response


def utc_timestamp() -> str:
    """目前時間的 ISO 8601 字串（UTC）"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def truncate_string(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """截斷過長的字串"""
    if len(text) > max_length:
        return text[:max_length] + suffix
    return text
