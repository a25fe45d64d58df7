"""
clickElement Tool

依名稱點擊頁面上的元素，名稱來自 getClickableElements 的結果
"""

import logging
from typing import Any

from browser_relay.config import ACTION_TIMEOUT
from browser_relay.relay import BrowserRelay
from browser_relay.schemas import ClickResult
from browser_relay.tools.base import SESSION_ID_SCHEMA, ToolName, registry, require_string

logger = logging.getLogger(__name__)


@registry.register(
    name=ToolName.CLICK_ELEMENT,
    description="Click a named element on the current page. Use getClickableElements to discover names.",
    input_schema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Element name to click"},
            "sessionId": SESSION_ID_SCHEMA,
        },
        "required": ["name"],
    },
)
async def handle_click_element(args: dict[str, Any], relay: BrowserRelay) -> ClickResult:
    """
    處理 clickElement 請求。

    參數驗證在選擇 Client 之前完成，驗證失敗不會聯絡任何 Client。

    Args:
        args: 包含以下參數的字典：
            - name: 元素名稱（必填）
            - sessionId: 指定的 Session（選填）
        relay: 負責轉送的 BrowserRelay

    Returns:
        ClickResult: Client 回傳的點擊結果
    """
    name = require_string(args, "name", ToolName.CLICK_ELEMENT)
    logger.info(f"🖱️ clickElement: {name}")

    return await relay.forward(
        ToolName.CLICK_ELEMENT.value,
        args,
        request_event="clickElement",
        payload={"name": name},
        response_event="clickResult",
        timeout=ACTION_TIMEOUT,
    )
