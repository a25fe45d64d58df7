"""
getCurrentPage Tool

取得瀏覽器 Client 目前所在頁面的標題、URL 與路徑
"""

from typing import Any

from browser_relay.config import QUERY_TIMEOUT
from browser_relay.relay import BrowserRelay
from browser_relay.schemas import PageInfo
from browser_relay.tools.base import SESSION_ID_SCHEMA, ToolName, registry


@registry.register(
    name=ToolName.GET_CURRENT_PAGE,
    description="Get current page information (title, url, path) from the connected browser client.",
    input_schema={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_SCHEMA},
        "required": [],
    },
)
async def handle_get_current_page(args: dict[str, Any], relay: BrowserRelay) -> PageInfo:
    """處理 getCurrentPage 請求"""
    return await relay.forward(
        ToolName.GET_CURRENT_PAGE.value,
        args,
        request_event="getCurrentPage",
        payload=None,
        response_event="pageInfo",
        timeout=QUERY_TIMEOUT,
    )
