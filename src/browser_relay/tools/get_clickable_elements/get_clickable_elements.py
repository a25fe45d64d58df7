"""
getClickableElements Tool

列出目前頁面上可點擊的元素
"""

from typing import Any

from browser_relay.config import QUERY_TIMEOUT
from browser_relay.relay import BrowserRelay
from browser_relay.schemas import ClickableElement
from browser_relay.tools.base import SESSION_ID_SCHEMA, ToolName, registry


@registry.register(
    name=ToolName.GET_CLICKABLE_ELEMENTS,
    description="Get clickable elements on the current page (name, selector, text, type, visibility).",
    input_schema={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_SCHEMA},
        "required": [],
    },
)
async def handle_get_clickable_elements(args: dict[str, Any], relay: BrowserRelay) -> list[ClickableElement]:
    return await relay.forward(
        ToolName.GET_CLICKABLE_ELEMENTS.value,
        args,
        request_event="getClickableElements",
        payload=None,
        response_event="clickableElements",
        timeout=QUERY_TIMEOUT,
    )
