"""
navigatePage Tool

導航到指定的頁面路徑
"""

import logging
from typing import Any

from browser_relay.config import ACTION_TIMEOUT
from browser_relay.relay import BrowserRelay
from browser_relay.schemas import NavigationResult
from browser_relay.tools.base import SESSION_ID_SCHEMA, ToolName, registry, require_string

logger = logging.getLogger(__name__)


@registry.register(
    name=ToolName.NAVIGATE_PAGE,
    description="Navigate the browser client to a page path (e.g. '/contact').",
    input_schema={
        "type": "object",
        "properties": {
            "page": {"type": "string", "description": "Page path to navigate to"},
            "sessionId": SESSION_ID_SCHEMA,
        },
        "required": ["page"],
    },
)
async def handle_navigate_page(args: dict[str, Any], relay: BrowserRelay) -> NavigationResult:
    """處理 navigatePage 請求"""
    page = require_string(args, "page", ToolName.NAVIGATE_PAGE)
    logger.info(f"🧭 navigatePage: {page}")

    return await relay.forward(
        ToolName.NAVIGATE_PAGE.value,
        args,
        request_event="navigatePage",
        payload=page,
        response_event="navigationResult",
        timeout=ACTION_TIMEOUT,
    )
