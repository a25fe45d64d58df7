"""
Tools 模組入口

集中管理所有 MCP Tools，自動載入並註冊到 Registry
"""

import logging

from browser_relay.tools.base import ToolDefinition, ToolHandler, ToolName, ToolRegistry, registry

# 自動載入所有 Tool 模組（副作用：自動註冊到 registry）
from browser_relay.tools.click_element import click_element  # noqa: F401
from browser_relay.tools.fill_booking_form import fill_booking_form  # noqa: F401
from browser_relay.tools.get_clickable_elements import get_clickable_elements  # noqa: F401
from browser_relay.tools.get_current_page import get_current_page  # noqa: F401
from browser_relay.tools.navigate_page import navigate_page  # noqa: F401

registry.verify_complete()

logger = logging.getLogger(__name__)
logger.debug(f"🧰 已載入 {registry.get_tool_count()} 個 Tool 模組")

__all__ = [
    "registry",
    "ToolRegistry",
    "ToolDefinition",
    "ToolHandler",
    "ToolName",
]
