"""
Tool Registry 基礎架構

提供 Tool 註冊與執行的核心機制。可用的 Tool 固定為 ToolName 列舉的成員，
每個成員必須有且只有一個 handler。
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from browser_relay.relay import BrowserRelay
from browser_relay.schemas import InvalidArgumentError, UnknownToolError

ToolHandler = Callable[[dict[str, Any], BrowserRelay], Awaitable[Any]]


class ToolName(str, Enum):
    """對外公開的 Tool"""

    GET_CURRENT_PAGE = "getCurrentPage"
    GET_CLICKABLE_ELEMENTS = "getClickableElements"
    CLICK_ELEMENT = "clickElement"
    NAVIGATE_PAGE = "navigatePage"
    FILL_BOOKING_FORM = "fillBookingForm"


SESSION_ID_SCHEMA = {
    "type": "string",
    "description": "Optional session ID to target a specific browser client",
}


@dataclass
class ToolDefinition:
    """Tool 定義，包含 schema 與 handler"""

    name: ToolName
    description: str
    input_schema: dict[str, Any]
    handler: ToolHandler


class ToolRegistry:
    """
    Tool 註冊表：集中管理所有 MCP Tools

    使用單例模式，確保全域只有一個 registry
    """

    _instance: ClassVar["ToolRegistry | None"] = None

    _tools: dict[ToolName, ToolDefinition]

    def __new__(cls) -> "ToolRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._tools = {}
        return cls._instance

    def register(self, name: ToolName, description: str, input_schema: dict[str, Any]) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator 用於註冊 Tool

        使用方式:
            @registry.register(
                name=ToolName.CLICK_ELEMENT,
                description="Click a named element",
                input_schema={...}
            )
            async def handle_click_element(args: dict, relay: BrowserRelay) -> Any:
                ...
        """

        def decorator(handler: ToolHandler) -> ToolHandler:
            if name in self._tools:
                raise RuntimeError(f"Tool already registered: {name.value}")
            self._tools[name] = ToolDefinition(name=name, description=description, input_schema=input_schema, handler=handler)
            return handler

        return decorator

    def verify_complete(self) -> None:
        """確認每個 ToolName 都已註冊 handler"""
        missing = [name.value for name in ToolName if name not in self._tools]
        if missing:
            raise RuntimeError(f"Tools without handler: {', '.join(missing)}")

    def list_tools(self) -> list[dict[str, Any]]:
        """列出所有 Tool 的 schema（依 ToolName 宣告順序）"""
        return [
            {"name": t.name.value, "description": t.description, "inputSchema": t.input_schema}
            for name in ToolName
            if (t := self._tools.get(name)) is not None
        ]

    async def execute(self, name: str, args: dict[str, Any], relay: BrowserRelay) -> Any:
        """
        執行指定的 Tool

        Args:
            name: Tool 名稱
            args: Tool 參數
            relay: 負責轉送的 BrowserRelay

        Returns:
            瀏覽器 Client 回傳的資料

        Raises:
            UnknownToolError: Tool 不存在
            InvalidArgumentError: 參數錯誤
        """
        try:
            tool = self._tools[ToolName(name)]
        except (ValueError, KeyError):
            raise UnknownToolError(f"Unknown tool: {name}", data={"tool": name, "arguments": args}) from None

        session_id = args.get("sessionId")
        if session_id is not None and (not isinstance(session_id, str) or not session_id.strip()):
            raise InvalidArgumentError("'sessionId' must be a non-empty string", data={"tool": name, "arguments": args})

        return await tool.handler(args, relay)

    def get_tool_count(self) -> int:
        """取得已註冊的工具數量"""
        return len(self._tools)


def require_string(args: dict[str, Any], key: str, tool: ToolName) -> str:
    """
    取出必填的字串參數

    Raises:
        InvalidArgumentError: 參數缺失、不是字串或為空字串
    """
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(
            f"'{key}' is required and must be a non-empty string",
            data={"tool": tool.value, "arguments": args},
        )
    return value


# 全域註冊表（單例）
registry = ToolRegistry()
