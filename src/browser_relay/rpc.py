"""
JSON-RPC 分派

HTTP 與 stdio 兩種傳輸共用的 JSON-RPC 2.0 處理邏輯。
所有錯誤都在這裡轉為 JSON-RPC error 物件，不會往外拋。
"""

import json
import logging
from typing import Any

from browser_relay import __version__
from browser_relay.config import SERVER_NAME
from browser_relay.relay import BrowserRelay
from browser_relay.schemas import (
    INTERNAL_ERROR,
    InvalidArgumentError,
    InvalidRequestError,
    MCPError,
    MethodNotFoundError,
    ParseError,
)
from browser_relay.tools import registry
from browser_relay.utils import format_tool_result, truncate_string

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"


def success_response(req_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def error_response(req_id: Any, error: MCPError) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": req_id, "error": error.to_error()}


def internal_error_response(req_id: Any, exc: Exception) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": req_id,
        "error": {"code": INTERNAL_ERROR, "message": f"Internal error: {exc}", "data": {"error": "InternalError"}},
    }


def parse_message(raw: str | bytes) -> Any:
    """
    解析原始請求內容

    Raises:
        ParseError: 不是合法 JSON
    """
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Parse error: {e}") from None


async def handle_raw(raw: str | bytes, relay: BrowserRelay) -> dict[str, Any] | None:
    """解析並處理一則原始請求"""
    try:
        message = parse_message(raw)
    except ParseError as e:
        logger.warning(f"請求 JSON 解析失敗: {truncate_string(str(raw))}")
        return error_response(None, e)
    return await handle_message(message, relay)


async def handle_message(message: Any, relay: BrowserRelay) -> dict[str, Any] | None:
    """
    處理一則已解析的 JSON-RPC 訊息

    Returns:
        JSON-RPC 回應；通知（沒有 id 或 notifications/*）回傳 None
    """
    if not isinstance(message, dict):
        return error_response(None, InvalidRequestError("Invalid Request: expected a JSON object"))

    response = await _dispatch(message, relay)
    if "id" not in message:
        return None
    return response


async def _dispatch(message: dict[str, Any], relay: BrowserRelay) -> dict[str, Any] | None:
    req_id = message.get("id")
    method = message.get("method")

    try:
        if not isinstance(method, str):
            raise InvalidRequestError("Invalid Request: 'method' must be a string")

        if method.startswith("notifications/"):
            logger.debug(f"收到通知: {method}")
            return None

        if method == "initialize":
            result = _handle_initialize()
        elif method == "ping":
            result = {}
        elif method == "tools/list":
            result = {"tools": registry.list_tools()}
        elif method == "tools/call":
            result = await _handle_tools_call(message.get("params"), relay)
        else:
            raise MethodNotFoundError(f"Method not found: {method}", data={"method": method})

        return success_response(req_id, result)

    except MCPError as e:
        logger.warning(f"⚠️ {method} 失敗 [{e.kind}] {e.message}")
        return error_response(req_id, e)
    except Exception as e:
        logger.exception(f"處理請求失敗: {e}")
        return internal_error_response(req_id, e)


def _handle_initialize() -> dict[str, Any]:
    """處理 initialize method"""
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": SERVER_NAME, "version": __version__},
    }


async def _handle_tools_call(params: Any, relay: BrowserRelay) -> dict[str, Any]:
    """
    處理 tools/call method - 委派給 registry

    Raises:
        MCPError: 參數錯誤、找不到 Client、逾時等
    """
    if not isinstance(params, dict):
        raise InvalidArgumentError("Invalid params: 'params' must be an object")

    tool_name = params.get("name")
    args = params.get("arguments") or {}
    if not isinstance(tool_name, str) or not tool_name:
        raise InvalidArgumentError("Invalid params: 'name' is required", data={"arguments": args})
    if not isinstance(args, dict):
        raise InvalidArgumentError("Invalid params: 'arguments' must be an object", data={"tool": tool_name})

    logger.info(f"🎯 Tool 呼叫: {tool_name} {args}")
    try:
        payload = await registry.execute(tool_name, args, relay)
    except MCPError as e:
        # 錯誤資料一律附上 Tool 名稱與參數，方便呼叫端除錯
        e.data = {"tool": tool_name, "arguments": args, **(e.data or {})}
        raise

    logger.info(f"✅ Tool {tool_name} 執行完成")
    return format_tool_result(tool_name, payload)
