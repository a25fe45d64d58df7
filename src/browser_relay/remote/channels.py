"""
瀏覽器 Client 事件頻道

提供兩個 WebSocket 端點讓瀏覽器端連入：
- /ws        預設頻道，連線後需送出 register:nextjs 才會成為可用 Client
- /ws/tools  Tools 頻道，連線即自動註冊

訊框格式為 JSON 物件：{"event": str, "data": any, "requestId": str?}
"""

import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from browser_relay.relay import BrowserRelay

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_CHANNEL = "default"
TOOLS_CHANNEL = "tools"
CONNECTED_EVENT = "connected"


class WebSocketConnection:
    """包裝 FastAPI WebSocket，提供 ClientRegistry 需要的連線介面"""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._closed = False

    @property
    def connected(self) -> bool:
        return (
            not self._closed
            and self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    def mark_closed(self) -> None:
        self._closed = True

    async def send_event(self, event: str, data: Any = None, request_id: str | None = None) -> None:
        frame: dict[str, Any] = {"event": event, "data": data}
        if request_id:
            frame["requestId"] = request_id
        await self._websocket.send_text(json.dumps(frame, ensure_ascii=False))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.connected:
            await self._websocket.close(code=code, reason=reason)
        self._closed = True


def parse_frame(raw: str) -> tuple[str, Any, str | None]:
    """
    解析 Client 傳來的訊框

    Returns:
        (event, data, request_id)

    Raises:
        ValueError: 訊框格式錯誤
    """
    message = json.loads(raw)
    if not isinstance(message, dict):
        raise ValueError("frame must be a JSON object")

    event = message.get("event")
    if not isinstance(event, str) or not event:
        raise ValueError("frame is missing 'event'")

    request_id = message.get("requestId")
    if request_id is not None and not isinstance(request_id, str):
        raise ValueError("'requestId' must be a string")

    return event, message.get("data"), request_id


async def serve_client(websocket: WebSocket, relay: BrowserRelay, channel: str, auto_register: bool) -> None:
    """處理單一瀏覽器連線直到斷線"""
    await websocket.accept()

    session_id = str(uuid.uuid4())
    connection = WebSocketConnection(websocket)
    relay.client_connected(session_id, connection, channel, auto_register=auto_register)
    logger.info(f"🔌 [{channel}] Client 已連線: {session_id}")

    try:
        await connection.send_event(CONNECTED_EVENT, {"sessionId": session_id, "channel": channel})

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")

            try:
                event, data, request_id = parse_frame(raw)
            except ValueError as e:
                logger.warning(f"無法解析訊息 ({session_id}): {e} | {raw[:100]}")
                continue

            try:
                await relay.handle_client_event(session_id, event, data, request_id)
            except Exception as e:
                logger.exception(f"處理事件 '{event}' 時發生錯誤 ({session_id}): {e}")

    except Exception as e:
        # 連線異常中斷（例如對方未送 close frame）
        logger.warning(f"[{channel}] 連線異常中斷 ({session_id}): {e}")
    finally:
        connection.mark_closed()
        relay.client_disconnected(session_id)
        logger.info(f"❌ [{channel}] Client 已斷線: {session_id}")


def _relay(websocket: WebSocket) -> BrowserRelay:
    return websocket.app.state.relay


@router.websocket("/ws")
async def default_channel(websocket: WebSocket) -> None:
    await serve_client(websocket, _relay(websocket), DEFAULT_CHANNEL, auto_register=False)


@router.websocket("/ws/tools")
async def tools_channel(websocket: WebSocket) -> None:
    await serve_client(websocket, _relay(websocket), TOOLS_CHANNEL, auto_register=True)
