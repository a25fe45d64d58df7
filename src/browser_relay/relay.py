"""
Browser Relay 核心

組合 ClientRegistry 與 RequestCorrelator：
- 選擇目標 Client 並轉送 Tool 請求
- 處理 Client 傳回的事件（回應、註冊、心跳）
- 背景定期清除閒置 Session
"""

import asyncio
import contextlib
import logging
from typing import Any

from browser_relay.config import SESSION_IDLE_TIMEOUT, SESSION_SWEEP_INTERVAL
from browser_relay.remote.correlator import RequestCorrelator
from browser_relay.remote.registry import ClientConnection, ClientRegistry, ClientSession

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Client → Server 事件
# ═══════════════════════════════════════════════════════════════════════════════
REGISTER_EVENT = "register:nextjs"
PING_EVENT = "ping"
PONG_EVENT = "pong"
BOOKING_COMPLETED_EVENT = "booking:completed"
BOOKING_FILL_EVENT = "booking:fill"

# 回應事件別名 → 標準名稱
RESPONSE_EVENT_ALIASES = {
    "pageInfo": "pageInfo",
    "currentPageData": "pageInfo",
    "clickableElements": "clickableElements",
    "clickableElementsData": "clickableElements",
    "clickResult": "clickResult",
    "clickElementSuccess": "clickResult",
    "navigationResult": "navigationResult",
    "navigatePageSuccess": "navigationResult",
    "bookingFormResult": "bookingFormResult",
}


def _page_from_payload(data: Any) -> str | None:
    """從回應資料中取出目前頁面路徑"""
    if not isinstance(data, dict):
        return None
    for key in ("path", "currentPage", "targetPage"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class BrowserRelay:
    """瀏覽器 Client 轉送器"""

    def __init__(
        self,
        idle_timeout: float = SESSION_IDLE_TIMEOUT,
        sweep_interval: float = SESSION_SWEEP_INTERVAL,
    ) -> None:
        self.registry = ClientRegistry()
        self.correlator = RequestCorrelator()
        self.idle_timeout = idle_timeout
        self.sweep_interval = sweep_interval
        self._sweep_task: asyncio.Task | None = None

    # ═══════════════════════════════════════════════════════════════════════════
    # Tool 轉送
    # ═══════════════════════════════════════════════════════════════════════════

    async def forward(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        request_event: str,
        payload: Any,
        response_event: str,
        timeout: float,
    ) -> Any:
        """
        選擇 Client 並轉送 Tool 請求

        Raises:
            NoClientConnectedError: 沒有可用的 Client
            RelayTimeoutError: Client 未在時限內回應
        """
        session_id = arguments.get("sessionId")
        session = self.registry.select(session_id)
        logger.info(f"🎯 [{tool_name}] → {session.id}{' (自動選擇)' if session_id is None else ''}")
        return await self.correlator.call(
            session,
            request_event,
            payload,
            response_event,
            timeout,
            tool_name=tool_name,
            arguments=arguments,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # 連線生命週期
    # ═══════════════════════════════════════════════════════════════════════════

    def client_connected(self, session_id: str, connection: ClientConnection, channel: str, auto_register: bool) -> ClientSession:
        if auto_register:
            return self.registry.register(session_id, connection, channel)
        return self.registry.add_connection(session_id, connection, channel)

    def client_disconnected(self, session_id: str) -> None:
        self.registry.unregister(session_id)
        self.correlator.fail_session(session_id)

    async def handle_client_event(self, session_id: str, event: str, data: Any = None, request_id: str | None = None) -> None:
        """處理 Client 傳來的單一事件"""
        session = self.registry.get(session_id)
        if session is None:
            logger.warning(f"收到未知 Session 的事件: {event} ({session_id})")
            return

        self.registry.touch(session_id)

        if event == REGISTER_EVENT:
            self.registry.register(session_id, session.connection, session.channel)
            return

        if event == PING_EVENT:
            await session.connection.send_event(PONG_EVENT, data)
            return

        if event == BOOKING_COMPLETED_EVENT:
            logger.info(f"✅ 收到訂房完成事件: {session_id}")
            await self.broadcast(BOOKING_COMPLETED_EVENT, data, channel=session.channel, exclude=session_id)
            return

        response_event = RESPONSE_EVENT_ALIASES.get(event)
        if response_event is None:
            logger.warning(f"未知事件類型: {event} ({session_id})")
            return

        self.registry.touch(session_id, current_page=_page_from_payload(data))
        self.correlator.resolve(session_id, response_event, data, request_id)

    async def broadcast(self, event: str, data: Any = None, channel: str | None = None, exclude: str | None = None) -> int:
        """發送事件到所有（或指定頻道的）已註冊 Client"""
        sent = 0
        for session in self.registry.list_active():
            if session.id == exclude or (channel and session.channel != channel):
                continue
            try:
                await session.connection.send_event(event, data)
                sent += 1
            except Exception as e:
                logger.warning(f"廣播 '{event}' 到 {session.id} 失敗: {e}")
        logger.debug(f"📢 廣播 '{event}' 到 {sent} 個 Client")
        return sent

    # ═══════════════════════════════════════════════════════════════════════════
    # 閒置 Session 清理
    # ═══════════════════════════════════════════════════════════════════════════

    async def sweep_once(self) -> int:
        """清除一次閒置或已斷線的 Session，回傳清除數量"""
        removed = self.registry.sweep_stale(self.idle_timeout)
        for session in removed:
            self.correlator.fail_session(session.id)
            if session.connection.connected:
                with contextlib.suppress(Exception):
                    await session.connection.close(code=1001, reason="idle timeout")
        return len(removed)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.exception(f"清理 Session 時發生錯誤: {e}")

    def start(self) -> None:
        """啟動背景清理任務"""
        if self._sweep_task is not None and not self._sweep_task.done():
            logger.warning("Session 清理任務已在運行中")
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="session-sweep")
        logger.info(f"🧹 Session 清理任務已啟動 (每 {self.sweep_interval:g}s，閒置上限 {self.idle_timeout:g}s)")

    async def stop(self) -> None:
        """停止背景清理任務"""
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweep_task
        self._sweep_task = None
        logger.info("🛑 Session 清理任務已停止")


# 全域 Relay 實例
browser_relay = BrowserRelay()
