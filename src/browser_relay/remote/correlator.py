"""
請求關聯器

發送請求事件到瀏覽器 Client，並以 requestId 對應回傳的結果事件。
每個呼叫各自持有一個 Future，逾時或收到回應後立即從 pending 表移除，
遲到的回應與他人的回應都會被丟棄。
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from browser_relay.remote.registry import ClientSession
from browser_relay.schemas import NoClientConnectedError, RelayTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """等待中的請求"""

    request_id: str
    session_id: str
    tool_name: str
    response_event: str
    future: asyncio.Future


class RequestCorrelator:
    """以 requestId 為鍵的請求/回應對應表"""

    def __init__(self) -> None:
        self._pending: dict[str, PendingRequest] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def pending_for(self, session_id: str) -> list[PendingRequest]:
        return [p for p in self._pending.values() if p.session_id == session_id]

    async def call(
        self,
        session: ClientSession,
        request_event: str,
        payload: Any,
        response_event: str,
        timeout: float,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
    ) -> Any:
        """
        發送請求事件並等待對應的回應

        Args:
            session: 目標瀏覽器 Session
            request_event: 發送給 Client 的事件名稱
            payload: 事件資料
            response_event: 預期的回應事件名稱
            timeout: 逾時時間（秒）
            tool_name: Tool 名稱（用於診斷）
            arguments: Tool 參數（用於診斷）

        Returns:
            Client 回傳的資料（原樣）

        Raises:
            RelayTimeoutError: 逾時未收到回應
            NoClientConnectedError: 連線已關閉或等待期間斷線
        """
        request_id = str(uuid.uuid4())
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingRequest(
            request_id=request_id,
            session_id=session.id,
            tool_name=tool_name,
            response_event=response_event,
            future=future,
        )

        try:
            try:
                await session.connection.send_event(request_event, payload, request_id=request_id)
            except Exception as e:
                logger.warning(f"📤 發送 '{request_event}' 到 {session.id} 失敗: {e}")
                raise NoClientConnectedError(
                    f"Browser client '{session.id}' is no longer reachable",
                    data={"tool": tool_name, "arguments": arguments or {}, "sessionId": session.id},
                ) from e

            logger.debug(f"📤 發送事件: {request_event} → {session.id} (request_id={request_id})")
            return await asyncio.wait_for(future, timeout=timeout)

        except asyncio.TimeoutError:
            logger.error(f"⏰ {tool_name} 逾時 ({timeout:g}s): session={session.id}, request_id={request_id}")
            raise RelayTimeoutError(
                f"Timed out after {timeout:g}s waiting for '{response_event}' from browser client",
                data={"tool": tool_name, "arguments": arguments or {}, "sessionId": session.id},
            ) from None
        finally:
            self._pending.pop(request_id, None)

    def resolve(self, session_id: str, event: str, data: Any, request_id: str | None) -> bool:
        """
        將 Client 回傳的事件交給對應的等待中請求

        Returns:
            是否成功交付
        """
        if not request_id:
            logger.warning(f"收到缺少 requestId 的回應事件 '{event}' (session={session_id})，已忽略")
            return False

        pending = self._pending.get(request_id)
        if pending is None:
            logger.info(f"收到過期或未知的回應: event={event}, request_id={request_id}，已忽略")
            return False

        if pending.session_id != session_id or pending.response_event != event:
            logger.warning(
                f"回應不符: request_id={request_id} 預期 {pending.response_event}@{pending.session_id}，"
                f"實際 {event}@{session_id}，已忽略"
            )
            return False

        self._pending.pop(request_id, None)
        if not pending.future.done():
            pending.future.set_result(data)
        logger.debug(f"📥 收到回應: {event} (request_id={request_id})")
        return True

    def fail_session(self, session_id: str) -> int:
        """Client 斷線時，讓所有等待該 Client 的請求立即失敗"""
        failed = 0
        for request_id, pending in list(self._pending.items()):
            if pending.session_id != session_id:
                continue
            self._pending.pop(request_id, None)
            if not pending.future.done():
                pending.future.set_exception(
                    NoClientConnectedError(
                        f"Browser client '{session_id}' disconnected before responding",
                        data={"tool": pending.tool_name, "sessionId": session_id},
                    )
                )
                failed += 1
        if failed:
            logger.warning(f"🔴 {session_id} 斷線，{failed} 個等待中的請求已中止")
        return failed
