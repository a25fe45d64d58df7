"""
Client 註冊表

追蹤每一個已連線的瀏覽器 Session，並依規則選出要轉送 Tool 呼叫的 Client。
所有對 Session 狀態的修改都必須經過 ClientRegistry 的方法。
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from browser_relay.schemas import NoClientConnectedError

logger = logging.getLogger(__name__)

DEFAULT_PAGE = "/"


class ClientConnection(Protocol):
    """瀏覽器端連線的最小介面（由 channels.WebSocketConnection 實作）"""

    @property
    def connected(self) -> bool: ...

    async def send_event(self, event: str, data: Any = None, request_id: str | None = None) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


@dataclass
class ClientSession:
    """單一瀏覽器 Session 狀態"""

    id: str
    connection: ClientConnection
    channel: str = "default"
    current_page: str = DEFAULT_PAGE
    registered: bool = False
    connected_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.monotonic)
    # 註冊順序，越大代表越晚註冊；未註冊時為 0
    registration_seq: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channel": self.channel,
            "currentPage": self.current_page,
            "registered": self.registered,
            "connected": self.connection.connected,
            "connectedAt": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(self.connected_at)),
            "idleSeconds": round(time.monotonic() - self.last_activity, 1),
        }


class ClientRegistry:
    """
    瀏覽器 Session 註冊表

    僅存在記憶體中，程式重啟後從零開始。所有操作都在同一個 event loop 上執行，
    不需要鎖；迭代前一律先取快照再修改。
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ClientSession] = {}
        self._seq = itertools.count(1)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> ClientSession | None:
        return self._sessions.get(session_id)

    # ═══════════════════════════════════════════════════════════════════════════
    # 修改操作
    # ═══════════════════════════════════════════════════════════════════════════

    def add_connection(self, session_id: str, connection: ClientConnection, channel: str = "default") -> ClientSession:
        """記錄一條尚未註冊的連線（預設頻道需等待 register 事件）"""
        session = self._sessions.get(session_id)
        if session is not None:
            session.connection = connection
            session.last_activity = time.monotonic()
            return session

        session = ClientSession(id=session_id, connection=connection, channel=channel)
        self._sessions[session_id] = session
        logger.debug(f"🔌 新連線: {session_id} ({channel})")
        return session

    def register(self, session_id: str, connection: ClientConnection, channel: str = "default") -> ClientSession:
        """
        將連線標記為可用的瀏覽器 Client

        重複註冊同一個 id 只會更新連線與時間戳記，不會重複計數，也不會改變註冊順序。
        """
        session = self.add_connection(session_id, connection, channel)
        if session.registered:
            logger.debug(f"Client 已註冊，略過: {session_id}")
            return session

        session.registered = True
        session.registration_seq = next(self._seq)
        logger.info(f"✅ 瀏覽器 Client 已註冊: {session_id} ({channel})，目前 {len(self.list_active())} 個")
        return session

    def touch(self, session_id: str, current_page: str | None = None) -> None:
        """更新最後活動時間，可順帶更新目前頁面"""
        session = self._sessions.get(session_id)
        if session is None:
            return
        session.last_activity = time.monotonic()
        if current_page:
            session.current_page = current_page

    def unregister(self, session_id: str) -> ClientSession | None:
        """移除 Session，不存在時回傳 None"""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info(f"❌ Client 已移除: {session_id}，剩餘 {len(self.list_active())} 個")
        return session

    def sweep_stale(self, max_idle: float) -> list[ClientSession]:
        """
        移除閒置超過 max_idle 秒或連線已關閉的 Session

        Returns:
            被移除的 Session 列表（呼叫端負責關閉仍開啟的連線）
        """
        now = time.monotonic()
        removed: list[ClientSession] = []
        for session_id, session in list(self._sessions.items()):
            idle = now - session.last_activity
            if idle > max_idle or not session.connection.connected:
                self._sessions.pop(session_id, None)
                removed.append(session)
                logger.info(f"🧹 清除閒置 Session: {session_id} (閒置 {idle:.0f}s, connected={session.connection.connected})")
        return removed

    # ═══════════════════════════════════════════════════════════════════════════
    # 查詢操作
    # ═══════════════════════════════════════════════════════════════════════════

    def list_active(self) -> list[ClientSession]:
        """已註冊且連線中的 Session，依註冊順序排列"""
        sessions = [s for s in self._sessions.values() if s.registered and s.connection.connected]
        return sorted(sessions, key=lambda s: s.registration_seq)

    def select(self, explicit_id: str | None = None) -> ClientSession:
        """
        選出要轉送的瀏覽器 Client

        Args:
            explicit_id: 指定的 Session ID；未指定時選擇最晚註冊的 Client

        Raises:
            NoClientConnectedError: 找不到可用的 Client
        """
        self._discard_disconnected()

        if explicit_id is not None:
            session = self._sessions.get(explicit_id)
            if session is None or not session.registered:
                logger.warning(f"❌ 指定的 Session 不存在: {explicit_id}，可用: {[s.id for s in self.list_active()]}")
                raise NoClientConnectedError(
                    f"No browser client connected with sessionId '{explicit_id}'",
                    data={"sessionId": explicit_id},
                )
            return session

        active = self.list_active()
        if not active:
            logger.warning(f"❌ 沒有可用的瀏覽器 Client，連線總數: {len(self._sessions)}")
            raise NoClientConnectedError("No browser client connected")

        selected = active[-1]
        logger.debug(f"🎯 選擇 Client: {selected.id} (頁面: {selected.current_page})")
        return selected

    def session_info(self) -> dict[str, Any]:
        sessions = list(self._sessions.values())
        return {
            "total": len(sessions),
            "registeredClients": sum(1 for s in sessions if s.registered),
            "activeSessions": [s.to_dict() for s in sessions],
        }

    def _discard_disconnected(self) -> None:
        for session_id, session in list(self._sessions.items()):
            if not session.connection.connected:
                logger.info(f"🗑️ 移除已斷線的 Session: {session_id}")
                self._sessions.pop(session_id, None)
