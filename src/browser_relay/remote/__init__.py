"""
瀏覽器 Client 連線模組

提供 WebSocket 頻道讓瀏覽器端 Client 連入，
並透過 ClientRegistry / RequestCorrelator 追蹤 Session 與對應請求。
"""

from browser_relay.remote.correlator import RequestCorrelator
from browser_relay.remote.registry import ClientRegistry, ClientSession

__all__ = ["ClientRegistry", "ClientSession", "RequestCorrelator"]
