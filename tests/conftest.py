"""Shared fixtures: an in-memory browser connection and a fresh relay per test."""

import asyncio
from typing import Any, Callable

import pytest

import browser_relay.tools  # noqa: F401  (registers every tool)
from browser_relay.relay import BrowserRelay

Responder = Callable[[str, Any, str | None], None]


class FakeConnection:
    """Simulates a browser client's socket; records every frame it is sent."""

    def __init__(self, responder: Responder | None = None):
        self.sent: list[dict[str, Any]] = []
        self.responder = responder
        self.closed = False
        self.close_code: int | None = None
        self.fail_send = False

    @property
    def connected(self) -> bool:
        return not self.closed

    async def send_event(self, event, data=None, request_id=None):
        if self.fail_send:
            raise ConnectionError("socket closed")
        self.sent.append({"event": event, "data": data, "requestId": request_id})
        if self.responder is not None:
            self.responder(event, data, request_id)

    async def close(self, code=1000, reason=""):
        self.closed = True
        self.close_code = code

    def events(self) -> list[str]:
        return [frame["event"] for frame in self.sent]


def auto_reply(relay: BrowserRelay, session_id: str, response_event: str, reply: Any) -> Responder:
    """Responder that answers each request on the next loop iteration, echoing its requestId."""

    def respond(event, data, request_id):
        if request_id is None:
            return
        asyncio.get_running_loop().create_task(
            relay.handle_client_event(session_id, response_event, reply, request_id)
        )

    return respond


@pytest.fixture
def relay() -> BrowserRelay:
    return BrowserRelay(idle_timeout=300, sweep_interval=30)


@pytest.fixture
def connect(relay):
    """Register a FakeConnection under the given id (tools channel by default)."""

    def _connect(session_id: str, channel: str = "tools", register: bool = True) -> FakeConnection:
        conn = FakeConnection()
        relay.client_connected(session_id, conn, channel, auto_register=register)
        return conn

    return _connect
