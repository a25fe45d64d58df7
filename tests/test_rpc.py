"""Tests for JSON-RPC dispatch shared by the HTTP and stdio transports."""

import json

import pytest

from browser_relay.rpc import PROTOCOL_VERSION, handle_message, handle_raw
from browser_relay.tools.navigate_page import navigate_page

from conftest import auto_reply


def call(name, arguments=None, req_id=1):
    params = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return {"jsonrpc": "2.0", "id": req_id, "method": "tools/call", "params": params}


class TestProtocol:
    @pytest.mark.asyncio
    async def test_initialize(self, relay):
        response = await handle_message({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}, relay)

        assert response["id"] == 1
        assert response["result"]["protocolVersion"] == PROTOCOL_VERSION
        assert response["result"]["serverInfo"]["name"] == "browser-relay"
        assert "tools" in response["result"]["capabilities"]

    @pytest.mark.asyncio
    async def test_tools_list(self, relay):
        response = await handle_message({"jsonrpc": "2.0", "id": "a", "method": "tools/list"}, relay)

        assert response["id"] == "a"
        assert len(response["result"]["tools"]) == 5

    @pytest.mark.asyncio
    async def test_ping(self, relay):
        response = await handle_message({"jsonrpc": "2.0", "id": 9, "method": "ping"}, relay)
        assert response == {"jsonrpc": "2.0", "id": 9, "result": {}}

    @pytest.mark.asyncio
    async def test_notification_has_no_response(self, relay):
        assert await handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"}, relay) is None

    @pytest.mark.asyncio
    async def test_method_not_found(self, relay):
        response = await handle_message({"jsonrpc": "2.0", "id": 2, "method": "resources/list"}, relay)
        assert response["error"]["code"] == -32601
        assert response["error"]["data"]["error"] == "MethodNotFound"

    @pytest.mark.asyncio
    async def test_parse_error(self, relay):
        response = await handle_raw(b"{not json", relay)
        assert response["id"] is None
        assert response["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_non_object_request(self, relay):
        response = await handle_raw("[1, 2]", relay)
        assert response["error"]["code"] == -32600


class TestToolsCall:
    @pytest.mark.asyncio
    async def test_success_wraps_payload_as_text(self, relay, connect):
        conn = connect("s1")
        reply = {"success": True, "targetPage": "/contact", "currentUrl": "http://localhost:3000/contact", "message": "ok"}
        conn.responder = auto_reply(relay, "s1", "navigationResult", reply)

        response = await handle_message(call("navigatePage", {"page": "/contact"}), relay)

        content = response["result"]["content"]
        assert content[0]["type"] == "text"
        assert json.loads(content[0]["text"]) == reply
        assert response["result"]["isError"] is False

    @pytest.mark.asyncio
    async def test_no_client_connected(self, relay):
        response = await handle_message(call("getCurrentPage"), relay)

        error = response["error"]
        assert error["code"] == -32001
        assert error["data"]["error"] == "NoClientConnected"
        assert error["data"]["tool"] == "getCurrentPage"
        assert error["data"]["arguments"] == {}

    @pytest.mark.asyncio
    async def test_invalid_argument(self, relay, connect):
        conn = connect("s1")

        response = await handle_message(call("clickElement", {}), relay)

        assert response["error"]["code"] == -32602
        assert response["error"]["data"]["tool"] == "clickElement"
        assert conn.sent == []

    @pytest.mark.asyncio
    async def test_unknown_tool(self, relay):
        response = await handle_message(call("scrollPage", {"by": 100}), relay)

        assert response["error"]["code"] == -32601
        assert response["error"]["data"]["error"] == "UnknownTool"
        assert response["error"]["data"]["arguments"] == {"by": 100}

    @pytest.mark.asyncio
    async def test_timeout(self, relay, connect, monkeypatch):
        monkeypatch.setattr(navigate_page, "ACTION_TIMEOUT", 0.05)
        connect("s1")

        response = await handle_message(call("navigatePage", {"page": "/slow"}), relay)

        error = response["error"]
        assert error["code"] == -32002
        assert error["data"]["error"] == "Timeout"
        assert error["data"]["tool"] == "navigatePage"
        assert error["data"]["arguments"] == {"page": "/slow"}

    @pytest.mark.asyncio
    async def test_missing_params(self, relay):
        response = await handle_message({"jsonrpc": "2.0", "id": 3, "method": "tools/call"}, relay)
        assert response["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_non_object_arguments(self, relay):
        response = await handle_message(call("navigatePage", ["/contact"]), relay)
        assert response["error"]["code"] == -32602
