"""Tests for the newline-delimited stdio transport."""

import asyncio
import io
import json

import pytest

from browser_relay.stdio import serve_stdio

from conftest import auto_reply


def feed(*lines: str | bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line if isinstance(line, bytes) else (line + "\n").encode())
    reader.feed_eof()
    return reader


def responses(writer: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in writer.getvalue().splitlines()]


class TestServeStdio:
    @pytest.mark.asyncio
    async def test_one_response_per_request(self, relay):
        writer = io.StringIO()
        reader = feed(
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}),
            "",
            json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
            json.dumps({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}),
        )

        await serve_stdio(relay, reader, writer)

        by_id = {r["id"]: r for r in responses(writer)}
        assert set(by_id) == {1, 2}
        assert len(by_id[2]["result"]["tools"]) == 5

    @pytest.mark.asyncio
    async def test_parse_error_keeps_serving(self, relay):
        writer = io.StringIO()
        reader = feed("{broken", json.dumps({"jsonrpc": "2.0", "id": 5, "method": "ping"}))

        await serve_stdio(relay, reader, writer)

        out = responses(writer)
        assert [r.get("id") for r in out] == [None, 5]
        assert out[0]["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_waits_for_in_flight_tool_calls(self, relay, connect):
        conn = connect("s1")
        conn.responder = auto_reply(relay, "s1", "pageInfo", {"path": "/"})
        writer = io.StringIO()
        reader = feed(
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "getCurrentPage"}}),
        )

        await serve_stdio(relay, reader, writer)

        out = responses(writer)
        assert json.loads(out[0]["result"]["content"][0]["text"]) == {"path": "/"}
