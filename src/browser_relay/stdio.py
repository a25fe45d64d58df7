"""
stdio 傳輸

從標準輸入逐行讀取 JSON-RPC 請求，回應逐行寫到標準輸出。
每個請求各自成為一個 task，慢的 Tool 呼叫不會卡住後續請求。
"""

import asyncio
import json
import logging
import sys
from typing import Any, TextIO

from browser_relay.relay import BrowserRelay
from browser_relay.rpc import handle_raw

logger = logging.getLogger(__name__)


async def open_stdin_reader() -> asyncio.StreamReader:
    """將 sys.stdin 包裝成 asyncio.StreamReader"""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


def write_message(writer: TextIO, message: dict[str, Any]) -> None:
    writer.write(json.dumps(message, ensure_ascii=False) + "\n")
    writer.flush()


async def _respond(line: bytes, relay: BrowserRelay, writer: TextIO) -> None:
    response = await handle_raw(line, relay)
    if response is not None:
        write_message(writer, response)


async def serve_stdio(relay: BrowserRelay, reader: asyncio.StreamReader, writer: TextIO) -> None:
    """
    處理 stdio 請求直到輸入結束（EOF）

    Args:
        relay: 負責轉送的 BrowserRelay
        reader: 請求來源
        writer: 回應輸出
    """
    logger.info("📟 stdio 傳輸已就緒")
    in_flight: set[asyncio.Task] = set()

    while True:
        line = await reader.readline()
        if not line:
            break

        line = line.strip()
        if not line:
            continue

        task = asyncio.create_task(_respond(line, relay, writer))
        in_flight.add(task)
        task.add_done_callback(in_flight.discard)

    if in_flight:
        logger.info(f"stdin 已關閉，等待 {len(in_flight)} 個請求完成")
        await asyncio.gather(*in_flight, return_exceptions=True)
    logger.info("📟 stdio 傳輸已結束")
