"""
Browser Relay 主入口

可透過 python -m browser_relay [http|stdio] 或 browser-relay 指令啟動伺服器
- http：HTTP JSON-RPC 端點 + 瀏覽器 WebSocket 頻道
- stdio：stdin/stdout JSON-RPC + 瀏覽器 WebSocket 頻道（供 Agent 直接嵌入）
"""

import argparse
import asyncio
import logging
import sys

import uvicorn

from browser_relay import __version__
from browser_relay.base.logging_config import setup_logging
from browser_relay.config import (
    ACTION_TIMEOUT,
    CORS_ORIGIN,
    FORM_TIMEOUT,
    HOST,
    LOG_DIR,
    LOG_LEVEL,
    MCP_TRANSPORT,
    NEXT_API_URL,
    PORT,
    QUERY_TIMEOUT,
    SESSION_IDLE_TIMEOUT,
    SUPPORTED_TRANSPORTS,
    ConfigError,
    validate_config,
)

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="browser-relay", description="Relay MCP tool calls to connected browser clients")
    parser.add_argument("transport", nargs="?", choices=SUPPORTED_TRANSPORTS, default=None, help=f"傳輸模式（預設 {MCP_TRANSPORT}）")
    parser.add_argument("--host", default=HOST, help="監聽位址")
    parser.add_argument("--port", type=int, default=PORT, help="監聽埠號")
    return parser.parse_args(argv)


async def run_stdio(host: str, port: int) -> None:
    """stdio 模式：同一個 event loop 中同時執行 WebSocket 伺服器與 stdio 迴圈"""
    from browser_relay.app import app
    from browser_relay.stdio import open_stdin_reader, serve_stdio

    # log_config=None：避免 uvicorn 的 access log 寫入 stdout
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, ws="websockets", log_config=None))
    server_task = asyncio.create_task(server.serve())

    try:
        reader = await open_stdin_reader()
        await serve_stdio(app.state.relay, reader, sys.stdout)
    finally:
        server.should_exit = True
        await server_task


def main(argv: list[str] | None = None) -> None:
    """主函式"""
    args = parse_args(argv)
    transport = args.transport or MCP_TRANSPORT

    # stdio 模式下 stdout 專供 JSON-RPC 使用，日誌改寫到 stderr
    setup_logging(
        console_log_level=LOG_LEVEL,
        log_dir=LOG_DIR,
        stream=sys.stderr if transport == "stdio" else sys.stdout,
    )

    try:
        validate_config()
    except ConfigError as e:
        logger.critical(f"❌ 設定錯誤，無法啟動: {e}")
        sys.exit(1)

    logger.info(f"🚀 Browser Relay 啟動 [v{__version__}] 模式: {transport}")
    logger.info(f"🔗 監聽: {args.host}:{args.port} (WebSocket: /ws, /ws/tools)")
    logger.info(f"🌐 CORS: {CORS_ORIGIN} | Next.js API: {NEXT_API_URL}")
    logger.info(
        f"⏱️ 逾時: 查詢 {QUERY_TIMEOUT:g}s / 操作 {ACTION_TIMEOUT:g}s / 表單 {FORM_TIMEOUT:g}s，"
        f"Session 閒置上限 {SESSION_IDLE_TIMEOUT:g}s"
    )

    if transport == "stdio":
        try:
            asyncio.run(run_stdio(args.host, args.port))
        except KeyboardInterrupt:
            logger.info("🛑 已中斷")
        return

    from browser_relay.app import app

    # 啟動伺服器（uvicorn 負責 SIGINT/SIGTERM 的優雅關閉）
    uvicorn.run(app, host=args.host, port=args.port, ws="websockets", log_config=None)


if __name__ == "__main__":
    main()
