"""
Browser Relay HTTP 伺服器

- POST /mcp     JSON-RPC 2.0 端點（tools/list、tools/call）
- GET  /health  存活檢查與已連線 Client 列表
- /ws、/ws/tools 瀏覽器 Client 的 WebSocket 頻道
- /tools/*      訂房與聯絡表單的輔助轉送
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from browser_relay import __version__
from browser_relay.config import CORS_ORIGINS, SERVER_NAME
from browser_relay.relay import BOOKING_FILL_EVENT, BrowserRelay, browser_relay
from browser_relay.remote.channels import TOOLS_CHANNEL
from browser_relay.remote.channels import router as channels_router
from browser_relay.rpc import handle_raw
from browser_relay.services.booking_service import BookingService, booking_service, missing_fields, validate_booking_data
from browser_relay.services.form_service import FormService, form_service
from browser_relay.tools import registry
from browser_relay.utils import utc_timestamp

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Lifespan 管理 - 啟動/關閉 Session 清理任務
# ═══════════════════════════════════════════════════════════════════════════════
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI Lifespan 管理器

    啟動時：啟動 Session 清理任務
    關閉時：停止清理任務
    """
    relay: BrowserRelay = app.state.relay
    logger.info(f"🚀 {SERVER_NAME} 初始化中... 已載入 {registry.get_tool_count()} 個 Tools")
    relay.start()

    yield  # FastAPI 運行中

    logger.info("🛑 正在關閉 Browser Relay...")
    await relay.stop()


def create_app(
    relay: BrowserRelay | None = None,
    bookings: BookingService | None = None,
    forms: FormService | None = None,
) -> FastAPI:
    """建立 FastAPI 應用實例"""
    app = FastAPI(
        title=SERVER_NAME,
        description="Relay MCP tool calls to connected browser clients",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.relay = relay or browser_relay
    app.state.booking_service = bookings or booking_service
    app.state.form_service = forms or form_service
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HTTPException, http_exception_handler)

    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route("/sessions", sessions, methods=["GET"])
    app.add_api_route("/mcp", mcp_endpoint, methods=["POST"])
    app.add_api_route("/tools/booking/fill", booking_fill, methods=["POST"])
    app.add_api_route("/tools/booking/submit", booking_submit, methods=["POST"])
    app.add_api_route("/tools/booking/health", booking_health, methods=["GET"])
    app.add_api_route("/tools/fill-form", fill_form, methods=["POST"])
    app.add_api_route("/tools/form/health", form_health, methods=["GET"])
    app.add_api_route("/tools/status", tools_status, methods=["GET"])
    app.include_router(channels_router)
    return app


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP 異常處理
# ═══════════════════════════════════════════════════════════════════════════════

async def http_exception_handler(request: Request, exc: HTTPException):
    """自定義 HTTP 異常處理，確保 MCP 協議格式"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "jsonrpc": "2.0" if request.url.path == "/mcp" else None,
            "id": None,
            "error": {
                "code": -32000,
                "message": exc.detail,
                "status_code": exc.status_code,
            },
        },
    )


# ═══════════════════════════════════════════════════════════════════════════════
# MCP 端點
# ═══════════════════════════════════════════════════════════════════════════════

async def mcp_endpoint(req: Request) -> Response:
    """
    MCP 協議端點

    請求內容解析與方法分派都交給 rpc.handle_raw，此處僅負責 HTTP 層。
    """
    body = await req.body()
    result = await handle_raw(body, req.app.state.relay)
    if result is None:
        # 通知類訊息沒有回應內容
        return Response(status_code=status.HTTP_202_ACCEPTED)
    return JSONResponse(content=result)


# ═══════════════════════════════════════════════════════════════════════════════
# 健康檢查端點
# ═══════════════════════════════════════════════════════════════════════════════

async def health(req: Request) -> dict[str, Any]:
    """存活檢查與已連線 Client 列表"""
    relay: BrowserRelay = req.app.state.relay
    clients = [session.id for session in relay.registry.list_active()]
    return {
        "status": "healthy",
        "server": SERVER_NAME,
        "version": __version__,
        "timestamp": utc_timestamp(),
        "connectedClients": clients,
        "clientCount": len(clients),
    }


async def sessions(req: Request) -> dict[str, Any]:
    """所有連線（含尚未註冊者）的詳細資訊"""
    relay: BrowserRelay = req.app.state.relay
    return {"success": True, "data": relay.registry.session_info(), "timestamp": utc_timestamp()}


# ═══════════════════════════════════════════════════════════════════════════════
# 訂房端點
# ═══════════════════════════════════════════════════════════════════════════════

async def _read_json_object(req: Request) -> dict[str, Any]:
    try:
        data = await req.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from None
    if not isinstance(data, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be a JSON object")
    return data


async def booking_fill(req: Request) -> JSONResponse:
    """驗證訂房資料並廣播 booking:fill 給 Tools 頻道上的 Client"""
    booking = await _read_json_object(req)

    missing = missing_fields(booking)
    if missing:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Missing required booking fields", "missingFields": missing},
        )

    errors = validate_booking_data(booking)
    if errors:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Invalid booking data", "errors": errors},
        )

    relay: BrowserRelay = req.app.state.relay
    delivered = await relay.broadcast(BOOKING_FILL_EVENT, booking, channel=TOOLS_CHANNEL)
    logger.info(f"📝 booking:fill 已送出給 {delivered} 個 Client")
    return JSONResponse(
        content={"success": True, "message": "Booking fill event sent successfully", "delivered": delivered, "data": booking}
    )


async def booking_submit(req: Request) -> JSONResponse:
    """驗證訂房資料並轉送到 Next.js API"""
    booking = await _read_json_object(req)

    errors = validate_booking_data(booking)
    if errors:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Invalid booking data", "errors": errors},
        )

    result = await req.app.state.booking_service.forward_booking(booking)
    return JSONResponse(status_code=200 if result["success"] else status.HTTP_502_BAD_GATEWAY, content=result)


async def booking_health(req: Request) -> JSONResponse:
    result = await req.app.state.booking_service.check_api_health()
    return JSONResponse(
        status_code=200 if result["healthy"] else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"service": "booking-api", **result, "timestamp": utc_timestamp()},
    )


# ═══════════════════════════════════════════════════════════════════════════════
# 聯絡表單端點
# ═══════════════════════════════════════════════════════════════════════════════

async def fill_form(req: Request) -> JSONResponse:
    """驗證表單並轉送到 Next.js API，處理進度廣播給 Tools 頻道"""
    form = await _read_json_object(req)
    relay: BrowserRelay = req.app.state.relay
    logger.info(f"📨 收到表單: {form.get('name')} <{form.get('email')}>")

    async def notify(event: str, data: Any) -> int:
        return await relay.broadcast(event, data, channel=TOOLS_CHANNEL)

    result = await req.app.state.form_service.submit_form(form, notify)
    if result["success"]:
        return JSONResponse(content={"success": True, "message": "Form submitted successfully", "data": result["data"]})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Form submission failed", "error": result["error"]},
    )


async def form_health(req: Request) -> JSONResponse:
    result = await req.app.state.form_service.check_api_health()
    return JSONResponse(
        status_code=200 if result["healthy"] else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"service": "form-service", **result, "timestamp": utc_timestamp()},
    )


async def tools_status(req: Request) -> dict[str, Any]:
    """輔助工具與頻道的運作摘要"""
    relay: BrowserRelay = req.app.state.relay
    return {
        "status": "operational",
        "tools": {
            "fill-form": {"available": True, "description": "Form submission tool for forwarding data to Next.js API"},
            "booking-fill": {"available": True, "description": "Hotel booking auto-fill tool for MCP integration"},
        },
        "channels": {
            TOOLS_CHANNEL: {"available": True, "description": "WebSocket channel for real-time booking and form events"},
        },
        "statistics": {
            "connectedClients": len(relay.registry.list_active()),
            "uptime": round(time.monotonic() - req.app.state.started_at, 1),
            "timestamp": utc_timestamp(),
        },
    }


# ═══════════════════════════════════════════════════════════════════════════════
# 應用實例
# ═══════════════════════════════════════════════════════════════════════════════
app = create_app()
