"""
聯絡表單服務

驗證表單資料並轉送到 Next.js API 的 /fill-form，
處理過程中的每個階段都會透過 notify 回報給 Tools 頻道上的 Client。
"""

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from browser_relay.config import NEXT_API_TIMEOUT, NEXT_API_URL
from browser_relay.utils import utc_timestamp

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FORM_RECEIVED_EVENT = "form:received"
FORM_PROCESSING_EVENT = "form:processing"
FORM_SUBMITTED_EVENT = "form:submitted"
FORM_ERROR_EVENT = "form:error"

# notify(event, data) -> 送達的 Client 數
Notifier = Callable[[str, Any], Awaitable[int]]


async def _silent(event: str, data: Any) -> int:
    return 0


def validate_form_data(data: Any) -> list[str]:
    """檢查 name / email / message，回傳錯誤訊息列表"""
    if not isinstance(data, dict):
        return ["Form data must be a JSON object"]

    errors: list[str] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Name is required and must be a non-empty string")

    email = data.get("email")
    if not isinstance(email, str) or not email:
        errors.append("Email is required and must be a string")
    elif not EMAIL_PATTERN.match(email):
        errors.append("Email must be a valid email address")

    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        errors.append("Message is required and must be a non-empty string")

    return errors


class FormService:
    """Next.js 表單 API 的用戶端"""

    def __init__(self, base_url: str = NEXT_API_URL, timeout: float = NEXT_API_TIMEOUT, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=self._transport,
            headers={"User-Agent": "browser-relay/1.0"},
        )

    async def submit_form(self, form: dict[str, Any], notify: Notifier = _silent) -> dict[str, Any]:
        """
        驗證並轉送表單

        依序發出 form:received → form:processing → form:submitted，
        任何一步失敗則改發 form:error。

        Returns:
            {"success": True, "data": ...} 或 {"success": False, "error": ...}
        """
        await notify(FORM_RECEIVED_EVENT, {"timestamp": utc_timestamp(), "data": form})

        errors = validate_form_data(form)
        if errors:
            error = f"Validation failed: {', '.join(errors)}"
            await notify(FORM_ERROR_EVENT, {"timestamp": utc_timestamp(), "error": error})
            return {"success": False, "error": error}

        await notify(
            FORM_PROCESSING_EVENT,
            {"timestamp": utc_timestamp(), "message": "Forwarding form data to Next.js API..."},
        )

        try:
            async with self._client(self._timeout) as client:
                response = await client.post("/fill-form", json=form)
                response.raise_for_status()
        except httpx.HTTPError as e:
            error = _describe_error(e)
            logger.error(f"❌ 表單轉送失敗: {error}")
            await notify(FORM_ERROR_EVENT, {"timestamp": utc_timestamp(), "error": error})
            return {"success": False, "error": error}

        try:
            data = response.json()
        except ValueError:
            data = response.text or None
        logger.info(f"✅ 表單已轉送: {form.get('email')}")
        await notify(FORM_SUBMITTED_EVENT, {"timestamp": utc_timestamp(), "success": True, "response": data})
        return {"success": True, "data": data}

    async def check_api_health(self) -> dict[str, Any]:
        """檢查 {NEXT_API_URL}/health"""
        try:
            async with self._client(5.0) as client:
                response = await client.get("/health")
                response.raise_for_status()
            return {"healthy": True, "message": "Next.js API is healthy"}
        except httpx.HTTPError as e:
            logger.warning(f"表單 API 健康檢查失敗: {e}")
            return {"healthy": False, "message": _describe_error(e)}


def _describe_error(error: httpx.HTTPError) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        message = "Unknown server error"
        try:
            body = error.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or message
        return f"Next.js API error ({error.response.status_code}): {message}"
    if isinstance(error, httpx.TransportError):
        return "No response from Next.js API - please check if the server is running"
    return f"Request error: {error}"


form_service = FormService()
