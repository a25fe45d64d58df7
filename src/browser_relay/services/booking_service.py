"""
訂房服務

驗證訂房資料，並透過 httpx 轉送到協作的 Next.js API。
"""

import logging
import re
from datetime import date
from typing import Any

import httpx

from browser_relay.config import NEXT_API_TIMEOUT, NEXT_API_URL

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("customer_name", "customer_email", "customer_phone", "check_in_date", "check_out_date", "guests")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def missing_fields(data: dict[str, Any]) -> list[str]:
    """回傳缺少或為空值的必填欄位"""
    return [key for key in REQUIRED_FIELDS if data.get(key) in (None, "")]


def _parse_date(value: Any) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def validate_booking_data(data: Any) -> list[str]:
    """
    驗證訂房資料

    Args:
        data: 訂房資料字典

    Returns:
        錯誤訊息列表，空列表代表通過
    """
    if not isinstance(data, dict):
        return ["Booking data must be a JSON object"]

    errors: list[str] = []

    name = data.get("customer_name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Customer name is required and must be a non-empty string")

    email = data.get("customer_email")
    if not isinstance(email, str):
        errors.append("Customer email is required and must be a string")
    elif not EMAIL_PATTERN.match(email):
        errors.append("Customer email must be a valid email address")

    phone = data.get("customer_phone")
    if not isinstance(phone, str) or not phone.strip():
        errors.append("Customer phone is required and must be a non-empty string")

    check_in = _parse_date(data.get("check_in_date"))
    if data.get("check_in_date") is None:
        errors.append("Check-in date is required and must be a string")
    elif check_in is None:
        errors.append("Check-in date must be a valid date")

    check_out = _parse_date(data.get("check_out_date"))
    if data.get("check_out_date") is None:
        errors.append("Check-out date is required and must be a string")
    elif check_out is None:
        errors.append("Check-out date must be a valid date")
    elif check_in is not None and check_out <= check_in:
        errors.append("Check-out date must be after check-in date")

    guests = data.get("guests")
    if isinstance(guests, bool) or not isinstance(guests, int) or guests < 1:
        errors.append("Number of guests is required and must be a positive number")

    return errors


class BookingService:
    """Next.js 訂房 API 的用戶端"""

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

    async def forward_booking(self, booking: dict[str, Any]) -> dict[str, Any]:
        """
        將訂房資料送到 {NEXT_API_URL}/booking/create

        Returns:
            {"success": True, "data": ...} 或 {"success": False, "error": ...}
        """
        try:
            async with self._client(self._timeout) as client:
                response = await client.post("/booking/create", json=booking)
                response.raise_for_status()
            logger.info(f"✅ 訂房資料已轉送: {booking.get('customer_email')}")
            return {"success": True, "data": response.json()}

        except httpx.HTTPStatusError as e:
            message = _error_message(e.response) or str(e)
            logger.error(f"❌ 訂房 API 回應錯誤 {e.response.status_code}: {message}")
            return {"success": False, "error": message, "status": e.response.status_code}
        except httpx.HTTPError as e:
            logger.exception(f"❌ 轉送訂房資料失敗: {e}")
            return {"success": False, "error": str(e) or type(e).__name__}

    async def check_api_health(self) -> dict[str, Any]:
        """檢查 {NEXT_API_URL}/booking/health"""
        try:
            async with self._client(5.0) as client:
                response = await client.get("/booking/health")
            healthy = response.status_code == 200
            message = _error_message(response) or ("Booking API is healthy" if healthy else f"HTTP {response.status_code}")
            return {"healthy": healthy, "message": message}
        except httpx.HTTPError as e:
            logger.warning(f"訂房 API 健康檢查失敗: {e}")
            return {"healthy": False, "message": str(e) or type(e).__name__}


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


booking_service = BookingService()
