"""
fillBookingForm Tool

填寫瀏覽器端的訂房表單。所有欄位皆為選填，
欄位內容的商業驗證由瀏覽器端負責，這裡只檢查型別。
"""

import logging
from typing import Any

from browser_relay.config import FORM_TIMEOUT
from browser_relay.relay import BrowserRelay
from browser_relay.schemas import BookingFormResult, InvalidArgumentError
from browser_relay.tools.base import SESSION_ID_SCHEMA, ToolName, registry

logger = logging.getLogger(__name__)

STRING_FIELDS = ("checkIn", "checkOut", "name", "email")


@registry.register(
    name=ToolName.FILL_BOOKING_FORM,
    description="Fill the booking form on the current page. Only the provided fields are updated.",
    input_schema={
        "type": "object",
        "properties": {
            "checkIn": {"type": "string", "description": "Check-in date (YYYY-MM-DD)"},
            "checkOut": {"type": "string", "description": "Check-out date (YYYY-MM-DD)"},
            "guests": {"type": "integer", "description": "Number of guests"},
            "name": {"type": "string", "description": "Guest name"},
            "email": {"type": "string", "description": "Guest email"},
            "sessionId": SESSION_ID_SCHEMA,
        },
        "required": [],
    },
)
async def handle_fill_booking_form(args: dict[str, Any], relay: BrowserRelay) -> BookingFormResult:
    """處理 fillBookingForm 請求"""
    form_data = build_form_data(args)
    logger.info(f"📝 fillBookingForm: 欄位 {list(form_data)}")

    return await relay.forward(
        ToolName.FILL_BOOKING_FORM.value,
        args,
        request_event="fillBookingForm",
        payload=form_data,
        response_event="bookingFormResult",
        timeout=FORM_TIMEOUT,
    )


def build_form_data(args: dict[str, Any]) -> dict[str, Any]:
    """
    從參數中取出表單欄位，未提供的欄位不會出現在結果中

    Raises:
        InvalidArgumentError: 欄位型別錯誤
    """
    form_data: dict[str, Any] = {}
    errors: list[str] = []

    for key in STRING_FIELDS:
        value = args.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            errors.append(f"'{key}' must be a string")
            continue
        form_data[key] = value

    guests = args.get("guests")
    if guests is not None:
        # bool 是 int 的子類別，需排除；JSON 的 2.0 視為 2
        if isinstance(guests, float) and guests.is_integer():
            guests = int(guests)
        if isinstance(guests, bool) or not isinstance(guests, int):
            errors.append("'guests' must be an integer")
        else:
            form_data["guests"] = guests

    if errors:
        raise InvalidArgumentError(
            "; ".join(errors),
            data={"tool": ToolName.FILL_BOOKING_FORM.value, "arguments": args},
        )
    return form_data
