"""Tests for contact form validation and the Next.js form client."""

import httpx
import pytest

from browser_relay.services.form_service import FormService, validate_form_data

VALID = {"name": "Ann Lee", "email": "ann@example.com", "message": "Hello"}


class Recorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event, data):
        self.events.append((event, data))
        return 1


def service(handler) -> FormService:
    return FormService("http://next.test/api/", timeout=1, transport=httpx.MockTransport(handler))


class TestValidation:
    def test_valid(self):
        assert validate_form_data(VALID) == []

    def test_all_fields_missing(self):
        assert validate_form_data({}) == [
            "Name is required and must be a non-empty string",
            "Email is required and must be a string",
            "Message is required and must be a non-empty string",
        ]

    def test_bad_email(self):
        assert validate_form_data({**VALID, "email": "ann@"}) == ["Email must be a valid email address"]

    def test_not_an_object(self):
        assert validate_form_data("hi") == ["Form data must be a JSON object"]


class TestSubmitForm:
    @pytest.mark.asyncio
    async def test_success_events_in_order(self):
        notify = Recorder()
        result = await service(lambda request: httpx.Response(200, json={"ok": True})).submit_form(VALID, notify)

        assert result == {"success": True, "data": {"ok": True}}
        assert [event for event, _ in notify.events] == ["form:received", "form:processing", "form:submitted"]
        assert notify.events[2][1]["response"] == {"ok": True}

    @pytest.mark.asyncio
    async def test_validation_failure_skips_http(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        notify = Recorder()
        result = await service(handler).submit_form({"name": "Ann"}, notify)

        assert result["success"] is False
        assert result["error"].startswith("Validation failed: ")
        assert calls == []
        assert notify.events[-1][0] == "form:error"
        assert notify.events[-1][1]["error"] == result["error"]

    @pytest.mark.asyncio
    async def test_upstream_error_message(self):
        result = await service(lambda request: httpx.Response(422, json={"error": "Spam detected"})).submit_form(VALID)

        assert result == {"success": False, "error": "Next.js API error (422): Spam detected"}

    @pytest.mark.asyncio
    async def test_unreachable_api(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await service(handler).submit_form(VALID)

        assert result == {"success": False, "error": "No response from Next.js API - please check if the server is running"}

    @pytest.mark.asyncio
    async def test_health(self):
        result = await service(lambda request: httpx.Response(500)).check_api_health()

        assert result["healthy"] is False
        assert result["message"] == "Next.js API error (500): Unknown server error"
