"""Tests for ClientRegistry: registration, selection and idle sweeping."""

import time

import pytest

from browser_relay.remote.registry import ClientRegistry
from browser_relay.schemas import NoClientConnectedError

from conftest import FakeConnection


# ── register ────────────────────────────────────────────────────


class TestRegister:
    def test_register_marks_session_active(self):
        registry = ClientRegistry()
        session = registry.register("a", FakeConnection(), "tools")

        assert session.registered
        assert session.current_page == "/"
        assert [s.id for s in registry.list_active()] == ["a"]

    def test_register_is_idempotent(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection())
        registry.register("b", FakeConnection())
        first_seq = registry.get("a").registration_seq

        registry.register("a", FakeConnection())

        assert len(registry) == 2
        assert registry.get("a").registration_seq == first_seq
        assert registry.select().id == "b"

    def test_add_connection_is_not_selectable(self):
        registry = ClientRegistry()
        registry.add_connection("pending", FakeConnection())

        assert "pending" in registry
        assert registry.list_active() == []
        with pytest.raises(NoClientConnectedError):
            registry.select()

    def test_unregister_unknown_is_noop(self):
        registry = ClientRegistry()
        assert registry.unregister("missing") is None

    def test_touch_updates_page(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection())

        registry.touch("a", current_page="/contact")
        registry.touch("a")

        assert registry.get("a").current_page == "/contact"


# ── select ──────────────────────────────────────────────────────


class TestSelect:
    def test_empty_registry_raises(self):
        with pytest.raises(NoClientConnectedError) as exc_info:
            ClientRegistry().select()
        assert exc_info.value.to_error()["code"] == -32001

    def test_picks_most_recently_registered(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection())
        registry.register("b", FakeConnection())

        assert registry.select().id == "b"

    def test_falls_back_when_latest_disconnects(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection())
        conn_b = FakeConnection()
        registry.register("b", conn_b)

        conn_b.closed = True

        assert registry.select().id == "a"
        assert "b" not in registry

    def test_explicit_session(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection())
        registry.register("b", FakeConnection())

        assert registry.select("a").id == "a"

    def test_unknown_explicit_session_raises(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection())

        with pytest.raises(NoClientConnectedError) as exc_info:
            registry.select("nope")
        assert exc_info.value.data == {"sessionId": "nope"}

    def test_empty_explicit_session_does_not_fall_back(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection())

        with pytest.raises(NoClientConnectedError):
            registry.select("")

    def test_explicit_session_must_be_registered(self):
        registry = ClientRegistry()
        registry.add_connection("pending", FakeConnection())

        with pytest.raises(NoClientConnectedError):
            registry.select("pending")


# ── sweep_stale ─────────────────────────────────────────────────


class TestSweep:
    def test_removes_idle_sessions(self):
        registry = ClientRegistry()
        registry.register("idle", FakeConnection())
        registry.register("fresh", FakeConnection())
        registry.get("idle").last_activity = time.monotonic() - 301

        removed = registry.sweep_stale(300)

        assert [s.id for s in removed] == ["idle"]
        assert "idle" not in registry
        assert "fresh" in registry

    def test_removes_closed_sessions(self):
        registry = ClientRegistry()
        conn = FakeConnection()
        registry.add_connection("gone", conn)
        conn.closed = True

        removed = registry.sweep_stale(300)

        assert [s.id for s in removed] == ["gone"]
        assert len(registry) == 0

    def test_session_info(self):
        registry = ClientRegistry()
        registry.register("a", FakeConnection(), "tools")
        registry.add_connection("b", FakeConnection())

        info = registry.session_info()

        assert info["total"] == 2
        assert info["registeredClients"] == 1
        by_id = {s["id"]: s for s in info["activeSessions"]}
        assert by_id["a"]["channel"] == "tools"
        assert by_id["b"]["registered"] is False
