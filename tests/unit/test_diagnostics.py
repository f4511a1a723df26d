"""Tests for diagnostics envelopes and the event bus."""

from __future__ import annotations

import re

import pytest

from archmod.core.config import ConfigResolver
from archmod.core.diagnostics import build_envelope, emit, is_diagnostics_enabled
from archmod.core.events import EventBus, get_event_bus


@pytest.fixture(autouse=True)
def _clear_bus():
    get_event_bus().clear()
    yield
    get_event_bus().clear()


def _resolver(tmp_path, enabled):
    return ConfigResolver(
        cli_args={"diagnostics": {"enabled": enabled}},
        user_config_path=tmp_path / "u.yaml",
        system_config_path=tmp_path / "s.yaml",
    )


def test_build_envelope_schema() -> None:
    env = build_envelope(event="operation.end", component="archmod", operation="x", data={"a": 1})
    assert set(env) == {"event", "component", "operation", "timestamp", "data"}
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\dZ", env["timestamp"])
    assert env["data"] == {"a": 1}


def test_emit_only_when_enabled(tmp_path) -> None:
    seen: list[tuple[str, dict]] = []
    get_event_bus().subscribe_all(lambda event, data: seen.append((event, data)))

    emit(_resolver(tmp_path, False), "operation.start", operation="archmod.save", data={})
    assert seen == []

    emit(_resolver(tmp_path, True), "operation.start", operation="archmod.save", data={"n": 1})
    assert len(seen) == 1
    event, envelope = seen[0]
    assert event == "operation.start"
    assert envelope["operation"] == "archmod.save"
    assert envelope["data"] == {"n": 1}


def test_invalid_enabled_value_is_disabled(tmp_path) -> None:
    assert is_diagnostics_enabled(_resolver(tmp_path, "sometimes")) is False


def test_event_bus_handler_failure_does_not_propagate() -> None:
    bus = EventBus()
    calls: list[str] = []

    def _bad(event, data):
        raise ValueError("nope")

    bus.subscribe("x", _bad)
    bus.subscribe("x", lambda event, data: calls.append(event))
    bus.publish("x", {})
    bus.unsubscribe("x", _bad)
    bus.publish("x")

    assert calls == ["x", "x"]
