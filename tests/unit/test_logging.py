"""Tests for centralized logging and the log bus."""

from __future__ import annotations

import pytest

from archmod.core.config import ConfigResolver
from archmod.core.log_bus import LogBus, LogRecord, get_log_bus
from archmod.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)


@pytest.fixture(autouse=True)
def _restore_logging():
    get_log_bus().clear()
    yield
    get_log_bus().clear()
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(True)


def _collect(levels=None) -> list[LogRecord]:
    collected: list[LogRecord] = []
    get_log_bus().subscribe(collected.append, levels)
    return collected


class TestVerbosity:
    """Test verbosity handling."""

    def test_verbosity_ordering(self):
        assert VerbosityLevel.QUIET < VerbosityLevel.NORMAL
        assert VerbosityLevel.NORMAL < VerbosityLevel.VERBOSE
        assert VerbosityLevel.VERBOSE < VerbosityLevel.DEBUG

    def test_set_get_verbosity(self):
        set_verbosity(2)
        assert get_verbosity() == VerbosityLevel.VERBOSE
        set_verbosity(VerbosityLevel.DEBUG)
        assert get_verbosity() == VerbosityLevel.DEBUG

    def test_apply_policy(self, tmp_path):
        r = ConfigResolver(
            cli_args={"logging": {"level": "quiet"}},
            user_config_path=tmp_path / "u.yaml",
            system_config_path=tmp_path / "s.yaml",
        )
        apply_logging_policy(r.resolve_logging_policy())
        assert get_verbosity() == VerbosityLevel.QUIET


def test_records_filtered_by_verbosity(capsys) -> None:
    set_colors(False)
    collected = _collect()
    log = get_logger("archmod.test")

    set_verbosity(VerbosityLevel.NORMAL)
    log.debug("hidden")
    log.verbose("hidden too")
    log.info("shown")
    log.warning("careful")

    assert [r.plain for r in collected] == ["[info] shown", "[warning] careful"]
    captured = capsys.readouterr()
    assert "[info] shown" in captured.out
    assert "[warning] careful" in captured.err
    assert "hidden" not in captured.out


def test_errors_always_emitted(capsys) -> None:
    set_colors(False)
    collected = _collect()
    set_verbosity(VerbosityLevel.QUIET)

    get_logger("archmod.test").error("boom")

    assert collected[0].level_name == "ERROR"
    assert collected[0].logger_name == "archmod.test"
    assert "[error] boom" in capsys.readouterr().err


def test_level_filtered_subscription() -> None:
    errors_only = _collect(levels=["error"])
    log = get_logger("archmod.test")
    log.info("a")
    log.error("b")
    assert [r.message for r in errors_only] == ["b"]


def test_unsubscribe_and_faulty_subscriber(capsys) -> None:
    bus = LogBus()
    seen: list[LogRecord] = []

    def _boom(_rec: LogRecord) -> None:
        raise RuntimeError("subscriber failure")

    bus.subscribe(_boom)
    unsubscribe = bus.subscribe(seen.append)
    bus.publish(LogRecord("INFO", "one", "t"))
    unsubscribe()
    unsubscribe()
    bus.publish(LogRecord("INFO", "two", "t"))

    assert [r.message for r in seen] == ["one"]
    assert len(bus) == 1
    assert "LogBus subscriber raised" in capsys.readouterr().err
