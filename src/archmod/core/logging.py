"""Centralized logging for archmod.

Lines are printed as "[level] message" and mirrored onto the LogBus.
The global verbosity decides what is emitted; errors always are.

    log = get_logger(__name__)
    log.verbose("loaded archive=app.zip entries=12")
"""

from __future__ import annotations

import sys
from enum import IntEnum

from archmod.core.config import LoggingPolicy
from archmod.core.log_bus import LogRecord, get_log_bus


class VerbosityLevel(IntEnum):
    """Verbosity levels for archmod."""

    QUIET = 0  # warnings, errors
    NORMAL = 1  # + save summaries
    VERBOSE = 2  # + load details
    DEBUG = 3  # + per-entry decisions


_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL

_USE_COLORS: bool = True


def set_verbosity(level: int | VerbosityLevel) -> None:
    """Set the process-wide verbosity (0-3 or a VerbosityLevel)."""
    global _VERBOSITY
    _VERBOSITY = VerbosityLevel(level)


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def apply_logging_policy(policy: LoggingPolicy) -> None:
    """Apply a resolved LoggingPolicy to the global verbosity."""
    if policy.emit_debug:
        set_verbosity(VerbosityLevel.DEBUG)
    elif policy.emit_verbose:
        set_verbosity(VerbosityLevel.VERBOSE)
    elif policy.emit_info:
        set_verbosity(VerbosityLevel.NORMAL)
    else:
        set_verbosity(VerbosityLevel.QUIET)


def set_colors(enabled: bool) -> None:
    """Enable or disable ANSI colours on TTY output."""
    global _USE_COLORS
    _USE_COLORS = enabled


class ArchmodLogger:
    """Logger with verbosity support.

    Every emitted line is printed and published to the LogBus.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "VERBOSE": "\033[34m",  # Blue
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "RESET": "\033[0m",
    }

    _LEVELS = {
        "DEBUG": VerbosityLevel.DEBUG,
        "VERBOSE": VerbosityLevel.VERBOSE,
        "INFO": VerbosityLevel.NORMAL,
        "WARNING": VerbosityLevel.QUIET,
        "ERROR": VerbosityLevel.QUIET,
    }

    def __init__(self, name: str):
        self.name = name

    def is_enabled_for(self, level_name: str) -> bool:
        return self._LEVELS[level_name] <= _VERBOSITY

    def _format_message(self, level_name: str, message: str, stream) -> str:
        if _USE_COLORS and stream.isatty():
            color = self.COLORS.get(level_name, "")
            reset = self.COLORS["RESET"]
            return f"{color}[{level_name.lower()}]{reset} {message}"
        return f"[{level_name.lower()}] {message}"

    def _log(self, level_name: str, message: str) -> None:
        # Errors are always shown.
        if level_name != "ERROR" and not self.is_enabled_for(level_name):
            return

        get_log_bus().publish(
            LogRecord(level_name=level_name, message=message, logger_name=self.name)
        )

        stream = sys.stderr if level_name in ("WARNING", "ERROR") else sys.stdout
        print(self._format_message(level_name, message, stream), file=stream)

    def debug(self, message: str) -> None:
        self._log("DEBUG", message)

    def verbose(self, message: str) -> None:
        self._log("VERBOSE", message)

    def info(self, message: str) -> None:
        self._log("INFO", message)

    def warning(self, message: str) -> None:
        self._log("WARNING", message)

    def error(self, message: str) -> None:
        self._log("ERROR", message)


_LOGGERS: dict[str, ArchmodLogger] = {}


def get_logger(name: str = "archmod") -> ArchmodLogger:
    """Return the cached logger for name, creating it on first use."""
    logger = _LOGGERS.get(name)
    if logger is None:
        logger = _LOGGERS[name] = ArchmodLogger(name)
    return logger
