"""archmod core: errors, logging, configuration and diagnostics."""

from archmod.core.config import ConfigResolver, ConfigSource, LoggingPolicy
from archmod.core.errors import (
    ArchiveReadError,
    ArchiveWriteError,
    ArchmodError,
    ConfigError,
    DuplicateEntryError,
    FileError,
    InvalidEntryNameError,
    SourceUnreadableError,
)
from archmod.core.events import EventBus, get_event_bus
from archmod.core.log_bus import LogBus, LogRecord, get_log_bus
from archmod.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)

__all__ = [
    # Config
    "ConfigResolver",
    "ConfigSource",
    "LoggingPolicy",
    # Errors
    "ArchmodError",
    "ConfigError",
    "FileError",
    "ArchiveReadError",
    "ArchiveWriteError",
    "SourceUnreadableError",
    "DuplicateEntryError",
    "InvalidEntryNameError",
    # Events
    "EventBus",
    "get_event_bus",
    # Logging
    "LogBus",
    "LogRecord",
    "get_log_bus",
    "VerbosityLevel",
    "apply_logging_policy",
    "get_logger",
    "get_verbosity",
    "set_colors",
    "set_verbosity",
]
