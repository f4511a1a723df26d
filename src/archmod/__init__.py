"""archmod - add, overwrite and remove entries of an existing ZIP archive.

Untouched entries are streamed from the original archive; the result is
written in one pass and only published once it is complete.
"""

__version__ = "0.3.0"

from archmod.core.config import ConfigResolver
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
from archmod.core.logging import apply_logging_policy, set_colors
from archmod.entries import EntryMetadata, EntryTable, OriginalEntry, StagedEntry
from archmod.session import ArchiveSession, load
from archmod.sources import BytesSource, ContentSource, FileSource
from archmod.types import EntryAction, OpEvent, OpPhase, RewriteOptions, SaveResult

__all__ = [
    # Session
    "load",
    "ArchiveSession",
    "configure",
    # Model
    "EntryMetadata",
    "EntryTable",
    "OriginalEntry",
    "StagedEntry",
    # Sources
    "ContentSource",
    "FileSource",
    "BytesSource",
    # Results
    "SaveResult",
    "RewriteOptions",
    "EntryAction",
    "OpEvent",
    "OpPhase",
    # Config
    "ConfigResolver",
    # Errors
    "ArchmodError",
    "ConfigError",
    "FileError",
    "ArchiveReadError",
    "ArchiveWriteError",
    "SourceUnreadableError",
    "DuplicateEntryError",
    "InvalidEntryNameError",
]


def configure(resolver: ConfigResolver | None = None) -> None:
    """Apply logging.level and logging.color from configuration."""
    resolver = resolver or ConfigResolver()
    apply_logging_policy(resolver.resolve_logging_policy())
    set_colors(resolver.resolve_bool("logging.color"))
