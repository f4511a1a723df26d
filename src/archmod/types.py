"""Result and trace types for archive operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class OpPhase(StrEnum):
    PLANNED = "planned"
    STARTED = "started"
    OK = "ok"
    ERROR = "error"


class EntryAction(StrEnum):
    KEPT = "kept"  # bytes copied from the original archive
    REPLACED = "replaced"  # original name, staged bytes
    ADDED = "added"  # name absent from the original archive


@dataclass(frozen=True)
class OpEvent:
    op: str
    phase: OpPhase
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RewriteOptions:
    chunk_size: int = 64 * 1024
    fsync: bool = True
    verify: bool = False
    temp_suffix: str = ".tmp"
    include_trace: bool = False
    include_stack: bool = False


@dataclass(frozen=True)
class SaveResult:
    destination: str
    entries_written: int
    bytes_written: int
    kept: list[str]
    replaced: list[str]
    added: list[str]
    trace: list[OpEvent]
