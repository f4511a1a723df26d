"""Entry name normalization and the basename rule.

Entry names are '/'-separated paths relative to the archive root.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from archmod.core.errors import InvalidEntryNameError


def normalize_entry_name(name: str) -> str:
    """Normalize and validate a caller supplied entry name.

    Rules:
    - backslashes are treated as separators
    - must be relative (no leading slash, no drive letter)
    - no '..' segments
    - a trailing '/' is kept (it marks a directory entry)

    Raises:
        InvalidEntryNameError
    """
    if name is None or str(name) == "":
        raise InvalidEntryNameError("Entry name is required")

    name = str(name).replace("\\", "/")
    is_dir = name.endswith("/")

    p = PurePosixPath(name)
    if p.is_absolute():
        raise InvalidEntryNameError(f"Absolute entry names are not allowed: {name!r}")
    if p.parts and p.parts[0].endswith(":"):
        raise InvalidEntryNameError(f"Drive-qualified entry names are not allowed: {name!r}")
    if any(part == ".." for part in p.parts):
        raise InvalidEntryNameError(f"Parent path segments ('..') are not allowed: {name!r}")

    # PurePosixPath collapses '//' and './'; '.' alone is not an entry.
    normalized = p.as_posix()
    if normalized in ("", "."):
        raise InvalidEntryNameError(f"Entry name resolves to the archive root: {name!r}")
    return normalized + "/" if is_dir else normalized


def basename(name: str) -> str:
    """Return the final path segment of an entry name.

    The segment after the last '/', or the whole name when there is none.
    A directory entry's trailing '/' is ignored, so 'a/b/' -> 'b'.
    """
    return name.rstrip("/").rpartition("/")[2]


def matches_basename(name: str, filename: str) -> bool:
    """Exact last-segment comparison; 'a/xtest.txt' does not match 'test.txt'."""
    return basename(name) == filename


def entry_key(name: str) -> str | None:
    """Normalized form of name, or None if it cannot be normalized.

    Stored names like './x.txt' and 'x.txt' share the key 'x.txt'.
    """
    try:
        return normalize_entry_name(name)
    except InvalidEntryNameError:
        return None


def find_stored_name(names: Iterable[str], name: str) -> str | None:
    """Return the stored name that addresses the same entry as name.

    An exact match wins; otherwise names are compared by their normalized key.
    """
    stored = list(names)
    if name in stored:
        return name
    key = entry_key(name)
    if key is None:
        return None
    for candidate in stored:
        if entry_key(candidate) == key:
            return candidate
    return None
