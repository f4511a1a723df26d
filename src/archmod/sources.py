"""Content sources for staged entries.

A source is only a reference: nothing is opened or read until the rewriter
drains it, so a file that disappears after staging fails at save time.
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from archmod.core.errors import SourceUnreadableError


@runtime_checkable
class ContentSource(Protocol):
    """Anything that can supply an entry's bytes on demand."""

    @property
    def location(self) -> str: ...

    def open(self) -> AbstractContextManager[BinaryIO]: ...

    def size_hint(self) -> int | None: ...


class FileSource:
    """Bytes read from a file on disk."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FileSource) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)

    @property
    def location(self) -> str:
        return str(self.path.absolute())

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        try:
            f = open(self.path, "rb")
        except OSError as e:
            raise SourceUnreadableError(self.location, e.strerror or str(e)) from e
        with f:
            yield f

    def size_hint(self) -> int | None:
        try:
            return self.path.stat().st_size
        except OSError:
            return None


class BytesSource:
    """In-memory bytes; location is a label used only for reporting."""

    def __init__(self, data: bytes, label: str = "<bytes>") -> None:
        self.data = bytes(data)
        self.label = label

    def __repr__(self) -> str:
        return f"BytesSource({len(self.data)} bytes, label={self.label!r})"

    @property
    def location(self) -> str:
        return self.label

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        with io.BytesIO(self.data) as f:
            yield f

    def size_hint(self) -> int | None:
        return len(self.data)


def as_source(obj: ContentSource | str | os.PathLike[str] | bytes) -> ContentSource:
    """Coerce a path or bytes into a ContentSource."""
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return BytesSource(bytes(obj))
    if isinstance(obj, (str, os.PathLike)):
        return FileSource(obj)
    if isinstance(obj, ContentSource):
        return obj
    raise TypeError(f"Unsupported content source: {type(obj).__name__}")

