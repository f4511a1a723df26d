"""Entry metadata and the ordered entry table.

The table maps each entry name to exactly one of:
- OriginalEntry: bytes come from the original archive
- StagedEntry: bytes come from a caller supplied content source

Pending replacements are the StagedEntry values, so they can never refer to a
name that is missing from the table.
"""

from __future__ import annotations

import struct
import time
import zipfile
from collections.abc import Iterator
from dataclasses import dataclass, field, replace

from archmod.core.errors import ConfigError, DuplicateEntryError
from archmod.sources import ContentSource

ZIP64_EXTRA_ID = 0x0001

COMPRESSION_METHODS: dict[str, int] = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
    "bzip2": zipfile.ZIP_BZIP2,
    "lzma": zipfile.ZIP_LZMA,
}

SUPPORTED_METHODS = frozenset(COMPRESSION_METHODS.values())

DateTime = tuple[int, int, int, int, int, int]


def compression_from_name(name: str) -> int:
    """Map a configured compression name to its ZIP method id."""
    try:
        return COMPRESSION_METHODS[name.strip().lower()]
    except KeyError:
        allowed = ", ".join(sorted(COMPRESSION_METHODS))
        raise ConfigError(
            f"Unknown compression method {name!r}. Allowed values: {allowed}"
        ) from None


def strip_zip64_extra(extra: bytes) -> bytes:
    """Drop ZIP64 blocks from an extra field.

    The ZIP64 block caches sizes and offsets of the old entry; the writer adds
    a fresh one when it needs it. Malformed trailing bytes are kept as-is.
    """
    out = bytearray()
    pos = 0
    while pos + 4 <= len(extra):
        header_id, size = struct.unpack("<HH", extra[pos : pos + 4])
        end = pos + 4 + size
        if end > len(extra):
            break
        if header_id != ZIP64_EXTRA_ID:
            out += extra[pos:end]
        pos = end
    out += extra[pos:]
    return bytes(out)


def _now() -> DateTime:
    t = time.localtime(time.time())
    return (max(t.tm_year, 1980), t.tm_mon, t.tm_mday, t.tm_hour, t.tm_min, t.tm_sec)


@dataclass(frozen=True)
class EntryMetadata:
    """Rewritable, non-content attributes of one entry.

    Size and CRC are deliberately absent: the writer derives them from the
    bytes it actually writes.
    """

    name: str
    date_time: DateTime = field(default_factory=_now)
    comment: bytes = b""
    extra: bytes = b""
    compress_type: int = zipfile.ZIP_DEFLATED
    # None picks the default permissions for files or directories.
    external_attr: int | None = None
    # Host system that external_attr is encoded for (0 = MS-DOS, 3 = Unix).
    create_system: int | None = None

    @classmethod
    def from_zipinfo(cls, info: zipfile.ZipInfo) -> EntryMetadata:
        return cls(
            name=info.filename,
            date_time=tuple(info.date_time),  # type: ignore[arg-type]
            comment=bytes(info.comment or b""),
            extra=strip_zip64_extra(bytes(info.extra or b"")),
            compress_type=info.compress_type,
            external_attr=info.external_attr,
            create_system=info.create_system,
        )

    def renamed(self, name: str) -> EntryMetadata:
        return replace(self, name=name, extra=strip_zip64_extra(self.extra))

    def to_zipinfo(self) -> zipfile.ZipInfo:
        """Build a fresh ZipInfo carrying only this metadata."""
        zi = zipfile.ZipInfo(filename=self.name, date_time=self.date_time)
        zi.comment = self.comment
        zi.extra = self.extra
        zi.compress_type = self.compress_type
        if self.create_system is not None:
            zi.create_system = self.create_system
        if self.external_attr is not None:
            zi.external_attr = self.external_attr
        elif self.is_dir:
            # Same attributes ZipFile.mkdir assigns to directory entries.
            zi.external_attr = (0o40775 << 16) | 0x10
        else:
            zi.external_attr = 0o600 << 16
        return zi

    @property
    def is_dir(self) -> bool:
        return self.name.endswith("/")


@dataclass(frozen=True)
class OriginalEntry:
    metadata: EntryMetadata


@dataclass(frozen=True)
class StagedEntry:
    metadata: EntryMetadata
    source: ContentSource


TableEntry = OriginalEntry | StagedEntry


class EntryTable:
    """Ordered mapping: entry name -> OriginalEntry | StagedEntry.

    Iteration order is insertion order. Overwriting a name keeps its position;
    removing and re-adding a name moves it to the end.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TableEntry] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, name: str) -> TableEntry | None:
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def items(self) -> list[tuple[str, TableEntry]]:
        return list(self._entries.items())

    def pending(self) -> dict[str, ContentSource]:
        return {
            name: entry.source
            for name, entry in self._entries.items()
            if isinstance(entry, StagedEntry)
        }

    def put_original(self, metadata: EntryMetadata) -> None:
        self._entries[metadata.name] = OriginalEntry(metadata)

    def stage(self, metadata: EntryMetadata, source: ContentSource, *, overwrite: bool) -> bool:
        """Upsert a staged entry.

        Returns True when an existing entry was replaced.

        Raises:
            DuplicateEntryError: name exists and overwrite is False
        """
        existed = metadata.name in self._entries
        if existed and not overwrite:
            raise DuplicateEntryError(metadata.name)
        self._entries[metadata.name] = StagedEntry(metadata, source)
        return existed

    def discard(self, name: str) -> bool:
        return self._entries.pop(name, None) is not None
