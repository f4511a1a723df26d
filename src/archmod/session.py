"""Modification session over one existing archive.

A session owns its entry table exclusively. It holds no file handles between
calls; every save re-opens the original archive and streams from it.
"""

from __future__ import annotations

import os
import time
from pathlib import Path

from archmod.core.config import ConfigResolver
from archmod.core.diagnostics import emit
from archmod.core.errors import ArchmodError
from archmod.core.logging import get_logger
from archmod.entries import EntryMetadata, EntryTable, compression_from_name
from archmod.loader import load_entry_table
from archmod.names import find_stored_name, matches_basename, normalize_entry_name
from archmod.report import describe_table, listing_rows
from archmod.rewriter import rewrite_archive
from archmod.sources import BytesSource, ContentSource, as_source
from archmod.types import RewriteOptions, SaveResult

log = get_logger(__name__)

SourceLike = ContentSource | str | os.PathLike[str] | bytes


class ArchiveSession:
    """Pending modifications to one archive.

    Example:
        session = load("app.zip")
        session.add("a/b/c/test.txt", "/tmp/test2.txt", overwrite=True)
        session.remove_by_basename("README.md")
        session.save("app-modified.zip")
    """

    def __init__(
        self,
        path: Path,
        table: EntryTable,
        *,
        comment: bytes = b"",
        resolver: ConfigResolver | None = None,
    ) -> None:
        self._path = path
        self._table = table
        self._comment = comment
        self._resolver = resolver or ConfigResolver()

    @property
    def path(self) -> Path:
        """Original archive this session reads from."""
        return self._path

    @property
    def comment(self) -> bytes:
        """Archive-level comment written on save."""
        return self._comment

    @comment.setter
    def comment(self, value: bytes) -> None:
        self._comment = bytes(value)

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"ArchiveSession({str(self._path)!r}, entries={len(self._table)})"

    def names(self) -> list[str]:
        """Entry names in table order."""
        return self._table.names()

    def metadata(self, name: str) -> EntryMetadata | None:
        stored = find_stored_name(self._table.names(), name)
        entry = self._table.get(stored) if stored is not None else None
        return entry.metadata if entry is not None else None

    def pending(self) -> dict[str, ContentSource]:
        """Staged replacements keyed by entry name."""
        return self._table.pending()

    def add(
        self,
        target: str | EntryMetadata,
        source: SourceLike,
        overwrite: bool = False,
        *,
        metadata: EntryMetadata | None = None,
    ) -> bool:
        """Stage content for an entry, adding the name if the archive lacks it.

        Args:
            target: Entry name ('a/b/test.txt') or a metadata template whose
                name, timestamp, comment, extra data and method are used
            source: Path, bytes or ContentSource supplying the entry's bytes
            overwrite: Replace an existing entry of the same name
            metadata: Template for timestamp/comment/extra/method when target
                is a plain name

        Returns:
            True if an existing entry was replaced, False for a new name

        Raises:
            DuplicateEntryError: name exists and overwrite is False
            InvalidEntryNameError: name is empty, absolute or contains '..'
        """
        if isinstance(target, EntryMetadata):
            template: EntryMetadata | None = target
            raw = target.name
        else:
            template = metadata
            raw = target
        key = normalize_entry_name(raw)
        # An existing entry spelled differently ("./x.txt", "a\\b") keeps its stored name.
        name = find_stored_name(self._table.names(), raw) or key

        if template is not None:
            meta = template.renamed(name)
        else:
            meta = EntryMetadata(name=name, compress_type=self._default_compression())

        replaced = self._table.stage(meta, as_source(source), overwrite=overwrite)
        log.debug(f"staged entry={name!r} replaced={replaced}")
        return replaced

    def add_bytes(
        self, name: str, data: bytes, overwrite: bool = False, *, label: str | None = None
    ) -> bool:
        """Stage in-memory bytes for an entry."""
        return self.add(name, BytesSource(data, label or f"<bytes:{name}>"), overwrite)

    def remove(self, name: str) -> bool:
        """Remove an entry and any staged content; absent names are ignored.

        name is matched like in add: exactly, or by its normalized form.
        """
        stored = find_stored_name(self._table.names(), name)
        if stored is None:
            return False
        self._table.discard(stored)
        log.debug(f"removed entry={stored!r}")
        return True

    def remove_by_basename(self, filename: str) -> list[str]:
        """Remove every entry whose last path segment equals filename.

        Returns:
            Sorted list of removed entry names
        """
        doomed = sorted(n for n in self._table.names() if matches_basename(n, filename))
        for name in doomed:
            self._table.discard(name)
        log.debug(f"removed by basename={filename!r} count={len(doomed)}")
        return doomed

    def listing_rows(self) -> list[tuple[str, str]]:
        return listing_rows(self._table, self._path)

    def describe(self) -> str:
        """Sorted 'name [source]' lines describing the next save.

        Unchanged entries show the archive's absolute path and file sources
        their absolute path. In-memory sources show their label instead.
        """
        return describe_table(self._table, self._path)

    def rewrite_options(self) -> RewriteOptions:
        r = self._resolver
        return RewriteOptions(
            chunk_size=r.resolve_int("archive.chunk_size", minimum=1),
            fsync=r.resolve_bool("archive.fsync"),
            verify=r.resolve_bool("archive.verify_after_write"),
            temp_suffix=r.resolve_str("archive.temp_suffix"),
            include_trace=r.resolve_bool("archive.debug.include_trace"),
            include_stack=r.resolve_bool("archive.debug.include_stack"),
        )

    def save(self, destination: str | os.PathLike[str]) -> SaveResult:
        """Write the modified archive to destination.

        The destination only changes if the whole archive was written; it may
        be the original archive's own path.

        Raises:
            ArchiveReadError: original archive cannot be streamed
            SourceUnreadableError: staged content cannot be read
            ArchiveWriteError: destination cannot be written or replaced
            ConfigError: archive.* settings are invalid (nothing is written)
        """
        base = {"archive": str(self._path), "destination": str(destination)}
        emit(self._resolver, "operation.start", operation="archmod.save", data=dict(base))
        t0 = time.perf_counter()
        try:
            options = self.rewrite_options()
            result = rewrite_archive(
                self._path,
                self._table,
                destination,
                comment=self._comment,
                options=options,
            )
        except ArchmodError as e:
            emit(
                self._resolver,
                "operation.end",
                operation="archmod.save",
                data={
                    **base,
                    "status": "failed",
                    "error_type": type(e).__name__,
                    "duration_ms": int((time.perf_counter() - t0) * 1000),
                },
            )
            raise
        emit(
            self._resolver,
            "operation.end",
            operation="archmod.save",
            data={
                **base,
                "status": "succeeded",
                "entries": result.entries_written,
                "bytes": result.bytes_written,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
            },
        )
        return result

    def _default_compression(self) -> int:
        return compression_from_name(self._resolver.resolve_str("archive.default_compression"))


def load(
    source: str | os.PathLike[str], *, resolver: ConfigResolver | None = None
) -> ArchiveSession:
    """Open a modification session on an existing archive.

    Raises:
        ArchiveReadError: archive missing, corrupt or unsupported
    """
    resolver = resolver or ConfigResolver()
    base = {"archive": str(source)}
    emit(resolver, "operation.start", operation="archmod.load", data=dict(base))
    t0 = time.perf_counter()
    try:
        loaded = load_entry_table(source)
    except ArchmodError as e:
        emit(
            resolver,
            "operation.end",
            operation="archmod.load",
            data={
                **base,
                "status": "failed",
                "error_type": type(e).__name__,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
            },
        )
        raise
    emit(
        resolver,
        "operation.end",
        operation="archmod.load",
        data={
            **base,
            "status": "succeeded",
            "entries": len(loaded.table),
            "duration_ms": int((time.perf_counter() - t0) * 1000),
        },
    )
    return ArchiveSession(loaded.path, loaded.table, comment=loaded.comment, resolver=resolver)
