"""Single-pass rewrite of an archive from its entry table.

Output order:
1. names of the original archive, in original order, when still in the table
2. names the original archive never had, in table insertion order

Bytes are streamed in chunks from the staged source or from the original
entry. The new archive is written to a temp file beside the destination and
published with os.replace only after it was closed (and optionally verified).
"""

from __future__ import annotations

import contextlib
import os
import stat
import tempfile
import time
import traceback
import zipfile
import zlib
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import BinaryIO

from archmod.core.errors import (
    ArchiveReadError,
    ArchiveWriteError,
    ArchmodError,
    SourceUnreadableError,
)
from archmod.core.logging import get_logger
from archmod.entries import EntryMetadata, EntryTable, OriginalEntry, StagedEntry
from archmod.loader import check_entry_supported
from archmod.sources import ContentSource
from archmod.types import EntryAction, OpEvent, OpPhase, RewriteOptions, SaveResult

log = get_logger(__name__)

# Raised by zipfile/zlib while decompressing a damaged entry.
_ENTRY_READ_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error, NotImplementedError)


def plan_entries(
    original_names: list[str], table: EntryTable
) -> list[tuple[str, EntryAction]]:
    """Decide which names are written, in which order, and where bytes come from.

    Raises:
        ArchiveReadError: the table expects original bytes for a name the
            archive no longer contains
    """
    plan: list[tuple[str, EntryAction]] = []
    seen: set[str] = set()

    for name in original_names:
        if name in seen:
            continue
        seen.add(name)
        entry = table.get(name)
        if entry is None:
            continue
        action = EntryAction.KEPT if isinstance(entry, OriginalEntry) else EntryAction.REPLACED
        plan.append((name, action))

    for name, entry in table.items():
        if name in seen:
            continue
        if isinstance(entry, OriginalEntry):
            raise ArchiveReadError(
                f"Entry '{name}' is no longer present in the original archive",
                "The archive changed on disk after it was loaded; load it again",
            )
        plan.append((name, EntryAction.ADDED))

    return plan


@contextlib.contextmanager
def _open_original(zin: zipfile.ZipFile, name: str) -> Iterator[BinaryIO]:
    info = zin.getinfo(name)
    check_entry_supported(info)
    try:
        f = zin.open(info, "r")
    except _ENTRY_READ_ERRORS as e:
        raise ArchiveReadError(f"Cannot read entry '{name}' from original archive: {e}") from e
    with f:
        yield f  # type: ignore[misc]


def _copy_stream(
    src: BinaryIO,
    dst: BinaryIO,
    chunk_size: int,
    on_read_error: Callable[[Exception], ArchmodError],
) -> int:
    total = 0
    while True:
        try:
            chunk = src.read(chunk_size)
        except _ENTRY_READ_ERRORS as e:
            raise on_read_error(e) from e
        if not chunk:
            return total
        dst.write(chunk)
        total += len(chunk)


def _needs_zip64(size_hint: int | None) -> bool:
    # Same margin zipfile applies when it knows the size up front.
    return size_hint is not None and size_hint * 1.05 > zipfile.ZIP64_LIMIT


def _write_entry(
    out: zipfile.ZipFile,
    metadata: EntryMetadata,
    opener: Callable[[], contextlib.AbstractContextManager[BinaryIO]],
    size_hint: int | None,
    chunk_size: int,
    on_read_error: Callable[[Exception], ArchmodError],
) -> int:
    try:
        zinfo = metadata.to_zipinfo()
    except ValueError as e:
        raise ArchiveWriteError(f"Invalid metadata for entry '{metadata.name}': {e}") from e

    try:
        with (
            opener() as src,
            out.open(zinfo, "w", force_zip64=_needs_zip64(size_hint)) as dst,
        ):
            return _copy_stream(src, dst, chunk_size, on_read_error)
    except (OSError, RuntimeError) as e:
        raise ArchiveWriteError(f"Cannot write entry '{metadata.name}': {e}") from e


def _write_planned(
    zin: zipfile.ZipFile,
    out: zipfile.ZipFile,
    table: EntryTable,
    name: str,
    chunk_size: int,
) -> int:
    entry = table.get(name)
    if isinstance(entry, StagedEntry):
        source = entry.source
        return _write_entry(
            out,
            entry.metadata,
            source.open,
            source.size_hint(),
            chunk_size,
            _staged_read_error(source),
        )
    assert isinstance(entry, OriginalEntry)
    return _write_entry(
        out,
        entry.metadata,
        lambda: _open_original(zin, name),
        zin.getinfo(name).file_size,
        chunk_size,
        _original_read_error(name),
    )


def _staged_read_error(source: ContentSource) -> Callable[[Exception], ArchmodError]:
    def _make(e: Exception) -> ArchmodError:
        return SourceUnreadableError(source.location, str(e))

    return _make


def _original_read_error(name: str) -> Callable[[Exception], ArchmodError]:
    def _make(e: Exception) -> ArchmodError:
        return ArchiveReadError(f"Cannot stream entry '{name}' from original archive: {e}")

    return _make


def _open_source_archive(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path, "r")
    except zipfile.BadZipFile as e:
        raise ArchiveReadError(f"Corrupt archive '{path}': {e}") from e
    except OSError as e:
        raise ArchiveReadError(f"Cannot open archive '{path}': {e}") from e


def _create_temp(destination: Path, suffix: str) -> tuple[int, Path]:
    parent = destination.parent
    if destination.is_dir():
        raise ArchiveWriteError(f"Destination is a directory: {destination}")
    if not parent.is_dir():
        raise ArchiveWriteError(
            f"Destination directory does not exist: {parent}",
            "Create the directory before saving",
        )
    try:
        fd, tmp = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=suffix, dir=parent)
    except OSError as e:
        raise ArchiveWriteError(f"Cannot create temporary file in {parent}: {e}") from e
    return fd, Path(tmp)


def _verify(tmp_path: Path, destination: Path) -> None:
    try:
        with zipfile.ZipFile(tmp_path, "r") as zf:
            bad = zf.testzip()
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveWriteError(f"Written archive for '{destination}' is unreadable: {e}") from e
    if bad is not None:
        raise ArchiveWriteError(f"Written archive for '{destination}' failed CRC check at '{bad}'")


def _publish(tmp_path: Path, destination: Path, mode_from: Path) -> None:
    try:
        with contextlib.suppress(OSError):
            os.chmod(tmp_path, stat.S_IMODE(mode_from.stat().st_mode))
        os.replace(tmp_path, destination)
    except OSError as e:
        raise ArchiveWriteError(f"Cannot move new archive into place at '{destination}': {e}") from e


def rewrite_archive(
    source_path: Path,
    table: EntryTable,
    destination: str | os.PathLike[str],
    *,
    comment: bytes = b"",
    options: RewriteOptions | None = None,
) -> SaveResult:
    """Write the table's entries to destination in one streaming pass.

    Raises:
        ArchiveReadError: original archive cannot be opened or streamed
        SourceUnreadableError: a staged source cannot be opened or read
        ArchiveWriteError: destination cannot be created, written or replaced
    """
    opts = options or RewriteOptions()
    dest = Path(destination).absolute()
    trace: list[OpEvent] = []
    t0 = time.monotonic()

    fd, tmp_path = _create_temp(dest, opts.temp_suffix)
    buckets: dict[EntryAction, list[str]] = {action: [] for action in EntryAction}
    total = 0

    try:
        raw = os.fdopen(fd, "wb")
    except OSError as e:
        os.close(fd)
        _discard(tmp_path)
        raise ArchiveWriteError(f"Cannot open temporary file {tmp_path}: {e}") from e

    try:
        with raw, _open_source_archive(source_path) as zin:
            plan = plan_entries([i.filename for i in zin.infolist()], table)
            trace.append(
                OpEvent(
                    op="save",
                    phase=OpPhase.PLANNED,
                    details={"entries": len(plan), "destination": str(dest)},
                )
            )

            with zipfile.ZipFile(raw, "w") as out:
                trace.append(OpEvent(op="save", phase=OpPhase.STARTED))
                for name, action in plan:
                    n = _write_planned(zin, out, table, name, opts.chunk_size)
                    total += n
                    buckets[action].append(name)
                    log.debug(f"save entry={name!r} action={action.value} bytes={n}")
                out.comment = comment
            raw.flush()
            if opts.fsync:
                os.fsync(raw.fileno())
    except ArchmodError as e:
        _discard(tmp_path)
        _log_failure(dest, e, trace, opts)
        raise
    except Exception as e:
        # Central directory / flush / fsync failures land here.
        _discard(tmp_path)
        _log_failure(dest, e, trace, opts)
        raise ArchiveWriteError(f"Cannot write archive '{dest}': {e}") from e

    try:
        if opts.verify:
            _verify(tmp_path, dest)
        _publish(tmp_path, dest, dest if dest.exists() else source_path)
    except ArchmodError as e:
        _discard(tmp_path)
        _log_failure(dest, e, trace, opts)
        raise

    duration_ms = int((time.monotonic() - t0) * 1000)
    trace.append(
        OpEvent(
            op="save",
            phase=OpPhase.OK,
            details={"entries": len(plan), "bytes": total, "duration_ms": duration_ms},
        )
    )
    kept = buckets[EntryAction.KEPT]
    replaced = buckets[EntryAction.REPLACED]
    added = buckets[EntryAction.ADDED]
    log.info(
        f"saved archive={dest.name} entries={len(plan)} kept={len(kept)} "
        f"replaced={len(replaced)} added={len(added)} bytes={total} duration_ms={duration_ms}"
    )
    return SaveResult(
        destination=str(dest),
        entries_written=len(plan),
        bytes_written=total,
        kept=kept,
        replaced=replaced,
        added=added,
        trace=trace if opts.include_trace else [],
    )


def _discard(tmp_path: Path) -> None:
    with contextlib.suppress(FileNotFoundError):
        tmp_path.unlink()


def _log_failure(
    dest: Path, error: BaseException, trace: list[OpEvent], opts: RewriteOptions
) -> None:
    details: dict[str, object] = {"error": str(error), "type": type(error).__name__}
    if opts.include_stack:
        details["stack"] = traceback.format_exc()
    trace.append(OpEvent(op="save", phase=OpPhase.ERROR, details=details))
    log.error(f"save failed destination={dest.name} {type(error).__name__}: {error}")
