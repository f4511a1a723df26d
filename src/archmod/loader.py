"""Build the initial entry table from an existing archive."""

from __future__ import annotations

import os
import zipfile
from dataclasses import dataclass
from pathlib import Path

from archmod.core.errors import ArchiveReadError
from archmod.core.logging import get_logger
from archmod.entries import SUPPORTED_METHODS, EntryMetadata, EntryTable

log = get_logger(__name__)

ZIP_MAGIC = (b"PK\x03\x04", b"PK\x05\x06")


@dataclass
class LoadedArchive:
    path: Path
    table: EntryTable
    comment: bytes


def _check_magic(path: Path) -> None:
    try:
        with open(path, "rb") as f:
            head = f.read(4)
    except OSError as e:
        raise ArchiveReadError(f"Cannot open archive '{path}': {e.strerror or e}") from e
    # An empty archive is only an end-of-central-directory record.
    if head not in ZIP_MAGIC:
        raise ArchiveReadError(
            f"'{path}' is not a ZIP archive (unexpected format marker {head!r})",
            "Only ZIP containers can be modified",
        )


def check_entry_supported(info: zipfile.ZipInfo) -> None:
    if info.flag_bits & 0x1:
        raise ArchiveReadError(f"Entry '{info.filename}' is encrypted; encryption is unsupported")
    if info.compress_type not in SUPPORTED_METHODS:
        raise ArchiveReadError(
            f"Entry '{info.filename}' uses unsupported compression method {info.compress_type}"
        )


def load_entry_table(path: str | os.PathLike[str]) -> LoadedArchive:
    """Snapshot an archive's entries into a fresh EntryTable.

    Only rewritable metadata is copied; cached sizes and CRCs are discarded so
    the writer recomputes them.

    Raises:
        ArchiveReadError: missing, unreadable, corrupt or unsupported archive
    """
    archive_path = Path(path)
    if not archive_path.exists():
        raise ArchiveReadError(f"Archive not found: {archive_path}")
    if archive_path.is_dir():
        raise ArchiveReadError(f"Archive path is a directory: {archive_path}")

    _check_magic(archive_path)

    table = EntryTable()
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            infos = zf.infolist()
            for info in infos:
                check_entry_supported(info)
                table.put_original(EntryMetadata.from_zipinfo(info))
            comment = zf.comment
    except zipfile.BadZipFile as e:
        raise ArchiveReadError(f"Corrupt archive '{archive_path}': {e}") from e
    except OSError as e:
        raise ArchiveReadError(f"Cannot read archive '{archive_path}': {e}") from e

    if len(table) != len(infos):
        log.warning(
            f"archive {archive_path.name} lists {len(infos) - len(table)} duplicate entry name(s); "
            "the last occurrence of each is used"
        )
    log.verbose(f"loaded archive={archive_path.name} entries={len(table)}")
    return LoadedArchive(path=archive_path, table=table, comment=comment)
