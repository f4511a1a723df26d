"""Unit tests for the archive loader."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from archmod.core.errors import ArchiveReadError
from archmod.entries import OriginalEntry
from archmod.loader import load_entry_table


def test_load_preserves_order_and_metadata(tmp_path: Path) -> None:
    path = tmp_path / "a.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zi = zipfile.ZipInfo("z/last.txt", date_time=(2019, 1, 2, 3, 4, 6))
        zi.comment = b"first"
        zi.compress_type = zipfile.ZIP_DEFLATED
        zf.writestr(zi, b"zz")
        zf.writestr("a/first.txt", b"aa", compress_type=zipfile.ZIP_STORED)
        zf.comment = b"archive comment"

    loaded = load_entry_table(path)

    assert loaded.table.names() == ["z/last.txt", "a/first.txt"]
    assert loaded.table.pending() == {}
    assert loaded.comment == b"archive comment"

    entry = loaded.table.get("z/last.txt")
    assert isinstance(entry, OriginalEntry)
    assert entry.metadata.date_time == (2019, 1, 2, 3, 4, 6)
    assert entry.metadata.comment == b"first"
    assert entry.metadata.compress_type == zipfile.ZIP_DEFLATED
    assert loaded.table.get("a/first.txt").metadata.compress_type == zipfile.ZIP_STORED


def test_load_empty_archive(tmp_path: Path) -> None:
    path = tmp_path / "empty.zip"
    with zipfile.ZipFile(path, "w"):
        pass

    loaded = load_entry_table(path)
    assert len(loaded.table) == 0


def test_load_missing_archive(tmp_path: Path) -> None:
    with pytest.raises(ArchiveReadError):
        load_entry_table(tmp_path / "nope.zip")


def test_load_directory_path(tmp_path: Path) -> None:
    with pytest.raises(ArchiveReadError):
        load_entry_table(tmp_path)


def test_load_rejects_non_zip(tmp_path: Path) -> None:
    path = tmp_path / "not.zip"
    path.write_bytes(b"Rar!\x1a\x07\x00 definitely not a zip")
    with pytest.raises(ArchiveReadError) as exc:
        load_entry_table(path)
    assert "format marker" in str(exc.value)


def test_load_rejects_truncated_zip(tmp_path: Path) -> None:
    good = tmp_path / "good.zip"
    with zipfile.ZipFile(good, "w") as zf:
        zf.writestr("a.txt", b"a" * 100)
    bad = tmp_path / "bad.zip"
    bad.write_bytes(good.read_bytes()[:40])

    with pytest.raises(ArchiveReadError):
        load_entry_table(bad)


def test_load_rejects_unsupported_method(tmp_path: Path) -> None:
    path = tmp_path / "m.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("a.txt", b"a")

    # Patch the method id (deflate64 = 9) in both local and central headers.
    data = bytearray(path.read_bytes())
    local = data.find(b"PK\x03\x04")
    central = data.find(b"PK\x01\x02")
    data[local + 8 : local + 10] = (9).to_bytes(2, "little")
    data[central + 10 : central + 12] = (9).to_bytes(2, "little")
    path.write_bytes(bytes(data))

    with pytest.raises(ArchiveReadError) as exc:
        load_entry_table(path)
    assert "unsupported compression method 9" in str(exc.value)
