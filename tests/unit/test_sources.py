"""Unit tests for content sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from archmod.core.errors import SourceUnreadableError
from archmod.sources import BytesSource, ContentSource, FileSource, as_source


def test_file_source_reads_and_reports_absolute_location(tmp_path: Path) -> None:
    p = tmp_path / "payload.bin"
    p.write_bytes(b"hello")
    src = FileSource(p)

    assert src.location == str(p.absolute())
    assert src.size_hint() == 5
    with src.open() as f:
        assert f.read() == b"hello"


def test_file_source_missing_raises_source_unreadable(tmp_path: Path) -> None:
    src = FileSource(tmp_path / "gone.bin")
    assert src.size_hint() is None
    with pytest.raises(SourceUnreadableError) as exc:
        with src.open():
            pass
    assert exc.value.location == str((tmp_path / "gone.bin").absolute())


def test_bytes_source() -> None:
    src = BytesSource(b"abc", label="<mem>")
    assert src.location == "<mem>"
    assert src.size_hint() == 3
    with src.open() as f:
        assert f.read() == b"abc"


def test_as_source_coercions(tmp_path: Path) -> None:
    assert isinstance(as_source(b"x"), BytesSource)
    assert isinstance(as_source(str(tmp_path / "a")), FileSource)
    assert isinstance(as_source(tmp_path / "a"), FileSource)

    src = BytesSource(b"y")
    assert as_source(src) is src
    assert isinstance(src, ContentSource)

    with pytest.raises(TypeError):
        as_source(42)  # type: ignore[arg-type]
