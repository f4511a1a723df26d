"""Unit tests for the listing reporter."""

from __future__ import annotations

from pathlib import Path

from archmod.entries import EntryMetadata, EntryTable
from archmod.report import describe_table, listing_rows
from archmod.sources import FileSource


def test_listing_sorted_with_sources(tmp_path: Path) -> None:
    archive = tmp_path / "orig.zip"
    staged = tmp_path / "test2.txt"

    table = EntryTable()
    table.put_original(EntryMetadata("z.txt"))
    table.put_original(EntryMetadata("a/b/c/test.txt"))
    table.stage(EntryMetadata("a/b/c/test.txt"), FileSource(staged), overwrite=True)
    table.put_original(EntryMetadata("m/readme.md"))

    assert listing_rows(table, archive) == [
        ("a/b/c/test.txt", str(staged.absolute())),
        ("m/readme.md", str(archive.absolute())),
        ("z.txt", str(archive.absolute())),
    ]
    assert describe_table(table, archive) == (
        f"a/b/c/test.txt [{staged.absolute()}]\n"
        f"m/readme.md [{archive.absolute()}]\n"
        f"z.txt [{archive.absolute()}]\n"
    )


def test_empty_table_describes_as_empty_string(tmp_path: Path) -> None:
    assert describe_table(EntryTable(), tmp_path / "x.zip") == ""


def test_listing_independent_of_mutation_order(tmp_path: Path) -> None:
    archive = tmp_path / "orig.zip"
    src = FileSource(tmp_path / "n.txt")

    first = EntryTable()
    first.put_original(EntryMetadata("b"))
    first.stage(EntryMetadata("n"), src, overwrite=False)
    first.stage(EntryMetadata("a"), src, overwrite=False)
    first.discard("b")

    second = EntryTable()
    second.put_original(EntryMetadata("b"))
    second.discard("b")
    second.stage(EntryMetadata("a"), src, overwrite=False)
    second.stage(EntryMetadata("n"), src, overwrite=False)

    assert describe_table(first, archive) == describe_table(second, archive)
