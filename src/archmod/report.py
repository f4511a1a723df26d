"""Human-readable listing of what the next save will write."""

from __future__ import annotations

from pathlib import Path

from archmod.entries import EntryTable, StagedEntry


def listing_rows(table: EntryTable, archive_path: Path) -> list[tuple[str, str]]:
    """Return (name, source) pairs sorted by name.

    The source is the staged content's location, or the original archive's
    absolute path for entries that are copied unchanged.
    """
    archive_location = str(archive_path.absolute())
    rows: list[tuple[str, str]] = []
    for name in sorted(table.names()):
        entry = table.get(name)
        source = entry.source.location if isinstance(entry, StagedEntry) else archive_location
        rows.append((name, source))
    return rows


def describe_table(table: EntryTable, archive_path: Path) -> str:
    """Render listing_rows as 'name [source]' lines; in-memory sources show their label."""
    return "".join(f"{name} [{source}]\n" for name, source in listing_rows(table, archive_path))
