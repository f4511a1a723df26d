"""Pytest configuration and fixtures."""

import sys
import zipfile
from pathlib import Path

import pytest

# Add src to path (for 'archmod.*' imports without installing)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep ARCHMOD_* variables from the developer shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("ARCHMOD_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def resolver(tmp_path):
    """ConfigResolver that ignores user/system config files.

    fsync is disabled to keep the suite fast.
    """
    from archmod.core.config import ConfigResolver

    return ConfigResolver(
        cli_args={"archive": {"fsync": False}},
        user_config_path=tmp_path / "no-user.yaml",
        system_config_path=tmp_path / "no-system.yaml",
    )


@pytest.fixture
def make_zip(tmp_path):
    """Factory writing a ZIP with the given {name: bytes} entries, in order.

    Returns:
        Callable(entries, name="orig.zip", compression=ZIP_DEFLATED) -> Path
    """

    def _make(entries, name="orig.zip", compression=zipfile.ZIP_DEFLATED):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", compression=compression) as zf:
            for entry_name, data in entries.items():
                zf.writestr(entry_name, data)
        return path

    return _make


@pytest.fixture
def read_zip():
    """Return a reader yielding [(name, bytes)] in archive order."""

    def _read(path):
        with zipfile.ZipFile(path) as zf:
            return [(info.filename, zf.read(info)) for info in zf.infolist()]

    return _read
