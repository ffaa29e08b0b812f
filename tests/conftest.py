"""Shared fixtures for the store locator tests."""

from pathlib import Path
from typing import Callable

import pytest

from store_locator.config import DataPaths


@pytest.fixture
def data_paths(tmp_path: Path) -> DataPaths:
    """DataPaths rooted in a fresh temporary directory, directories created."""
    paths = DataPaths.from_root(tmp_path / "data")
    paths.ensure_dirs()
    return paths


@pytest.fixture
def write_csv() -> Callable[[Path, str, list[str]], Path]:
    """Return a helper that writes a header plus raw CSV lines to a file."""

    def _write(path: Path, header: str, lines: list[str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join([header, *lines]) + "\n", encoding="utf-8")
        return path

    return _write
