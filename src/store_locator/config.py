"""Unified configuration for the store locator pipeline.

This module provides the filesystem layout shared by every stage
(``DataPaths``) and the environment-driven settings used by the stages
that talk to external services (``Settings``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from store_locator.exceptions import ConfigError

DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRIES = 3
DEFAULT_GEOCODE_DELAY = 0.2


@dataclass
class DataPaths:
    """All filesystem paths used by the pipeline stages.

    Attributes:
        data_root: Root directory for all pipeline files.
        raw_export_name: File name of the point-of-sale export under a_raw/.

    Directory Structure:
        data_root/
        ├── a_raw/           # point-of-sale export (xlsx or csv)
        ├── b_clean/         # pivoted store table, sheet snapshots
        │   ├── initial-import.csv
        │   ├── original-import.csv
        │   └── current-sheet-export.csv
        └── c_processed/     # stage outputs
            ├── new-stores-to-add.csv
            ├── blocked-stores.csv
            ├── rows-to-review.csv
            └── stores.json

    """

    data_root: Path
    raw_export_name: str = "on and off premise full store list.xlsx"

    @classmethod
    def from_root(
        cls,
        data_root: str | Path,
        raw_export_name: str | None = None,
    ) -> DataPaths:
        """Create DataPaths from a root directory.

        Args:
            data_root: Root directory for pipeline data.
            raw_export_name: Optional override for the raw export file name.

        Returns:
            DataPaths instance.

        Examples:
            >>> paths = DataPaths.from_root("data")
            >>> paths.pivot_csv
            PosixPath('data/b_clean/initial-import.csv')

        """
        if isinstance(data_root, str):
            data_root = Path(data_root)
        if raw_export_name:
            return cls(data_root=data_root, raw_export_name=raw_export_name)
        return cls(data_root=data_root)

    @property
    def raw_dir(self) -> Path:
        return self.data_root / "a_raw"

    @property
    def clean_dir(self) -> Path:
        return self.data_root / "b_clean"

    @property
    def processed_dir(self) -> Path:
        return self.data_root / "c_processed"

    @property
    def raw_export(self) -> Path:
        """Point-of-sale export, one row per store x product line."""
        return self.raw_dir / self.raw_export_name

    @property
    def pivot_csv(self) -> Path:
        """Stage 1 output: one row per physical store."""
        return self.clean_dir / "initial-import.csv"

    @property
    def original_import(self) -> Path:
        """Snapshot of the first import loaded into the sheet."""
        return self.clean_dir / "original-import.csv"

    @property
    def current_sheet(self) -> Path:
        """Export of the live, hand-curated sheet."""
        return self.clean_dir / "current-sheet-export.csv"

    @property
    def new_stores(self) -> Path:
        return self.processed_dir / "new-stores-to-add.csv"

    @property
    def blocked_stores(self) -> Path:
        return self.processed_dir / "blocked-stores.csv"

    @property
    def review_list(self) -> Path:
        return self.processed_dir / "rows-to-review.csv"

    @property
    def stores_json(self) -> Path:
        """Final feed consumed by the map widget."""
        return self.processed_dir / "stores.json"

    @property
    def junk_rules_json(self) -> Path:
        """Optional override for the junk classifier pattern lists."""
        return self.data_root / "junk_rules.json"

    def ensure_dirs(self) -> None:
        """Create all directories in the data structure."""
        for path in [self.raw_dir, self.clean_dir, self.processed_dir]:
            path.mkdir(parents=True, exist_ok=True)


@dataclass
class Settings:
    """Environment-driven settings for the networked stages.

    Attributes:
        sheet_csv_url: Published CSV URL of the curated sheet (SHEET_CSV_URL).
        maps_api_key: Google Maps Platform key (GOOGLE_MAPS_API_KEY).
        timeout: Default HTTP timeout in seconds (SL_TIMEOUT).
        retries: HTTP retry attempts (SL_RETRIES).
        geocode_delay: Seconds to sleep between lookups (SL_GEOCODE_DELAY).

    """

    sheet_csv_url: str | None = None
    maps_api_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    geocode_delay: float = DEFAULT_GEOCODE_DELAY

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables.

        Raises:
            ConfigError: If a numeric variable cannot be parsed.

        """
        try:
            timeout = float(os.environ.get("SL_TIMEOUT", DEFAULT_TIMEOUT))
            retries = int(os.environ.get("SL_RETRIES", DEFAULT_RETRIES))
            delay = float(os.environ.get("SL_GEOCODE_DELAY", DEFAULT_GEOCODE_DELAY))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting in environment: {e}") from e

        return cls(
            sheet_csv_url=_clean_env(os.environ.get("SHEET_CSV_URL")),
            maps_api_key=_clean_env(os.environ.get("GOOGLE_MAPS_API_KEY")),
            timeout=timeout,
            retries=retries,
            geocode_delay=delay,
        )

    def require_sheet_url(self) -> str:
        if not self.sheet_csv_url:
            raise ConfigError("SHEET_CSV_URL environment variable is required")
        return self.sheet_csv_url

    def require_maps_api_key(self) -> str:
        if not self.maps_api_key:
            raise ConfigError("GOOGLE_MAPS_API_KEY environment variable is required")
        return self.maps_api_key


def _clean_env(value: str | None) -> str | None:
    """Strip whitespace and surrounding quotes; empty becomes None."""
    if value is None:
        return None
    value = value.strip().strip('"').strip("'")
    return value or None
