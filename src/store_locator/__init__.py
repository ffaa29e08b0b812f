"""Store Locator - keep a brand's "where to buy" map in sync with sales data.

The pipeline turns point-of-sale exports into the JSON feed behind a store
locator map, without ever undoing a curator's manual edits:

- **Pivot**: raw store x product line items -> one row per store
- **Reconcile**: new batch vs. the curated sheet; removed stores stay removed
- **Review**: junk and duplicate rows of the sheet, ordered by sheet row
- **Enrich**: re-entrant address normalization, geocoding and phone lookup
- **Publish**: approved sheet -> ``stores.json``

Module Structure:
    store_locator.etl: Table I/O, cleaning helpers and the pivot stage
    store_locator.reconcile: Junk rules, duplicate detection, reconciliation
    store_locator.qa: Review list for curators
    store_locator.geocoding: Google Maps clients and enrichment passes
    store_locator.publish: JSON feed builder
    store_locator.config: DataPaths and Settings

Quick Start:
    >>> from store_locator import DataPaths
    >>> from store_locator.etl.pivot import run_pivot
    >>> from store_locator.reconcile import run_reconciliation
    >>>
    >>> paths = DataPaths.from_root("data")
    >>> pivot_result = run_pivot(paths)
    >>> result = run_reconciliation(paths)
    >>> print(result.summary())
"""

__version__ = "0.1.0"

from store_locator.config import DataPaths, Settings
from store_locator.exceptions import (
    ConfigError,
    DataQualityError,
    ETLError,
    ExtractionError,
    GeocodingError,
    StoreLocatorError,
)
from store_locator.models import StoreRecord

__all__ = [
    "ConfigError",
    "DataPaths",
    "DataQualityError",
    "ETLError",
    "ExtractionError",
    "GeocodingError",
    "Settings",
    "StoreLocatorError",
    "StoreRecord",
    "__version__",
]
