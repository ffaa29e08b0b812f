"""Stage 1: pivot raw point-of-sale line items into one row per store.

The point-of-sale export has one row per store x product line. Rows are
grouped by location (address+city+state+zip), and each group becomes one
``StoreRecord`` whose product set is the union of the recognised products
of its lines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pandas as pd

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog
from store_locator.exceptions import DataQualityError
from store_locator.etl.tables import read_raw_export, write_store_table
from store_locator.etl.utils import address_key, clean_phone, clean_text
from store_locator.metadata import StageMetadata, write_metadata
from store_locator.models import OFF_PREMISE, ON_PREMISE, StoreRecord
from store_locator.reconcile.duplicates import FirstSeenIndex

if TYPE_CHECKING:
    from store_locator.config import DataPaths

logger = logging.getLogger(__name__)

STAGE = "pivot"

# Raw export column names
COL_ACCOUNT = "Retail Accounts"
COL_ADDRESS = "Address"
COL_CITY = "City"
COL_STATE = "State"
COL_STATE_FALLBACK = "Dist. STATE"
COL_ZIP = "Zip Code"
COL_PHONE = "Phone"
COL_ITEM = "Item Names"
COL_PREMISE = "OnOff Premises"

REQUIRED_RAW_COLUMNS = [COL_ACCOUNT, COL_ADDRESS, COL_CITY, COL_ITEM]

# Spreadsheet subtotal rows carry this literal in the key columns
TOTAL_SENTINEL = "Total"

PREMISE_TYPES = {"ON": ON_PREMISE, "OFF": OFF_PREMISE}


@dataclass
class PivotResult:
    """Output of the pivot.

    Attributes:
        stores: One record per location, in first-seen order.
        skipped_rows: Raw rows dropped as malformed or subtotal lines.
        line_items: Raw rows aggregated into stores.
        unmatched_items: Raw item names that matched no product, with counts.

    """

    stores: list[StoreRecord]
    skipped_rows: int = 0
    line_items: int = 0
    unmatched_items: dict[str, int] = field(default_factory=dict)

    def product_counts(self, catalog: ProductCatalog = DEFAULT_CATALOG) -> dict[str, int]:
        """Number of stores carrying each product, in catalog order."""
        counts = {code: 0 for code in catalog.codes}
        for store in self.stores:
            for code in store.products:
                if code in counts:
                    counts[code] += 1
        return counts


def premise_type(value: Any) -> str:
    """Map the export's ON/OFF flag to a store type ("" when unknown)."""
    return PREMISE_TYPES.get(clean_text(value).upper(), "")


def _is_malformed(name: str, address: str, city: str) -> bool:
    return (
        not address
        or not city
        or TOTAL_SENTINEL in (address, city, name)
    )


def pivot(
    raw_line_items: pd.DataFrame,
    catalog: ProductCatalog = DEFAULT_CATALOG,
) -> PivotResult:
    """Aggregate raw line items into one StoreRecord per location.

    For each location the first non-empty name, phone and type encountered
    win; products are unioned across all lines. Unrecognised or excluded
    products are dropped silently (and tallied in ``unmatched_items``).

    Args:
        raw_line_items: Raw export rows (see ``COL_*`` for the columns).
        catalog: Product catalog used to match item names.

    Returns:
        PivotResult with stores in first-seen order.

    Raises:
        DataQualityError: If required raw columns are missing.

    """
    missing = [c for c in REQUIRED_RAW_COLUMNS if c not in raw_line_items.columns]
    if missing:
        raise DataQualityError(
            f"Missing required raw columns: {missing}. Available: {list(raw_line_items.columns)}"
        )

    stores: FirstSeenIndex[StoreRecord] = FirstSeenIndex()
    skipped = 0
    line_items = 0
    unmatched: dict[str, int] = {}

    for position, row in enumerate(raw_line_items.to_dict(orient="records")):
        name = clean_text(row.get(COL_ACCOUNT))
        address = clean_text(row.get(COL_ADDRESS))
        city = clean_text(row.get(COL_CITY))
        state = clean_text(row.get(COL_STATE)) or clean_text(row.get(COL_STATE_FALLBACK))
        zip_code = clean_text(row.get(COL_ZIP))

        if _is_malformed(name, address, city):
            skipped += 1
            continue
        line_items += 1

        key = address_key(address, city, state, zip_code)
        if key not in stores:
            stores.observe(
                key,
                position,
                StoreRecord(name=name, address=address, city=city, state=state, zip=zip_code),
            )
        store = stores.first(key)

        if not store.name and name:
            store.name = name
        if not store.phone:
            store.phone = clean_phone(row.get(COL_PHONE))
        if not store.type:
            store.type = premise_type(row.get(COL_PREMISE))

        item = clean_text(row.get(COL_ITEM))
        code = catalog.match(item)
        if code:
            store.products.add(code)
        elif item:
            unmatched[item] = unmatched.get(item, 0) + 1

    result = PivotResult(
        stores=stores.items(),
        skipped_rows=skipped,
        line_items=line_items,
        unmatched_items=unmatched,
    )
    logger.info(
        "Pivoted %d line items into %d stores (%d rows skipped)",
        line_items,
        len(result.stores),
        skipped,
    )
    return result


def run_pivot(
    paths: DataPaths,
    catalog: ProductCatalog = DEFAULT_CATALOG,
) -> PivotResult:
    """Read the raw export, pivot it, and write the store table.

    Output: ``paths.pivot_csv`` with one TRUE/FALSE column per product.
    """
    paths.ensure_dirs()
    logger.info("Reading raw export %s", paths.raw_export)

    try:
        raw = read_raw_export(paths.raw_export)
        logger.info("Total raw rows: %d", len(raw))
        result = pivot(raw, catalog)
        write_store_table(result.stores, paths.pivot_csv, catalog)
    except Exception:
        write_metadata(
            paths.clean_dir, StageMetadata.now(STAGE, "failed", inputs=[paths.raw_export])
        )
        raise

    counts = {"stores": len(result.stores), "skipped_rows": result.skipped_rows}
    counts.update(result.product_counts(catalog))
    write_metadata(
        paths.clean_dir, StageMetadata.now(STAGE, "ok", counts, inputs=[paths.raw_export])
    )
    logger.info("Wrote %d stores to %s", len(result.stores), paths.pivot_csv)
    return result
