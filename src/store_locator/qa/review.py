"""Stage 3: flag suspicious rows of the published sheet for human review.

Runs the junk classifier and the duplicate detector over the current sheet
export and merges both flag sets into one list ordered by sheet row, so a
curator can walk the sheet top to bottom fixing or deleting rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import pandas as pd

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog
from store_locator.etl.tables import read_store_table, write_frame
from store_locator.metadata import StageMetadata, write_metadata
from store_locator.models import StoreRecord
from store_locator.reconcile.duplicates import Duplicate, find_duplicates
from store_locator.reconcile.junk import JunkRule, classify_junk, describe_reason, rules_for

if TYPE_CHECKING:
    from store_locator.config import DataPaths

logger = logging.getLogger(__name__)

STAGE = "review"

REVIEW_COLUMNS = [
    "sheet_row",
    "issue",
    "store_name",
    "address",
    "city",
    "state",
    "zip",
    "has_lat_lng",
]

# Sheet row of the first data row: row 1 is the header, rows are 1-based
FIRST_DATA_ROW = 2


def sheet_row(position: int) -> int:
    """Spreadsheet row number of a 0-based data position."""
    return position + FIRST_DATA_ROW


@dataclass
class ReviewItem:
    """One flagged sheet row.

    Attributes:
        position: 0-based position in the sheet export.
        issue: Junk reason description or "Duplicate of row N".
        record: The flagged record.
        reason: Junk reason code, None for duplicates.
        duplicate_of: Sheet row of the first occurrence, for duplicates.

    """

    position: int
    issue: str
    record: StoreRecord
    reason: str | None = None
    duplicate_of: int | None = None

    @property
    def sheet_row(self) -> int:
        return sheet_row(self.position)

    @property
    def has_lat_lng(self) -> bool:
        return self.record.has_coordinates

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_of is not None


def build_review_list(
    records: Sequence[StoreRecord],
    rules: Sequence[JunkRule] | None = None,
) -> list[ReviewItem]:
    """Flag junk and duplicate rows, ordered by sheet row.

    A row that is both junk and a duplicate appears twice, once per issue,
    junk first.

    Args:
        records: Sheet rows in sheet order.
        rules: Junk rules; defaults to the built-in rules.

    Returns:
        Flagged rows, stable-sorted by position.

    """
    items: list[ReviewItem] = []

    for position, record in enumerate(records):
        reason = classify_junk(record, rules)
        if reason:
            items.append(ReviewItem(position, describe_reason(reason), record, reason=reason))

    duplicates: list[Duplicate] = find_duplicates(records)
    for dup in duplicates:
        first_row = sheet_row(dup.first_position)
        items.append(
            ReviewItem(dup.position, f"Duplicate of row {first_row}", dup.record, duplicate_of=first_row)
        )

    items.sort(key=lambda item: item.position)
    return items


def review_list_frame(items: Sequence[ReviewItem]) -> pd.DataFrame:
    """Tabulate review items in the review-list CSV layout."""
    rows = [
        {
            "sheet_row": item.sheet_row,
            "issue": item.issue,
            "store_name": item.record.name,
            "address": item.record.address,
            "city": item.record.city,
            "state": item.record.state,
            "zip": item.record.zip,
            "has_lat_lng": "Yes" if item.has_lat_lng else "No",
        }
        for item in items
    ]
    return pd.DataFrame(rows, columns=REVIEW_COLUMNS)


def scan_table(
    path: Path,
    catalog: ProductCatalog = DEFAULT_CATALOG,
    rules: Sequence[JunkRule] | None = None,
) -> list[ReviewItem]:
    """Read any store table and return its review items (no output file)."""
    return build_review_list(read_store_table(path, catalog), rules)


def run_review_export(
    paths: DataPaths,
    catalog: ProductCatalog = DEFAULT_CATALOG,
    rules: Sequence[JunkRule] | None = None,
) -> list[ReviewItem]:
    """Build the review list for the current sheet and write it to CSV.

    Output: ``paths.review_list``.
    """
    paths.ensure_dirs()
    if rules is None:
        rules = rules_for(paths.junk_rules_json)

    try:
        items = scan_table(paths.current_sheet, catalog, rules)
        write_frame(review_list_frame(items), paths.review_list)
    except Exception:
        write_metadata(
            paths.processed_dir, StageMetadata.now(STAGE, "failed", inputs=[paths.current_sheet])
        )
        raise

    write_metadata(
        paths.processed_dir,
        StageMetadata.now(STAGE, "ok", review_counts(items), inputs=[paths.current_sheet]),
    )
    logger.info("Wrote %d rows to %s", len(items), paths.review_list)
    return items


def review_counts(items: Sequence[ReviewItem]) -> dict[str, int]:
    """Flag counts per junk reason code, plus "duplicate"."""
    counts: dict[str, int] = {}
    for item in items:
        key = "duplicate" if item.is_duplicate else (item.reason or "other")
        counts[key] = counts.get(key, 0) + 1
    return counts
