"""Console output formatting utilities."""

from __future__ import annotations

from typing import Mapping, Sequence

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog
from store_locator.etl.pivot import PivotResult
from store_locator.geocoding.enrich import EnrichmentStats
from store_locator.models import StoreRecord
from store_locator.publish.feed import FeedResult
from store_locator.qa.review import ReviewItem
from store_locator.reconcile.history import ReconciliationResult
from store_locator.reconcile.junk import describe_reason

RULE = "=" * 60
THIN_RULE = "-" * 60


def _store_line(record: StoreRecord) -> str:
    return f"{record.name} | {record.address}, {record.city}, {record.state}"


def format_pivot_for_console(result: PivotResult, catalog: ProductCatalog = DEFAULT_CATALOG) -> str:
    """Summarize a pivot run: store count and stores per product."""
    lines = ["Pivot", RULE]
    lines.append(f"Line items: {result.line_items}")
    lines.append(f"Skipped rows: {result.skipped_rows}")
    lines.append(f"Unique stores: {len(result.stores)}")
    lines.append("")
    lines.append("Product counts:")
    for code, count in result.product_counts(catalog).items():
        lines.append(f"  {catalog.display_name(code)}: {count}")

    if result.unmatched_items:
        lines.append("")
        lines.append("Unmatched item names:")
        for item, count in sorted(result.unmatched_items.items()):
            lines.append(f"  {item} ({count})")
    return "\n".join(lines)


def format_reconciliation_for_console(result: ReconciliationResult) -> str:
    """Summarize a reconciliation run, listing every blocked store."""
    lines = ["Reconciliation", RULE]
    for bucket, count in result.summary().items():
        lines.append(f"  {bucket.replace('_', ' ').capitalize()}: {count}")

    if result.blocked:
        lines.append("")
        lines.append("Blocked (previously removed by a curator):")
        lines.append(THIN_RULE)
        for row in result.blocked:
            lines.append(f"  {_store_line(row.record)}")

    if result.junk:
        lines.append("")
        lines.append("Junk:")
        lines.append(THIN_RULE)
        for row in result.junk:
            lines.append(f"  [{describe_reason(row.reason or '')}] {_store_line(row.record)}")

    if not result.new:
        lines.append("")
        lines.append("No new stores to add.")
    return "\n".join(lines)


def format_removed_for_console(removed: Sequence[StoreRecord]) -> str:
    """List stores a curator deleted from the sheet."""
    if not removed:
        return "No stores have been removed from the sheet."

    lines = [f"Stores removed from the sheet: {len(removed)}", RULE]
    for record in removed:
        lines.append(f"  {_store_line(record)}")
    return "\n".join(lines)


def format_review_for_console(items: Sequence[ReviewItem]) -> str:
    """List flagged rows by sheet row, junk and duplicates counted separately."""
    if not items:
        return "No rows flagged."

    junk = sum(1 for item in items if not item.is_duplicate)
    duplicates = len(items) - junk
    lines = [f"Flagged rows: {len(items)} ({junk} junk, {duplicates} duplicate)", RULE]
    for item in items:
        coords = "" if item.has_lat_lng else " (no lat/lng)"
        lines.append(f"Row {item.sheet_row}: [{item.issue}] {_store_line(item.record)}{coords}")
    return "\n".join(lines)


def format_enrichment_for_console(results: Mapping[str, EnrichmentStats]) -> str:
    lines = ["Enrichment", RULE]
    for step, stats in results.items():
        lines.append(f"{step}:")
        lines.append(f"  Processed: {stats.processed}")
        lines.append(f"  Failed: {stats.failed}")
        lines.append(f"  Skipped: {stats.skipped}")
        lines.append(f"  Already done: {stats.already_done}")
    return "\n".join(lines)


def format_publish_for_console(result: FeedResult) -> str:
    lines = ["Publish", RULE]
    lines.append(f"Stores published: {len(result.entries)}")
    if result.dropped_rows:
        lines.append(f"Rows without coordinates (left out): {result.dropped_rows}")
    return "\n".join(lines)
