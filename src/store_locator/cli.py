"""Command-line entry point: ``store-locator <command>``.

Commands map one-to-one onto pipeline stages::

    store-locator pivot                 # raw export -> b_clean/initial-import.csv
    store-locator reconcile             # -> new-stores-to-add.csv, blocked-stores.csv
    store-locator removed               # list stores curators deleted
    store-locator review                # -> rows-to-review.csv
    store-locator scan FILE             # junk/duplicate scan of any store table
    store-locator geocode [--steps ..]  # normalize / geocode / phones, in place
    store-locator publish [--source F]  # sheet -> stores.json

Exit codes: 0 on success, 1 on a pipeline error, 130 when interrupted.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog, load_catalog
from store_locator.config import DataPaths, Settings
from store_locator.etl.pivot import run_pivot
from store_locator.etl.tables import read_store_table
from store_locator.exceptions import StoreLocatorError
from store_locator.formatters.console import (
    format_enrichment_for_console,
    format_pivot_for_console,
    format_publish_for_console,
    format_reconciliation_for_console,
    format_removed_for_console,
    format_review_for_console,
)
from store_locator.geocoding.enrich import STEPS, STEP_GEOCODE, STEP_NORMALIZE, run_enrichment
from store_locator.publish.feed import run_publish
from store_locator.qa.review import run_review_export, scan_table
from store_locator.reconcile.history import find_removed, run_reconciliation
from store_locator.reconcile.junk import rules_for

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="store-locator",
        description="Store locator data pipeline",
    )
    p.add_argument("-v", "--verbose", action="store_true")
    p.add_argument(
        "--data-root",
        default=Path("data"),
        type=Path,
        help="Root of the a_raw/b_clean/c_processed tree (default: ./data)",
    )
    p.add_argument("--catalog", type=Path, help="Product catalog JSON (default: built-in)")

    sub = p.add_subparsers(dest="command", required=True)

    pivot = sub.add_parser("pivot", help="Pivot the raw export into one row per store")
    pivot.add_argument("--raw-export", help="Raw export file name inside a_raw/")

    sub.add_parser("reconcile", help="Classify the pivot output against the sheet history")
    sub.add_parser("removed", help="List original stores missing from the current sheet")
    sub.add_parser("review", help="Write the review list for the current sheet")

    scan = sub.add_parser("scan", help="Print junk and duplicate rows of a store table")
    scan.add_argument("file", type=Path)

    geocode = sub.add_parser("geocode", help="Normalize addresses and fill coordinates")
    geocode.add_argument(
        "--steps",
        nargs="+",
        choices=list(STEPS),
        default=[STEP_NORMALIZE, STEP_GEOCODE],
    )
    geocode.add_argument("--source", type=Path, help="Table to enrich (default: current sheet)")

    publish = sub.add_parser("publish", help="Build stores.json from the sheet")
    publish.add_argument(
        "--source", type=Path, help="Read this CSV instead of downloading SHEET_CSV_URL"
    )
    return p


def _catalog(path: Path | None) -> ProductCatalog:
    return load_catalog(path) if path else DEFAULT_CATALOG


def run_command(args: argparse.Namespace) -> str:
    """Run the selected command and return its console report."""
    paths = DataPaths.from_root(args.data_root, getattr(args, "raw_export", None))
    catalog = _catalog(args.catalog)

    if args.command == "pivot":
        return format_pivot_for_console(run_pivot(paths, catalog), catalog)
    if args.command == "reconcile":
        return format_reconciliation_for_console(run_reconciliation(paths, catalog))
    if args.command == "removed":
        original = read_store_table(paths.original_import, catalog)
        current = read_store_table(paths.current_sheet, catalog)
        return format_removed_for_console(find_removed(original, current))
    if args.command == "review":
        items = run_review_export(paths, catalog)
        report = format_review_for_console(items)
        return f"{report}\n\nWrote {len(items)} rows to {paths.review_list}"
    if args.command == "scan":
        items = scan_table(args.file, catalog, rules_for(paths.junk_rules_json))
        return format_review_for_console(items)
    if args.command == "geocode":
        results = run_enrichment(
            paths, Settings.from_env(), steps=args.steps, source=args.source, catalog=catalog
        )
        return format_enrichment_for_console(results)
    if args.command == "publish":
        result = run_publish(paths, Settings.from_env(), catalog, source=args.source)
        return format_publish_for_console(result)
    raise SystemExit(f"Unknown command {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the store-locator command-line tool.

    Returns:
        Process exit code.

    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        report = run_command(args)
    except StoreLocatorError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130

    print(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
