"""Example: Monthly store list update

This example walks through one update cycle:
1. Pivot the point-of-sale export into one row per store
2. Reconcile it against the curated sheet (removed stores stay removed)
3. Print what was blocked so a curator can double-check

Prerequisites:
- Put the export in data/a_raw/ (xlsx or csv)
- Export the original import and the live sheet to data/b_clean/
  (original-import.csv, current-sheet-export.csv)
"""

from pathlib import Path

from store_locator import DataPaths
from store_locator.etl.pivot import run_pivot
from store_locator.reconcile import run_reconciliation

data_root = Path("data")
raw_export_name = "on and off premise full store list.xlsx"  # MODIFY AS NEEDED

paths = DataPaths.from_root(data_root, raw_export_name)

print(f"Pivoting {paths.raw_export}...")
pivot_result = run_pivot(paths)
print(f"  {pivot_result.line_items} line items -> {len(pivot_result.stores)} stores")
for code, count in pivot_result.product_counts().items():
    print(f"  {code}: {count}")

print("\nReconciling against the curated sheet...")
result = run_reconciliation(paths)
for bucket, count in result.summary().items():
    print(f"  {bucket}: {count}")

if result.blocked:
    print("\nBlocked (a curator removed these before):")
    for row in result.blocked:
        print(f"  {row.record.name} | {row.record.city}, {row.record.state}")

if result.new:
    print(f"\nNew stores written to {paths.new_stores}")
    print("Paste them into the sheet, then run the geocoding pass.")
else:
    print("\nNo new stores to add.")
