"""Example: Geocode the sheet and publish the feed

This example runs the enrichment passes over the current sheet export and
then builds stores.json from it.

Prerequisites:
- Set GOOGLE_MAPS_API_KEY (Geocoding API enabled)
- Export the live sheet to data/b_clean/current-sheet-export.csv
"""

from pathlib import Path

from store_locator import DataPaths, Settings
from store_locator.geocoding import run_enrichment
from store_locator.publish import run_publish

paths = DataPaths.from_root(Path("data"))
settings = Settings.from_env()

# Safe to re-run: rows already normalized or geocoded are skipped
results = run_enrichment(paths, settings, steps=["normalize", "geocode"])
for step, stats in results.items():
    print(f"{step}: {stats.as_dict()}")

# Publish from the enriched export instead of downloading SHEET_CSV_URL
feed = run_publish(paths, settings, source=paths.current_sheet)
print(f"\nPublished {len(feed.entries)} stores to {paths.stores_json}")
if feed.dropped_rows:
    print(f"{feed.dropped_rows} rows still have no coordinates")
