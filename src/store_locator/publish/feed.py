"""Stage 4: turn the approved sheet into the JSON feed read by the map widget.

The feed is a JSON array of objects with exactly these keys::

    name, address, city, state, zip, phone, type, lat, lng, products

``products`` lists display names, not codes. Rows without a usable
coordinate pair cannot be placed on the map and are left out.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog
from store_locator.config import DataPaths, Settings
from store_locator.exceptions import DataQualityError, ExtractionError
from store_locator.etl.tables import (
    PRODUCTS_COLUMN,
    ordered_products,
    read_csv_frame,
)
from store_locator.etl.utils import clean_text, is_truthy, missing_columns, to_coordinate
from store_locator.http import is_ok, make_session
from store_locator.metadata import StageMetadata, write_metadata
from store_locator.models import StoreRecord

logger = logging.getLogger(__name__)

STAGE = "publish"

FEED_KEYS = ("name", "address", "city", "state", "zip", "phone", "type", "lat", "lng", "products")


def fetch_sheet_csv(url: str, session: requests.Session | None = None) -> pd.DataFrame:
    """Download the published sheet CSV and parse it.

    Raises:
        ExtractionError: On connection failure or a non-2xx response.
        DataQualityError: If the body is not parseable CSV.

    """
    s = session or make_session()
    logger.info("Fetching store data from %s", url)
    try:
        resp = s.get(url)
    except requests.RequestException as e:
        raise ExtractionError(f"Failed to fetch CSV: {e}") from e

    if not is_ok(resp):
        raise ExtractionError(f"Failed to fetch CSV: HTTP {resp.status_code} {resp.reason}")

    # Published sheets are UTF-8 but usually come without a charset
    text = resp.content.decode("utf-8-sig")
    if "\n" not in text:
        # single header line without a newline, or an empty sheet
        text += "\n"
    df = read_csv_frame(text)
    logger.info("Parsed %d rows from CSV", len(df))
    return df


@dataclass
class FeedResult:
    """Feed entries plus the rows dropped for lacking coordinates."""

    entries: list[dict[str, Any]]
    dropped_rows: int = 0

    def summary(self) -> dict[str, int]:
        return {"published": len(self.entries), "missing_coordinates": self.dropped_rows}


def _row_products(row: dict[str, Any], catalog: ProductCatalog, flag_codes: list[str]) -> list[str]:
    if PRODUCTS_COLUMN in row:
        names = [p.strip() for p in clean_text(row.get(PRODUCTS_COLUMN)).split(",")]
        return [catalog.display_name(p) for p in names if p]
    return [catalog.display_name(code) for code in flag_codes if is_truthy(row.get(code))]


def feed_from_frame(df: pd.DataFrame, catalog: ProductCatalog = DEFAULT_CATALOG) -> FeedResult:
    """Convert a sheet export to feed entries.

    Products come from the ``products`` column when present (sheet order is
    kept) or from the catalog's flag columns otherwise. Codes are expanded
    to display names; anything else passes through unchanged.

    Raises:
        DataQualityError: If the coordinate or name columns are missing.

    """
    missing = missing_columns(df, ["store_name", "lat", "lng"])
    if missing:
        raise DataQualityError(
            f"Missing required columns: {missing}. Available: {list(df.columns)}"
        )

    flag_codes = [c for c in catalog.codes if c in df.columns]
    entries: list[dict[str, Any]] = []
    dropped = 0

    for row in df.to_dict(orient="records"):
        lat = to_coordinate(row.get("lat"))
        lng = to_coordinate(row.get("lng"))
        if lat is None or lng is None:
            dropped += 1
            continue
        entries.append(
            {
                "name": clean_text(row.get("store_name")),
                "address": clean_text(row.get("address")),
                "city": clean_text(row.get("city")),
                "state": clean_text(row.get("state")),
                "zip": clean_text(row.get("zip")),
                "phone": clean_text(row.get("phone")),
                "type": clean_text(row.get("type")),
                "lat": lat,
                "lng": lng,
                "products": _row_products(row, catalog, flag_codes),
            }
        )

    if dropped:
        logger.info("Skipped %d rows without valid coordinates", dropped)
    return FeedResult(entries=entries, dropped_rows=dropped)


def feed_entry(record: StoreRecord, catalog: ProductCatalog = DEFAULT_CATALOG) -> dict[str, Any]:
    """Feed object for a single geocoded record.

    Raises:
        ValueError: If the record has no coordinates.

    """
    if not record.has_coordinates:
        raise ValueError(f"Store {record.name!r} has no coordinates")
    return {
        "name": record.name,
        "address": record.address,
        "city": record.city,
        "state": record.state,
        "zip": record.zip,
        "phone": record.phone,
        "type": record.type,
        "lat": record.latitude,
        "lng": record.longitude,
        "products": [catalog.display_name(p) for p in ordered_products(record.products, catalog)],
    }


def record_from_entry(entry: dict[str, Any], catalog: ProductCatalog = DEFAULT_CATALOG) -> StoreRecord:
    """Inverse of ``feed_entry``: display names map back to codes."""
    return StoreRecord(
        name=entry.get("name", ""),
        address=entry.get("address", ""),
        city=entry.get("city", ""),
        state=entry.get("state", ""),
        zip=entry.get("zip", ""),
        phone=entry.get("phone", ""),
        type=entry.get("type", ""),
        latitude=entry.get("lat"),
        longitude=entry.get("lng"),
        products={catalog.code_for(p) or p for p in entry.get("products", [])},
    )


def write_feed(entries: list[dict[str, Any]], path: Path) -> Path:
    """Write the feed as pretty-printed UTF-8 JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(entries, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def read_feed(path: Path) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def run_publish(
    paths: DataPaths,
    settings: Settings | None = None,
    catalog: ProductCatalog = DEFAULT_CATALOG,
    source: Path | None = None,
    session: requests.Session | None = None,
) -> FeedResult:
    """Build ``paths.stores_json`` from the sheet.

    Reads ``source`` when given, otherwise downloads the sheet from
    ``SHEET_CSV_URL``. A missing URL aborts before anything is read.

    Raises:
        ConfigError: If no source file is given and SHEET_CSV_URL is unset.
        ExtractionError: If the download fails.

    """
    if source is None:
        settings = settings or Settings.from_env()
        url = settings.require_sheet_url()
        inputs = [url]
        session = session or make_session(settings.timeout, settings.retries)
    else:
        inputs = [str(source)]

    paths.ensure_dirs()
    try:
        df = read_csv_frame(source) if source is not None else fetch_sheet_csv(url, session)
        result = feed_from_frame(df, catalog)
        write_feed(result.entries, paths.stores_json)
    except Exception:
        write_metadata(paths.processed_dir, StageMetadata.now(STAGE, "failed", inputs=inputs))
        raise

    write_metadata(
        paths.processed_dir, StageMetadata.now(STAGE, "ok", result.summary(), inputs=inputs)
    )
    logger.info("Wrote %d stores to %s", len(result.entries), paths.stores_json)
    return result
