"""Readers and writers for the flat store tables.

All tables are UTF-8, comma-delimited CSV with a header row and standard
quoting. Store tables share the layout::

    store_name,address,city,state,zip,phone,type,lat,lng,<products>

where ``<products>`` is either one TRUE/FALSE flag column per catalog code
(pivot output, new-store lists) or a single comma-joined ``products`` column
(the curated sheet). Both layouts are accepted on read.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog
from store_locator.exceptions import DataQualityError
from store_locator.etl.utils import (
    clean_text,
    format_coordinate,
    is_truthy,
    missing_columns,
    neutralize,
    to_coordinate,
)
from store_locator.models import StoreRecord

logger = logging.getLogger(__name__)

BASE_COLUMNS = ["store_name", "address", "city", "state", "zip", "phone", "type", "lat", "lng"]
REQUIRED_COLUMNS = ["store_name", "address", "city", "state"]
PRODUCTS_COLUMN = "products"

LAYOUT_FLAGS = "flags"
LAYOUT_LIST = "list"


def read_csv_frame(source: Path | str) -> pd.DataFrame:
    """Read a CSV as all-string cells, blanks as "", values trimmed.

    Args:
        source: File path, or CSV text when given a ``str`` containing a newline.

    Raises:
        DataQualityError: If the file does not exist or cannot be parsed.

    """
    if isinstance(source, str) and "\n" in source:
        handle: Path | io.StringIO = io.StringIO(source)
    else:
        handle = Path(source)
        if not handle.exists():
            raise DataQualityError(f"Input file not found: {handle}")

    try:
        df = pd.read_csv(
            handle,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig" if isinstance(handle, Path) else None,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataQualityError(f"Could not parse CSV {handle}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    for c in df.columns:
        df[c] = df[c].str.strip()
    return df


def _excel_cell(value: object) -> object:
    """Blank cells to "", whole-number floats (zip codes, phones) to int strings."""
    if value is None or (isinstance(value, (float, np.floating)) and np.isnan(value)):
        return ""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, np.integer):
        return str(int(value))
    return value


def read_raw_export(path: Path) -> pd.DataFrame:
    """Read the point-of-sale export, one row per store x product line.

    The XLSX export carries a title row above the header, so its header is
    the second row. CSV exports have the header on the first row.

    Raises:
        DataQualityError: If the file is missing or cannot be parsed.

    """
    if not path.exists():
        raise DataQualityError(f"Raw export not found: {path}")

    if path.suffix.lower() in (".xlsx", ".xlsm", ".xls"):
        try:
            df = pd.read_excel(path, sheet_name=0, header=1, dtype=object)
        except ValueError as e:
            raise DataQualityError(f"Could not read raw export {path}: {e}") from e
        df.columns = [str(c).strip() for c in df.columns]
        df = df.dropna(axis=0, how="all")
        return df.map(_excel_cell)

    return read_csv_frame(path)


def records_from_frame(
    df: pd.DataFrame,
    catalog: ProductCatalog = DEFAULT_CATALOG,
) -> list[StoreRecord]:
    """Convert a store table to records, preserving row order.

    Columns outside the base layout and the product columns are carried in
    ``StoreRecord.extra``.

    Raises:
        DataQualityError: If a required column is missing.

    """
    missing = missing_columns(df, REQUIRED_COLUMNS)
    if missing:
        raise DataQualityError(
            f"Missing required columns: {missing}. Available: {list(df.columns)}"
        )

    flag_codes = [c for c in catalog.codes if c in df.columns]
    known = set(BASE_COLUMNS) | set(flag_codes) | {PRODUCTS_COLUMN}
    extra_cols = [c for c in df.columns if c not in known]

    records: list[StoreRecord] = []
    for row in df.to_dict(orient="records"):
        products = {code for code in flag_codes if is_truthy(row.get(code))}
        if PRODUCTS_COLUMN in row:
            products |= parse_products(row.get(PRODUCTS_COLUMN), catalog)

        records.append(
            StoreRecord(
                name=clean_text(row.get("store_name")),
                address=clean_text(row.get("address")),
                city=clean_text(row.get("city")),
                state=clean_text(row.get("state")),
                zip=clean_text(row.get("zip")),
                phone=clean_text(row.get("phone")),
                type=clean_text(row.get("type")),
                latitude=to_coordinate(row.get("lat")),
                longitude=to_coordinate(row.get("lng")),
                products=products,
                extra={c: clean_text(row.get(c)) for c in extra_cols},
            )
        )
    return records


def parse_products(value: object, catalog: ProductCatalog = DEFAULT_CATALOG) -> set[str]:
    """Split a comma-joined products cell into codes.

    Display names are mapped back to their codes; unknown values are kept
    verbatim so nothing typed into the sheet is lost.
    """
    text = clean_text(value)
    if not text:
        return set()
    result = set()
    for part in text.split(","):
        part = part.strip()
        if part:
            result.add(catalog.code_for(part) or part)
    return result


def read_store_table(path: Path, catalog: ProductCatalog = DEFAULT_CATALOG) -> list[StoreRecord]:
    """Read a store table CSV into records."""
    records = records_from_frame(read_csv_frame(path), catalog)
    logger.info("Read %d stores from %s", len(records), path)
    return records


def ordered_products(products: Iterable[str], catalog: ProductCatalog = DEFAULT_CATALOG) -> list[str]:
    """Catalog codes in catalog order, then unknown values alphabetically."""
    products = set(products)
    known = [c for c in catalog.codes if c in products]
    return known + sorted(products - set(known))


def frame_from_records(
    records: Iterable[StoreRecord],
    catalog: ProductCatalog = DEFAULT_CATALOG,
    layout: str = LAYOUT_FLAGS,
    extra_columns: list[str] | None = None,
) -> pd.DataFrame:
    """Build a store table from records.

    Args:
        records: Records in output order.
        catalog: Catalog defining product columns / display names.
        layout: "flags" for one TRUE/FALSE column per code, "list" for a
            comma-joined ``products`` column of display names.
        extra_columns: Bookkeeping columns to append from ``StoreRecord.extra``.

    Raises:
        ValueError: If layout is not "flags" or "list".

    """
    if layout not in (LAYOUT_FLAGS, LAYOUT_LIST):
        raise ValueError(f"Invalid layout '{layout}'. Must be 'flags' or 'list'.")

    extra_columns = extra_columns or []
    product_cols = catalog.codes if layout == LAYOUT_FLAGS else [PRODUCTS_COLUMN]
    columns = BASE_COLUMNS + product_cols + extra_columns

    rows = []
    for r in records:
        row = {
            "store_name": r.name,
            "address": r.address,
            "city": r.city,
            "state": r.state,
            "zip": r.zip,
            "phone": r.phone,
            "type": r.type,
            "lat": format_coordinate(r.latitude),
            "lng": format_coordinate(r.longitude),
        }
        if layout == LAYOUT_FLAGS:
            for code in catalog.codes:
                row[code] = "TRUE" if code in r.products else "FALSE"
        else:
            row[PRODUCTS_COLUMN] = ", ".join(
                catalog.display_name(p) for p in ordered_products(r.products, catalog)
            )
        for c in extra_columns:
            row[c] = r.extra.get(c, "")
        rows.append(row)

    return pd.DataFrame(rows, columns=columns)


def write_frame(df: pd.DataFrame, path: Path) -> Path:
    """Write a table as CSV, neutralizing formula injection in text cells."""
    df = df.copy()
    for c in df.columns:
        df[c] = df[c].map(neutralize)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, encoding="utf-8", quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    logger.debug("Wrote %d rows to %s", len(df), path)
    return path


def write_store_table(
    records: Iterable[StoreRecord],
    path: Path,
    catalog: ProductCatalog = DEFAULT_CATALOG,
    layout: str = LAYOUT_FLAGS,
    extra_columns: list[str] | None = None,
) -> Path:
    """Write records as a store table CSV."""
    return write_frame(frame_from_records(records, catalog, layout, extra_columns), path)
