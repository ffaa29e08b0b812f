"""Re-entrant enrichment passes over the curated sheet.

Each pass walks every row, makes at most one lookup per row with a fixed
delay between requests, and skips rows that are already done:

- ``normalize_addresses``: rewrites address/city/state/zip with the
  geocoder's formatted parts; done rows carry ``normalized=TRUE``.
- ``geocode_missing``: fills lat/lng; done rows have both coordinates.
- ``fill_missing_phones``: fills phone (and website); done rows have a phone.

A failed or empty lookup is logged and counted, the row is left as it was,
and the pass continues. An interrupted run can simply be started again.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog
from store_locator.config import DataPaths, Settings
from store_locator.etl.tables import (
    BASE_COLUMNS,
    LAYOUT_FLAGS,
    LAYOUT_LIST,
    PRODUCTS_COLUMN,
    read_csv_frame,
    records_from_frame,
    write_store_table,
)
from store_locator.etl.utils import clean_phone, is_truthy
from store_locator.exceptions import GeocodingError
from store_locator.geocoding.client import (
    Geocoder,
    GoogleGeocoder,
    GooglePlaceLookup,
    PlaceLookup,
)
from store_locator.http import make_session
from store_locator.metadata import StageMetadata, write_metadata
from store_locator.models import StoreRecord

logger = logging.getLogger(__name__)

STAGE = "geocode"

NORMALIZED_COLUMN = "normalized"
WEBSITE_COLUMN = "website"

STEP_NORMALIZE = "normalize"
STEP_GEOCODE = "geocode"
STEP_PHONES = "phones"
STEPS = (STEP_NORMALIZE, STEP_GEOCODE, STEP_PHONES)


@dataclass
class EnrichmentStats:
    """Counts for one pass.

    Attributes:
        processed: Rows updated by a successful lookup.
        failed: Rows whose lookup errored or found nothing.
        skipped: Rows missing the fields needed to build a query.
        already_done: Rows skipped because an earlier run handled them.

    """

    processed: int = 0
    failed: int = 0
    skipped: int = 0
    already_done: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "already_done": self.already_done,
        }


def full_address(record: StoreRecord) -> str:
    """"address, city, state zip" as sent to the geocoder."""
    text = f"{record.address}, {record.city}, {record.state}"
    return f"{text} {record.zip}" if record.zip else text


def _has_query_fields(record: StoreRecord) -> bool:
    return bool(record.address and record.city and record.state)


def normalize_addresses(
    records: Sequence[StoreRecord],
    geocoder: Geocoder,
    delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichmentStats:
    """Replace free-text addresses with the geocoder's formatted parts.

    Only parts the geocoder returned are overwritten. Processed rows are
    marked ``normalized=TRUE`` and skipped on later runs.
    """
    stats = EnrichmentStats()
    for position, record in enumerate(records):
        if is_truthy(record.extra.get(NORMALIZED_COLUMN)):
            stats.already_done += 1
            continue
        if not _has_query_fields(record):
            logger.info("Row %d: Missing address components, skipping", position + 2)
            stats.skipped += 1
            continue

        query = full_address(record)
        try:
            match = geocoder.geocode(query)
        except GeocodingError as e:
            logger.warning("Row %d: Error normalizing %r: %s", position + 2, query, e)
            stats.failed += 1
            sleep(delay)
            continue

        if match is None:
            logger.warning("Row %d: No results for %r", position + 2, query)
            stats.failed += 1
        else:
            if match.address:
                record.address = match.address
            if match.city:
                record.city = match.city
            if match.state:
                record.state = match.state
            if match.zip:
                record.zip = match.zip
            record.extra[NORMALIZED_COLUMN] = "TRUE"
            stats.processed += 1
            logger.info("Row %d: Normalized %r -> %r", position + 2, query, full_address(record))
        sleep(delay)

    return stats


def geocode_missing(
    records: Sequence[StoreRecord],
    geocoder: Geocoder,
    delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichmentStats:
    """Fill lat/lng for rows that do not have a coordinate pair yet."""
    stats = EnrichmentStats()
    for position, record in enumerate(records):
        if record.has_coordinates:
            stats.already_done += 1
            continue
        if not _has_query_fields(record):
            logger.info("Row %d: Missing address components, skipping", position + 2)
            stats.skipped += 1
            continue

        query = full_address(record)
        try:
            match = geocoder.geocode(query)
        except GeocodingError as e:
            logger.warning("Row %d: Error geocoding %r: %s", position + 2, query, e)
            stats.failed += 1
            sleep(delay)
            continue

        if match is None or match.lat is None or match.lng is None:
            logger.warning("Row %d: No results for %r", position + 2, query)
            stats.failed += 1
        else:
            record.latitude = match.lat
            record.longitude = match.lng
            stats.processed += 1
            logger.info("Row %d: Geocoded %r -> (%s, %s)", position + 2, query, match.lat, match.lng)
        sleep(delay)

    return stats


def fill_missing_phones(
    records: Sequence[StoreRecord],
    lookup: PlaceLookup,
    delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichmentStats:
    """Look up a phone number (and website) for rows without a phone."""
    stats = EnrichmentStats()
    for position, record in enumerate(records):
        if record.phone:
            stats.already_done += 1
            continue
        if not (record.name and record.city and record.state):
            stats.skipped += 1
            continue

        try:
            match = lookup.lookup(record.name, record.address, record.city, record.state)
        except GeocodingError as e:
            logger.warning("Row %d: Error looking up %r: %s", position + 2, record.name, e)
            stats.failed += 1
            sleep(delay)
            continue

        phone = clean_phone(match.phone) if match else ""
        if match is None or (not phone and not match.website):
            logger.warning("Row %d: No place found for %r", position + 2, record.name)
            stats.failed += 1
        else:
            if phone:
                record.phone = phone
            if match.website and not record.extra.get(WEBSITE_COLUMN):
                record.extra[WEBSITE_COLUMN] = match.website
            stats.processed += 1
        sleep(delay)

    return stats


def run_enrichment(
    paths: DataPaths,
    settings: Settings | None = None,
    steps: Sequence[str] = (STEP_NORMALIZE, STEP_GEOCODE),
    source: Path | None = None,
    output: Path | None = None,
    catalog: ProductCatalog = DEFAULT_CATALOG,
    geocoder: Geocoder | None = None,
    place_lookup: PlaceLookup | None = None,
) -> dict[str, EnrichmentStats]:
    """Run the selected passes over a sheet export and write it back.

    Args:
        paths: DataPaths configuration.
        settings: Settings; read from the environment when None.
        steps: Passes to run, in order ("normalize", "geocode", "phones").
        source: Store table to enrich; defaults to the current sheet export.
        output: Where to write the result; defaults to ``source``.
        catalog: Product catalog.
        geocoder: Geocoder override; a GoogleGeocoder when None.
        place_lookup: Place lookup override; a GooglePlaceLookup when None.

    Returns:
        Stats per pass that ran.

    Raises:
        ConfigError: If a Google client is needed and GOOGLE_MAPS_API_KEY is unset.
        ValueError: If an unknown step is requested.

    """
    unknown = [s for s in steps if s not in STEPS]
    if unknown:
        raise ValueError(f"Unknown enrichment steps {unknown}. Must be among {list(STEPS)}.")

    settings = settings or Settings.from_env()
    needs_geocoder = geocoder is None and any(s in steps for s in (STEP_NORMALIZE, STEP_GEOCODE))
    needs_places = place_lookup is None and STEP_PHONES in steps
    if needs_geocoder or needs_places:
        api_key = settings.require_maps_api_key()
        session = make_session(settings.timeout, settings.retries)
        if needs_geocoder:
            geocoder = GoogleGeocoder(api_key, session)
        if needs_places:
            place_lookup = GooglePlaceLookup(api_key, session)

    source = source or paths.current_sheet
    output = output or source

    df = read_csv_frame(source)
    layout = LAYOUT_LIST if PRODUCTS_COLUMN in df.columns else LAYOUT_FLAGS
    records = records_from_frame(df, catalog)
    extra_columns = [
        c for c in df.columns if c not in BASE_COLUMNS and c not in catalog.codes and c != PRODUCTS_COLUMN
    ]

    if STEP_NORMALIZE in steps and NORMALIZED_COLUMN not in extra_columns:
        extra_columns.append(NORMALIZED_COLUMN)

    results: dict[str, EnrichmentStats] = {}
    try:
        for step in steps:
            logger.info("Running %s pass over %d rows", step, len(records))
            if step == STEP_NORMALIZE:
                results[step] = normalize_addresses(records, geocoder, settings.geocode_delay)
            elif step == STEP_GEOCODE:
                results[step] = geocode_missing(records, geocoder, settings.geocode_delay)
            else:
                results[step] = fill_missing_phones(records, place_lookup, settings.geocode_delay)
    except Exception:
        paths.ensure_dirs()
        write_metadata(paths.processed_dir, StageMetadata.now(STAGE, "failed", inputs=[source]))
        raise
    finally:
        # Lookups already made are kept even when a pass is interrupted
        if any(WEBSITE_COLUMN in r.extra for r in records) and WEBSITE_COLUMN not in extra_columns:
            extra_columns.append(WEBSITE_COLUMN)
        write_store_table(records, output, catalog, layout, extra_columns)
        logger.info("Wrote enriched sheet to %s", output)

    counts = {f"{step}_{k}": v for step, s in results.items() for k, v in s.as_dict().items()}
    paths.ensure_dirs()
    write_metadata(paths.processed_dir, StageMetadata.now(STAGE, "ok", counts, inputs=[source]))
    return results
