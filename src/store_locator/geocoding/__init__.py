"""Google Maps clients and the re-entrant enrichment passes."""

from store_locator.geocoding.client import GeocodeMatch, GoogleGeocoder, GooglePlaceLookup, PlaceMatch
from store_locator.geocoding.enrich import (
    EnrichmentStats,
    fill_missing_phones,
    geocode_missing,
    normalize_addresses,
    run_enrichment,
)

__all__ = [
    "EnrichmentStats",
    "GeocodeMatch",
    "GoogleGeocoder",
    "GooglePlaceLookup",
    "PlaceMatch",
    "fill_missing_phones",
    "geocode_missing",
    "normalize_addresses",
    "run_enrichment",
]
