"""Clients for the Google Maps Geocoding and Places web services.

Both clients answer "no result" with ``None``. Transport failures, non-2xx
responses and error statuses (quota, denied key) raise ``GeocodingError``
so the caller can log the row and move on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from store_locator.exceptions import GeocodingError
from store_locator.http import is_ok, make_session

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
FIND_PLACE_URL = "https://maps.googleapis.com/maps/api/place/findplacefromtext/json"
PLACE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"

# Statuses meaning "the service answered, nothing matched"
NO_RESULT_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


@dataclass
class GeocodeMatch:
    """Best match for a free-text address. Empty strings mean "not returned"."""

    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    lat: float | None = None
    lng: float | None = None


@dataclass
class PlaceMatch:
    """Best business match for a store."""

    phone: str = ""
    website: str = ""


class Geocoder(Protocol):
    def geocode(self, full_address: str) -> GeocodeMatch | None: ...


class PlaceLookup(Protocol):
    def lookup(self, name: str, address: str, city: str, state: str) -> PlaceMatch | None: ...


def parse_geocode_result(result: dict[str, Any]) -> GeocodeMatch:
    """Extract the structured address and location from one geocode result.

    Street address is street_number + route (+ subpremise); state is the
    short form of administrative_area_level_1.
    """
    match = GeocodeMatch()
    number = route = subpremise = ""
    for component in result.get("address_components", []):
        types = component.get("types", [])
        if "street_number" in types:
            number = component.get("long_name", "")
        elif "route" in types:
            route = component.get("long_name", "")
        elif "subpremise" in types:
            subpremise = component.get("long_name", "")
        elif "locality" in types:
            match.city = component.get("long_name", "")
        elif "administrative_area_level_1" in types:
            match.state = component.get("short_name", "")
        elif "postal_code" in types:
            match.zip = component.get("long_name", "")
    match.address = " ".join(p for p in (number, route, subpremise) if p)

    location = result.get("geometry", {}).get("location", {})
    if "lat" in location and "lng" in location:
        match.lat = float(location["lat"])
        match.lng = float(location["lng"])
    return match


class _GoogleClient:
    def __init__(self, api_key: str, session: requests.Session | None = None) -> None:
        self.api_key = api_key
        self.session = session or make_session()

    def _get(self, url: str, params: dict[str, str]) -> dict[str, Any] | None:
        """GET a JSON endpoint; None for a no-result status."""
        logger.debug("GET %s %s", url, params)
        try:
            resp = self.session.get(url, params={**params, "key": self.api_key})
        except requests.RequestException as e:
            raise GeocodingError(f"Request to {url} failed: {e}") from e

        if not is_ok(resp):
            raise GeocodingError(f"{url} returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise GeocodingError(f"{url} returned invalid JSON") from e

        status = data.get("status", "")
        if status in NO_RESULT_STATUSES:
            return None
        if status != "OK":
            detail = data.get("error_message") or "no detail"
            raise GeocodingError(f"{url} returned status {status}: {detail}")
        return data


class GoogleGeocoder(_GoogleClient):
    """Geocoding API client.

    Example:
        >>> geocoder = GoogleGeocoder(api_key="...")
        >>> geocoder.geocode("1600 Amphitheatre Pkwy, Mountain View, CA")
        GeocodeMatch(address='1600 Amphitheatre Parkway', city='Mountain View', ...)

    """

    def geocode(self, full_address: str) -> GeocodeMatch | None:
        data = self._get(GEOCODE_URL, {"address": full_address})
        if not data or not data.get("results"):
            return None
        return parse_geocode_result(data["results"][0])


class GooglePlaceLookup(_GoogleClient):
    """Places API client returning the phone number and website of a store."""

    def lookup(self, name: str, address: str, city: str, state: str) -> PlaceMatch | None:
        query = ", ".join(p for p in (name, address, city, state) if p)
        found = self._get(
            FIND_PLACE_URL,
            {"input": query, "inputtype": "textquery", "fields": "place_id"},
        )
        candidates = (found or {}).get("candidates") or []
        if not candidates:
            return None

        details = self._get(
            PLACE_DETAILS_URL,
            {
                "place_id": candidates[0]["place_id"],
                "fields": "formatted_phone_number,international_phone_number,website",
            },
        )
        result = (details or {}).get("result") or {}
        phone = result.get("formatted_phone_number") or result.get("international_phone_number", "")
        website = result.get("website", "")
        if not phone and not website:
            return None
        return PlaceMatch(phone=phone, website=website)
