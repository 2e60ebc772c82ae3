# Project: weather-history
# Owner: GreenUnicorn
"""
geocode.py — Resolve a place name to a Location via the Open-Meteo Geocoding API.

Free, no API key required.
API docs: https://open-meteo.com/en/docs/geocoding-api
"""

import logging

import requests

from weather_history.records import Location
from weather_history.utils import with_retry

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"


class LocationNotFoundError(ValueError):
    """The geocoder returned no result for a place name."""


def _canonical_name(result: dict, place: str) -> str:
    # "City, Region, Country"; region and country are omitted when absent
    parts = [result.get("name") or place, result.get("admin1"), result.get("country")]
    return ", ".join(p for p in parts if p)


def geocode(place: str, timeout: float = 10) -> Location:
    """Look up the best match for a place name.

    Args:
        place: Human-readable place name, e.g. 'Tokyo' or 'London, UK'.
        timeout: Per-request timeout in seconds.

    Returns:
        Location named with a canonical 'City, Region, Country' string.

    Raises:
        LocationNotFoundError: If no results are found for the place name.
        RuntimeError: If all API retry attempts fail.
    """
    query = {"name": place, "count": 1, "language": "en", "format": "json"}

    def _search() -> dict:
        response = requests.get(GEOCODING_URL, params=query, timeout=timeout)
        response.raise_for_status()
        return response.json()

    payload = with_retry(_search, label=f"Geocoding API for '{place}'")

    matches = payload.get("results") or []
    if not matches:
        raise LocationNotFoundError(f'Location "{place}" not found. Try a more specific name.')

    best = matches[0]
    location = Location(
        latitude=float(best["latitude"]),
        longitude=float(best["longitude"]),
        name=_canonical_name(best, place),
    )
    logger.debug("Geocoded %r to %s", place, location)
    return location
