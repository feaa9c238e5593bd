from __future__ import annotations

import logging
from typing import Any

import requests

from . import onemap
from .config import DEFAULT_GEOCODING_CONFIG, GeocodingConfig
from .gazetteer import lookup_fallback
from .models import GeocodeResult

logger = logging.getLogger(__name__)


def _from_onemap(place_name: str, result: dict[str, Any]) -> GeocodeResult:
    # OneMap also ships a misspelled LONGTITUDE key on some records.
    longitude = result.get("LONGITUDE") or result.get("LONGTITUDE")
    return GeocodeResult(
        lat=float(result["LATITUDE"]),
        lng=float(longitude),
        source="onemap",
        input=place_name,
        address=result.get("ADDRESS"),
    )


class LocationResolver:
    """Place name -> coordinates, OneMap first and the gazetteer second."""

    def __init__(self, config: GeocodingConfig = DEFAULT_GEOCODING_CONFIG) -> None:
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.api_token)

    def resolve(self, place_name: str) -> GeocodeResult | None:
        if not self.configured:
            logger.warning("ONEMAP_API_TOKEN not set, using fallback locations")
            return self._fallback(place_name)

        try:
            result = onemap.search(place_name, self.config)
        except onemap.OneMapError as exc:
            logger.warning("OneMap rejected %r (HTTP %s), trying fallback", place_name, exc.status_code)
            return self._fallback(place_name)
        except requests.RequestException:
            logger.warning("OneMap request failed for %r, trying fallback", place_name, exc_info=True)
            return self._fallback(place_name)

        if result is None:
            logger.info("OneMap: no results for %r, trying fallback", place_name)
            return self._fallback(place_name)

        try:
            return _from_onemap(place_name, result)
        except (KeyError, TypeError, ValueError):
            logger.warning("OneMap returned an unusable result for %r, trying fallback", place_name, exc_info=True)
            return self._fallback(place_name)

    def _fallback(self, place_name: str) -> GeocodeResult | None:
        coords = lookup_fallback(place_name)
        if coords is None:
            logger.info("No fallback location found for %r", place_name)
            return None
        logger.info("Using fallback location for %r", place_name)
        return GeocodeResult(lat=coords.lat, lng=coords.lng, source="fallback", input=place_name)


def geocoding_status(config: GeocodingConfig = DEFAULT_GEOCODING_CONFIG) -> dict[str, Any]:
    if config.api_token:
        return {"configured": True, "message": "OneMap API token is configured"}
    return {
        "configured": False,
        "message": "ONEMAP_API_TOKEN is not set. Only fallback locations will resolve.",
    }
