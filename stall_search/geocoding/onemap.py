"""Client utilities for the OneMap search API."""
from __future__ import annotations

import logging
from typing import Any

import requests

from .config import DEFAULT_GEOCODING_CONFIG, GeocodingConfig

logger = logging.getLogger(__name__)
_SESSION = requests.Session()


class OneMapError(RuntimeError):
    """Raised when OneMap answers with a non-successful HTTP status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


def search(place_name: str, config: GeocodingConfig = DEFAULT_GEOCODING_CONFIG) -> dict[str, Any] | None:
    """
    Return the first OneMap result for ``place_name``, or ``None`` when there is none.

    Raises ``OneMapError`` for 4xx/5xx replies and lets ``requests`` transport
    errors propagate; the resolver decides what to do with both.
    """
    params = {
        "searchVal": place_name,
        "returnGeom": "Y",
        "getAddrDetails": "Y",
        "pageNum": "1",
    }
    response = _SESSION.get(
        config.search_url,
        params=params,
        headers={"Authorization": config.api_token},
        timeout=config.timeout,
    )

    if response.status_code == 429:
        raise OneMapError(429, "OneMap rate limit exceeded")
    if response.status_code == 403:
        raise OneMapError(403, "OneMap access forbidden, check ONEMAP_API_TOKEN")
    if response.status_code >= 400:
        raise OneMapError(response.status_code, f"OneMap error: HTTP {response.status_code}")

    payload = response.json()
    if not isinstance(payload, dict):
        logger.warning("OneMap returned a non-object body for %r", place_name)
        return None
    results = payload.get("results") or []
    if not payload.get("found") or not isinstance(results, list) or not results:
        return None
    return results[0]
