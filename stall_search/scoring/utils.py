from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Sequence, TypeVar

EARTH_RADIUS_KM = 6371.0
RECENCY_DECAY_DAYS = 365.0

# Similarity-dominant blend used when no geographic ordering applies.
SIMILARITY_WEIGHT = 0.7
RECENCY_WEIGHT = 0.3

# Distance-dominant blend used when every candidate has a distance.
DISTANCE_SEMANTIC_FACTOR = 0.3
DISTANCE_RECENCY_FACTOR = 0.1

_PROXIMITY_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)")

T = TypeVar("T")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _to_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text or text.lower() in {"nan", "nat", "none", "null"}:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def recency_from_age(age_days: float) -> float:
    return math.exp(-max(0.0, age_days) / RECENCY_DECAY_DAYS)


def recency_score(date_published: object, now: datetime | None = None) -> float:
    """
    Exponential decay weight of a review's publication date.

    ``exp(-age_days / 365)``: 1.0 for today, ~0.37 after a year, ~0.14
    after two. Missing or unparseable dates score 0.
    """
    published = _to_datetime(date_published)
    if published is None:
        return 0.0
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    age_days = (now - published).total_seconds() / 86400.0
    return recency_from_age(age_days)


def blend_score(signals: Mapping[str, float], weights: Mapping[str, float]) -> float:
    """Weighted sum over the signals named in ``weights``; missing signals count as 0."""
    return sum(weight * signals.get(name, 0.0) for name, weight in weights.items())


def adjusted_distance(distance: float, semantic_weight: float, recency: float) -> float:
    """Shrink a distance by semantic match and recency. Lower is better."""
    return distance * (
        1 - semantic_weight * DISTANCE_SEMANTIC_FACTOR - recency * DISTANCE_RECENCY_FACTOR
    )


def proximity_to_km(proximity: str | None) -> float:
    """Parse a proximity label such as ``"2 km"``; anything unparseable means unbounded."""
    if not proximity:
        return math.inf
    match = _PROXIMITY_RE.match(str(proximity))
    if not match:
        return math.inf
    value = float(match.group(1))
    return value if value > 0 else math.inf


def _has_coordinates(stall: object) -> bool:
    lat = getattr(stall, "latitude", None)
    lng = getattr(stall, "longitude", None)
    if lat is None or lng is None:
        return False
    return not (math.isnan(lat) or math.isnan(lng))


def attach_distances(stalls: Iterable[T], lat: float, lng: float) -> list[T]:
    """Return copies of ``stalls`` with ``distance`` set; stalls without coordinates are dropped."""
    located: list[T] = []
    for stall in stalls:
        if not _has_coordinates(stall):
            continue
        distance = haversine_km(lat, lng, stall.latitude, stall.longitude)
        located.append(stall.model_copy(update={"distance": distance}))
    return located


def filter_by_distance(stalls: Sequence[T], lat: float, lng: float, radius_km: float) -> list[T]:
    """Keep stalls within ``radius_km`` of the centre, nearest first."""
    within = [s for s in attach_distances(stalls, lat, lng) if s.distance <= radius_km]
    within.sort(key=lambda s: s.distance)
    return within
