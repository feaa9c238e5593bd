from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _split_dishes(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]

    text = str(value).strip()
    if not text or text.lower() == "nan":
        return []
    # Postgres text[] literal, e.g. {"Chicken Rice","Char Siew"}
    if text.startswith("{") and text.endswith("}"):
        text = "[" + text[1:-1] + "]"
    if text.startswith("["):
        try:
            items = json.loads(text)
        except json.JSONDecodeError:
            items = [p.strip().strip('"') for p in text[1:-1].split(",")]
        return [str(i).strip() for i in items if str(i).strip()]
    return [p.strip() for p in text.split(";") if p.strip()]


class StallRecord(BaseModel):
    """
    Snapshot of one vendor as stored. The computed fields at the bottom are
    attached per request with ``model_copy`` and never written back.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    place_id: str
    name: str
    category: str = ""
    cuisine: str = ""
    affordability: str = ""
    location: str = ""
    operating_hours: str | None = None
    review_summary: str = ""
    recommended_dishes: list[str] = Field(default_factory=list)
    source: str = ""
    source_url: str = ""
    date_published: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    status: str = "open"

    distance: float | None = None
    similarity: float | None = None
    recency_score: float | None = None
    adjusted_score: float | None = None
    adjusted_distance: float | None = None
    rerank_score: float | None = None

    @field_validator("recommended_dishes", mode="before")
    @classmethod
    def _parse_dishes(cls, value: Any) -> list[str]:
        return _split_dishes(value)

    @field_validator("place_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)

    # Blank CSV cells arrive as None.
    @field_validator(
        "name", "category", "cuisine", "affordability", "location", "review_summary", "source", "source_url",
        mode="before",
    )
    @classmethod
    def _blank_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("operating_hours", "date_published", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> str:
        return "open" if value is None else str(value)


class StallOut(BaseModel):
    place_id: str
    name: str
    category: str
    cuisine: str
    affordability: str
    location: str
    operating_hours: str | None
    review_summary: str
    recommended_dishes: list[str]
    source: str
    source_url: str
    date_published: str | None
    latitude: float | None
    longitude: float | None
    distance: float | None = None


def format_stall(stall: StallRecord) -> StallOut:
    """Public view of a stall: no status, scores or any store-internal column."""
    return StallOut(
        place_id=stall.place_id,
        name=stall.name,
        category=stall.category,
        cuisine=stall.cuisine,
        affordability=stall.affordability,
        location=stall.location,
        operating_hours=stall.operating_hours,
        review_summary=stall.review_summary,
        recommended_dishes=list(stall.recommended_dishes),
        source=stall.source,
        source_url=stall.source_url,
        date_published=stall.date_published,
        latitude=stall.latitude,
        longitude=stall.longitude,
        distance=round(stall.distance, 3) if stall.distance is not None else None,
    )
