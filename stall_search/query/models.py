from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

PriceLevel = Literal["cheap", "moderate", "expensive"]
LocationIntent = Literal["closest", "nearby", "in_area"]


class ParsedIntent(BaseModel):
    food_query: str = Field(..., min_length=1)
    location_name: str | None = None
    use_current_location: bool = False
    location_intent: LocationIntent | None = None
    cuisine: str | None = None
    price: PriceLevel | None = None
    exclusions: list[str] = Field(default_factory=list)
