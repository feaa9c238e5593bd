from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class Coords(BaseModel):
    lat: float
    lng: float


class GeocodeResult(BaseModel):
    lat: float
    lng: float
    source: Literal["onemap", "fallback"]
    input: str
    address: str | None = None

    @property
    def coords(self) -> Coords:
        return Coords(lat=self.lat, lng=self.lng)
