"""
Price level -> affordability bucket policies.

Two policies coexist on purpose. The agent pipeline maps each price level to
exactly one bucket; the guided form treats higher tiers as including the
cheaper ones.
"""
from __future__ import annotations

from dataclasses import dataclass, field

AFFORDABLE = "Affordable (< S$10)"
MID_RANGE = "Mid-Range (S$10–S$20)"
PREMIUM = "Premium (> S$20)"

AFFORDABILITY_BUCKETS = (AFFORDABLE, MID_RANGE, PREMIUM)


@dataclass(frozen=True)
class PricePolicy:
    name: str
    buckets: dict[str, tuple[str, ...]] = field(default_factory=dict)
    match_unknown_literally: bool = False

    def buckets_for(self, price: str | None) -> list[str] | None:
        """Affordability values to match, or ``None`` for no price filter."""
        if not price:
            return None
        key = price.strip().lower()
        if key in self.buckets:
            return list(self.buckets[key])
        if self.match_unknown_literally:
            return [price]
        return None


EXCLUSIVE_PRICE_POLICY = PricePolicy(
    name="exclusive",
    buckets={
        "cheap": (AFFORDABLE,),
        "moderate": (MID_RANGE,),
        "expensive": (PREMIUM,),
    },
)

CUMULATIVE_PRICE_POLICY = PricePolicy(
    name="cumulative",
    buckets={
        "$": (AFFORDABLE,),
        "$$": (AFFORDABLE, MID_RANGE),
        "$$$": (AFFORDABLE, MID_RANGE, PREMIUM),
        "cheap": (AFFORDABLE,),
        "moderate": (AFFORDABLE, MID_RANGE),
        "expensive": (AFFORDABLE, MID_RANGE, PREMIUM),
    },
    match_unknown_literally=True,
)
