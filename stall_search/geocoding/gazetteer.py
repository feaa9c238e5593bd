"""
Static gazetteer of Singapore locations.

Used when OneMap is unavailable or has no match. Keys are lowercase.
Iteration order matters: partial matches return the first hit.
"""
from __future__ import annotations

from .models import Coords

FALLBACK_LOCATIONS: dict[str, tuple[float, float]] = {
    # MRT Stations / Major Areas
    "bugis": (1.3008, 103.8558),
    "orchard": (1.3041, 103.8318),
    "chinatown": (1.2834, 103.8443),
    "little india": (1.3066, 103.8518),
    "clarke quay": (1.2884, 103.8464),
    "marina bay": (1.2794, 103.8543),
    "raffles place": (1.2830, 103.8513),
    "tanjong pagar": (1.2764, 103.8456),
    "tiong bahru": (1.2867, 103.8277),
    "geylang": (1.3119, 103.8868),
    "katong": (1.3048, 103.9052),
    "joo chiat": (1.3130, 103.9025),
    "east coast": (1.3016, 103.9123),
    "bedok": (1.3241, 103.9304),
    "tampines": (1.3536, 103.9456),
    "pasir ris": (1.3730, 103.9494),
    "changi": (1.3568, 103.9886),
    "ang mo kio": (1.3691, 103.8454),
    "bishan": (1.3505, 103.8485),
    "toa payoh": (1.3346, 103.8500),
    "serangoon": (1.3500, 103.8718),
    "hougang": (1.3713, 103.8920),
    "punggol": (1.3984, 103.9072),
    "sengkang": (1.3917, 103.8953),
    "woodlands": (1.4360, 103.7865),
    "yishun": (1.4295, 103.8350),
    "sembawang": (1.4491, 103.8199),
    "jurong east": (1.3330, 103.7423),
    "jurong west": (1.3404, 103.7090),
    "clementi": (1.3150, 103.7651),
    "buona vista": (1.3073, 103.7901),
    "holland village": (1.3117, 103.7961),
    "novena": (1.3204, 103.8439),
    "newton": (1.3138, 103.8381),
    "dhoby ghaut": (1.2988, 103.8456),
    "city hall": (1.2931, 103.8519),
    "lavender": (1.3072, 103.8630),
    "kallang": (1.3114, 103.8714),
    "aljunied": (1.3165, 103.8829),
    "paya lebar": (1.3178, 103.8927),
    "eunos": (1.3198, 103.9030),
    "kembangan": (1.3208, 103.9128),
    "simei": (1.3432, 103.9532),
    "expo": (1.3351, 103.9617),

    # Hawker Centres & Food Landmarks
    "maxwell": (1.2804, 103.8447),
    "maxwell food centre": (1.2804, 103.8447),
    "old airport road": (1.3082, 103.8831),
    "old airport road food centre": (1.3082, 103.8831),
    "amoy street": (1.2799, 103.8469),
    "amoy street food centre": (1.2799, 103.8469),
    "golden mile": (1.3025, 103.8631),
    "golden mile food centre": (1.3025, 103.8631),
    "lau pa sat": (1.2805, 103.8505),
    "tekka": (1.3066, 103.8500),
    "tekka centre": (1.3066, 103.8500),
    "chomp chomp": (1.3619, 103.8664),
    "newton food centre": (1.3120, 103.8388),
    "adam road food centre": (1.3245, 103.8139),
    "ghim moh": (1.3111, 103.7883),
    "commonwealth": (1.3020, 103.7987),
    "zion road": (1.2910, 103.8295),
    "hong lim": (1.2852, 103.8452),
    "hong lim food centre": (1.2852, 103.8452),
    "albert centre": (1.3022, 103.8535),
    "berseh food centre": (1.3073, 103.8550),
    "bendemeer": (1.3220, 103.8652),

    # Shopping Malls / Districts
    "ion orchard": (1.3039, 103.8318),
    "ngee ann city": (1.3020, 103.8341),
    "takashimaya": (1.3020, 103.8341),
    "plaza singapura": (1.3008, 103.8451),
    "suntec": (1.2940, 103.8578),
    "suntec city": (1.2940, 103.8578),
    "bugis junction": (1.2997, 103.8550),
    "bugis+": (1.3003, 103.8549),
    "vivo city": (1.2644, 103.8223),
    "vivocity": (1.2644, 103.8223),
    "harbourfront": (1.2653, 103.8214),
    "sentosa": (1.2494, 103.8303),

    # Universities / Institutions
    "nus": (1.2966, 103.7764),
    "ntu": (1.3483, 103.6831),
    "smu": (1.2973, 103.8498),
    "sutd": (1.3413, 103.9637),
}


def lookup_fallback(place_name: str) -> Coords | None:
    """Exact, then bidirectional substring match against the gazetteer."""
    normalized = place_name.lower().strip()
    if not normalized:
        return None

    if normalized in FALLBACK_LOCATIONS:
        lat, lng = FALLBACK_LOCATIONS[normalized]
        return Coords(lat=lat, lng=lng)

    for key, (lat, lng) in FALLBACK_LOCATIONS.items():
        if normalized in key or key in normalized:
            return Coords(lat=lat, lng=lng)

    return None
