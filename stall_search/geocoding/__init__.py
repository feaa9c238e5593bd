"""
Location resolution.

Responsibilities:
- Geocode Singapore place names through the OneMap search API.
- Fall back to a static gazetteer of well-known areas and food centres.
- Never raise to callers: an unresolvable name yields ``None``.
"""
