"""
Pure numeric helpers shared by every ranking stage.

Responsibilities:
- Great-circle distance between coordinates.
- Exponential recency decay of published reviews.
- Weighted blends of similarity, recency and distance.
"""
