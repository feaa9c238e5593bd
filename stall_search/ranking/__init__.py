"""
Ranking engines.

Responsibilities:
- Weighted-score ranking over similarity, recency and distance.
- Optional cross-encoder refinement of the weighted order.
- LLM ranking with a deterministic stall-name pre-boost and safe fallbacks.
"""
