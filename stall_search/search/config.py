from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SearchConfig:
    default_radius_km: float = 2.0
    max_ranking_candidates: int = 50
    top_n: int = 10
    semantic_threshold: float = 0.3
    semantic_match_count: int = 20
    # Cap for the similarity lookup that feeds weighted ranking in the agent pipeline.
    similarity_lookup_count: int = 50


DEFAULT_SEARCH_CONFIG = SearchConfig()
