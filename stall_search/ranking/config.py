from __future__ import annotations

from dataclasses import dataclass

from ..scoring.utils import RECENCY_WEIGHT, SIMILARITY_WEIGHT

# Hand-tuned blends; treated as configuration, not derived values.
WEIGHT_PROFILES: dict[str, dict[str, float]] = {
    "similarity_recency": {"similarity": SIMILARITY_WEIGHT, "recency": RECENCY_WEIGHT},
    "hybrid": {"similarity": 0.6, "recency": 0.3, "proximity": 0.1},
    "semantic_heavy": {"similarity": 0.9, "recency": 0.1},
}


@dataclass(frozen=True)
class RankingConfig:
    top_n: int = 10
    max_llm_candidates: int = 50
    rerank_pool: int = 20
    weight_profile: str = "similarity_recency"
    llm_temperature: float = 0.1
    review_excerpt_chars: int = 200
    rerank_model: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"
    # Distance at which the "proximity" signal of the hybrid profile reaches 0.
    proximity_radius_km: float = 2.0

    def __post_init__(self) -> None:
        if self.weight_profile not in WEIGHT_PROFILES:
            raise ValueError(f"Unknown weight profile: {self.weight_profile}")

    @property
    def weights(self) -> dict[str, float]:
        return WEIGHT_PROFILES[self.weight_profile]


DEFAULT_RANKING_CONFIG = RankingConfig()
