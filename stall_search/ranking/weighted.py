from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Mapping

from ..scoring.utils import adjusted_distance, blend_score, recency_score
from ..stalls.models import StallRecord
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .models import NO_CANDIDATES_REASONING, RankingResult, RankingRun
from .rerank import Reranker, stall_document

logger = logging.getLogger(__name__)

ENGINE_NAME = "weighted"
SCORE_REASONING = "Ranked by semantic similarity and recency"
DISTANCE_REASONING = "Ranked by distance adjusted for semantic match and recency"
RERANK_REASONING = "Reranked by cross-encoder relevance"


def _similarity_for(stall: StallRecord, similarities: Mapping[str, float]) -> float:
    if stall.place_id in similarities:
        return float(similarities[stall.place_id])
    return float(stall.similarity or 0.0)


class WeightedRanker:
    """
    Deterministic ranking from similarity, recency and distance.

    Two formulas, picked by whether every candidate carries a distance:

    * score:    ``adjusted_score = blend(similarity, recency[, proximity])``,
      descending (default blend ``0.7 * similarity + 0.3 * recency``).
    * distance: ``adjusted_distance = distance * (1 - similarity*0.3 - recency*0.1)``,
      ascending.
    """

    def __init__(
        self,
        reranker: Reranker | None = None,
        config: RankingConfig = DEFAULT_RANKING_CONFIG,
    ) -> None:
        self.reranker = reranker
        self.config = config

    def score_candidates(
        self,
        candidates: list[StallRecord],
        similarities: Mapping[str, float] | None = None,
        now: datetime | None = None,
    ) -> list[StallRecord]:
        similarities = similarities or {}
        now = now or datetime.now(timezone.utc)
        weights = self.config.weights

        scored: list[StallRecord] = []
        for stall in candidates:
            similarity = _similarity_for(stall, similarities)
            recency = recency_score(stall.date_published, now)
            signals = {"similarity": similarity, "recency": recency}
            if stall.distance is not None:
                signals["proximity"] = max(0.0, 1.0 - stall.distance / self.config.proximity_radius_km)
            scored.append(stall.model_copy(update={
                "similarity": similarity,
                "recency_score": recency,
                "adjusted_score": blend_score(signals, weights),
            }))

        scored.sort(key=lambda s: s.adjusted_score, reverse=True)
        return scored

    def score_by_distance(
        self,
        candidates: list[StallRecord],
        similarities: Mapping[str, float] | None = None,
        now: datetime | None = None,
    ) -> list[StallRecord]:
        similarities = similarities or {}
        now = now or datetime.now(timezone.utc)

        scored: list[StallRecord] = []
        for stall in candidates:
            if stall.distance is None:
                raise ValueError(f"Stall {stall.place_id} has no distance")
            similarity = _similarity_for(stall, similarities)
            recency = recency_score(stall.date_published, now)
            scored.append(stall.model_copy(update={
                "similarity": similarity,
                "recency_score": recency,
                "adjusted_distance": adjusted_distance(stall.distance, similarity, recency),
            }))

        scored.sort(key=lambda s: s.adjusted_distance)
        return scored

    def _rerank(self, query_text: str, scored: list[StallRecord]) -> list[StallRecord]:
        pool = scored[: self.config.rerank_pool]
        order = self.reranker.rerank(query_text, [stall_document(s) for s in pool])

        reranked: list[StallRecord] = []
        seen: set[int] = set()
        for index, score in order:
            if index in seen or not 0 <= index < len(pool):
                continue
            seen.add(index)
            reranked.append(pool[index].model_copy(update={"rerank_score": score}))
        if not reranked:
            raise ValueError("Reranker returned no usable results")
        return reranked

    def rank(
        self,
        query_text: str,
        candidates: list[StallRecord],
        similarities: Mapping[str, float] | None = None,
        use_rerank: bool = False,
        now: datetime | None = None,
        by_distance: bool = True,
    ) -> RankingRun:
        """
        Score, order and optionally rerank ``candidates``.

        ``by_distance=False`` forces the score formula even when every
        candidate carries a distance.
        """
        start_time = time.time()
        if not candidates:
            return RankingRun(
                engine=ENGINE_NAME,
                result=RankingResult(ranked_ids=[], reasoning=NO_CANDIDATES_REASONING),
            )

        if by_distance and all(c.distance is not None for c in candidates):
            scored = self.score_by_distance(candidates, similarities, now)
            reasoning = DISTANCE_REASONING
        else:
            scored = self.score_candidates(candidates, similarities, now)
            reasoning = SCORE_REASONING

        top = scored[: self.config.top_n]
        errors: list[str] = []
        model = ""

        if use_rerank:
            if self.reranker is None:
                errors.append("Rerank requested but no reranker is configured")
            else:
                model = getattr(self.reranker, "model_name", "")
                try:
                    top = self._rerank(query_text, scored)[: self.config.top_n]
                    reasoning = RERANK_REASONING
                except Exception as exc:
                    logger.warning("Cross-encoder rerank failed, keeping weighted order", exc_info=True)
                    errors.append(f"Rerank failed: {exc}")

        ranked_ids: list[str] = []
        for stall in top:
            if stall.place_id not in ranked_ids:
                ranked_ids.append(stall.place_id)

        return RankingRun(
            engine=ENGINE_NAME,
            result=RankingResult(ranked_ids=ranked_ids, reasoning=reasoning),
            ranked=top,
            model=model,
            latency_ms=round((time.time() - start_time) * 1000, 1),
            errors=errors,
        )
