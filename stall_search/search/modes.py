from __future__ import annotations

import logging

from ..ranking.weighted import WeightedRanker
from ..scoring.utils import attach_distances, filter_by_distance, proximity_to_km
from ..stalls.models import StallRecord, format_stall
from ..stalls.pricing import CUMULATIVE_PRICE_POLICY
from ..stalls.store import StallStore
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .models import FreeSearchRequest, GuidedSearchRequest, ModeSearchResponse

logger = logging.getLogger(__name__)


def _ordered(run_ranked: list[StallRecord], ranked_ids: list[str], top_n: int) -> list[StallRecord]:
    by_id = {s.place_id: s for s in run_ranked}
    return [by_id[i] for i in ranked_ids if i in by_id][:top_n]


class GuidedSearch:
    """
    Structured form search: cuisine, radius label, "$" tiers and optional
    free-text comments. Always has a location, so ranking uses the
    adjusted-distance formula.
    """

    def __init__(
        self,
        store: StallStore,
        ranker: WeightedRanker,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
    ) -> None:
        self.store = store
        self.ranker = ranker
        self.config = config

    def _comment_similarities(self, comments: str | None) -> dict[str, float]:
        if not comments or not comments.strip():
            return {}
        try:
            matches = self.store.semantic_search(
                comments.strip(),
                threshold=self.config.semantic_threshold,
                limit=self.config.semantic_match_count,
            )
        except Exception:
            logger.warning("Semantic lookup for guided comments failed", exc_info=True)
            return {}
        return {m.place_id: float(m.similarity or 0.0) for m in matches}

    def search(self, request: GuidedSearchRequest) -> ModeSearchResponse:
        candidates = self.store.fetch_open_stalls(
            cuisine=request.cuisine,
            price=request.affordability,
            policy=CUMULATIVE_PRICE_POLICY,
        )
        radius_km = proximity_to_km(request.proximity)
        nearby = filter_by_distance(candidates, request.latitude, request.longitude, radius_km)
        logger.info(
            "Guided search: %d open stalls, %d within %s km",
            len(candidates), len(nearby), radius_km,
        )

        if not nearby:
            return ModeSearchResponse(results=[], total_candidates=0, reasoning="No stalls matched the filters")

        similarities = self._comment_similarities(request.comments)
        ranked = self.ranker.score_by_distance(nearby, similarities)[: self.config.top_n]
        return ModeSearchResponse(
            results=[format_stall(s) for s in ranked],
            total_candidates=len(nearby),
            reasoning="Ranked by distance adjusted for semantic match and recency",
        )


class FreeTextSearch:
    """Semantic retrieval only; the query text is never sent to an LLM."""

    def __init__(
        self,
        store: StallStore,
        ranker: WeightedRanker,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
    ) -> None:
        self.store = store
        self.ranker = ranker
        self.config = config

    def search(self, request: FreeSearchRequest) -> ModeSearchResponse:
        matches = self.store.semantic_search(
            request.query.strip(),
            threshold=self.config.semantic_threshold,
            limit=self.config.semantic_match_count,
        )
        if request.latitude is not None and request.longitude is not None:
            with_coords = {s.place_id: s for s in attach_distances(matches, request.latitude, request.longitude)}
            # Stalls without coordinates stay in the pool, just without a distance.
            matches = [with_coords.get(s.place_id, s) for s in matches]

        if not matches:
            return ModeSearchResponse(results=[], total_candidates=0, reasoning="No stalls matched the query")

        run = self.ranker.rank(request.query, matches, use_rerank=request.use_rerank, by_distance=False)
        ranked = _ordered(run.ranked, run.result.ranked_ids, self.config.top_n)
        for error in run.errors:
            logger.warning("Free-text search: %s", error)

        return ModeSearchResponse(
            results=[format_stall(s) for s in ranked],
            total_candidates=len(matches),
            reasoning=run.result.reasoning,
        )
