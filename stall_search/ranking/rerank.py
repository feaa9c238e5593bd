from __future__ import annotations

import logging
from typing import Protocol

from sentence_transformers import CrossEncoder

from ..stalls.models import StallRecord
from .config import DEFAULT_RANKING_CONFIG, RankingConfig

logger = logging.getLogger(__name__)


class Reranker(Protocol):
    def rerank(self, query: str, documents: list[str]) -> list[tuple[int, float]]: ...


def stall_document(stall: StallRecord) -> str:
    """Text the cross-encoder scores against the query."""
    parts = [stall.name, stall.category, stall.cuisine]
    if stall.recommended_dishes:
        parts.append("Dishes: " + ", ".join(stall.recommended_dishes))
    if stall.review_summary:
        parts.append(stall.review_summary)
    return " | ".join(p for p in parts if p)


class CrossEncoderReranker:
    """Joint (query, stall) relevance scoring with a sentence-transformers cross-encoder."""

    def __init__(self, config: RankingConfig = DEFAULT_RANKING_CONFIG) -> None:
        self.model_name = config.rerank_model
        self._model: CrossEncoder | None = None

    def _get_model(self) -> CrossEncoder:
        if self._model is None:
            self._model = CrossEncoder(self.model_name)
        return self._model

    def rerank(self, query: str, documents: list[str]) -> list[tuple[int, float]]:
        """Return ``(document index, score)`` pairs, most relevant first."""
        if not documents:
            return []
        scores = self._get_model().predict([(query, doc) for doc in documents])
        order = sorted(range(len(documents)), key=lambda i: float(scores[i]), reverse=True)
        return [(i, float(scores[i])) for i in order]
