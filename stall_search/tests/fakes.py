"""Sample stalls and in-test stand-ins for the pipeline's external capabilities."""
from __future__ import annotations

import json
from typing import Any

import numpy as np

from stall_search.geocoding.models import GeocodeResult
from stall_search.stalls.pricing import AFFORDABLE, MID_RANGE, PREMIUM


class FakeCompletionClient:
    """Replays canned replies in order; an exception reply is raised instead."""

    def __init__(self, *replies: Any, model: str = "fake-model") -> None:
        self.replies = list(replies)
        self.model = model
        self.calls: list[dict[str, Any]] = []

    def complete(self, system: str, message: str, temperature: float = 0.1) -> str:
        self.calls.append({"system": system, "message": message, "temperature": temperature})
        reply = self.replies.pop(0) if self.replies else "{}"
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeResolver:
    def __init__(
        self,
        results: dict[str, GeocodeResult | None] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.results = results or {}
        self.error = error
        self.calls: list[str] = []

    def resolve(self, place_name: str) -> GeocodeResult | None:
        self.calls.append(place_name)
        if self.error is not None:
            raise self.error
        return self.results.get(place_name)


class FakeReranker:
    """Scores documents by the stall name they start with."""

    def __init__(self, scores: dict[str, float] | None = None, error: Exception | None = None) -> None:
        self.model_name = "fake-cross-encoder"
        self.scores = scores or {}
        self.error = error
        self.calls: list[tuple[str, list[str]]] = []

    def rerank(self, query: str, documents: list[str]) -> list[tuple[int, float]]:
        self.calls.append((query, documents))
        if self.error is not None:
            raise self.error
        scored = []
        for i, doc in enumerate(documents):
            score = next((s for name, s in self.scores.items() if doc.startswith(name)), 0.0)
            scored.append((i, score))
        return sorted(scored, key=lambda pair: pair[1], reverse=True)


class CollectingRecorder:
    def __init__(self) -> None:
        self.traces = []

    def emit(self, trace) -> None:
        self.traces.append(trace)


BUGIS = (1.3008, 103.8558)

SAMPLE_STALLS = [
    {
        "place_id": "1", "name": "Tian Tian Hainanese Chicken Rice", "category": "Hawker",
        "cuisine": "Chinese", "affordability": AFFORDABLE, "location": "Bugis Street",
        "review_summary": "Silky chicken and fragrant rice.",
        "recommended_dishes": '["Chicken Rice", "Roasted Chicken"]',
        "source": "Michelin", "source_url": "https://example.com/1", "date_published": "2024-06-01",
        "latitude": 1.3010, "longitude": 103.8560, "status": "Open", "embedding": "[1, 0, 0]",
    },
    {
        "place_id": "2", "name": "Ah Tai Hainanese Chicken Rice", "category": "Hawker",
        "cuisine": "Chinese", "affordability": AFFORDABLE, "location": "Bugis Junction",
        "review_summary": "Former Tian Tian chef.",
        "recommended_dishes": "Chicken Rice;Chilli",
        "source": "Blog", "source_url": "https://example.com/2", "date_published": "2022-01-01",
        "latitude": 1.3050, "longitude": 103.8600, "status": "open", "embedding": "[0.9, 0.1, 0]",
    },
    {
        "place_id": "3", "name": "Warong Nasi Pariaman", "category": "Restaurant",
        "cuisine": "Malay", "affordability": MID_RANGE, "location": "Kandahar Street",
        "review_summary": "Old-school nasi padang.",
        "recommended_dishes": "{Beef Rendang,Ayam Bakar}",
        "source": "Blog", "source_url": "https://example.com/3", "date_published": "2024-01-01",
        "latitude": 1.3030, "longitude": 103.8590, "status": "open", "embedding": "[0, 1, 0]",
    },
    {
        "place_id": "4", "name": "Closed Laksa", "category": "Hawker",
        "cuisine": "Peranakan", "affordability": AFFORDABLE, "location": "Bugis Street",
        "review_summary": "", "recommended_dishes": None,
        "source": "Blog", "source_url": "", "date_published": "2023-01-01",
        "latitude": 1.3009, "longitude": 103.8559, "status": "closed", "embedding": "[0, 0, 1]",
    },
    {
        "place_id": "5", "name": "Jurong Fishball Noodles", "category": "Hawker",
        "cuisine": "Chinese", "affordability": PREMIUM, "location": "Jurong West",
        "review_summary": "Handmade fishballs.", "recommended_dishes": "Fishball Noodles",
        "source": "Blog", "source_url": "", "date_published": None,
        "latitude": 1.3400, "longitude": 103.7060, "status": "open", "embedding": "[0.1, 0, 1]",
    },
    {
        "place_id": "6", "name": "Satay Stall", "category": "Hawker",
        "cuisine": "Malay", "affordability": AFFORDABLE, "location": "Unknown",
        "review_summary": "Smoky satay.", "recommended_dishes": "Satay",
        "source": "Blog", "source_url": "", "date_published": "2023-05-01",
        "latitude": None, "longitude": None, "status": "open", "embedding": "[0, 1, 0.1]",
    },
]

SAMPLE_EMBEDDINGS = np.array([json.loads(s["embedding"]) for s in SAMPLE_STALLS], dtype=float)


def keyword_encoder(text: str) -> np.ndarray:
    """Three-axis toy encoder: chicken rice, malay food, noodles."""
    text = text.lower()
    if "chicken" in text:
        return np.array([1.0, 0.0, 0.0])
    if "nasi" in text or "rendang" in text or "satay" in text:
        return np.array([0.0, 1.0, 0.0])
    if "noodle" in text or "laksa" in text:
        return np.array([0.0, 0.0, 1.0])
    return np.array([0.0, 0.0, 0.0])
