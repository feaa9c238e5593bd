from __future__ import annotations

import json
import logging
import re
import time
from typing import Any

from ..llm.groq_client import CompletionClient
from ..llm.lenient_json import decode_json
from ..stalls.models import StallRecord
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .models import NO_CANDIDATES_REASONING, RankingResult, RankingRun

logger = logging.getLogger(__name__)

ENGINE_NAME = "llm"
PHRASE_MATCH_BONUS = 100
MIN_WORD_LENGTH = 3

FALLBACK_RANKING_ERROR = "ranking error"
FALLBACK_NO_VALID_IDS = "could not parse ranking"
FALLBACK_JSON_ERROR = "JSON parse error"

RANKING_SYSTEM_PROMPT = (
    "You rank Singapore hawker food stalls by how well they match a food search. "
    "Respond with ONLY a JSON object."
)

_WORD_RE = re.compile(r"\w+")


# ---------------------------------------------------------------------------
# Name-match pre-boost
# ---------------------------------------------------------------------------


def name_match_score(food_query: str, stall_name: str) -> int:
    """Summed length of query words (> 2 chars) found in the name, +100 for the whole phrase."""
    query = food_query.lower().strip()
    name = stall_name.lower()
    if not query or not name:
        return 0

    words = [w for w in _WORD_RE.findall(query) if len(w) >= MIN_WORD_LENGTH]
    score = sum(len(w) for w in words if w in name)
    if query in name:
        score += PHRASE_MATCH_BONUS
    return score


def name_match_boost(food_query: str, candidates: list[StallRecord]) -> list[StallRecord]:
    """
    Move stalls whose name matches the query to the front.

    Matches are ordered by descending score (ties keep their input order);
    everything else follows in its original order.
    """
    scored = [(name_match_score(food_query, c.name), c) for c in candidates]
    matched = [pair for pair in scored if pair[0] > 0]
    matched.sort(key=lambda pair: pair[0], reverse=True)
    rest = [c for score, c in scored if score <= 0]
    return [c for _, c in matched] + rest


# ---------------------------------------------------------------------------
# Prompt & parsing
# ---------------------------------------------------------------------------


def _describe(index: int, stall: StallRecord, excerpt_chars: int) -> str:
    dishes = ", ".join(stall.recommended_dishes) or "Not specified"
    distance = f"{stall.distance:.2f}km away" if stall.distance is not None else "Distance unknown"
    review = (stall.review_summary or "")[:excerpt_chars] or "No review"
    return (
        f"[{index}] {stall.name}\n"
        f"   Category: {stall.category}\n"
        f"   Cuisine: {stall.cuisine}\n"
        f"   Location: {stall.location}\n"
        f"   Distance: {distance}\n"
        f"   Price: {stall.affordability}\n"
        f"   Recommended Dishes: {dishes}\n"
        f"   Review: {review}"
    )


def build_ranking_prompt(food_query: str, candidates: list[StallRecord], excerpt_chars: int = 200) -> str:
    descriptions = "\n\n".join(
        _describe(i, stall, excerpt_chars) for i, stall in enumerate(candidates, start=1)
    )
    return (
        f'User is searching for: "{food_query}"\n\n'
        "Here are the candidate food stalls. Rank them by relevance to the user's search.\n\n"
        f"{descriptions}\n\n"
        "INSTRUCTIONS:\n"
        "1. Consider how well each stall matches the food query\n"
        "2. Prefer stalls with relevant dishes or specialties\n"
        "3. Consider distance (closer is generally better, but not if irrelevant)\n"
        "4. Consider reviews mentioning the searched food\n"
        "5. Return the stall numbers in order of relevance, most relevant first\n\n"
        "Respond with ONLY a JSON object in this format:\n"
        '{"ranked_ids": [3, 1, 5, 2, 4], "reasoning": "Brief explanation of top picks"}\n\n'
        "Where ranked_ids contains the stall numbers (1-indexed) in order of relevance."
    )


def _position(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def positions_to_ids(positions: Any, candidates: list[StallRecord], top_n: int) -> list[str]:
    """Map 1-indexed prompt positions to place ids, dropping bad and repeated entries."""
    if not isinstance(positions, list):
        return []
    ranked_ids: list[str] = []
    for value in positions:
        position = _position(value)
        if position is None or not 1 <= position <= len(candidates):
            continue
        place_id = candidates[position - 1].place_id
        if place_id not in ranked_ids:
            ranked_ids.append(place_id)
    return ranked_ids[:top_n]


def _fallback(candidates: list[StallRecord], top_n: int, reasoning: str) -> RankingResult:
    ranked_ids: list[str] = []
    for stall in candidates:
        if stall.place_id not in ranked_ids:
            ranked_ids.append(stall.place_id)
    return RankingResult(ranked_ids=ranked_ids[:top_n], reasoning=reasoning)


def parse_ranking_response(raw_response: str, candidates: list[StallRecord], top_n: int = 10) -> RankingResult:
    try:
        parsed = decode_json(raw_response)
    except json.JSONDecodeError:
        logger.warning("Failed to parse ranking response: %r", (raw_response or "")[:100])
        return _fallback(candidates, top_n, FALLBACK_JSON_ERROR)

    data = parsed if isinstance(parsed, dict) else {}
    ranked_ids = positions_to_ids(data.get("ranked_ids"), candidates, top_n)
    if not ranked_ids:
        return _fallback(candidates, top_n, FALLBACK_NO_VALID_IDS)

    reasoning = data.get("reasoning")
    return RankingResult(ranked_ids=ranked_ids, reasoning=str(reasoning) if reasoning else None)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class LLMRanker:
    def __init__(self, client: CompletionClient, config: RankingConfig = DEFAULT_RANKING_CONFIG) -> None:
        self.client = client
        self.config = config

    @property
    def model(self) -> str:
        return getattr(self.client, "model", "")

    def rank(
        self,
        food_query: str,
        candidates: list[StallRecord],
        max_candidates: int | None = None,
    ) -> RankingRun:
        """
        Ask the LLM to order ``candidates`` for ``food_query``.

        Never raises: a failed call, an unparseable reply or a reply without
        usable positions all fall back to the name-boosted input order.
        """
        if not candidates:
            return RankingRun(
                engine=ENGINE_NAME,
                result=RankingResult(ranked_ids=[], reasoning=NO_CANDIDATES_REASONING),
                model=self.model,
            )

        start_time = time.time()
        limit = max_candidates or self.config.max_llm_candidates
        limited = name_match_boost(food_query, candidates)[:limit]
        prompt = build_ranking_prompt(food_query, limited, self.config.review_excerpt_chars)

        try:
            raw_response = self.client.complete(RANKING_SYSTEM_PROMPT, prompt, self.config.llm_temperature)
        except Exception as exc:
            logger.warning("LLM ranking call failed, falling back to name-boosted order", exc_info=True)
            return RankingRun(
                engine=ENGINE_NAME,
                result=_fallback(limited, self.config.top_n, FALLBACK_RANKING_ERROR),
                prompt=prompt,
                model=self.model,
                latency_ms=round((time.time() - start_time) * 1000, 1),
                errors=[f"LLM ranking failed: {exc}"],
            )

        result = parse_ranking_response(raw_response, limited, self.config.top_n)
        errors = []
        if result.reasoning in (FALLBACK_JSON_ERROR, FALLBACK_NO_VALID_IDS):
            errors.append(f"LLM ranking fallback: {result.reasoning}")

        return RankingRun(
            engine=ENGINE_NAME,
            result=result,
            prompt=prompt,
            raw_response=raw_response,
            model=self.model,
            latency_ms=round((time.time() - start_time) * 1000, 1),
            errors=errors,
        )
