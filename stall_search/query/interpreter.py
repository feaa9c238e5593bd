from __future__ import annotations

import json
import logging
import time
from typing import Any, NamedTuple

from ..llm.groq_client import CompletionClient
from ..llm.lenient_json import decode_json
from .models import ParsedIntent

logger = logging.getLogger(__name__)

PARSE_TEMPERATURE = 0.1
EXCERPT_LENGTH = 100

# ---------------------------------------------------------------------------
# LLM Prompt
# ---------------------------------------------------------------------------

PARSE_SYSTEM_PROMPT = """\
You are a food search query parser for Singapore hawker food.

Extract structured parameters from the user's natural language query.

Return a JSON object with these fields:
- food_query: The core food/dish being searched for (required, string)
- location_name: Named location if mentioned, e.g., "Bugis", "Orchard" (string or null)
- use_current_location: true if user said "near me", "nearby", "around here", etc. (boolean)
- location_intent: "closest" for "nearest"/"closest", "nearby" for "near"/"around", \
"in_area" for "in"/"at" a named place, otherwise null
- cuisine: Cuisine type if mentioned, e.g., "Chinese", "Malay", "Indian" (string or null)
- price: Price preference - "cheap", "moderate", or "expensive" (string or null)
- exclusions: Array of things to exclude, e.g., ["no pork", "not too oily"] (string array)

IMPORTANT RULES:
1. If no specific location is mentioned, set location_name to null
2. "Near me", "nearby", "around here", "close by" -> use_current_location: true
3. For price, map words like "affordable", "budget" -> "cheap"; "premium", "high-end" -> "expensive"
4. The food_query should capture the essence of what food the user wants
5. Only include exclusions explicitly stated by the user

Examples:

Query: "spicy laksa near Bugis"
{"food_query": "spicy laksa", "location_name": "Bugis", "use_current_location": false, \
"location_intent": "nearby", "cuisine": null, "price": null, "exclusions": []}

Query: "cheap chicken rice near me"
{"food_query": "chicken rice", "location_name": null, "use_current_location": true, \
"location_intent": "nearby", "cuisine": null, "price": "cheap", "exclusions": []}

Query: "halal nasi lemak at Geylang"
{"food_query": "halal nasi lemak", "location_name": "Geylang", "use_current_location": false, \
"location_intent": "in_area", "cuisine": "Malay", "price": null, "exclusions": []}

Query: "not too oily char kway teow nearest to me"
{"food_query": "char kway teow", "location_name": null, "use_current_location": true, \
"location_intent": "closest", "cuisine": null, "price": null, "exclusions": ["not too oily"]}

Respond ONLY with valid JSON, no explanation."""


# ---------------------------------------------------------------------------
# Synonym tables
# ---------------------------------------------------------------------------

_PRICE_SYNONYMS: dict[str, str] = {
    "cheap": "cheap",
    "budget": "cheap",
    "affordable": "cheap",
    "inexpensive": "cheap",
    "low": "cheap",
    "moderate": "moderate",
    "medium": "moderate",
    "mid": "moderate",
    "mid-range": "moderate",
    "mid range": "moderate",
    "expensive": "expensive",
    "premium": "expensive",
    "high": "expensive",
    "high-end": "expensive",
    "pricey": "expensive",
}

_LOCATION_INTENT_SYNONYMS: dict[str, str] = {
    "closest": "closest",
    "nearest": "closest",
    "nearby": "nearby",
    "near": "nearby",
    "near me": "nearby",
    "around": "nearby",
    "close by": "nearby",
    "in_area": "in_area",
    "in area": "in_area",
    "in": "in_area",
    "at": "in_area",
    "within": "in_area",
}

_FALSE_STRINGS = {"", "false", "no", "0", "null", "none"}


class ParseError(ValueError):
    """The model reply could not be turned into a search intent."""

    def __init__(self, message: str, excerpt: str = "") -> None:
        super().__init__(message)
        self.excerpt = excerpt


class Interpretation(NamedTuple):
    intent: ParsedIntent
    latency_ms: float
    raw_response: str


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _lookup(table: dict[str, str], value: Any) -> str | None:
    if not value or not isinstance(value, (str, int, float)):
        return None
    return table.get(str(value).lower().strip())


def normalize_price(value: Any) -> str | None:
    return _lookup(_PRICE_SYNONYMS, value)


def normalize_location_intent(value: Any) -> str | None:
    return _lookup(_LOCATION_INTENT_SYNONYMS, value)


def intent_from_payload(payload: Any, raw_query: str) -> ParsedIntent:
    """
    Map any decoded JSON value onto a ``ParsedIntent``.

    Non-object payloads are treated as an empty object. A missing or blank
    ``food_query`` falls back to the raw query text; ``ParseError`` is raised
    only when that is blank too.
    """
    data: dict[str, Any] = payload if isinstance(payload, dict) else {}

    food_query = _optional_str(data.get("food_query")) or raw_query.strip()
    if not food_query:
        raise ParseError("Query is empty after interpretation")

    exclusions = data.get("exclusions")
    if isinstance(exclusions, list):
        exclusions = [str(e).strip() for e in exclusions if e is not None and str(e).strip()]
    else:
        exclusions = []

    return ParsedIntent(
        food_query=food_query,
        location_name=_optional_str(data.get("location_name")),
        use_current_location=_coerce_bool(data.get("use_current_location")),
        location_intent=normalize_location_intent(data.get("location_intent")),
        cuisine=_optional_str(data.get("cuisine")),
        price=normalize_price(data.get("price")),
        exclusions=exclusions,
    )


def parse_intent_response(raw_response: str, raw_query: str) -> ParsedIntent:
    try:
        payload = decode_json(raw_response)
    except json.JSONDecodeError as exc:
        excerpt = (raw_response or "").strip()[:EXCERPT_LENGTH]
        logger.warning("Query parser returned invalid JSON: %r", excerpt)
        raise ParseError(f"Invalid JSON response from LLM: {excerpt}", excerpt=excerpt) from exc
    return intent_from_payload(payload, raw_query)


# ---------------------------------------------------------------------------
# LLM Call
# ---------------------------------------------------------------------------


class QueryInterpreter:
    def __init__(self, client: CompletionClient) -> None:
        self.client = client

    @property
    def model(self) -> str:
        return getattr(self.client, "model", "")

    def interpret(self, raw_query: str) -> Interpretation:
        """
        Turn a free-text query into a ``ParsedIntent``.

        Returns the intent, the completion latency in milliseconds and the
        raw model reply. Raises ``ParseError`` if the completion fails or
        its reply is not JSON; there is no keyword fallback.
        """
        start_time = time.time()
        try:
            raw_response = self.client.complete(PARSE_SYSTEM_PROMPT, raw_query, PARSE_TEMPERATURE)
        except Exception as exc:
            logger.warning("Query parsing completion failed", exc_info=True)
            raise ParseError(f"Failed to parse query: {exc}") from exc

        latency_ms = round((time.time() - start_time) * 1000, 1)
        intent = parse_intent_response(raw_response, raw_query)
        return Interpretation(intent=intent, latency_ms=latency_ms, raw_response=raw_response)
