import json

import pytest

from stall_search.llm.lenient_json import decode_json, strip_code_fences
from stall_search.query.interpreter import (
    PARSE_SYSTEM_PROMPT,
    ParseError,
    QueryInterpreter,
    intent_from_payload,
    normalize_location_intent,
    normalize_price,
    parse_intent_response,
)
from stall_search.tests.fakes import FakeCompletionClient

LAKSA_REPLY = json.dumps({
    "food_query": "spicy laksa",
    "location_name": "Bugis",
    "use_current_location": False,
    "location_intent": "nearby",
    "cuisine": None,
    "price": None,
    "exclusions": [],
})


# ── Lenient decoding ─────────────────────────────────────────────────────


@pytest.mark.parametrize("raw", [
    '{"a": 1}',
    '  {"a": 1}\n',
    '```json\n{"a": 1}\n```',
    '```\n{"a": 1}\n```',
    '```JSON{"a": 1}```',
])
def test_decode_json_accepts_fenced_replies(raw):
    assert decode_json(raw) == {"a": 1}


def test_strip_code_fences_leaves_inner_text():
    assert strip_code_fences("```json\n[1, 2]\n```") == "[1, 2]"


def test_decode_json_rejects_prose():
    with pytest.raises(json.JSONDecodeError):
        decode_json("Sure! Here is the JSON you asked for.")


# ── Normalisation ────────────────────────────────────────────────────────


@pytest.mark.parametrize("value,expected", [
    ("cheap", "cheap"),
    ("Budget", "cheap"),
    (" affordable ", "cheap"),
    ("mid-range", "moderate"),
    ("PREMIUM", "expensive"),
    ("free", None),
    (None, None),
    (3, None),
])
def test_normalize_price(value, expected):
    assert normalize_price(value) == expected


@pytest.mark.parametrize("value,expected", [
    ("nearest", "closest"),
    ("around", "nearby"),
    ("in_area", "in_area"),
    ("at", "in_area"),
    ("somewhere", None),
])
def test_normalize_location_intent(value, expected):
    assert normalize_location_intent(value) == expected


def test_intent_from_payload_full_object():
    intent = intent_from_payload(json.loads(LAKSA_REPLY), "spicy laksa near Bugis")
    assert intent.food_query == "spicy laksa"
    assert intent.location_name == "Bugis"
    assert intent.use_current_location is False
    assert intent.location_intent == "nearby"
    assert intent.price is None
    assert intent.exclusions == []


def test_intent_from_payload_coerces_types():
    payload = {
        "food_query": 123,
        "location_name": "",
        "use_current_location": "false",
        "price": "Budget",
        "cuisine": "  Malay ",
        "exclusions": ["no pork", None, "  "],
    }
    intent = intent_from_payload(payload, "raw")
    assert intent.food_query == "123"
    assert intent.location_name is None
    assert intent.use_current_location is False
    assert intent.price == "cheap"
    assert intent.cuisine == "Malay"
    assert intent.exclusions == ["no pork"]


@pytest.mark.parametrize("flag,expected", [
    (True, True), ("true", True), ("yes", True), (1, True),
    (False, False), ("no", False), ("0", False), ("", False), (None, False),
])
def test_intent_from_payload_boolean_truthiness(flag, expected):
    intent = intent_from_payload({"food_query": "x", "use_current_location": flag}, "x")
    assert intent.use_current_location is expected


def test_intent_from_payload_boolean_text_fields_are_missing():
    intent = intent_from_payload({"food_query": True, "location_name": True, "cuisine": False}, "laksa")
    assert intent.food_query == "laksa"
    assert intent.location_name is None
    assert intent.cuisine is None


def test_intent_from_payload_non_object_treated_as_empty():
    intent = intent_from_payload(["not", "an", "object"], "  chicken rice  ")
    assert intent.food_query == "chicken rice"
    assert intent.location_name is None
    assert intent.exclusions == []


def test_missing_food_query_falls_back_to_raw_query():
    intent = intent_from_payload({"location_name": "Bugis"}, "laksa bugis")
    assert intent.food_query == "laksa bugis"


def test_blank_food_query_and_blank_raw_query_is_parse_error():
    with pytest.raises(ParseError):
        intent_from_payload({"food_query": "  "}, "   ")


def test_parse_intent_response_invalid_json_carries_excerpt():
    reply = "I cannot help with that. " * 10
    with pytest.raises(ParseError) as exc_info:
        parse_intent_response(reply, "laksa")
    assert exc_info.value.excerpt == reply.strip()[:100]
    assert len(exc_info.value.excerpt) == 100


# ── Interpreter ──────────────────────────────────────────────────────────


def test_interpret_returns_intent_latency_and_raw_reply():
    client = FakeCompletionClient(f"```json\n{LAKSA_REPLY}\n```")
    interpretation = QueryInterpreter(client).interpret("spicy laksa near Bugis")

    assert interpretation.intent.food_query == "spicy laksa"
    assert interpretation.latency_ms >= 0
    assert interpretation.raw_response.startswith("```json")
    assert client.calls[0]["system"] == PARSE_SYSTEM_PROMPT
    assert client.calls[0]["message"] == "spicy laksa near Bugis"
    assert client.calls[0]["temperature"] == pytest.approx(0.1)


def test_interpret_near_me_query():
    reply = json.dumps({
        "food_query": "chicken rice",
        "location_name": None,
        "use_current_location": True,
        "location_intent": "nearby",
        "price": "cheap",
    })
    intent = QueryInterpreter(FakeCompletionClient(reply)).interpret("cheap chicken rice near me").intent
    assert intent.use_current_location is True
    assert intent.price == "cheap"
    assert intent.location_name is None


def test_interpret_wraps_completion_failure_in_parse_error():
    client = FakeCompletionClient(RuntimeError("groq down"))
    with pytest.raises(ParseError, match="groq down"):
        QueryInterpreter(client).interpret("laksa")


def test_interpret_invalid_json_is_parse_error():
    with pytest.raises(ParseError):
        QueryInterpreter(FakeCompletionClient("not json")).interpret("laksa")


def test_interpreter_reports_client_model():
    assert QueryInterpreter(FakeCompletionClient(model="llama-test")).model == "llama-test"
