import pandas as pd
import pytest

from stall_search.stalls.models import StallOut, StallRecord, format_stall
from stall_search.stalls.pricing import (
    AFFORDABLE,
    CUMULATIVE_PRICE_POLICY,
    EXCLUSIVE_PRICE_POLICY,
    MID_RANGE,
    PREMIUM,
)
from stall_search.stalls import data_store
from stall_search.stalls.store import StallStore, StoreUnavailableError
from stall_search.tests.fakes import SAMPLE_EMBEDDINGS, keyword_encoder

# ── Records ──────────────────────────────────────────────────────────────


@pytest.mark.parametrize("raw,expected", [
    ('["Chicken Rice", "Char Siew"]', ["Chicken Rice", "Char Siew"]),
    ("{Beef Rendang,Ayam Bakar}", ["Beef Rendang", "Ayam Bakar"]),
    ("Laksa; Otah ;", ["Laksa", "Otah"]),
    (["Satay", None, " "], ["Satay"]),
    (None, []),
    ("nan", []),
])
def test_recommended_dishes_parsing(raw, expected):
    stall = StallRecord(place_id="x", name="X", recommended_dishes=raw)
    assert stall.recommended_dishes == expected


def test_record_ignores_store_only_columns_and_stringifies_id():
    stall = StallRecord.model_validate({"place_id": 42, "name": "X", "embedding": [0.1, 0.2]})
    assert stall.place_id == "42"
    assert not hasattr(stall, "embedding")


def test_format_stall_public_view():
    stall = StallRecord(
        place_id="1", name="Tian Tian", status="open", distance=0.123456,
        similarity=0.9, adjusted_score=0.8,
    )
    out = format_stall(stall)
    assert isinstance(out, StallOut)
    assert out.distance == 0.123
    dumped = out.model_dump()
    for hidden in ("status", "similarity", "adjusted_score", "embedding"):
        assert hidden not in dumped


# ── Price policies ───────────────────────────────────────────────────────


def test_exclusive_policy_maps_one_bucket_each():
    assert EXCLUSIVE_PRICE_POLICY.buckets_for("cheap") == [AFFORDABLE]
    assert EXCLUSIVE_PRICE_POLICY.buckets_for("moderate") == [MID_RANGE]
    assert EXCLUSIVE_PRICE_POLICY.buckets_for("expensive") == [PREMIUM]
    assert EXCLUSIVE_PRICE_POLICY.buckets_for(None) is None
    assert EXCLUSIVE_PRICE_POLICY.buckets_for("luxury") is None


def test_cumulative_policy_includes_cheaper_tiers():
    assert CUMULATIVE_PRICE_POLICY.buckets_for("$") == [AFFORDABLE]
    assert CUMULATIVE_PRICE_POLICY.buckets_for("$$") == [AFFORDABLE, MID_RANGE]
    assert CUMULATIVE_PRICE_POLICY.buckets_for("$$$") == [AFFORDABLE, MID_RANGE, PREMIUM]
    assert CUMULATIVE_PRICE_POLICY.buckets_for("Affordable (< S$10)") == ["Affordable (< S$10)"]


# ── Store ────────────────────────────────────────────────────────────────


def test_fetch_open_stalls_excludes_closed(store):
    ids = {s.place_id for s in store.fetch_open_stalls()}
    assert ids == {"1", "2", "3", "5", "6"}


def test_fetch_open_stalls_cuisine_substring_case_insensitive(store):
    ids = {s.place_id for s in store.fetch_open_stalls(cuisine="chin")}
    assert ids == {"1", "2", "5"}


def test_fetch_open_stalls_moderate_is_mid_range_only(store):
    stalls = store.fetch_open_stalls(price="moderate")
    assert [s.place_id for s in stalls] == ["3"]
    assert all(s.affordability == MID_RANGE for s in stalls)


def test_fetch_open_stalls_cumulative_policy(store):
    ids = {s.place_id for s in store.fetch_open_stalls(price="$$", policy=CUMULATIVE_PRICE_POLICY)}
    assert ids == {"1", "2", "3", "6"}


def test_fetch_open_stalls_records_are_typed(store):
    stall = next(s for s in store.fetch_open_stalls() if s.place_id == "1")
    assert stall.recommended_dishes == ["Chicken Rice", "Roasted Chicken"]
    assert stall.latitude == pytest.approx(1.3010)
    satay = next(s for s in store.fetch_open_stalls() if s.place_id == "6")
    assert satay.latitude is None


def test_semantic_search_threshold_and_order(store):
    matches = store.semantic_search("chicken rice", threshold=0.3, limit=20)
    assert [m.place_id for m in matches] == ["1", "2"]
    assert matches[0].similarity == pytest.approx(1.0)
    assert matches[0].similarity >= matches[1].similarity >= 0.3


def test_semantic_search_skips_closed_stalls(store):
    ids = [m.place_id for m in store.semantic_search("laksa noodles", threshold=0.3)]
    assert "4" not in ids
    assert ids[0] == "5"


def test_semantic_search_respects_limit(store):
    assert len(store.semantic_search("nasi rendang", threshold=0.0, limit=2)) == 2


def test_semantic_search_without_embeddings_raises(store_without_embeddings):
    with pytest.raises(StoreUnavailableError):
        store_without_embeddings.semantic_search("laksa")


def test_store_rejects_misaligned_embeddings(stall_df):
    with pytest.raises(ValueError):
        StallStore(stall_df, SAMPLE_EMBEDDINGS[:2], query_encoder=keyword_encoder)


def test_metadata_helpers(store):
    assert store.size == 6
    assert store.cuisines() == ["Chinese", "Malay"]
    assert store.affordability_buckets() == [AFFORDABLE, MID_RANGE, PREMIUM]


def test_missing_status_column_defaults_to_open():
    store = StallStore(pd.DataFrame([{"place_id": "9", "name": "No Status"}]))
    assert [s.place_id for s in store.fetch_open_stalls()] == ["9"]


# ── CSV load path ────────────────────────────────────────────────────────


def test_record_accepts_blank_and_numeric_cells():
    stall = StallRecord.model_validate({
        "place_id": "7", "name": "Blank Cells", "category": None, "review_summary": None,
        "source_url": None, "operating_hours": 24.0, "status": None,
    })
    assert stall.category == ""
    assert stall.review_summary == ""
    assert stall.source_url == ""
    assert stall.operating_hours == "24.0"
    assert stall.status == "open"


def test_csv_store_fetch_open_stalls_tolerates_blank_cells(csv_store):
    stalls = {s.place_id: s for s in csv_store.fetch_open_stalls()}

    assert set(stalls) == {"1", "2", "3", "5", "6"}
    ah_tai = stalls["2"]
    assert (ah_tai.category, ah_tai.location, ah_tai.review_summary, ah_tai.source_url) == ("", "", "", "")
    assert ah_tai.operating_hours is None
    assert isinstance(stalls["1"].operating_hours, str)
    assert stalls["1"].recommended_dishes == ["Chicken Rice", "Roasted Chicken"]
    assert stalls["5"].date_published is None
    assert stalls["6"].latitude is None


def test_csv_store_semantic_search(csv_store):
    matches = csv_store.semantic_search("chicken rice", threshold=0.3, limit=20)
    assert [m.place_id for m in matches] == ["1", "2"]
    assert matches[1].review_summary == ""


def test_data_store_loads_once(stall_data_dir):
    first = data_store.get_dataframe()
    assert data_store.get_dataframe() is first
    assert len(first) == 6
    assert data_store.get_embeddings().shape == (6, 3)
