from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from stall_search.stalls import data_store
from stall_search.stalls.store import StallStore
from stall_search.tests.fakes import SAMPLE_EMBEDDINGS, SAMPLE_STALLS, CollectingRecorder, keyword_encoder


@pytest.fixture
def stall_df() -> pd.DataFrame:
    return pd.DataFrame(SAMPLE_STALLS)


@pytest.fixture
def store(stall_df) -> StallStore:
    return StallStore(stall_df, SAMPLE_EMBEDDINGS, query_encoder=keyword_encoder)


@pytest.fixture
def store_without_embeddings(stall_df) -> StallStore:
    return StallStore(stall_df)


@pytest.fixture
def stall_data_dir(tmp_path, monkeypatch):
    """Sample stalls written to stalls.csv / embeddings.npy with blank cells, as a real export has."""
    rows = [dict(s) for s in SAMPLE_STALLS]
    rows[1].update(category=None, location="", review_summary="", source_url=None)
    for row in rows:
        row["operating_hours"] = 24 if row["place_id"] == "1" else None
    pd.DataFrame(rows).drop(columns=["embedding"]).to_csv(tmp_path / "stalls.csv", index=False)
    np.save(tmp_path / "embeddings.npy", SAMPLE_EMBEDDINGS)

    monkeypatch.setattr(data_store, "_STALLS_CSV", tmp_path / "stalls.csv")
    monkeypatch.setattr(data_store, "_EMBEDDINGS_NPY", tmp_path / "embeddings.npy")
    monkeypatch.setattr(data_store, "_df", None)
    monkeypatch.setattr(data_store, "_embeddings", None)
    return tmp_path


@pytest.fixture
def csv_store(stall_data_dir) -> StallStore:
    return StallStore(data_store.get_dataframe(), data_store.get_embeddings(), query_encoder=keyword_encoder)


@pytest.fixture
def recorder() -> CollectingRecorder:
    return CollectingRecorder()
