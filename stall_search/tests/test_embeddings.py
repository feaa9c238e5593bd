from unittest.mock import patch

import numpy as np
import pandas as pd

from stall_search.embeddings import encoder, precompute
from stall_search.embeddings.config import DEFAULT_EMBEDDING_CONFIG


@patch("stall_search.embeddings.encoder.SentenceTransformer")
def test_encode_query_uses_query_prefix_and_normalises(mock_st_cls):
    mock_st_cls.return_value.encode.return_value = np.ones(768)

    with patch.object(encoder, "_model", None):
        vec = encoder.encode_query("spicy laksa")

    assert vec.shape == (768,)
    args, kwargs = mock_st_cls.return_value.encode.call_args
    assert args[0] == "query: spicy laksa"
    assert kwargs["normalize_embeddings"] is True
    mock_st_cls.assert_called_once_with(DEFAULT_EMBEDDING_CONFIG.model_name)


@patch("stall_search.embeddings.encoder.SentenceTransformer")
def test_encode_passages_uses_passage_prefix(mock_st_cls):
    mock_st_cls.return_value.encode.return_value = np.zeros((2, 768))

    with patch.object(encoder, "_model", None):
        out = encoder.encode_passages(["Chicken rice", "Laksa"])

    assert out.shape == (2, 768)
    args, _ = mock_st_cls.return_value.encode.call_args
    assert args[0] == ["passage: Chicken rice", "passage: Laksa"]


@patch("stall_search.embeddings.encoder.SentenceTransformer")
def test_model_is_loaded_once(mock_st_cls):
    mock_st_cls.return_value.encode.return_value = np.ones(768)

    with patch.object(encoder, "_model", None):
        encoder.encode_query("a")
        encoder.encode_query("b")

    mock_st_cls.assert_called_once()


def test_build_text_skips_missing_fields():
    row = pd.Series({
        "name": "Tian Tian",
        "category": None,
        "cuisine": "Chinese",
        "recommended_dishes": "Chicken Rice",
        "review_summary": float("nan"),
    })
    assert precompute.build_text(row) == "Tian Tian Chinese Chicken Rice"
