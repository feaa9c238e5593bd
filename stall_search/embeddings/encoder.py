from __future__ import annotations

import numpy as np
from sentence_transformers import SentenceTransformer

from .config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig

_model: SentenceTransformer | None = None


def _get_model(config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> SentenceTransformer:
    global _model
    if _model is None:
        _model = SentenceTransformer(config.model_name)
    return _model


def encode_query(text: str, config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> np.ndarray:
    """Encode a search query into a normalised 1-D embedding vector."""
    model = _get_model(config)
    return model.encode(
        f"{config.query_prefix}{text}",
        normalize_embeddings=True,
        show_progress_bar=False,
    )


def encode_passages(texts: list[str], config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> np.ndarray:
    """Encode stall descriptions into a 2-D array of shape (N, dim)."""
    model = _get_model(config)
    return model.encode(
        [f"{config.passage_prefix}{t}" for t in texts],
        normalize_embeddings=True,
        show_progress_bar=True,
        batch_size=64,
    )
