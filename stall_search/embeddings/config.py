from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"


@dataclass(frozen=True)
class EmbeddingConfig:
    model_name: str = "intfloat/multilingual-e5-base"
    dimension: int = 768
    # E5 models expect role prefixes on both sides of the comparison.
    query_prefix: str = "query: "
    passage_prefix: str = "passage: "
    embeddings_path: Path = Path(os.getenv("STALL_DATA_DIR", str(_DEFAULT_DATA_DIR))) / "embeddings.npy"


DEFAULT_EMBEDDING_CONFIG = EmbeddingConfig()
