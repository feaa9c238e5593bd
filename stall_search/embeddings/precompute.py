"""
Offline script to precompute stall embeddings.

Usage:
    python -m stall_search.embeddings.precompute
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from .config import DEFAULT_EMBEDDING_CONFIG
from .encoder import encode_passages

_STALLS_CSV = DEFAULT_EMBEDDING_CONFIG.embeddings_path.parent / "stalls.csv"


def build_text(row: pd.Series) -> str:
    parts: list[str] = []
    for column in ("name", "category", "cuisine", "recommended_dishes", "review_summary"):
        value = row.get(column)
        if pd.notna(value) and str(value).strip():
            parts.append(str(value).strip())
    return " ".join(parts)


def run_precompute() -> None:
    df = pd.read_csv(_STALLS_CSV)
    texts = df.apply(build_text, axis=1).tolist()

    print(f"Encoding {len(texts)} stalls ...")
    embeddings = encode_passages(texts)

    out_path = DEFAULT_EMBEDDING_CONFIG.embeddings_path
    np.save(out_path, embeddings)
    print(f"Saved embeddings ({embeddings.shape}) to {out_path}")


if __name__ == "__main__":
    run_precompute()
