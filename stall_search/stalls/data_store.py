from __future__ import annotations

import logging
import os
from pathlib import Path

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

_PROCESSED_DIR = Path(
    os.getenv("STALL_DATA_DIR", str(Path(__file__).resolve().parent.parent / "data" / "processed"))
)
_STALLS_CSV = _PROCESSED_DIR / "stalls.csv"
_EMBEDDINGS_NPY = _PROCESSED_DIR / "embeddings.npy"

_df: pd.DataFrame | None = None
_embeddings: np.ndarray | None = None


def prepare_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """Add the lowercase helper columns the store filters on."""
    df = df.reset_index(drop=True).copy()
    if "status" not in df.columns:
        df["status"] = "open"
    for column in ("cuisine", "affordability"):
        if column not in df.columns:
            df[column] = ""

    df["status_lower"] = df["status"].fillna("").astype(str).str.strip().str.lower()
    df["cuisine_lower"] = df["cuisine"].fillna("").astype(str).str.lower()
    return df


def _load() -> pd.DataFrame:
    return prepare_dataframe(pd.read_csv(_STALLS_CSV, dtype={"place_id": str}))


def get_dataframe() -> pd.DataFrame:
    """Return the in-memory stall DataFrame, loading it on first call."""
    global _df
    if _df is None:
        _df = _load()
        logger.info("Loaded %d stalls from %s", len(_df), _STALLS_CSV)
    return _df


def get_embeddings() -> np.ndarray | None:
    """Return precomputed stall embeddings, or None if file missing."""
    global _embeddings
    if _embeddings is None and _EMBEDDINGS_NPY.exists():
        _embeddings = np.load(_EMBEDDINGS_NPY)
    return _embeddings
