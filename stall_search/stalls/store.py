from __future__ import annotations

import logging
from typing import Any, Callable

import numpy as np
import pandas as pd
from sklearn.metrics.pairwise import cosine_similarity

from .data_store import prepare_dataframe
from .models import StallRecord
from .pricing import AFFORDABILITY_BUCKETS, EXCLUSIVE_PRICE_POLICY, PricePolicy

logger = logging.getLogger(__name__)

OPEN_STATUS = "open"
_HELPER_COLUMNS = {"status_lower", "cuisine_lower"}


class StoreUnavailableError(RuntimeError):
    """Raised when a lookup needs data the store has not loaded."""


def _clean(value: Any) -> Any:
    if isinstance(value, (list, tuple, np.ndarray)):
        return list(value)
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def row_to_record(row: pd.Series, **computed: Any) -> StallRecord:
    data = {k: _clean(v) for k, v in row.items() if k not in _HELPER_COLUMNS}
    data.update(computed)
    return StallRecord.model_validate(data)


class StallStore:
    """
    Read-only stall catalogue backed by a DataFrame and an optional
    embedding matrix whose rows line up with the DataFrame's rows.
    """

    def __init__(
        self,
        df: pd.DataFrame,
        embeddings: np.ndarray | None = None,
        query_encoder: Callable[[str], np.ndarray] | None = None,
    ) -> None:
        self._df = prepare_dataframe(df)
        if embeddings is not None and len(embeddings) != len(self._df):
            raise ValueError(
                f"Embedding rows ({len(embeddings)}) do not match stall rows ({len(self._df)})"
            )
        self._embeddings = embeddings
        self._query_encoder = query_encoder

    @property
    def size(self) -> int:
        return len(self._df)

    def _open_mask(self) -> pd.Series:
        return self._df["status_lower"] == OPEN_STATUS

    def fetch_open_stalls(
        self,
        cuisine: str | None = None,
        price: str | None = None,
        policy: PricePolicy = EXCLUSIVE_PRICE_POLICY,
    ) -> list[StallRecord]:
        """Open stalls matching a cuisine substring and the policy's price buckets."""
        df = self._df
        mask = self._open_mask()

        if cuisine and cuisine.strip():
            needle = cuisine.strip().lower()
            mask = mask & df["cuisine_lower"].str.contains(needle, regex=False, na=False)

        buckets = policy.buckets_for(price)
        if buckets:
            mask = mask & df["affordability"].isin(buckets)

        return [row_to_record(row) for _, row in df.loc[mask].iterrows()]

    def semantic_search(
        self,
        query_text: str,
        threshold: float = 0.3,
        limit: int = 20,
    ) -> list[StallRecord]:
        """Open stalls whose embedding is at least ``threshold`` similar to the query, best first."""
        if self._embeddings is None or self._query_encoder is None:
            raise StoreUnavailableError("Stall embeddings are not loaded")

        query_vec = np.asarray(self._query_encoder(query_text), dtype=float).reshape(1, -1)
        scores = cosine_similarity(query_vec, self._embeddings).flatten()

        scored = self._df.assign(_similarity=scores)
        scored = scored.loc[self._open_mask() & (scored["_similarity"] >= threshold)]
        top = scored.nlargest(limit, "_similarity")

        return [
            row_to_record(row.drop(labels=["_similarity"]), similarity=float(row["_similarity"]))
            for _, row in top.iterrows()
        ]

    def cuisines(self) -> list[str]:
        values = self._df.loc[self._open_mask(), "cuisine"].dropna().astype(str)
        return sorted({v.strip() for v in values if v.strip()})

    def affordability_buckets(self) -> list[str]:
        present = set(self._df["affordability"].dropna().astype(str))
        known = [b for b in AFFORDABILITY_BUCKETS if b in present]
        return known + sorted(present - set(known))
