from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..geocoding.models import Coords
from ..query.models import ParsedIntent

GeocodingSource = Literal["onemap", "fallback", "user_location", "skipped"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class TraceError(_Frozen):
    step: str
    message: str


class ParsingStage(_Frozen):
    prompt: str = ""
    raw_response: str = ""
    parsed: ParsedIntent | None = None
    latency_ms: float = 0.0
    model: str = ""
    error: str | None = None


class GeocodingStage(_Frozen):
    input: str | None = None
    output: Coords | None = None
    source: GeocodingSource = "skipped"
    address: str | None = None
    latency_ms: float = 0.0
    error: str | None = None


class DatabaseStage(_Frozen):
    filters: dict[str, Any] = Field(default_factory=dict)
    row_count: int = 0
    latency_ms: float = 0.0
    error: str | None = None


class DistanceFilterStage(_Frozen):
    center: Coords | None = None
    radius_km: float = 0.0
    before_count: int = 0
    after_count: int = 0
    latency_ms: float = 0.0


class RankingStage(_Frozen):
    engine: str = ""
    food_query: str = ""
    candidate_count: int = 0
    prompt: str = ""
    raw_response: str = ""
    ranked_ids: list[str] = Field(default_factory=list)
    reasoning: str | None = None
    latency_ms: float = 0.0
    similarity_latency_ms: float = 0.0
    rerank_requested: bool = False
    model: str = ""
    error: str | None = None


class TraceTimings(_Frozen):
    parsing_ms: float
    geocoding_ms: float
    database_ms: float
    distance_filter_ms: float
    ranking_ms: float
    total_ms: float


class TraceCounts(_Frozen):
    db_results: int
    after_distance_filter: int
    final_results: int


class TraceSummary(_Frozen):
    trace_id: str
    timings: TraceTimings
    counts: TraceCounts
    error_count: int = 0


def generate_trace_id() -> str:
    return f"trace_{int(time.time() * 1000):x}_{secrets.token_hex(3)}"


class SearchTrace(_Frozen):
    """
    Accumulated record of one search. Each stage produces a new trace value
    via ``with_stage`` / ``with_error``; nothing mutates a trace in place.
    """

    trace_id: str = Field(default_factory=generate_trace_id)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    raw_query: str
    user_location: Coords | None = None

    parsing: ParsingStage = Field(default_factory=ParsingStage)
    geocoding: GeocodingStage = Field(default_factory=GeocodingStage)
    database: DatabaseStage = Field(default_factory=DatabaseStage)
    distance_filter: DistanceFilterStage = Field(default_factory=DistanceFilterStage)
    ranking: RankingStage = Field(default_factory=RankingStage)

    result_count: int = 0
    total_latency_ms: float = 0.0
    errors: list[TraceError] = Field(default_factory=list)

    def with_stage(self, name: str, stage: _Frozen) -> SearchTrace:
        if name not in {"parsing", "geocoding", "database", "distance_filter", "ranking"}:
            raise ValueError(f"Unknown trace stage: {name}")
        return self.model_copy(update={name: stage})

    def with_error(self, step: str, message: str) -> SearchTrace:
        return self.model_copy(update={"errors": [*self.errors, TraceError(step=step, message=message)]})

    def finalized(self, result_count: int) -> SearchTrace:
        total = (
            self.parsing.latency_ms
            + self.geocoding.latency_ms
            + self.database.latency_ms
            + self.distance_filter.latency_ms
            + self.ranking.similarity_latency_ms
            + self.ranking.latency_ms
        )
        return self.model_copy(update={"result_count": result_count, "total_latency_ms": round(total, 1)})

    def summarize(self) -> TraceSummary:
        return TraceSummary(
            trace_id=self.trace_id,
            timings=TraceTimings(
                parsing_ms=self.parsing.latency_ms,
                geocoding_ms=self.geocoding.latency_ms,
                database_ms=self.database.latency_ms,
                distance_filter_ms=self.distance_filter.latency_ms,
                ranking_ms=round(self.ranking.similarity_latency_ms + self.ranking.latency_ms, 1),
                total_ms=self.total_latency_ms,
            ),
            counts=TraceCounts(
                db_results=self.database.row_count,
                after_distance_filter=self.distance_filter.after_count,
                final_results=self.result_count,
            ),
            error_count=len(self.errors),
        )


def new_trace(raw_query: str, user_location: Coords | None = None) -> SearchTrace:
    return SearchTrace(raw_query=raw_query, user_location=user_location)
