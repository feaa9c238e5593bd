from __future__ import annotations

from pydantic import BaseModel, Field

from ..stalls.models import StallRecord

NO_CANDIDATES_REASONING = "No candidates to rank"


class RankingResult(BaseModel):
    """Place ids, most relevant first; always a duplicate-free subset of the candidates."""

    ranked_ids: list[str] = Field(default_factory=list)
    reasoning: str | None = None


class RankingRun(BaseModel):
    """One invocation of a ranking engine, with what the trace needs to know about it."""

    engine: str
    result: RankingResult
    ranked: list[StallRecord] = Field(default_factory=list)
    prompt: str = ""
    raw_response: str = ""
    model: str = ""
    latency_ms: float = 0.0
    errors: list[str] = Field(default_factory=list)
