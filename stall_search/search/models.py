from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ..geocoding.models import Coords
from ..query.models import ParsedIntent
from ..stalls.models import StallOut
from ..tracing.trace import SearchTrace, TraceSummary


class SearchStage(str, Enum):
    parsing = "parsing"
    locating = "geocoding"
    retrieving = "database"
    filtering = "distance_filter"
    ranking = "ranking"
    done = "done"


class SearchOptions(BaseModel):
    use_llm_ranking: bool = True
    use_rerank: bool = False
    debug: bool = False


class AgentSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    use_llm_ranking: bool = True
    use_rerank: bool = False
    debug: bool = False

    @property
    def user_location(self) -> Coords | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coords(lat=self.latitude, lng=self.longitude)

    @property
    def options(self) -> SearchOptions:
        return SearchOptions(
            use_llm_ranking=self.use_llm_ranking,
            use_rerank=self.use_rerank,
            debug=self.debug,
        )


class SearchResponse(BaseModel):
    results: list[StallOut]
    parsed_intent: ParsedIntent
    search_center: Coords | None = None
    reasoning: str | None = None
    trace_summary: TraceSummary
    trace: SearchTrace | None = None


class GuidedSearchRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    cuisine: str | None = None
    proximity: str | None = Field(default=None, description='Radius label, e.g. "2 km"')
    affordability: str | None = Field(default=None, description='"$", "$$" or "$$$"')
    comments: str | None = Field(default=None, max_length=500)


class FreeSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    use_rerank: bool = False


class ModeSearchResponse(BaseModel):
    results: list[StallOut]
    total_candidates: int
    reasoning: str | None = None


class SearchLogRequest(BaseModel):
    search_mode: str = Field(..., min_length=1)
    query: str | None = None
    cuisine: str | None = None
    proximity: str | None = None
    affordability: str | None = None
    comments: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    results_count: int | None = Field(default=None, ge=0)
