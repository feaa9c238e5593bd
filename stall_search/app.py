from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .analytics.aggregator import compute_analytics
from .analytics.store import get_search_logs, record_search_log
from .embeddings.encoder import encode_query
from .geocoding.config import DEFAULT_GEOCODING_CONFIG
from .geocoding.resolver import LocationResolver, geocoding_status
from .llm.config import DEFAULT_LLM_CONFIG
from .llm.groq_client import GroqCompletionClient
from .query.interpreter import ParseError, QueryInterpreter
from .ranking.llm_ranker import LLMRanker
from .ranking.rerank import CrossEncoderReranker
from .ranking.weighted import WeightedRanker
from .search.models import (
    AgentSearchRequest,
    FreeSearchRequest,
    GuidedSearchRequest,
    ModeSearchResponse,
    SearchLogRequest,
    SearchResponse,
)
from .search.modes import FreeTextSearch, GuidedSearch
from .search.orchestrator import SearchOrchestrator, SearchServices
from .stalls.data_store import get_dataframe, get_embeddings
from .stalls.store import StallStore, StoreUnavailableError
from .tracing.sink import TraceRecorder, build_recorder

logger = logging.getLogger(__name__)

SEARCH_ERROR_DETAIL = "An error occurred during search"

app = FastAPI(title="Hawker Stall Search API", version="1.0.0")


# ── Service providers ────────────────────────────────────────────────────
# Built once per process; tests swap them via app.dependency_overrides.


@lru_cache(maxsize=1)
def get_store() -> StallStore:
    return StallStore(get_dataframe(), get_embeddings(), query_encoder=encode_query)


@lru_cache(maxsize=1)
def get_completion_client() -> GroqCompletionClient:
    return GroqCompletionClient(DEFAULT_LLM_CONFIG)


@lru_cache(maxsize=1)
def get_weighted_ranker() -> WeightedRanker:
    return WeightedRanker(reranker=CrossEncoderReranker())


@lru_cache(maxsize=1)
def get_recorder() -> TraceRecorder:
    return build_recorder()


def get_orchestrator(
    store: StallStore = Depends(get_store),
    client: GroqCompletionClient = Depends(get_completion_client),
    weighted_ranker: WeightedRanker = Depends(get_weighted_ranker),
    recorder: TraceRecorder = Depends(get_recorder),
) -> SearchOrchestrator:
    services = SearchServices(
        interpreter=QueryInterpreter(client),
        resolver=LocationResolver(DEFAULT_GEOCODING_CONFIG),
        store=store,
        llm_ranker=LLMRanker(client),
        weighted_ranker=weighted_ranker,
        recorder=recorder,
    )
    return SearchOrchestrator(services)


def get_guided_search(
    store: StallStore = Depends(get_store),
    ranker: WeightedRanker = Depends(get_weighted_ranker),
) -> GuidedSearch:
    return GuidedSearch(store, ranker)


def get_free_text_search(
    store: StallStore = Depends(get_store),
    ranker: WeightedRanker = Depends(get_weighted_ranker),
) -> FreeTextSearch:
    return FreeTextSearch(store, ranker)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/status")
def status(client: GroqCompletionClient = Depends(get_completion_client)) -> dict[str, Any]:
    return {
        "geocoding": geocoding_status(DEFAULT_GEOCODING_CONFIG),
        "llm": {"enabled": client.available, "model": client.model},
    }


@app.get("/metadata")
def metadata(store: StallStore = Depends(get_store)) -> dict[str, Any]:
    return {
        "total_stalls": store.size,
        "cuisines": store.cuisines(),
        "affordability": store.affordability_buckets(),
    }


# ── Search endpoints ─────────────────────────────────────────────────────


@app.post("/search", response_model=SearchResponse)
def agent_search(
    body: AgentSearchRequest,
    background_tasks: BackgroundTasks,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
) -> SearchResponse | JSONResponse:
    try:
        return orchestrator.search(
            body.query,
            user_location=body.user_location,
            options=body.options,
            schedule=background_tasks.add_task,
        )
    except ParseError:
        logger.exception("Agent search failed for %r", body.query)
        # Returned rather than raised so the already scheduled trace write still runs.
        return JSONResponse(
            status_code=500,
            content={"detail": SEARCH_ERROR_DETAIL},
            background=background_tasks,
        )


@app.post("/search/guided", response_model=ModeSearchResponse)
def guided_search(
    body: GuidedSearchRequest,
    search: GuidedSearch = Depends(get_guided_search),
) -> ModeSearchResponse:
    return search.search(body)


@app.post("/search/free", response_model=ModeSearchResponse)
def free_search(
    body: FreeSearchRequest,
    search: FreeTextSearch = Depends(get_free_text_search),
) -> ModeSearchResponse:
    try:
        return search.search(body)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


# ── Search log & analytics ───────────────────────────────────────────────


@app.post("/log-search")
def log_search(body: SearchLogRequest, request: Request) -> dict[str, str]:
    forwarded = request.headers.get("x-forwarded-for", "")
    ip_address = forwarded.split(",")[0].strip() if forwarded else None
    if not ip_address and request.client:
        ip_address = request.client.host

    record_search_log(
        body.search_mode,
        body.model_dump(exclude={"search_mode"}),
        user_agent=request.headers.get("user-agent", ""),
        ip_address=ip_address,
    )
    return {"status": "recorded"}


@app.get("/analytics")
def analytics() -> dict[str, Any]:
    return compute_analytics(get_search_logs())
