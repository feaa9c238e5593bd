"""
Agent search pipeline.

    PARSING -> LOCATING -> RETRIEVING -> FILTERING -> RANKING -> DONE

Only PARSING is fatal. Every other stage catches its own failure, records it
in the trace and hands the next stage a well-defined fallback value. The
trace is threaded through the stages as an immutable accumulator and given
to the recorder once the response is built.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from ..geocoding.models import Coords
from ..geocoding.resolver import LocationResolver
from ..query.interpreter import PARSE_SYSTEM_PROMPT, ParseError, QueryInterpreter
from ..query.models import ParsedIntent
from ..ranking.llm_ranker import LLMRanker
from ..ranking.models import NO_CANDIDATES_REASONING, RankingResult, RankingRun
from ..ranking.weighted import WeightedRanker
from ..scoring.utils import filter_by_distance
from ..stalls.models import StallRecord, format_stall
from ..stalls.pricing import EXCLUSIVE_PRICE_POLICY
from ..stalls.store import StallStore
from ..tracing.sink import TraceRecorder
from ..tracing.trace import (
    DatabaseStage,
    DistanceFilterStage,
    GeocodingStage,
    ParsingStage,
    RankingStage,
    SearchTrace,
    new_trace,
)
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .models import SearchOptions, SearchResponse, SearchStage

logger = logging.getLogger(__name__)

Scheduler = Callable[[Callable[[SearchTrace], None], SearchTrace], None]


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 1)


def _run_now(emit: Callable[[SearchTrace], None], trace: SearchTrace) -> None:
    emit(trace)


@dataclass
class SearchServices:
    """External capabilities the pipeline depends on, injected at construction."""

    interpreter: QueryInterpreter
    resolver: LocationResolver
    store: StallStore
    llm_ranker: LLMRanker
    weighted_ranker: WeightedRanker
    recorder: TraceRecorder


class SearchOrchestrator:
    def __init__(self, services: SearchServices, config: SearchConfig = DEFAULT_SEARCH_CONFIG) -> None:
        self.services = services
        self.config = config

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def search(
        self,
        raw_query: str,
        user_location: Coords | None = None,
        options: SearchOptions | None = None,
        schedule: Scheduler | None = None,
    ) -> SearchResponse:
        """
        Run one agent search.

        ``schedule(emit, trace)`` decides when the finished trace is
        persisted; the HTTP layer passes a background-task scheduler so
        persistence happens after the response is sent. Raises
        ``ParseError`` when the query cannot be interpreted.
        """
        options = options or SearchOptions()
        schedule = schedule or _run_now
        trace = new_trace(raw_query, user_location)

        intent, trace, parse_error = self._parse(raw_query, trace)
        if parse_error is not None:
            schedule(self.services.recorder.emit, trace.finalized(result_count=0))
            raise parse_error

        center, trace = self._locate(intent, user_location, trace)
        candidates, trace = self._retrieve(intent, trace)
        candidates, trace = self._filter(candidates, center, trace)
        run, trace = self._rank(intent, candidates, options, trace)

        results = self._assemble(run, candidates)
        trace = trace.finalized(result_count=len(results))
        logger.debug("Search %s reached %s with %d results", trace.trace_id, SearchStage.done.value, len(results))

        response = SearchResponse(
            results=[format_stall(s) for s in results],
            parsed_intent=intent,
            search_center=center,
            reasoning=run.result.reasoning,
            trace_summary=trace.summarize(),
            trace=trace if options.debug else None,
        )
        schedule(self.services.recorder.emit, trace)
        return response

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _parse(
        self, raw_query: str, trace: SearchTrace
    ) -> tuple[ParsedIntent | None, SearchTrace, ParseError | None]:
        interpreter = self.services.interpreter
        start_time = time.time()
        try:
            intent, latency_ms, raw_response = interpreter.interpret(raw_query)
        except ParseError as exc:
            stage = ParsingStage(
                prompt=PARSE_SYSTEM_PROMPT,
                raw_response=exc.excerpt,
                latency_ms=_elapsed_ms(start_time),
                model=interpreter.model,
                error=str(exc),
            )
            logger.warning("Query interpretation failed for %r: %s", raw_query, exc)
            trace = trace.with_stage(SearchStage.parsing.value, stage).with_error(SearchStage.parsing.value, str(exc))
            return None, trace, exc

        stage = ParsingStage(
            prompt=PARSE_SYSTEM_PROMPT,
            raw_response=raw_response,
            parsed=intent,
            latency_ms=latency_ms,
            model=interpreter.model,
        )
        return intent, trace.with_stage(SearchStage.parsing.value, stage), None

    def _locate(
        self,
        intent: ParsedIntent,
        user_location: Coords | None,
        trace: SearchTrace,
    ) -> tuple[Coords | None, SearchTrace]:
        step = SearchStage.locating.value
        use_user_location = intent.use_current_location and user_location is not None

        if intent.location_name:
            start_time = time.time()
            error: str | None = None
            try:
                result = self.services.resolver.resolve(intent.location_name)
            except Exception as exc:
                logger.warning("Location resolver raised for %r", intent.location_name, exc_info=True)
                result = None
                error = f"Geocoding failed for {intent.location_name!r}: {exc}"
            latency_ms = _elapsed_ms(start_time)

            if result is not None:
                center = result.coords
                stage = GeocodingStage(
                    input=intent.location_name,
                    output=center,
                    source=result.source,
                    address=result.address,
                    latency_ms=latency_ms,
                )
                return center, trace.with_stage(step, stage)

            error = error or f"Could not geocode {intent.location_name!r}"
            trace = trace.with_error(step, error)
            if use_user_location:
                stage = GeocodingStage(
                    input=intent.location_name,
                    output=user_location,
                    source="user_location",
                    latency_ms=latency_ms,
                    error=error,
                )
                return user_location, trace.with_stage(step, stage)

            stage = GeocodingStage(input=intent.location_name, latency_ms=latency_ms, error=error)
            return None, trace.with_stage(step, stage)

        if use_user_location:
            stage = GeocodingStage(output=user_location, source="user_location")
            return user_location, trace.with_stage(step, stage)

        return None, trace.with_stage(step, GeocodingStage(source="skipped"))

    def _retrieve(self, intent: ParsedIntent, trace: SearchTrace) -> tuple[list[StallRecord], SearchTrace]:
        step = SearchStage.retrieving.value
        filters = {
            "status": "open",
            "cuisine": intent.cuisine,
            "price": intent.price,
            "affordability": EXCLUSIVE_PRICE_POLICY.buckets_for(intent.price),
        }

        start_time = time.time()
        try:
            candidates = self.services.store.fetch_open_stalls(
                cuisine=intent.cuisine,
                price=intent.price,
                policy=EXCLUSIVE_PRICE_POLICY,
            )
        except Exception as exc:
            logger.warning("Stall retrieval failed", exc_info=True)
            message = f"Stall retrieval failed: {exc}"
            stage = DatabaseStage(filters=filters, latency_ms=_elapsed_ms(start_time), error=message)
            return [], trace.with_stage(step, stage).with_error(step, message)

        stage = DatabaseStage(filters=filters, row_count=len(candidates), latency_ms=_elapsed_ms(start_time))
        return candidates, trace.with_stage(step, stage)

    def _filter(
        self,
        candidates: list[StallRecord],
        center: Coords | None,
        trace: SearchTrace,
    ) -> tuple[list[StallRecord], SearchTrace]:
        step = SearchStage.filtering.value
        if center is None:
            stage = DistanceFilterStage(before_count=len(candidates), after_count=len(candidates))
            return candidates, trace.with_stage(step, stage)

        start_time = time.time()
        radius_km = self.config.default_radius_km
        filtered = filter_by_distance(candidates, center.lat, center.lng, radius_km)
        stage = DistanceFilterStage(
            center=center,
            radius_km=radius_km,
            before_count=len(candidates),
            after_count=len(filtered),
            latency_ms=_elapsed_ms(start_time),
        )
        return filtered, trace.with_stage(step, stage)

    def _similarities(self, food_query: str, trace: SearchTrace) -> tuple[dict[str, float], float, SearchTrace]:
        start_time = time.time()
        try:
            matches = self.services.store.semantic_search(
                food_query,
                threshold=self.config.semantic_threshold,
                limit=self.config.similarity_lookup_count,
            )
        except Exception as exc:
            logger.warning("Semantic lookup failed, ranking without similarity", exc_info=True)
            trace = trace.with_error("semantic_search", f"Semantic lookup failed: {exc}")
            return {}, _elapsed_ms(start_time), trace
        similarities = {m.place_id: float(m.similarity or 0.0) for m in matches}
        return similarities, _elapsed_ms(start_time), trace

    def _rank(
        self,
        intent: ParsedIntent,
        candidates: list[StallRecord],
        options: SearchOptions,
        trace: SearchTrace,
    ) -> tuple[RankingRun, SearchTrace]:
        step = SearchStage.ranking.value
        engine = "llm" if options.use_llm_ranking else "weighted"

        if not candidates:
            run = RankingRun(
                engine=engine,
                result=RankingResult(ranked_ids=[], reasoning=NO_CANDIDATES_REASONING),
            )
            stage = RankingStage(
                engine=engine,
                food_query=intent.food_query,
                reasoning=run.result.reasoning,
                rerank_requested=options.use_rerank,
            )
            return run, trace.with_stage(step, stage)

        similarity_ms = 0.0
        if options.use_llm_ranking:
            run = self.services.llm_ranker.rank(
                intent.food_query,
                candidates,
                max_candidates=self.config.max_ranking_candidates,
            )
        else:
            similarities, similarity_ms, trace = self._similarities(intent.food_query, trace)
            run = self.services.weighted_ranker.rank(
                intent.food_query,
                candidates,
                similarities=similarities,
                use_rerank=options.use_rerank,
            )

        for message in run.errors:
            trace = trace.with_error(step, message)

        stage = RankingStage(
            engine=run.engine,
            food_query=intent.food_query,
            candidate_count=len(candidates),
            prompt=run.prompt,
            raw_response=run.raw_response,
            ranked_ids=run.result.ranked_ids,
            reasoning=run.result.reasoning,
            latency_ms=run.latency_ms,
            similarity_latency_ms=similarity_ms,
            rerank_requested=options.use_rerank,
            model=run.model,
            error="; ".join(run.errors) or None,
        )
        return run, trace.with_stage(step, stage)

    def _assemble(self, run: RankingRun, candidates: list[StallRecord]) -> list[StallRecord]:
        """Order stalls by ``ranked_ids``; ids without a stall are dropped."""
        by_id: dict[str, StallRecord] = {c.place_id: c for c in candidates}
        # Weighted ranking returns enriched copies (scores attached); prefer those.
        by_id.update({s.place_id: s for s in run.ranked})

        results: list[StallRecord] = []
        for place_id in run.result.ranked_ids:
            stall = by_id.get(place_id)
            if stall is not None:
                results.append(stall)
            if len(results) >= self.config.top_n:
                break
        return results
