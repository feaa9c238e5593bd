from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from sqlalchemy import JSON, Column, DateTime, Float, Integer, MetaData, Table, Text, create_engine, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .config import DEFAULT_TRACE_CONFIG, TraceConfig
from .trace import SearchTrace

logger = logging.getLogger(__name__)

# Dedicated logger for human-readable trace dumps.
trace_logger = logging.getLogger("stall_search.trace")


class TraceSink(Protocol):
    def write(self, trace: SearchTrace) -> None: ...


# ============================================================================
# LOGGING SINK
# ============================================================================


def format_trace(trace: SearchTrace) -> str:
    lines = [
        "========== AGENT SEARCH TRACE ==========",
        f"Trace ID: {trace.trace_id}",
        f'Query: "{trace.raw_query}"',
        "--- Parsing ---",
        f"  Model: {trace.parsing.model} | Latency: {trace.parsing.latency_ms}ms",
        f"  Parsed: {trace.parsing.parsed.model_dump() if trace.parsing.parsed else None}",
        "--- Geocoding ---",
        f"  Source: {trace.geocoding.source} | Input: {trace.geocoding.input}",
        f"  Output: {trace.geocoding.output.model_dump() if trace.geocoding.output else None}"
        f" | Latency: {trace.geocoding.latency_ms}ms",
        "--- Database ---",
        f"  Filters: {trace.database.filters} | Rows: {trace.database.row_count}"
        f" | Latency: {trace.database.latency_ms}ms",
        "--- Distance Filter ---",
        f"  Radius: {trace.distance_filter.radius_km}km"
        f" | Before: {trace.distance_filter.before_count} | After: {trace.distance_filter.after_count}",
        "--- Ranking ---",
        f"  Engine: {trace.ranking.engine} | Model: {trace.ranking.model}"
        f" | Candidates: {trace.ranking.candidate_count} | Latency: {trace.ranking.latency_ms}ms",
        f"  Reasoning: {trace.ranking.reasoning}",
        "--- Results ---",
        f"  Final count: {trace.result_count} | Total latency: {trace.total_latency_ms}ms",
    ]
    if trace.errors:
        lines.append("--- Errors ---")
        lines.extend(f"  [{e.step}] {e.message}" for e in trace.errors)
    lines.append("========================================")
    return "\n".join(lines)


class LoggingTraceSink:
    def write(self, trace: SearchTrace) -> None:
        trace_logger.info(format_trace(trace))


# ============================================================================
# SQL SINK
# ============================================================================

metadata = MetaData()


def build_trace_table(name: str = "agent_search_traces", meta: MetaData = metadata) -> Table:
    return Table(
        name,
        meta,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("trace_id", Text, unique=True, nullable=False),
        Column("timestamp", DateTime(timezone=True), nullable=False),
        Column("raw_query", Text, nullable=False),
        Column("user_location", JSON),
        Column("parsed_query", JSON),
        Column("parsing_latency_ms", Float),
        Column("parsing_model", Text),
        Column("geocoding_source", Text),
        Column("search_center", JSON),
        Column("geocoding_latency_ms", Float),
        Column("db_filters", JSON),
        Column("db_row_count", Integer),
        Column("database_latency_ms", Float),
        Column("distance_radius_km", Float),
        Column("candidates_before_distance", Integer),
        Column("candidates_after_distance", Integer),
        Column("ranking_engine", Text),
        Column("ranked_ids", JSON),
        Column("ranking_reasoning", Text),
        Column("ranking_latency_ms", Float),
        Column("ranking_model", Text),
        Column("result_count", Integer),
        Column("total_latency_ms", Float),
        Column("errors", JSON),
        Column("created_at", DateTime(timezone=True), server_default=func.now()),
    )


agent_search_traces = build_trace_table()


def trace_to_row(trace: SearchTrace) -> dict[str, Any]:
    return {
        "trace_id": trace.trace_id,
        "timestamp": trace.timestamp,
        "raw_query": trace.raw_query,
        "user_location": trace.user_location.model_dump() if trace.user_location else None,
        "parsed_query": trace.parsing.parsed.model_dump() if trace.parsing.parsed else None,
        "parsing_latency_ms": trace.parsing.latency_ms,
        "parsing_model": trace.parsing.model,
        "geocoding_source": trace.geocoding.source,
        "search_center": trace.geocoding.output.model_dump() if trace.geocoding.output else None,
        "geocoding_latency_ms": trace.geocoding.latency_ms,
        "db_filters": trace.database.filters,
        "db_row_count": trace.database.row_count,
        "database_latency_ms": trace.database.latency_ms,
        "distance_radius_km": trace.distance_filter.radius_km,
        "candidates_before_distance": trace.distance_filter.before_count,
        "candidates_after_distance": trace.distance_filter.after_count,
        "ranking_engine": trace.ranking.engine,
        "ranked_ids": list(trace.ranking.ranked_ids),
        "ranking_reasoning": trace.ranking.reasoning,
        "ranking_latency_ms": trace.ranking.latency_ms,
        "ranking_model": trace.ranking.model,
        "result_count": trace.result_count,
        "total_latency_ms": trace.total_latency_ms,
        "errors": [e.model_dump() for e in trace.errors] or None,
    }


class SqlTraceSink:
    """Insert traces into ``agent_search_traces``; a missing table only logs a warning."""

    def __init__(self, engine: Engine, table: Table = agent_search_traces) -> None:
        self.engine = engine
        self.table = table

    @classmethod
    def from_url(cls, url: str, table_name: str = "agent_search_traces") -> SqlTraceSink:
        engine = create_engine(url, pool_pre_ping=True, future=True)
        table = agent_search_traces if table_name == agent_search_traces.name else build_trace_table(
            table_name, MetaData()
        )
        return cls(engine, table)

    def write(self, trace: SearchTrace) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(self.table.insert().values(**trace_to_row(trace)))
        except SQLAlchemyError as exc:
            logger.warning("Failed to log trace %s to %s: %s", trace.trace_id, self.table.name, exc)


# ============================================================================
# RECORDER
# ============================================================================


class TraceRecorder:
    """Fan a finished trace out to every sink. Never raises."""

    def __init__(self, sinks: Sequence[TraceSink] = ()) -> None:
        self.sinks = list(sinks)

    def emit(self, trace: SearchTrace) -> None:
        for sink in self.sinks:
            try:
                sink.write(trace)
            except Exception:
                logger.warning("Trace sink %s failed", type(sink).__name__, exc_info=True)


def build_recorder(config: TraceConfig = DEFAULT_TRACE_CONFIG) -> TraceRecorder:
    sinks: list[TraceSink] = []
    if config.log_traces:
        sinks.append(LoggingTraceSink())
    if config.database_url:
        sinks.append(SqlTraceSink.from_url(config.database_url, config.table_name))
    return TraceRecorder(sinks)
