from __future__ import annotations

from collections import Counter
from typing import Any


def compute_analytics(logs: list[dict[str, Any]]) -> dict[str, Any]:
    total = len(logs)

    # Searches per mode
    mode_counter: Counter[str] = Counter(log.get("search_mode") or "unknown" for log in logs)

    # Top cuisines
    cuisine_counter: Counter[str] = Counter()
    for log in logs:
        cuisine = (log.get("cuisine") or "").strip()
        if cuisine:
            cuisine_counter[cuisine.title()] += 1
    top_cuisines = [{"name": n, "count": c} for n, c in cuisine_counter.most_common(10)]

    # Affordability usage
    affordability_counter: Counter[str] = Counter(
        log["affordability"] for log in logs if log.get("affordability")
    )

    # Result counts
    counts = [log["results_count"] for log in logs if isinstance(log.get("results_count"), int)]
    avg_results = round(sum(counts) / len(counts), 1) if counts else 0.0
    zero_results = sum(1 for c in counts if c == 0)

    # Searches that sent a location
    with_location = sum(
        1 for log in logs if log.get("latitude") is not None and log.get("longitude") is not None
    )

    return {
        "total_searches": total,
        "searches_by_mode": dict(mode_counter),
        "top_cuisines": top_cuisines,
        "affordability_usage": dict(affordability_counter),
        "avg_results_returned": avg_results,
        "zero_result_rate": round(zero_results / len(counts) * 100, 1) if counts else 0.0,
        "location_share": round(with_location / total * 100, 1) if total else 0.0,
    }
