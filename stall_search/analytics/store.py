from __future__ import annotations

import time
from collections import deque
from typing import Any

MAX_SEARCH_LOGS = 10_000

_search_logs: deque[dict[str, Any]] = deque(maxlen=MAX_SEARCH_LOGS)


def record_search_log(
    search_mode: str,
    data: dict[str, Any],
    user_agent: str = "",
    ip_address: str | None = None,
) -> None:
    """Append one client-reported search; the oldest entries roll off past ``MAX_SEARCH_LOGS``."""
    _search_logs.append({
        "search_mode": search_mode,
        "timestamp": time.time(),
        "user_agent": user_agent,
        "ip_address": ip_address,
        **data,
    })


def get_search_logs() -> list[dict[str, Any]]:
    return list(_search_logs)


def clear_search_logs() -> None:
    _search_logs.clear()
