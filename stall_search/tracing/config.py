from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class TraceConfig:
    database_url: str = os.getenv("TRACE_DATABASE_URL", "")
    table_name: str = "agent_search_traces"
    log_traces: bool = os.getenv("TRACE_LOG", "1") not in {"0", "false", "False"}


DEFAULT_TRACE_CONFIG = TraceConfig()
