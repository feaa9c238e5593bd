from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class GeocodingConfig:
    api_token: str = os.getenv("ONEMAP_API_TOKEN", "")
    search_url: str = "https://www.onemap.gov.sg/api/common/elastic/search"
    timeout: float = 5.0


DEFAULT_GEOCODING_CONFIG = GeocodingConfig()
