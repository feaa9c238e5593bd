"""
Lenient JSON decoding for LLM replies.

Models are asked for a single JSON object but frequently wrap it in a
markdown code fence. Accepted shapes, after trimming surrounding whitespace:

    {...}
    ```json\n{...}\n```
    ```\n{...}\n```

Only a leading fence opener and a trailing fence closer are stripped; the
remaining text must be valid JSON.
"""
from __future__ import annotations

import json
from typing import Any

FENCE_OPENERS = ("```json", "```JSON", "```")
FENCE_CLOSER = "```"


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()

    for opener in FENCE_OPENERS:
        if cleaned.startswith(opener):
            cleaned = cleaned[len(opener):]
            break

    if cleaned.endswith(FENCE_CLOSER):
        cleaned = cleaned[: -len(FENCE_CLOSER)]

    return cleaned.strip()


def decode_json(text: str) -> Any:
    """Strip code fences and decode. Raises ``json.JSONDecodeError`` on bad input."""
    return json.loads(strip_code_fences(text))
