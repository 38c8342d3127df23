"""Helpers for shaping tool results returned to the MCP host."""

from __future__ import annotations

import json
import math
from typing import Any, Iterable, List, Mapping


def to_json_text(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def estimate_tokens(text: str) -> int:
    # Rough 4-chars-per-token heuristic
    return math.ceil(len(text or "") / 4)


def observation_ids(items: Iterable[Any]) -> List[int]:
    """Collect integer `id` fields from worker result items, skipping the rest."""
    out: List[int] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        raw = item.get("id")
        if isinstance(raw, bool):
            continue
        if isinstance(raw, int):
            out.append(raw)
        elif isinstance(raw, str) and raw.strip().isdigit():
            out.append(int(raw.strip()))
    return out
