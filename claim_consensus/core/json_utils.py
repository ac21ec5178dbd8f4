"""
JSON extraction helpers for model output.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_DECODER = json.JSONDecoder()


def _first_array_in(source: str) -> Optional[List[Any]]:
    """Decode from each ``[`` in turn; trailing prose after the array is ignored."""
    start = source.find("[")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(source, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return value
        start = source.find("[", start + 1)
    return None


def extract_json_list(text: str) -> Optional[List[Any]]:
    """Extract the first JSON array from model output, preferring fenced blocks."""
    raw = (text or "").strip()
    if not raw:
        return None
    blocks = [block.strip() for block in _FENCE_RE.findall(raw) if block.strip()]
    for source in (*blocks, raw):
        found = _first_array_in(source)
        if found is not None:
            return found
    return None
