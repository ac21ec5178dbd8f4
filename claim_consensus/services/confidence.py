"""
置信度提取与聚合
Confidence extraction from free text and aggregation across peers.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, Tuple

DEFAULT_CONFIDENCE = 0.5

# (pattern, is_percentage); the first rule yielding an in-range value wins
_CONFIDENCE_RULES: List[Tuple[Pattern[str], bool]] = [
    (re.compile(r"confidence[:\s]+([0-9]*\.?[0-9]+)", re.IGNORECASE), False),
    (re.compile(r"([0-9]*\.?[0-9]+)\s*/\s*1\b"), False),
    (re.compile(r"([0-9]*\.?[0-9]+)%"), True),
    (re.compile(r"\b(0\.[0-9]+)\b"), False),
    (re.compile(r"\b(1\.0)\b"), False),
]


def extract_confidence(text: Optional[str]) -> Optional[float]:
    """
    从自由文本中提取 [0, 1] 置信度

    Returns the value rounded to two decimals, or None when no rule matches
    an in-range number.
    """
    if not text:
        return None
    for pattern, is_percentage in _CONFIDENCE_RULES:
        match = pattern.search(text)
        if not match:
            continue
        try:
            value = float(match.group(1))
        except ValueError:
            continue
        if is_percentage:
            value = value / 100
        if 0 <= value <= 1:
            return round(value, 2)
    return None


def aggregate_confidence(values: Iterable[Optional[float]], default: float = DEFAULT_CONFIDENCE) -> float:
    """Arithmetic mean of the defined values; ``default`` when none are defined."""
    defined = [float(v) for v in values if v is not None]
    if not defined:
        return default
    return sum(defined) / len(defined)
