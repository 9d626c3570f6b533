from __future__ import annotations

import math
import re
from typing import Any, Mapping


def normalize_text(text: str) -> str:
    """
    Collapse whitespace and strip.
    """
    return re.sub(r"\s+", " ", text).strip()


def dig(record: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """
    Read a dotted path ("admissions.admission_rate") from nested dicts.
    """
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return default if current is None else current


def format_percent(value: Any) -> str | None:
    """
    Format a 0-1 fraction (or 0-100 percentage) as "NN%".
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    if number <= 1.0:
        number *= 100.0
    return f"{number:.0f}%"


def format_count(value: Any) -> str | None:
    try:
        return f"{int(value):,}"
    except (TypeError, ValueError, OverflowError):
        return None
