"""Duration formatting for track listings."""

from __future__ import annotations

import math


def format_duration(seconds: int | float) -> str:
    """Format whole seconds as M:SS, or H:MM:SS from one hour up."""
    total = _coerce_seconds(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _coerce_seconds(value: int | float) -> int:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numeric):
        return 0
    return max(0, int(numeric))
