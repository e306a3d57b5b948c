from __future__ import annotations

import math

_JAPANESE_UNITS = (
    (100_000_000, "億"),
    (10_000, "万"),
    (1_000, "千"),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_japanese_number(value: float) -> str:
    """Compact axis label: 123456789 -> "1億", 35000 -> "4万", 1200 -> "1千"."""
    if value is None or not math.isfinite(value):
        return ""
    for threshold, unit in _JAPANESE_UNITS:
        if value >= threshold:
            return f"{_round_half_up(value / threshold)}{unit}"
    return str(_round_half_up(value))


def format_score(value: float | None) -> str:
    if value is None or not math.isfinite(value):
        return "-"
    return f"{_round_half_up(value):,}"
