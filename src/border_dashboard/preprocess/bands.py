"""Confidence bands delivered by the prediction service.

Percentiles are computed upstream and arrive only at some steps. Display code
needs one band per step, so missing steps are linearly interpolated between
the nearest delivered neighbours. Nothing is extrapolated before the first or
after the last delivered step.
"""

from __future__ import annotations

import math
from bisect import bisect_left
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

DEFAULT_ERROR_PERCENTS = (5, 10)


@dataclass(frozen=True)
class ConfidenceBand:
    p75: tuple[float, float]
    p90: tuple[float, float]

    def to_dict(self) -> dict[str, list[float]]:
        return {"p75": list(self.p75), "p90": list(self.p90)}


def _pair(value: Any, *, field_name: str) -> tuple[float, float]:
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != 2:
        raise ValueError(f"band field '{field_name}' must be a [low, high] pair")
    try:
        low, high = float(value[0]), float(value[1])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"band field '{field_name}' must hold two numbers") from exc
    if not (math.isfinite(low) and math.isfinite(high)):
        raise ValueError(f"band field '{field_name}' must be finite")
    return (low, high)


def parse_band(payload: Mapping[str, Any]) -> ConfidenceBand:
    return ConfidenceBand(
        p75=_pair(payload.get("p75"), field_name="p75"),
        p90=_pair(payload.get("p90"), field_name="p90"),
    )


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _lerp_band(left: ConfidenceBand, right: ConfidenceBand, t: float) -> ConfidenceBand:
    return ConfidenceBand(
        p75=(_lerp(left.p75[0], right.p75[0], t), _lerp(left.p75[1], right.p75[1], t)),
        p90=(_lerp(left.p90[0], right.p90[0], t), _lerp(left.p90[1], right.p90[1], t)),
    )


def interpolate_bands(
    known: Mapping[int, ConfidenceBand],
    length: int,
) -> list[ConfidenceBand | None]:
    if length < 0:
        raise ValueError("length must be >= 0")
    steps = sorted(step for step in known if 0 <= step < length)
    out: list[ConfidenceBand | None] = [None] * length
    if not steps:
        return out

    for index in range(steps[0], steps[-1] + 1):
        if index in known:
            out[index] = known[index]
            continue
        position = bisect_left(steps, index)
        left_step, right_step = steps[position - 1], steps[position]
        t = (index - left_step) / (right_step - left_step)
        out[index] = _lerp_band(known[left_step], known[right_step], t)
    return out


def error_ranges(
    final_score: float,
    percents: Sequence[int] = DEFAULT_ERROR_PERCENTS,
) -> dict[int, tuple[int, int]]:
    """Symmetric +/- percent ranges around the final predicted score."""
    if not math.isfinite(final_score):
        return {}
    return {
        int(percent): (
            round(final_score * (1 - percent / 100.0)),
            round(final_score * (1 + percent / 100.0)),
        )
        for percent in percents
    }
