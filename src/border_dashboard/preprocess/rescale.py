from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Sequence

import numpy as np

from border_dashboard.io.predictions import PredictionSeries

LOGGER = logging.getLogger(__name__)

STEPS_PER_DAY = 48


@dataclass(frozen=True)
class RescaleResult:
    values: np.ndarray
    scaled: bool
    warnings: list[str] = field(default_factory=list)


def sample_count_for_duration(duration_days: float, *, steps_per_day: int = STEPS_PER_DAY) -> int:
    return int(round(duration_days * steps_per_day)) + 1


def duration_days_for_samples(sample_count: int, *, steps_per_day: int = STEPS_PER_DAY) -> float:
    return max(int(sample_count) - 1, 0) / float(steps_per_day)


def _usable_duration(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def resample_progress(curve: np.ndarray, target_length: int) -> np.ndarray:
    """Resample a curve onto `target_length` evenly spaced progress fractions.

    Output step i sits at fraction i/(N-1) of the source's own run. NaN samples
    are not used as anchors; fractions outside the finite range take the
    nearest finite value (np.interp clamps, it never extrapolates).
    """
    if target_length <= 0:
        return np.array([], dtype=float)
    source = np.asarray(curve, dtype=float)
    finite = np.isfinite(source)
    if not finite.any():
        return np.full(target_length, np.nan)
    if source.size == 1:
        return np.full(target_length, source[0])

    source_fractions = np.linspace(0.0, 1.0, source.size)
    if target_length == 1:
        target_fractions = np.array([0.0])
    else:
        target_fractions = np.linspace(0.0, 1.0, target_length)
    return np.interp(target_fractions, source_fractions[finite], source[finite])


def rescale_curve(
    curve: Sequence[float] | np.ndarray,
    neighbor_duration_days: float | None,
    current_duration_days: float | None,
    *,
    target_length: int | None = None,
) -> RescaleResult:
    """Align a neighbor event's curve to the current event's time basis.

    Values are multiplied by current/neighbor duration (score accrues roughly
    linearly with event length) and resampled onto the current step count.
    An unusable duration skips the whole step and hands the raw curve back.
    """
    raw = np.asarray(curve, dtype=float)
    if not (_usable_duration(neighbor_duration_days) and _usable_duration(current_duration_days)):
        message = (
            "skipping rescale: durations must be positive "
            f"(neighbor={neighbor_duration_days!r}, current={current_duration_days!r})"
        )
        LOGGER.warning(message)
        return RescaleResult(values=raw.copy(), scaled=False, warnings=[message])

    ratio = float(current_duration_days) / float(neighbor_duration_days)
    if target_length is None:
        target_length = sample_count_for_duration(float(current_duration_days))
    values = resample_progress(raw, int(target_length)) * ratio
    return RescaleResult(values=values, scaled=True)


def align_neighbors(
    series: PredictionSeries,
    current_duration_days: float | None,
) -> tuple[PredictionSeries, list[str]]:
    """Realign neighbor curves whose length differs from the normalized target.

    Delivered neighbors are normally pre-rescaled and pass through untouched.
    """
    target_length = int(series.normalized_target.size)
    warnings: list[str] = []
    neighbors = dict(series.neighbors)
    for key, neighbor in series.neighbors.items():
        if neighbor.curve.size == target_length:
            continue
        neighbor_days = (
            duration_days_for_samples(neighbor.raw_length) if neighbor.raw_length else None
        )
        result = rescale_curve(
            neighbor.curve,
            neighbor_days,
            current_duration_days,
            target_length=target_length,
        )
        warnings.extend(f"neighbor {key}: {message}" for message in result.warnings)
        neighbors[key] = replace(neighbor, curve=result.values)
    return replace(series, neighbors=neighbors), warnings
