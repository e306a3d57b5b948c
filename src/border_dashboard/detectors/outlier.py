from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping, Sequence

import numpy as np
import pandas as pd

from border_dashboard.detectors.base import Detector, DetectorResult
from border_dashboard.io.predictions import PredictionSeries

Direction = Literal["high", "low"]

DEFAULT_WINDOW = 3


@dataclass(frozen=True)
class OutlierResult:
    is_outlier: bool
    direction: Direction | None
    checked_indices: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "is_outlier": self.is_outlier,
            "direction": self.direction,
            "checked_indices": list(self.checked_indices),
        }


def _value_at(curve: Sequence[float] | np.ndarray, index: int) -> float:
    if index >= len(curve):
        return float("nan")
    try:
        return float(curve[index])
    except (TypeError, ValueError):
        return float("nan")


def _window_comparisons(
    target: Sequence[float] | np.ndarray,
    neighbors: Mapping[str, Sequence[float] | np.ndarray],
    last_known_index: int,
    window: int,
) -> list[dict[str, float | int]]:
    rows: list[dict[str, float | int]] = []
    start = max(0, int(last_known_index) - (window - 1))
    for index in range(start, int(last_known_index) + 1):
        target_value = _value_at(target, index)
        neighbor_values = [_value_at(curve, index) for curve in neighbors.values()]
        present = [value for value in neighbor_values if np.isfinite(value)]
        if not present or not np.isfinite(target_value):
            continue
        rows.append(
            {
                "index": index,
                "target": target_value,
                "neighbor_max": max(present),
                "neighbor_min": min(present),
                "n_neighbors": len(present),
            }
        )
    return rows


def detect_outlier(
    target: Sequence[float] | np.ndarray,
    neighbors: Mapping[str, Sequence[float] | np.ndarray],
    last_known_index: int,
    *,
    window: int = DEFAULT_WINDOW,
) -> OutlierResult:
    """Flag a target that sits above (or below) every neighbor near the boundary.

    Indices without neighbor data are skipped; with nothing left to compare the
    result is not an outlier. Ties break both directions.
    """
    rows = _window_comparisons(target, neighbors, last_known_index, window)
    if not rows:
        return OutlierResult(is_outlier=False, direction=None)

    checked = tuple(int(row["index"]) for row in rows)
    if all(row["target"] > row["neighbor_max"] for row in rows):
        return OutlierResult(is_outlier=True, direction="high", checked_indices=checked)
    if all(row["target"] < row["neighbor_min"] for row in rows):
        return OutlierResult(is_outlier=True, direction="low", checked_indices=checked)
    return OutlierResult(is_outlier=False, direction=None, checked_indices=checked)


class OutlierDetector(Detector):
    name = "neighbor_outlier"

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        self.window = int(window)

    def run(self, series: PredictionSeries) -> DetectorResult:
        neighbors = series.neighbor_curves()
        last_known = series.normalized_last_known_step_index
        result = detect_outlier(
            series.normalized_target,
            neighbors,
            last_known,
            window=self.window,
        )
        comparisons = pd.DataFrame(
            _window_comparisons(series.normalized_target, neighbors, last_known, self.window),
            columns=["index", "target", "neighbor_max", "neighbor_min", "n_neighbors"],
        )
        summary = {
            "subject_id": series.subject_id,
            "border_rank": series.border_rank,
            "n_neighbors": len(neighbors),
            **result.to_dict(),
        }
        return DetectorResult(
            detector=self.name,
            summary=summary,
            tables={"window_comparisons": comparisons},
        )
