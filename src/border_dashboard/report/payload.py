from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np
import pandas as pd

from border_dashboard.idols import idol_color, idol_name
from border_dashboard.io.predictions import PredictionSeries
from border_dashboard.preprocess.bands import ConfidenceBand, error_ranges, interpolate_bands
from border_dashboard.report.formatting import format_score
from border_dashboard.viz.common import RenderedChart
from border_dashboard.viz.projector import ChartProjector, ZoomWindow


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, np.ndarray):
        return [_json_safe(item) for item in value.tolist()]
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if hasattr(value, "item"):
        try:
            value = value.item()
        except (TypeError, ValueError):
            pass
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (int, str, bool)) or value is None:
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def neighbor_link(template: str, event_id: int) -> str:
    return template.format(event_id=event_id)


def neighbor_rows(
    series: PredictionSeries,
    *,
    link_template: str,
    colors: Sequence[str],
) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for position, (key, neighbor) in enumerate(series.neighbors.items()):
        rows.append(
            {
                "key": key,
                "label": f"近傍{key}",
                "name": neighbor.name,
                "event_id": neighbor.id,
                "link": neighbor_link(link_template, neighbor.id),
                "final_score": neighbor.final_score,
                "final_score_text": format_score(neighbor.final_score),
                "idol_name": idol_name(neighbor.idol_id) if neighbor.idol_id else None,
                "color": colors[position % len(colors)] if colors else None,
            }
        )
    return rows


def error_range_rows(series: PredictionSeries) -> list[dict[str, Any]]:
    return [
        {
            "percent": percent,
            "low": low,
            "high": high,
            "text": f"{format_score(low)} ～ {format_score(high)}",
            "sla": series.sla.get(percent, ""),
        }
        for percent, (low, high) in error_ranges(series.final_score).items()
    ]


def _band_rows(bands: Sequence[ConfidenceBand | None]) -> list[dict[str, Any] | None]:
    return [band.to_dict() if band is not None else None for band in bands]


def series_payload(
    series: PredictionSeries,
    *,
    time_labels: Sequence[str],
    percent_labels: Sequence[int],
    outlier: dict[str, Any],
    link_template: str,
    neighbor_colors: Sequence[str],
) -> dict[str, Any]:
    """JSON-ready description of one subject/border prediction."""
    return {
        "subject_id": series.subject_id,
        "subject_name": idol_name(series.subject_id) if series.subject_id else None,
        "subject_color": idol_color(series.subject_id) if series.subject_id else None,
        "border_rank": series.border_rank,
        "event_id": series.event_id,
        "event_name": series.event_name,
        "final_score": series.final_score,
        "final_score_text": format_score(series.final_score),
        "error_ranges": error_range_rows(series),
        "outlier": dict(outlier),
        "time_labels": list(time_labels),
        "percent_labels": list(percent_labels),
        "last_known_step_index": series.last_known_step_index,
        "normalized_last_known_step_index": series.normalized_last_known_step_index,
        "raw_target": series.raw_target,
        "normalized_target": series.normalized_target,
        "bands": _band_rows(interpolate_bands(series.bands, series.length)),
        "neighbors": neighbor_rows(
            series, link_template=link_template, colors=neighbor_colors
        ),
        "neighbor_curves": series.neighbor_curves(),
    }


def _value_at(values: Sequence[float] | np.ndarray, index: int) -> float:
    if index >= len(values):
        return float("nan")
    return float(values[index])


def hover_title(
    label: str,
    values: dict[str, float],
    *,
    predicted: bool,
) -> str:
    """Tooltip text: the step label, then every finite value, largest first."""
    present = sorted(
        ((name, value) for name, value in values.items() if math.isfinite(value)),
        key=lambda item: item[1],
        reverse=True,
    )
    header = f"{label} (予測)" if predicted else label
    lines = [header, *(f"{name}: {format_score(value)}" for name, value in present)]
    return "\n".join(lines)


def hover_areas(
    chart: RenderedChart,
    labels: Sequence[str],
    lines: dict[str, Sequence[float] | np.ndarray],
    boundary_index: int,
    *,
    zoom: ZoomWindow | None = None,
) -> list[dict[str, Any]]:
    """Image-map areas for a rendered chart, one column per visible step."""
    projector = ChartProjector(
        plot_area_left=chart.plot_left,
        plot_area_width=chart.plot_width,
        series_length=len(labels),
        zoom=zoom,
    )
    top = int(round(chart.plot_top))
    bottom = int(round(chart.plot_top + chart.plot_height))
    areas: list[dict[str, Any]] = []
    for region in projector.hover_regions():
        index, crosshair_x = projector.snap(region.center)
        if index >= len(labels):
            continue
        values = {name: _value_at(curve, index) for name, curve in lines.items()}
        areas.append(
            {
                "index": index,
                "coords": (
                    f"{int(round(region.left))},{top},{int(round(region.right))},{bottom}"
                ),
                "center": crosshair_x,
                "predicted": index >= boundary_index,
                "title": hover_title(labels[index], values, predicted=index >= boundary_index),
            }
        )
    return areas
