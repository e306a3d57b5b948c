from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.ticker import FuncFormatter

from border_dashboard.preprocess.bands import ConfidenceBand
from border_dashboard.report.formatting import format_japanese_number
from border_dashboard.viz.common import RenderedChart, save_chart
from border_dashboard.viz.projector import ZoomWindow
from border_dashboard.viz.theme import parse_css_color

MAX_X_TICKS = 8


@dataclass(frozen=True)
class ChartLine:
    key: str
    label: str
    values: np.ndarray
    color: str
    bands: Sequence[ConfidenceBand | None] = ()


def _themed_axes(
    palette: dict[str, Any],
    figsize: tuple[float, float],
) -> tuple[Figure, Axes]:
    fig, ax = plt.subplots(figsize=figsize)
    fig.set_facecolor(palette["background"])
    ax.set_facecolor(palette["background"])
    text = palette["text"]
    ax.tick_params(colors=text, labelsize=9)
    for spine in ax.spines.values():
        spine.set_color(palette["grid"])
    ax.grid(True, color=palette["grid"], linewidth=0.6, linestyle="--")
    ax.xaxis.label.set_color(text)
    ax.yaxis.label.set_color(text)
    return fig, ax


def _x_window(length: int, zoom: ZoomWindow | None) -> tuple[int, int]:
    if zoom is not None:
        return zoom.min, zoom.max
    return 0, max(length - 1, 0)


def _tick_positions(low: int, high: int, max_ticks: int = MAX_X_TICKS) -> list[int]:
    if high <= low:
        return [low]
    step = max(1, int(np.ceil((high - low) / (max_ticks - 1))))
    positions = list(range(low, high + 1, step))
    if positions[-1] != high and high - positions[-1] >= step / 2:
        positions.append(high)
    return positions


def _annotate_prediction_region(
    ax: Axes,
    boundary_index: int,
    last_index: int,
    palette: dict[str, Any],
) -> None:
    ax.axvspan(
        boundary_index,
        last_index,
        facecolor=parse_css_color(palette["prediction_region"]),
        edgecolor=parse_css_color(palette["prediction_region_edge"]),
        linewidth=1.0,
        label="Prediction range",
    )
    ax.axvline(
        boundary_index,
        color=parse_css_color(palette["boundary"]),
        linewidth=2.0,
        linestyle=(0, (5, 5)),
    )


def _draw_bands(ax: Axes, x: np.ndarray, line: ChartLine) -> None:
    if not line.bands or not any(band is not None for band in line.bands):
        return
    p90_low = np.array([band.p90[0] if band else np.nan for band in line.bands])
    p90_high = np.array([band.p90[1] if band else np.nan for band in line.bands])
    p75_low = np.array([band.p75[0] if band else np.nan for band in line.bands])
    p75_high = np.array([band.p75[1] if band else np.nan for band in line.bands])
    present = np.isfinite(p90_low) & np.isfinite(p90_high)
    ax.fill_between(x, p90_low, p90_high, where=present, color=line.color, alpha=0.10, linewidth=0)
    present = np.isfinite(p75_low) & np.isfinite(p75_high)
    ax.fill_between(x, p75_low, p75_high, where=present, color=line.color, alpha=0.20, linewidth=0)


def _finish_legend(ax: Axes, palette: dict[str, Any]) -> None:
    legend = ax.legend(loc="upper left", fontsize=9, frameon=False)
    for text in legend.get_texts():
        text.set_color(palette["text"])


def plot_score_chart(
    lines: Sequence[ChartLine],
    time_labels: Sequence[str],
    boundary_index: int,
    palette: dict[str, Any],
    output_path: Path,
    *,
    zoom: ZoomWindow | None = None,
    figsize: tuple[float, float] = (12.0, 5.0),
    dpi: int = 100,
) -> RenderedChart:
    """Raw score curves on the event's wall-clock axis with the prediction region shaded."""
    length = len(time_labels)
    fig, ax = _themed_axes(palette, figsize)
    x = np.arange(length)
    for line in lines:
        values = np.asarray(line.values, dtype=float)[:length]
        _draw_bands(ax, x[: values.size], line)
        ax.plot(x[: values.size], values, color=line.color, linewidth=1.5, label=line.label)

    low, high = _x_window(length, zoom)
    _annotate_prediction_region(ax, boundary_index, max(length - 1, 0), palette)
    ax.set_xlim(low, high)
    ax.margins(x=0)
    ticks = _tick_positions(low, high)
    ax.set_xticks(ticks)
    ax.set_xticklabels([time_labels[tick] for tick in ticks])
    ax.yaxis.set_major_formatter(FuncFormatter(lambda value, _pos: format_japanese_number(value)))
    ax.set_xlabel("Time (JST)")
    ax.set_ylabel("Score")
    _finish_legend(ax, palette)
    return save_chart(fig, ax, output_path, dpi=dpi)


def plot_normalized_chart(
    target: ChartLine,
    neighbors: Sequence[ChartLine],
    percent_labels: Sequence[int],
    boundary_index: int,
    palette: dict[str, Any],
    output_path: Path,
    *,
    figsize: tuple[float, float] = (12.0, 5.0),
    dpi: int = 100,
) -> RenderedChart:
    """Normalized target against its neighbor events on the progress (%) axis."""
    length = len(percent_labels)
    fig, ax = _themed_axes(palette, figsize)
    x = np.arange(length)
    for line in (target, *neighbors):
        values = np.asarray(line.values, dtype=float)[:length]
        width = 2.0 if line is target else 1.3
        ax.plot(x[: values.size], values, color=line.color, linewidth=width, label=line.label)

    _annotate_prediction_region(ax, boundary_index, max(length - 1, 0), palette)
    ax.set_xlim(0, max(length - 1, 0))
    ax.margins(x=0)
    ticks = _tick_positions(0, max(length - 1, 0))
    ax.set_xticks(ticks)
    ax.set_xticklabels([f"{percent_labels[tick]}%" for tick in ticks])
    ax.yaxis.set_major_formatter(FuncFormatter(lambda value, _pos: format_japanese_number(value)))
    ax.set_xlabel("Event progress (%)")
    ax.set_ylabel("Normalized score")
    _finish_legend(ax, palette)
    return save_chart(fig, ax, output_path, dpi=dpi)
