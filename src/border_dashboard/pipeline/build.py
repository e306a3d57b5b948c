from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from border_dashboard.config import AppConfig
from border_dashboard.detectors.outlier import OutlierDetector
from border_dashboard.idols import IDOL_CATALOG, idol_color, idol_name
from border_dashboard.io.event_info import EventInfo, EventLayout
from border_dashboard.io.loader import DashboardData, DashboardStatus, load_dashboard_data
from border_dashboard.io.predictions import PredictionSeries
from border_dashboard.io.source import ArtifactSource, resolve_source
from border_dashboard.io.write import write_summary, write_table
from border_dashboard.paths import OutputPaths, build_output_paths
from border_dashboard.preprocess.bands import interpolate_bands
from border_dashboard.preprocess.time_axis import build_time_axis, progress_percent_points
from border_dashboard.report.payload import hover_areas, series_payload
from border_dashboard.report.render import base_context, render_dashboard
from border_dashboard.viz.charts import ChartLine, plot_normalized_chart, plot_score_chart
from border_dashboard.viz.common import RenderedChart
from border_dashboard.viz.projector import ZoomWindow, zoom_from_selection
from border_dashboard.viz.theme import ThemeStore, palette_for

LOGGER = logging.getLogger(__name__)

BORDER_LABELS = {100: "100位", 1000: "1000位", 2500: "2500位"}


@dataclass(frozen=True)
class PanelResult:
    context: dict[str, Any]
    payload: dict[str, Any]


def _border_label(rank: int) -> str:
    return BORDER_LABELS.get(rank, f"{rank}位")


def _chart_context(
    chart: RenderedChart,
    paths: OutputPaths,
    areas: list[dict[str, Any]],
) -> dict[str, Any]:
    return {
        "src": chart.path.relative_to(paths.root).as_posix(),
        "width": chart.width_px,
        "height": chart.height_px,
        "areas": areas,
    }


def _theme_context(theme_name: str) -> dict[str, Any]:
    palette = palette_for(theme_name)
    return {
        "name": palette["name"],
        "label": palette["label"],
        "emoji": palette["emoji"],
        "palette": palette,
    }


def build_series_panel(
    series: PredictionSeries,
    event: EventInfo,
    *,
    key: str,
    heading: str,
    config: AppConfig,
    palette: dict[str, Any],
    paths: OutputPaths,
    zoom: ZoomWindow | None = None,
) -> PanelResult:
    """Charts, hover maps and summary for one subject/border prediction."""
    time_labels = build_time_axis(
        event.start_at,
        series.length,
        timezone_name=config.display.timezone,
        step_minutes=config.display.step_minutes,
    )
    percent_labels = progress_percent_points(int(series.normalized_target.size))

    detector = OutlierDetector(window=config.display.outlier_window)
    outlier = detector.run(series)
    write_summary(outlier.summary, paths.summary / f"{key}__{outlier.detector}.json")
    for table_name, table in outlier.tables.items():
        write_table(table, paths.tables / f"{key}__{outlier.detector}__{table_name}.csv")

    figsize = (config.outputs.figure_width, config.outputs.figure_height)
    target_color = idol_color(series.subject_id) if series.subject_id else palette["target"]
    window = (
        zoom_from_selection(zoom.min, zoom.max, series.length) if zoom is not None else None
    )
    if window is not None and window.max - window.min <= 1:
        LOGGER.warning("Zoom %s collapses on a %d-step series; showing all", zoom, series.length)
        window = None
    score_chart = plot_score_chart(
        [
            ChartLine(
                key="target",
                label=f"Border {series.border_rank}",
                values=series.raw_target,
                color=target_color,
                bands=interpolate_bands(series.bands, series.length),
            )
        ],
        time_labels,
        series.last_known_step_index,
        palette,
        paths.figures / f"{key}__score.png",
        zoom=window,
        figsize=figsize,
        dpi=config.outputs.dpi,
    )

    neighbor_colors = palette["neighbors"]
    neighbor_lines = [
        ChartLine(
            key=neighbor_key,
            label=f"Neighbor {neighbor_key}",
            values=neighbor.curve,
            color=neighbor_colors[position % len(neighbor_colors)],
        )
        for position, (neighbor_key, neighbor) in enumerate(series.neighbors.items())
    ]
    normalized_chart = plot_normalized_chart(
        ChartLine(
            key="target",
            label="Current event",
            values=series.normalized_target,
            color=target_color,
        ),
        neighbor_lines,
        percent_labels,
        series.normalized_last_known_step_index,
        palette,
        paths.figures / f"{key}__normalized.png",
        figsize=figsize,
        dpi=config.outputs.dpi,
    )

    payload = series_payload(
        series,
        time_labels=time_labels,
        percent_labels=percent_labels,
        outlier=outlier.summary,
        link_template=config.links.event_url_template,
        neighbor_colors=neighbor_colors,
    )
    neighbor_names = {
        f"近傍{neighbor_key}": neighbor.curve for neighbor_key, neighbor in series.neighbors.items()
    }
    percent_text = [f"{value}%" for value in percent_labels]
    context = {
        "key": key,
        "border_rank": series.border_rank,
        "heading": f"{_border_label(series.border_rank)}の予想最終スコア",
        "final_score_text": payload["final_score_text"],
        "error_ranges": payload["error_ranges"],
        "outlier": payload["outlier"],
        "neighbors": payload["neighbors"],
        "score_chart": _chart_context(
            score_chart,
            paths,
            hover_areas(
                score_chart,
                time_labels,
                {heading: series.raw_target},
                series.last_known_step_index,
                zoom=window,
            ),
        ),
        "normalized_chart": _chart_context(
            normalized_chart,
            paths,
            hover_areas(
                normalized_chart,
                percent_text,
                {"現在のイベント": series.normalized_target, **neighbor_names},
                series.normalized_last_known_step_index,
            ),
        ),
    }
    return PanelResult(context=context, payload=payload)


def _event_context(event: EventInfo) -> dict[str, Any]:
    return {
        "id": event.event_id,
        "name": event.name,
        "start_text": f"{event.start_at:%Y/%m/%d %H:%M}",
        "end_text": f"{event.end_at:%Y/%m/%d %H:%M}",
        "type_code": event.event_type_code,
    }


def _standard_tabs(
    data: DashboardData,
    *,
    config: AppConfig,
    palette: dict[str, Any],
    paths: OutputPaths,
    zoom: ZoomWindow | None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    subject = data.subjects.get(0)
    tabs: list[dict[str, Any]] = []
    payloads: list[dict[str, Any]] = []
    for rank in data.border_ranks:
        series = subject.get(rank) if subject is not None else None
        panel = None
        if series is not None:
            result = build_series_panel(
                series,
                data.event,
                key=f"border-{rank}",
                heading=_border_label(rank),
                config=config,
                palette=palette,
                paths=paths,
                zoom=zoom,
            )
            panel = result.context
            payloads.append(result.payload)
        tabs.append({"key": str(rank), "label": _border_label(rank), "panel": panel})
    return tabs, payloads


def _subject_entries(
    data: DashboardData,
    *,
    config: AppConfig,
    palette: dict[str, Any],
    paths: OutputPaths,
    zoom: ZoomWindow | None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    entries: list[dict[str, Any]] = []
    payloads: list[dict[str, Any]] = []
    for subject_id in sorted(IDOL_CATALOG):
        subject = data.subjects.get(subject_id)
        borders: list[dict[str, Any]] = []
        for rank in data.border_ranks:
            series = subject.get(rank) if subject is not None else None
            panel = None
            if series is not None:
                result = build_series_panel(
                    series,
                    data.event,
                    key=f"subject-{subject_id}-border-{rank}",
                    heading=_border_label(rank),
                    config=config,
                    palette=palette,
                    paths=paths,
                    zoom=zoom,
                )
                panel = result.context
                payloads.append(result.payload)
            borders.append({"rank": rank, "label": f"{_border_label(rank)}ボーダー", "panel": panel})
        entries.append(
            {
                "id": subject_id,
                "name": idol_name(subject_id),
                "color": idol_color(subject_id),
                "available": subject is not None,
                "borders": borders,
            }
        )
    return entries, payloads


def build_dashboard(
    config: AppConfig,
    out_dir: Path,
    *,
    source: ArtifactSource | None = None,
    theme_store: ThemeStore | None = None,
    now: datetime | None = None,
    zoom: ZoomWindow | None = None,
) -> Path:
    paths = build_output_paths(out_dir)
    source = source or resolve_source(config.source)
    store = theme_store or ThemeStore(Path(config.theme.storage_path), default=config.theme.default)
    theme = _theme_context(store.load())
    palette = theme["palette"]

    data = load_dashboard_data(source, config, now=now)
    context = base_context(
        status=data.status.value,
        theme=theme,
        source=source.description,
        warmup_hours=config.display.warmup_hours,
        generated_at=data.generated_at,
    )
    context["reason"] = data.reason
    context["maintenance_end"] = data.maintenance_end
    context["warnings"] = list(data.warnings)
    payload: dict[str, Any] = {
        "status": data.status.value,
        "reason": data.reason,
        "theme": theme["name"],
        "warnings": list(data.warnings),
    }
    if data.event is not None:
        context["event"] = _event_context(data.event)
        payload["event"] = context["event"]

    if data.status is not DashboardStatus.READY:
        return render_dashboard(context, paths, payload=payload)

    context["layout"] = data.layout.value
    payload["layout"] = data.layout.value
    if data.layout is EventLayout.STANDARD_DUO_BORDER:
        context["tabs"], payload["series"] = _standard_tabs(
            data, config=config, palette=palette, paths=paths, zoom=zoom
        )
    else:
        context["subjects"], payload["series"] = _subject_entries(
            data, config=config, palette=palette, paths=paths, zoom=zoom
        )
        available = [entry["id"] for entry in context["subjects"] if entry["available"]]
        context["selected_subject"] = available[0] if available else None

    LOGGER.info("Rendered %d prediction panels", len(payload["series"]))
    return render_dashboard(context, paths, payload=payload)
