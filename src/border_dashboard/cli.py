from __future__ import annotations

from pathlib import Path

import typer

from border_dashboard.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from border_dashboard.detectors.outlier import OutlierDetector
from border_dashboard.io.loader import DashboardStatus, load_dashboard_data
from border_dashboard.io.source import resolve_source
from border_dashboard.logging import configure_logging
from border_dashboard.pipeline.build import build_dashboard
from border_dashboard.preprocess.bands import error_ranges
from border_dashboard.report.formatting import format_score
from border_dashboard.viz.projector import ZoomWindow, zoom_from_selection
from border_dashboard.viz.theme import THEME_NAMES, ThemeStore, palette_for

app = typer.Typer(no_args_is_help=True, add_completion=False)
theme_app = typer.Typer(no_args_is_help=True, add_completion=False, help="Theme preference.")
app.add_typer(theme_app, name="theme")


def _load_app_config(config_path: Path | None) -> AppConfig:
    return load_config(config_path)


def _theme_store(cfg: AppConfig) -> ThemeStore:
    return ThemeStore(Path(cfg.theme.storage_path), default=cfg.theme.default)


def _parse_zoom(value: str | None) -> ZoomWindow | None:
    if value is None:
        return None
    try:
        low_text, high_text = value.split(":", 1)
        window = zoom_from_selection(int(low_text), int(high_text))
    except ValueError as exc:
        raise typer.BadParameter(
            f"Invalid --zoom {value!r}. Expected MIN:MAX step indices, e.g. 10:120."
        ) from exc
    if window is None:
        raise typer.BadParameter(f"--zoom {value!r} must span more than one step.")
    return window


@app.command()
def build(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
    zoom: str | None = typer.Option(
        None,
        help="Restrict the score chart x-axis to MIN:MAX step indices.",
    ),
    debug: bool = typer.Option(False, help="Append ?debug to artifact URLs and skip warm-up."),
) -> None:
    """Fetch the latest predictions and write the static dashboard."""
    configure_logging()
    cfg = _load_app_config(config)
    if debug:
        cfg.source.debug = True
    window = _parse_zoom(zoom)
    index_path = build_dashboard(cfg, out, theme_store=_theme_store(cfg), zoom=window)
    typer.echo(f"Dashboard written: {index_path}")


@app.command()
def inspect(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Print final scores, error ranges and outlier flags without rendering."""
    configure_logging()
    cfg = _load_app_config(config)
    data = load_dashboard_data(resolve_source(cfg.source), cfg)
    typer.echo(f"Status: {data.status.value}")
    if data.event is not None:
        typer.echo(f"Event: {data.event.name} (id={data.event.event_id})")
    if data.status is not DashboardStatus.READY:
        if data.reason:
            typer.echo(f"Reason: {data.reason}")
        return

    detector = OutlierDetector(window=cfg.display.outlier_window)
    for series in data.iter_series():
        result = detector.run(series)
        ranges = ", ".join(
            f"±{percent}% {format_score(low)}-{format_score(high)}"
            for percent, (low, high) in error_ranges(series.final_score).items()
        )
        flag = result.summary["direction"] if result.summary["is_outlier"] else "-"
        typer.echo(
            f"subject={series.subject_id} border={series.border_rank} "
            f"final={format_score(series.final_score)} [{ranges}] outlier={flag}"
        )
    for warning in data.warnings:
        typer.echo(f"warning: {warning}")


@theme_app.command("show")
def theme_show(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Print the persisted theme."""
    configure_logging()
    store = _theme_store(_load_app_config(config))
    typer.echo(store.load())


@theme_app.command("set")
def theme_set(
    name: str = typer.Argument(..., help="Theme name."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """Persist a theme for subsequent builds."""
    configure_logging()
    store = _theme_store(_load_app_config(config))
    store.load()
    try:
        store.set(name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="NAME") from exc
    typer.echo(f"Theme set: {name}")


@theme_app.command("list")
def theme_list() -> None:
    """List available themes."""
    for name in THEME_NAMES:
        palette = palette_for(name)
        typer.echo(f"{palette['emoji']} {name} ({palette['label']})")


if __name__ == "__main__":
    app()
