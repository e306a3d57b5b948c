from __future__ import annotations

import json
from pathlib import Path

from conftest import FakeArtifactSource

from border_dashboard.config import AppConfig
from border_dashboard.io.event_info import parse_event_info
from border_dashboard.io.predictions import parse_prediction_series
from border_dashboard.paths import build_output_paths
from border_dashboard.pipeline.build import build_dashboard, build_series_panel
from border_dashboard.report.render import base_context
from border_dashboard.viz.projector import ZoomWindow
from border_dashboard.viz.theme import ThemeStore, palette_for


def _small_config() -> AppConfig:
    config = AppConfig()
    config.outputs.figure_width = 5.0
    config.outputs.figure_height = 3.0
    config.outputs.dpi = 50
    return config


def _store(tmp_path: Path, theme: str | None = None) -> ThemeStore:
    store = ThemeStore(tmp_path / "prefs.json")
    if theme is not None:
        store.set(theme)
    return store


def test_standard_event_renders_two_tab_dashboard(tmp_path: Path, standard_source, now) -> None:
    out = tmp_path / "out"

    index = build_dashboard(
        _small_config(), out, source=standard_source, theme_store=_store(tmp_path), now=now
    )

    html = index.read_text(encoding="utf-8")
    assert index == out / "index.html"
    assert 'id="tab-100"' in html
    assert 'id="tab-2500"' in html
    assert "100位の予想最終スコア: 50,000" in html
    assert "±5% 誤差区間: 47,500 ～ 52,500" in html
    assert 'usemap="#border-100-score"' in html
    assert '<map name="border-2500-normalized">' in html
    assert "https://mltd.matsurihi.me/events/101" in html
    assert "アイドル選択" not in html
    assert (out / "figures" / "border-100__score.png").exists()
    assert (out / "figures" / "border-2500__normalized.png").exists()
    assert (out / "tables" / "border-100__neighbor_outlier__window_comparisons.csv").exists()
    summary = json.loads(
        (out / "summary" / "border-100__neighbor_outlier.json").read_text(encoding="utf-8")
    )
    assert summary["border_rank"] == 100

    document = json.loads((out / "artifacts" / "dashboard.json").read_text(encoding="utf-8"))
    assert document["status"] == "ready"
    assert document["layout"] == "standard_duo_border"
    assert [series["border_rank"] for series in document["series"]] == [100, 2500]
    assert document["event"]["name"] == "Test Event"


def test_per_subject_event_renders_subject_selector(
    tmp_path: Path, per_subject_source, now
) -> None:
    out = tmp_path / "out"

    index = build_dashboard(
        _small_config(), out, source=per_subject_source, theme_store=_store(tmp_path), now=now
    )

    html = index.read_text(encoding="utf-8")
    assert "アイドル選択" in html
    assert 'id="tab-100"' not in html
    assert 'id="subject-panel-1"' in html
    assert 'id="subject-panel-4"' not in html
    assert 'id="subject-1" checked' in html
    assert 'id="subject-4" disabled' in html
    assert "データ不足" in html
    assert "天海春香の予測スコア" in html
    assert (out / "figures" / "subject-1-border-1000__score.png").exists()
    document = json.loads((out / "artifacts" / "dashboard.json").read_text(encoding="utf-8"))
    assert len(document["series"]) == 4
    assert len(document["warnings"]) == 100


def test_placeholder_pages(tmp_path: Path, now) -> None:
    no_event = build_dashboard(
        _small_config(),
        tmp_path / "none",
        source=FakeArtifactSource({}),
        theme_store=_store(tmp_path),
        now=now,
    )
    html = no_event.read_text(encoding="utf-8")
    assert "開催中のイベントがないようです" in html
    assert "<map" not in html
    document = json.loads(
        (tmp_path / "none" / "artifacts" / "dashboard.json").read_text(encoding="utf-8")
    )
    assert document["status"] == "no_event"

    config = _small_config()
    config.maintenance.enabled = True
    config.maintenance.end_time = "2025-10-21 15:00 JST"
    maintenance = build_dashboard(
        config,
        tmp_path / "maintenance",
        source=FakeArtifactSource({}),
        theme_store=_store(tmp_path),
        now=now,
    )
    html = maintenance.read_text(encoding="utf-8")
    assert "メンテナンス中" in html
    assert "2025-10-21 15:00 JST" in html


def test_warming_up_page_mentions_threshold(tmp_path: Path, standard_source, now) -> None:
    config = _small_config()
    config.display.warmup_hours = 72

    index = build_dashboard(
        config, tmp_path / "out", source=standard_source, theme_store=_store(tmp_path), now=now
    )

    html = index.read_text(encoding="utf-8")
    assert "予測データ準備中" in html
    assert "72時間" in html


def test_base_context_formats_configured_warmup_hours() -> None:
    context = base_context(
        status="warming_up", theme={"name": "cupcake"}, source="fake://", warmup_hours=24.5
    )

    assert context["warmup_hours"] == "24.5"
    whole = base_context(status="ready", theme={}, source="x", warmup_hours=36.0)
    assert whole["warmup_hours"] == "36"


def test_persisted_theme_drives_page_palette(tmp_path: Path, standard_source, now) -> None:
    index = build_dashboard(
        _small_config(),
        tmp_path / "out",
        source=standard_source,
        theme_store=_store(tmp_path, "halloween"),
        now=now,
    )

    html = index.read_text(encoding="utf-8")
    assert 'data-theme="halloween"' in html
    assert palette_for("halloween")["background"] in html


def test_series_panel_hover_map_follows_zoom(tmp_path: Path, prediction_payload) -> None:
    event = parse_event_info(
        {
            "EventId": 1,
            "EventType": 3,
            "EventName": "Zoom",
            "StartAt": "2026-06-08T15:00:00+09:00",
            "EndAt": "2026-06-15T20:59:59+09:00",
        }
    )
    series = parse_prediction_series(prediction_payload(), subject_id=0, border_rank=100)
    paths = build_output_paths(tmp_path / "out")

    result = build_series_panel(
        series,
        event,
        key="zoomed",
        heading="100位",
        config=_small_config(),
        palette=palette_for("cupcake"),
        paths=paths,
        zoom=ZoomWindow(2, 6),
    )

    score_areas = result.context["score_chart"]["areas"]
    assert [area["index"] for area in score_areas] == [2, 3, 4, 5, 6]
    assert score_areas[0]["title"].startswith("6/8 16:00")
    assert len(result.context["normalized_chart"]["areas"]) == series.length
    assert result.context["score_chart"]["src"] == "figures/zoomed__score.png"
    assert result.payload["time_labels"][0] == "6/8 15:00"


def test_series_panel_ignores_zoom_past_the_series_end(
    tmp_path: Path, prediction_payload, caplog
) -> None:
    event = parse_event_info(
        {
            "EventId": 1,
            "EventType": 3,
            "EventName": "Zoom",
            "StartAt": "2026-06-08T15:00:00+09:00",
            "EndAt": "2026-06-15T20:59:59+09:00",
        }
    )
    series = parse_prediction_series(prediction_payload(), subject_id=0, border_rank=100)

    result = build_series_panel(
        series,
        event,
        key="late-zoom",
        heading="100位",
        config=_small_config(),
        palette=palette_for("cupcake"),
        paths=build_output_paths(tmp_path / "out"),
        zoom=ZoomWindow(50, 80),
    )

    score_areas = result.context["score_chart"]["areas"]
    assert [area["index"] for area in score_areas] == list(range(series.length))
    assert "showing all" in caplog.text
