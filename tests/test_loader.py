from __future__ import annotations

from datetime import timedelta

from conftest import FakeArtifactSource, build_event_info, build_prediction_payload

from border_dashboard.config import AppConfig
from border_dashboard.io.event_info import EventLayout
from border_dashboard.io.loader import DashboardStatus, fetch_predictions, load_dashboard_data
from border_dashboard.io.source import EVENT_INFO_PATH, prediction_path


def test_standard_event_loads_two_borders(standard_source, now) -> None:
    data = load_dashboard_data(standard_source, AppConfig(), now=now)

    assert data.status is DashboardStatus.READY
    assert data.layout is EventLayout.STANDARD_DUO_BORDER
    assert data.border_ranks == (100, 2500)
    assert list(data.subjects) == [0]
    assert sorted(data.subjects[0].predictions) == [100, 2500]
    assert data.subjects[0].get(2500).final_score == 8000.0
    assert data.warnings == []
    assert not any(path.startswith("prediction/1/") for path in standard_source.requested)
    assert [series.border_rank for series in data.iter_series()] == [100, 2500]


def test_per_subject_event_omits_subjects_without_data(per_subject_source, now) -> None:
    data = load_dashboard_data(per_subject_source, AppConfig(), now=now)

    assert data.status is DashboardStatus.READY
    assert data.layout is EventLayout.PER_SUBJECT_MULTI_BORDER
    assert list(data.subjects) == [1, 2, 3]
    assert sorted(data.subjects[1].predictions) == [100, 1000]
    assert sorted(data.subjects[2].predictions) == [100]
    assert data.subjects[2].get(1000) is None
    assert len(data.warnings) == 52 * 2 - 4
    assert "subject 4 border 100" in " ".join(data.warnings)


def test_malformed_prediction_is_dropped_with_warning(now, caplog) -> None:
    broken = build_prediction_payload()
    broken["metadata"]["raw"]["last_known_step_index"] = 99
    source = FakeArtifactSource(
        {
            EVENT_INFO_PATH: build_event_info(event_type=4),
            prediction_path(0, 100): build_prediction_payload(),
            prediction_path(0, 2500): broken,
        }
    )

    data = load_dashboard_data(source, AppConfig(), now=now)

    assert data.status is DashboardStatus.READY
    assert sorted(data.subjects[0].predictions) == [100]
    assert data.warnings == [
        "subject 0 border 2500: last_known_step_index 99 out of range for series of length 10"
    ]
    assert "Skipping prediction" in caplog.text


def _standard_source_with_2500(payload: dict) -> FakeArtifactSource:
    return FakeArtifactSource(
        {
            EVENT_INFO_PATH: build_event_info(event_type=3),
            prediction_path(0, 100): build_prediction_payload(),
            prediction_path(0, 2500): payload,
        }
    )


def test_band_with_null_bound_is_skipped_without_aborting(now, caplog) -> None:
    payload = build_prediction_payload()
    payload["data"]["raw"]["bands"] = {"5": {"p75": [None, 10], "p90": [1, 2]}}

    data = load_dashboard_data(_standard_source_with_2500(payload), AppConfig(), now=now)

    assert data.status is DashboardStatus.READY
    assert sorted(data.subjects[0].predictions) == [100, 2500]
    assert data.subjects[0].get(2500).bands == {}
    assert "Skipping malformed confidence band at step 5" in caplog.text


def test_non_mapping_sla_drops_only_that_border(now) -> None:
    payload = build_prediction_payload()
    payload["metadata"]["raw"]["sla"] = ["70%", "90%"]

    data = load_dashboard_data(_standard_source_with_2500(payload), AppConfig(), now=now)

    assert data.status is DashboardStatus.READY
    assert sorted(data.subjects[0].predictions) == [100]
    assert data.warnings == [
        "subject 0 border 2500: prediction field 'metadata.raw.sla' must be an object"
    ]


def test_unexpected_parse_error_is_reported_as_warning(now, monkeypatch) -> None:
    def explode(payload, *, subject_id, border_rank):
        raise TypeError("unsupported operand")

    monkeypatch.setattr("border_dashboard.io.loader.parse_prediction_series", explode)
    source = _standard_source_with_2500(build_prediction_payload())

    subjects, warnings = fetch_predictions(source, (0,), (100, 2500))

    assert subjects == {}
    assert warnings == [
        "subject 0 border 100: malformed prediction payload: unsupported operand",
        "subject 0 border 2500: malformed prediction payload: unsupported operand",
    ]


def test_metadata_failure_yields_no_event(now) -> None:
    data = load_dashboard_data(FakeArtifactSource({}), AppConfig(), now=now)

    assert data.status is DashboardStatus.NO_EVENT
    assert data.event is None
    assert data.reason is not None and data.reason.startswith("event info unavailable")


def test_unsupported_event_type_yields_no_event(now) -> None:
    source = FakeArtifactSource({EVENT_INFO_PATH: build_event_info(event_type=7)})

    data = load_dashboard_data(source, AppConfig(), now=now)

    assert data.status is DashboardStatus.NO_EVENT
    assert data.event is not None
    assert "unsupported event type code: 7" in data.reason
    assert source.requested == [EVENT_INFO_PATH]


def test_finished_event_yields_no_event(now) -> None:
    event = build_event_info(start=now - timedelta(days=9), end=now - timedelta(days=2))
    source = FakeArtifactSource({EVENT_INFO_PATH: event})

    data = load_dashboard_data(source, AppConfig(), now=now)

    assert data.status is DashboardStatus.NO_EVENT
    assert data.reason == "event is not ongoing"


def test_stale_predictions_yield_no_event(now) -> None:
    start = now - timedelta(days=2)
    source = FakeArtifactSource(
        {
            EVENT_INFO_PATH: build_event_info(start=start),
            prediction_path(0, 100): build_prediction_payload(),
            prediction_path(0, 2500): build_prediction_payload(),
        },
        modified={
            prediction_path(0, 100): now,
            prediction_path(0, 2500): start - timedelta(hours=1),
        },
    )

    data = load_dashboard_data(source, AppConfig(), now=now)
    assert data.status is DashboardStatus.NO_EVENT
    assert data.reason == "prediction data predates the event"

    config = AppConfig()
    config.source.validate_freshness = False
    assert load_dashboard_data(source, config, now=now).status is DashboardStatus.READY


def test_warm_up_gate_and_debug_bypass(now) -> None:
    documents = {
        EVENT_INFO_PATH: build_event_info(start=now - timedelta(hours=10)),
        prediction_path(0, 100): build_prediction_payload(),
        prediction_path(0, 2500): build_prediction_payload(),
    }

    data = load_dashboard_data(FakeArtifactSource(documents), AppConfig(), now=now)
    assert data.status is DashboardStatus.WARMING_UP
    assert data.subjects == {}

    config = AppConfig()
    config.source.debug = True
    assert load_dashboard_data(FakeArtifactSource(documents), config, now=now).status is (
        DashboardStatus.READY
    )


def test_maintenance_mode_short_circuits(now) -> None:
    config = AppConfig()
    config.maintenance.enabled = True
    config.maintenance.end_time = "2025-10-21 15:00 JST"
    source = FakeArtifactSource({})

    data = load_dashboard_data(source, config, now=now)

    assert data.status is DashboardStatus.MAINTENANCE
    assert data.maintenance_end == "2025-10-21 15:00 JST"
    assert source.requested == []


def test_neighbors_are_realigned_to_target_length(now) -> None:
    payload = build_prediction_payload()
    payload["data"]["normalized"]["neighbors"]["1"] = [0, 10, 20]
    payload["metadata"]["normalized"]["neighbors"]["1"]["raw_length"] = 49
    source = FakeArtifactSource(
        {
            EVENT_INFO_PATH: build_event_info(),
            prediction_path(0, 100): payload,
            prediction_path(0, 2500): build_prediction_payload(),
        }
    )

    data = load_dashboard_data(source, AppConfig(), now=now)

    neighbor = data.subjects[0].get(100).neighbors["1"]
    assert neighbor.curve.size == 10
    assert neighbor.curve[-1] == 20 * 7.0


def test_fetch_predictions_collects_every_pair() -> None:
    source = FakeArtifactSource(
        {prediction_path(subject, 100): build_prediction_payload() for subject in (5, 6)}
    )

    subjects, warnings = fetch_predictions(source, (5, 6, 7), (100,), max_workers=2)

    assert list(subjects) == [5, 6]
    assert warnings == [
        "subject 7 border 100: "
        "failed to fetch prediction/7/100.0/predictions.json: 404 Not Found"
    ]
