from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from border_dashboard.config import AppConfig
from border_dashboard.idols import SUBJECT_IDS
from border_dashboard.io.errors import ArtifactFetchError, UnsupportedEventTypeError
from border_dashboard.io.event_info import EventInfo, EventLayout, parse_event_info
from border_dashboard.io.predictions import PredictionSeries, parse_prediction_series
from border_dashboard.io.source import EVENT_INFO_PATH, ArtifactSource, prediction_path
from border_dashboard.preprocess.rescale import align_neighbors

LOGGER = logging.getLogger(__name__)

STANDARD_SUBJECT_ID = 0
FRESHNESS_SAMPLE_SUBJECT_ID = 1


class DashboardStatus(str, Enum):
    READY = "ready"
    NO_EVENT = "no_event"
    WARMING_UP = "warming_up"
    MAINTENANCE = "maintenance"


@dataclass
class SubjectPredictions:
    subject_id: int
    predictions: dict[int, PredictionSeries] = field(default_factory=dict)

    def get(self, border_rank: int) -> PredictionSeries | None:
        return self.predictions.get(int(border_rank))


@dataclass
class DashboardData:
    status: DashboardStatus
    event: EventInfo | None = None
    layout: EventLayout | None = None
    subjects: dict[int, SubjectPredictions] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    reason: str | None = None
    maintenance_end: str | None = None
    generated_at: datetime | None = None

    @property
    def border_ranks(self) -> tuple[int, ...]:
        return self.layout.border_ranks if self.layout is not None else ()

    def iter_series(self) -> list[PredictionSeries]:
        return [
            series
            for subject_id in sorted(self.subjects)
            for _, series in sorted(self.subjects[subject_id].predictions.items())
        ]


def _placeholder(
    status: DashboardStatus,
    reason: str,
    *,
    event: EventInfo | None = None,
    now: datetime,
) -> DashboardData:
    LOGGER.info("Dashboard status %s: %s", status.value, reason)
    return DashboardData(status=status, event=event, reason=reason, generated_at=now)


def _is_fresh(source: ArtifactSource, relative_path: str, event_start: datetime) -> bool:
    try:
        modified = source.last_modified(relative_path)
    except ArtifactFetchError as exc:
        LOGGER.error("Freshness check failed for %s: %s", relative_path, exc)
        return False
    if modified is None:
        return True
    if modified < event_start:
        LOGGER.error(
            "Prediction data is outdated: %s modified %s, event started %s",
            relative_path,
            modified.isoformat(),
            event_start.isoformat(),
        )
        return False
    return True


def _freshness_paths(layout: EventLayout) -> list[str]:
    if layout is EventLayout.STANDARD_DUO_BORDER:
        return [prediction_path(STANDARD_SUBJECT_ID, rank) for rank in layout.border_ranks]
    return [prediction_path(FRESHNESS_SAMPLE_SUBJECT_ID, layout.border_ranks[0])]


def _fetch_series(
    source: ArtifactSource,
    subject_id: int,
    border_rank: int,
) -> PredictionSeries:
    payload = source.fetch_json(prediction_path(subject_id, border_rank))
    try:
        return parse_prediction_series(payload, subject_id=subject_id, border_rank=border_rank)
    except (TypeError, AttributeError, KeyError, IndexError) as exc:
        raise ValueError(f"malformed prediction payload: {exc}") from exc


def fetch_predictions(
    source: ArtifactSource,
    subject_ids: tuple[int, ...] | list[int],
    border_ranks: tuple[int, ...],
    *,
    max_workers: int = 8,
) -> tuple[dict[int, SubjectPredictions], list[str]]:
    """Fetch every (subject, border) pair concurrently.

    A failed or malformed artifact is dropped with a warning. Subjects with no
    surviving border are left out entirely.
    """
    subjects: dict[int, SubjectPredictions] = {}
    warnings: list[str] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(_fetch_series, source, subject_id, rank): (subject_id, rank)
            for subject_id in subject_ids
            for rank in border_ranks
        }
        for future in as_completed(futures):
            subject_id, rank = futures[future]
            try:
                series = future.result()
            except (ArtifactFetchError, ValueError) as exc:
                message = f"subject {subject_id} border {rank}: {exc}"
                LOGGER.warning("Skipping prediction for %s", message)
                warnings.append(message)
                continue
            subject = subjects.setdefault(subject_id, SubjectPredictions(subject_id=subject_id))
            subject.predictions[rank] = series
    return dict(sorted(subjects.items())), sorted(warnings)


def load_dashboard_data(
    source: ArtifactSource,
    config: AppConfig,
    *,
    now: datetime | None = None,
) -> DashboardData:
    now = now or datetime.now(timezone.utc)
    if config.maintenance.enabled:
        data = _placeholder(DashboardStatus.MAINTENANCE, "maintenance mode enabled", now=now)
        data.maintenance_end = config.maintenance.end_time
        return data

    try:
        event = parse_event_info(
            source.fetch_json(EVENT_INFO_PATH),
            timezone_name=config.display.timezone,
        )
    except (ArtifactFetchError, ValueError) as exc:
        LOGGER.error("Could not load event info from %s: %s", source.description, exc)
        return _placeholder(DashboardStatus.NO_EVENT, f"event info unavailable: {exc}", now=now)

    try:
        layout = event.layout
    except UnsupportedEventTypeError as exc:
        LOGGER.warning("Event %s has unsupported type code %s", event.event_id, exc.event_type_code)
        return _placeholder(DashboardStatus.NO_EVENT, str(exc), event=event, now=now)

    if not event.is_ongoing(now):
        return _placeholder(DashboardStatus.NO_EVENT, "event is not ongoing", event=event, now=now)

    if config.source.validate_freshness and not all(
        _is_fresh(source, path, event.start_at) for path in _freshness_paths(layout)
    ):
        return _placeholder(
            DashboardStatus.NO_EVENT, "prediction data predates the event", event=event, now=now
        )

    if not config.source.debug and event.hours_since_start(now) < config.display.warmup_hours:
        data = _placeholder(
            DashboardStatus.WARMING_UP,
            f"less than {config.display.warmup_hours:g} hours since event start",
            event=event,
            now=now,
        )
        data.layout = layout
        return data

    subject_ids = (
        (STANDARD_SUBJECT_ID,) if layout is EventLayout.STANDARD_DUO_BORDER else SUBJECT_IDS
    )
    subjects, warnings = fetch_predictions(
        source,
        subject_ids,
        layout.border_ranks,
        max_workers=config.source.max_workers,
    )

    for subject in subjects.values():
        for rank, series in list(subject.predictions.items()):
            aligned, align_warnings = align_neighbors(series, event.duration_days)
            subject.predictions[rank] = aligned
            warnings.extend(
                f"subject {subject.subject_id} border {rank}: {message}"
                for message in align_warnings
            )

    LOGGER.info(
        "Loaded %d prediction series for event %s (%s)",
        sum(len(subject.predictions) for subject in subjects.values()),
        event.event_id,
        layout.value,
    )
    return DashboardData(
        status=DashboardStatus.READY,
        event=event,
        layout=layout,
        subjects=subjects,
        warnings=warnings,
        generated_at=now,
    )
