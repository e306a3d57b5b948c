from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from border_dashboard.io.errors import ArtifactFetchError
from border_dashboard.io.source import EVENT_INFO_PATH, prediction_path

NOW = datetime(2026, 6, 10, 12, 0, tzinfo=timezone.utc)


class FakeArtifactSource:
    """In-memory artifact source keyed by relative path."""

    description = "fake://artifacts"

    def __init__(
        self,
        documents: dict[str, Any],
        *,
        modified: dict[str, datetime] | None = None,
    ) -> None:
        self.documents = documents
        self.modified = modified or {}
        self.requested: list[str] = []

    def fetch_json(self, relative_path: str) -> Any:
        self.requested.append(relative_path)
        if relative_path not in self.documents:
            raise ArtifactFetchError(relative_path, "404 Not Found")
        return copy.deepcopy(self.documents[relative_path])

    def last_modified(self, relative_path: str) -> datetime | None:
        return self.modified.get(relative_path)


def build_prediction_payload(
    *,
    length: int = 10,
    last_known: int = 4,
    n_neighbors: int = 2,
    scale: float = 1000.0,
    event_name: str = "Test Event",
    event_id: int = 321,
) -> dict[str, Any]:
    raw = [scale * (index + 1) for index in range(length)]
    normalized = [value / 2 for value in raw]
    neighbors = {
        str(key): [value * (0.5 + 0.2 * key) for value in normalized]
        for key in range(1, n_neighbors + 1)
    }
    neighbor_meta = {
        key: {"name": f"Past Event {key}", "id": 100 + int(key), "raw_length": length}
        for key in neighbors
    }
    return {
        "metadata": {
            "raw": {
                "id": event_id,
                "name": event_name,
                "last_known_step_index": last_known,
                "sla": {"5": "70% of events land within ±5%", "10": "90% within ±10%"},
            },
            "normalized": {
                "last_known_step_index": last_known,
                "neighbors": neighbor_meta,
            },
        },
        "data": {
            "raw": {"target": raw},
            "normalized": {"target": normalized, "neighbors": neighbors},
        },
    }


def build_event_info(
    *,
    event_type: int = 3,
    start: datetime | None = None,
    end: datetime | None = None,
    name: str = "Test Event",
) -> dict[str, Any]:
    start = start or NOW - timedelta(days=2)
    end = end or NOW + timedelta(days=5)
    return {
        "EventId": 321,
        "EventType": event_type,
        "EventName": name,
        "StartAt": start.isoformat(),
        "EndAt": end.isoformat(),
    }


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def prediction_payload() -> Callable[..., dict[str, Any]]:
    return build_prediction_payload


@pytest.fixture
def standard_source() -> FakeArtifactSource:
    return FakeArtifactSource(
        {
            EVENT_INFO_PATH: build_event_info(event_type=3),
            prediction_path(0, 100): build_prediction_payload(scale=5000.0),
            prediction_path(0, 2500): build_prediction_payload(scale=800.0),
        }
    )


@pytest.fixture
def per_subject_source() -> FakeArtifactSource:
    documents: dict[str, Any] = {EVENT_INFO_PATH: build_event_info(event_type=5)}
    for subject_id in (1, 2, 3):
        documents[prediction_path(subject_id, 100)] = build_prediction_payload(scale=900.0)
    documents[prediction_path(1, 1000)] = build_prediction_payload(scale=300.0)
    return FakeArtifactSource(documents)
