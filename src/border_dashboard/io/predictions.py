from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np
import pandas as pd

from border_dashboard.preprocess.bands import ConfidenceBand, parse_band

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborCurve:
    key: str
    name: str
    id: int
    raw_length: int | None
    curve: np.ndarray
    idol_id: int | None = None

    @property
    def final_score(self) -> float:
        return _last_finite(self.curve)


@dataclass(frozen=True)
class PredictionSeries:
    subject_id: int
    border_rank: int
    event_id: int
    event_name: str
    raw_target: np.ndarray
    normalized_target: np.ndarray
    last_known_step_index: int
    normalized_last_known_step_index: int
    neighbors: dict[str, NeighborCurve] = field(default_factory=dict)
    sla: dict[int, str] = field(default_factory=dict)
    bands: dict[int, ConfidenceBand] = field(default_factory=dict)

    @property
    def length(self) -> int:
        return int(self.raw_target.shape[0])

    @property
    def final_score(self) -> float:
        return _last_finite(self.raw_target)

    def neighbor_curves(self) -> dict[str, np.ndarray]:
        return {key: neighbor.curve for key, neighbor in self.neighbors.items()}


def _last_finite(values: np.ndarray) -> float:
    finite = values[np.isfinite(values)]
    return float(finite[-1]) if finite.size else float("nan")


def coerce_curve(values: Any, *, field_name: str) -> np.ndarray:
    """Numeric array where anything unparseable becomes NaN."""
    if values is None:
        return np.array([], dtype=float)
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"prediction field '{field_name}' must be a list of numbers")
    scalars = [
        value if isinstance(value, (int, float, str)) and not isinstance(value, bool) else None
        for value in values
    ]
    series = pd.to_numeric(pd.Series(scalars, dtype="object"), errors="coerce")
    return series.to_numpy(dtype=float)


def _require_mapping(value: Any, *, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"prediction field '{field_name}' must be an object")
    return value


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _validate_index(value: Any, *, length: int, field_name: str) -> int:
    try:
        index = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"prediction field '{field_name}' must be an integer") from exc
    if not 0 <= index < length:
        raise ValueError(f"{field_name} {index} out of range for series of length {length}")
    return index


def _parse_bands(raw: Any) -> dict[int, ConfidenceBand]:
    if not raw:
        return {}
    bands: dict[int, ConfidenceBand] = {}
    for step, band_payload in _require_mapping(raw, field_name="data.raw.bands").items():
        try:
            bands[int(step)] = parse_band(_require_mapping(band_payload, field_name="band"))
        except ValueError as exc:
            LOGGER.warning("Skipping malformed confidence band at step %s: %s", step, exc)
    return bands


def parse_prediction_series(
    payload: Mapping[str, Any],
    *,
    subject_id: int,
    border_rank: int,
) -> PredictionSeries:
    """Parse a `predictions.json` document into a PredictionSeries.

    Raises ValueError when the index or length invariants are broken. Neighbor
    curves whose length differs from the normalized target are kept as-is;
    `preprocess.rescale.align_neighbors` realigns them.
    """
    payload = _require_mapping(payload, field_name="root")
    metadata = _require_mapping(payload.get("metadata"), field_name="metadata")
    data = _require_mapping(payload.get("data"), field_name="data")
    raw_meta = _require_mapping(metadata.get("raw"), field_name="metadata.raw")
    normalized_meta = _require_mapping(
        metadata.get("normalized") or {}, field_name="metadata.normalized"
    )
    raw_data = _require_mapping(data.get("raw"), field_name="data.raw")
    normalized_data = _require_mapping(data.get("normalized") or {}, field_name="data.normalized")

    raw_target = coerce_curve(raw_data.get("target"), field_name="data.raw.target")
    if raw_target.size == 0:
        raise ValueError("prediction field 'data.raw.target' must not be empty")
    normalized_target = coerce_curve(
        normalized_data.get("target"), field_name="data.normalized.target"
    )
    if normalized_target.size == 0:
        normalized_target = raw_target.copy()
    if normalized_target.shape != raw_target.shape:
        raise ValueError(
            "normalized target length "
            f"{normalized_target.size} != raw target length {raw_target.size}"
        )

    length = int(raw_target.size)
    last_known = _validate_index(
        raw_meta.get("last_known_step_index"),
        length=length,
        field_name="last_known_step_index",
    )
    normalized_last_known = _validate_index(
        normalized_meta.get("last_known_step_index", last_known),
        length=length,
        field_name="normalized.last_known_step_index",
    )

    neighbor_meta = _require_mapping(
        normalized_meta.get("neighbors") or {}, field_name="metadata.normalized.neighbors"
    )
    neighbor_data = _require_mapping(
        normalized_data.get("neighbors") or {}, field_name="data.normalized.neighbors"
    )
    neighbors: dict[str, NeighborCurve] = {}
    for key, values in neighbor_data.items():
        info = neighbor_meta.get(key) or {}
        if not isinstance(info, Mapping):
            info = {}
        neighbors[str(key)] = NeighborCurve(
            key=str(key),
            name=str(info.get("name") or f"neighbor {key}"),
            id=_optional_int(info.get("id")) or 0,
            raw_length=_optional_int(info.get("raw_length", info.get("length"))),
            curve=coerce_curve(values, field_name=f"data.normalized.neighbors.{key}"),
            idol_id=_optional_int(info.get("idol_id")),
        )

    sla: dict[int, str] = {}
    raw_sla = _require_mapping(raw_meta.get("sla") or {}, field_name="metadata.raw.sla")
    for error_range, text in raw_sla.items():
        range_key = _optional_int(error_range)
        if range_key is not None and text is not None:
            sla[range_key] = str(text)

    return PredictionSeries(
        subject_id=int(subject_id),
        border_rank=int(border_rank),
        event_id=_optional_int(raw_meta.get("id")) or 0,
        event_name=str(raw_meta.get("name") or ""),
        raw_target=raw_target,
        normalized_target=normalized_target,
        last_known_step_index=last_known,
        normalized_last_known_step_index=normalized_last_known,
        neighbors=neighbors,
        sla=sla,
        bands=_parse_bands(raw_data.get("bands")),
    )
