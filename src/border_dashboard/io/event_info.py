from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

from border_dashboard.io.errors import UnsupportedEventTypeError

EVENT_TIMEZONE_NAME = "Asia/Tokyo"


class EventLayout(str, Enum):
    STANDARD_DUO_BORDER = "standard_duo_border"
    PER_SUBJECT_MULTI_BORDER = "per_subject_multi_border"

    @property
    def border_ranks(self) -> tuple[int, int]:
        if self is EventLayout.STANDARD_DUO_BORDER:
            return (100, 2500)
        return (100, 1000)


EVENT_TYPE_LAYOUTS: dict[int, EventLayout] = {
    3: EventLayout.STANDARD_DUO_BORDER,
    4: EventLayout.STANDARD_DUO_BORDER,
    11: EventLayout.STANDARD_DUO_BORDER,
    5: EventLayout.PER_SUBJECT_MULTI_BORDER,
}


def layout_for_event_type(event_type_code: int) -> EventLayout:
    try:
        return EVENT_TYPE_LAYOUTS[int(event_type_code)]
    except KeyError as exc:
        raise UnsupportedEventTypeError(int(event_type_code)) from exc


@dataclass(frozen=True)
class EventInfo:
    event_id: int
    name: str
    start_at: datetime
    end_at: datetime
    event_type_code: int

    @property
    def layout(self) -> EventLayout:
        return layout_for_event_type(self.event_type_code)

    @property
    def duration_days(self) -> float:
        return (self.end_at - self.start_at).total_seconds() / 86400.0

    def is_ongoing(self, now: datetime) -> bool:
        return self.start_at <= now <= self.end_at

    def hours_since_start(self, now: datetime) -> float:
        return (now - self.start_at).total_seconds() / 3600.0


def _parse_timestamp(
    raw_value: Any,
    *,
    field_name: str,
    timezone_name: str,
) -> datetime:
    if isinstance(raw_value, pd.Timestamp):
        parsed = raw_value
    elif isinstance(raw_value, datetime):
        parsed = pd.Timestamp(raw_value)
    elif isinstance(raw_value, str) and raw_value.strip():
        try:
            parsed = pd.Timestamp(raw_value.strip())
        except ValueError as exc:
            raise ValueError(f"invalid datetime for event field '{field_name}'") from exc
    else:
        raise ValueError(f"event field '{field_name}' must be an ISO datetime string")

    if pd.isna(parsed):
        raise ValueError(f"invalid datetime for event field '{field_name}'")
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize(timezone_name)
    else:
        parsed = parsed.tz_convert(timezone_name)
    return parsed.to_pydatetime()


def _validate_timezone(timezone_name: str) -> str:
    try:
        ZoneInfo(timezone_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"invalid event timezone: {timezone_name}") from exc
    return timezone_name


def parse_event_info(
    payload: Mapping[str, Any],
    *,
    timezone_name: str = EVENT_TIMEZONE_NAME,
) -> EventInfo:
    """Parse the `latest_event_border_info.json` document.

    The layout is not resolved here so that an unknown type code still yields
    an EventInfo the caller can log; `EventInfo.layout` raises on access.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("event info must be a JSON object")
    timezone_name = _validate_timezone(timezone_name)

    try:
        event_type_code = int(payload["EventType"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError("event info field 'EventType' must be an integer") from exc

    name = payload.get("EventName")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("event info field 'EventName' must be a non-empty string")

    start_at = _parse_timestamp(
        payload.get("StartAt"), field_name="StartAt", timezone_name=timezone_name
    )
    end_at = _parse_timestamp(payload.get("EndAt"), field_name="EndAt", timezone_name=timezone_name)
    if end_at < start_at:
        raise ValueError("event info EndAt must be >= StartAt")

    return EventInfo(
        event_id=int(payload.get("EventId") or 0),
        name=name.strip(),
        start_at=start_at,
        end_at=end_at,
        event_type_code=event_type_code,
    )
