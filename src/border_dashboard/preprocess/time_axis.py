from __future__ import annotations

import math
from datetime import datetime

import pandas as pd

DISPLAY_TIMEZONE = "Asia/Tokyo"
STEP_MINUTES = 30


def _as_timestamp(start_at: datetime | str, timezone_name: str) -> pd.Timestamp:
    stamp = pd.Timestamp(start_at)
    if stamp.tzinfo is None:
        return stamp.tz_localize(timezone_name)
    return stamp.tz_convert(timezone_name)


def build_time_points(
    start_at: datetime | str,
    count: int,
    *,
    timezone_name: str = DISPLAY_TIMEZONE,
    step_minutes: int = STEP_MINUTES,
) -> list[pd.Timestamp]:
    if count < 0:
        raise ValueError("count must be >= 0")
    if count == 0:
        return []
    start = _as_timestamp(start_at, timezone_name)
    # Fixed-offset steps; a calendar-aware freq would drift across DST in other zones.
    return list(start + pd.to_timedelta(list(range(count)), unit="m") * step_minutes)


def format_time_point(stamp: pd.Timestamp) -> str:
    return f"{stamp.month}/{stamp.day} {stamp:%H:%M}"


def build_time_axis(
    start_at: datetime | str,
    count: int,
    *,
    timezone_name: str = DISPLAY_TIMEZONE,
    step_minutes: int = STEP_MINUTES,
) -> list[str]:
    """Display labels for each 30-minute step, e.g. ``"6/3 15:30"``."""
    return [
        format_time_point(stamp)
        for stamp in build_time_points(
            start_at, count, timezone_name=timezone_name, step_minutes=step_minutes
        )
    ]


def progress_percent_points(count: int) -> list[int]:
    if count <= 0:
        return []
    if count == 1:
        return [0]
    # Half-up rounding so 12.5% reads as 13%, not banker's 12%.
    return [math.floor(index / (count - 1) * 100 + 0.5) for index in range(count)]
