from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class ZoomWindow:
    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min < 0 or self.max < self.min:
            raise ValueError(f"invalid zoom window [{self.min}, {self.max}]")

    @property
    def visible_length(self) -> int:
        return self.max - self.min + 1

    def clamp_to(self, series_length: int) -> "ZoomWindow":
        upper = max(series_length - 1, 0)
        low = min(self.min, upper)
        return ZoomWindow(min=low, max=max(low, min(self.max, upper)))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def pixel_to_index(
    pixel_x: float,
    plot_area_left: float,
    plot_area_width: float,
    visible_length: int,
) -> int:
    """Snap a pointer x position to the nearest visible data index."""
    if visible_length <= 1 or plot_area_width <= 0:
        return 0
    raw = (pixel_x - plot_area_left) / plot_area_width * (visible_length - 1)
    return min(max(_round_half_up(raw), 0), visible_length - 1)


def index_to_pixel(
    index: int,
    plot_area_left: float,
    plot_area_width: float,
    visible_length: int,
) -> float:
    if visible_length <= 1:
        return float(plot_area_left)
    return plot_area_left + index / (visible_length - 1) * plot_area_width


def zoom_from_selection(
    start_index: float,
    end_index: float,
    series_length: int | None = None,
) -> ZoomWindow | None:
    """Selected index span -> zoom window; spans of one step or less are ignored.

    Without `series_length` the window is not clamped; charts clamp it later.
    """
    low = _round_half_up(min(start_index, end_index))
    high = _round_half_up(max(start_index, end_index))
    if high - low <= 1:
        return None
    window = ZoomWindow(min=low, max=high)
    return window.clamp_to(series_length) if series_length is not None else window


@dataclass(frozen=True)
class HoverRegion:
    index: int
    left: float
    right: float
    center: float


@dataclass(frozen=True)
class ChartProjector:
    """Pixel geometry of one rendered chart's plot area.

    Indices are relative to the zoom window when one is set; use
    `to_series_index` before indexing the full series.
    """

    plot_area_left: float
    plot_area_width: float
    series_length: int
    zoom: ZoomWindow | None = None

    @property
    def visible_length(self) -> int:
        if self.zoom is not None:
            return self.zoom.visible_length
        return self.series_length

    @property
    def offset(self) -> int:
        return self.zoom.min if self.zoom is not None else 0

    def pixel_to_index(self, pixel_x: float) -> int:
        return pixel_to_index(
            pixel_x, self.plot_area_left, self.plot_area_width, self.visible_length
        )

    def index_to_pixel(self, index: int) -> float:
        return index_to_pixel(index, self.plot_area_left, self.plot_area_width, self.visible_length)

    def to_series_index(self, relative_index: int) -> int:
        return relative_index + self.offset

    def snap(self, pixel_x: float) -> tuple[int, float]:
        """Pointer x -> (series index, snapped crosshair x)."""
        relative = self.pixel_to_index(pixel_x)
        return self.to_series_index(relative), self.index_to_pixel(relative)

    def hover_regions(self) -> list[HoverRegion]:
        """Midpoint-to-midpoint pixel columns, one per visible index."""
        length = self.visible_length
        if length <= 0:
            return []
        centers = [self.index_to_pixel(index) for index in range(length)]
        right_edge = self.plot_area_left + self.plot_area_width
        regions: list[HoverRegion] = []
        for index, center in enumerate(centers):
            left = self.plot_area_left if index == 0 else (centers[index - 1] + center) / 2
            right = right_edge if index == length - 1 else (center + centers[index + 1]) / 2
            regions.append(
                HoverRegion(
                    index=self.to_series_index(index),
                    left=left,
                    right=right,
                    center=center,
                )
            )
        return regions
