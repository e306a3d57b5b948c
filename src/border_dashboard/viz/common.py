from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure


@dataclass(frozen=True)
class RenderedChart:
    """A saved chart plus its plot-area bounds in image pixels (top-left origin)."""

    path: Path
    width_px: int
    height_px: int
    plot_left: float
    plot_top: float
    plot_width: float
    plot_height: float


def save_chart(fig: Figure, ax: Axes, path: Path, *, dpi: int) -> RenderedChart:
    """Save without bbox cropping so axes pixels match the written image."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.set_dpi(dpi)
    fig.tight_layout()
    fig.canvas.draw()
    width_px, height_px = (int(round(value)) for value in fig.canvas.get_width_height())
    bbox = ax.get_window_extent()
    fig.savefig(path, dpi=dpi, facecolor=fig.get_facecolor())
    plt.close(fig)
    return RenderedChart(
        path=path,
        width_px=width_px,
        height_px=height_px,
        plot_left=float(bbox.x0),
        plot_top=float(height_px - bbox.y1),
        plot_width=float(bbox.width),
        plot_height=float(bbox.height),
    )
