from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any

from border_dashboard.config import DEFAULT_THEME

LOGGER = logging.getLogger(__name__)

THEME_STORAGE_KEY = "preferred-theme"

PREDICTION_REGION_COLOR = "rgba(103, 220, 209, 0.1)"
PREDICTION_REGION_EDGE = "rgba(200, 200, 200, 0.2)"
BOUNDARY_LINE_COLOR = "rgb(255, 99, 132)"
TARGET_COLOR = "#8884d8"
NEIGHBOR_COLORS = ["#82ca9d", "#ffc658", "#ff7300", "#0088fe"]

_THEME_PALETTES: dict[str, dict[str, Any]] = {
    "cupcake": {
        "label": "Cupcake",
        "emoji": "🧁",
        "dark": False,
        "primary": "#65c3c8",
        "secondary": "#ef9fbc",
        "text": "#291334",
        "background": "#faf7f5",
        "surface": "#efeae6",
        "grid": "#e7e2df",
    },
    "valentine": {
        "label": "Valentine",
        "emoji": "💝",
        "dark": False,
        "primary": "#e96d7b",
        "secondary": "#a991f7",
        "text": "#632c3b",
        "background": "#fae7f4",
        "surface": "#f0d6e8",
        "grid": "#efd4e6",
    },
    "halloween": {
        "label": "Halloween",
        "emoji": "🎃",
        "dark": True,
        "primary": "#f28c18",
        "secondary": "#6d3a9c",
        "text": "#d6d6d6",
        "background": "#212121",
        "surface": "#2b2b2b",
        "grid": "#3a3a3a",
    },
    "aqua": {
        "label": "Aqua",
        "emoji": "💧",
        "dark": True,
        "primary": "#09ecf3",
        "secondary": "#966fb3",
        "text": "#c6daff",
        "background": "#345da7",
        "surface": "#2f5599",
        "grid": "#4a70b5",
    },
    "caramel": {
        "label": "Caramel",
        "emoji": "🍯",
        "dark": False,
        "primary": "#b4753d",
        "secondary": "#8c5a3c",
        "text": "#3b2416",
        "background": "#fff7ed",
        "surface": "#f5e6d3",
        "grid": "#ecdcc8",
    },
    "nord": {
        "label": "Nord",
        "emoji": "❄️",
        "dark": False,
        "primary": "#5e81ac",
        "secondary": "#81a1c1",
        "text": "#2e3440",
        "background": "#eceff4",
        "surface": "#e5e9f0",
        "grid": "#d8dee9",
    },
    "lemonade": {
        "label": "Lemonade",
        "emoji": "🍋",
        "dark": False,
        "primary": "#519903",
        "secondary": "#e9e92f",
        "text": "#1f2937",
        "background": "#ffffff",
        "surface": "#f8fdef",
        "grid": "#e5e7eb",
    },
}

THEME_NAMES: tuple[str, ...] = tuple(_THEME_PALETTES)


def palette_for(theme: str) -> dict[str, Any]:
    """Chart colors for a theme; unknown names fall back to the default theme."""
    palette = deepcopy(_THEME_PALETTES.get(theme, _THEME_PALETTES[DEFAULT_THEME]))
    palette.update(
        {
            "name": theme if theme in _THEME_PALETTES else DEFAULT_THEME,
            "target": TARGET_COLOR,
            "neighbors": list(NEIGHBOR_COLORS),
            "prediction_region": PREDICTION_REGION_COLOR,
            "prediction_region_edge": PREDICTION_REGION_EDGE,
            "boundary": BOUNDARY_LINE_COLOR,
        }
    )
    return palette


def color_with_alpha(color: str, alpha: float) -> str:
    """`#rrggbb` / `rgb(r, g, b)` -> `rgba(r, g, b, alpha)`."""
    value = color.strip()
    if value.startswith("rgba("):
        return value
    if value.startswith("rgb("):
        return value.replace("rgb(", "rgba(", 1).replace(")", f", {alpha})", 1)
    if value.startswith("#") and len(value) in (4, 7):
        digits = value[1:]
        if len(digits) == 3:
            digits = "".join(char * 2 for char in digits)
        red, green, blue = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
        return f"rgba({red}, {green}, {blue}, {alpha})"
    raise ValueError(f"unsupported color format: {color!r}")


def parse_css_color(color: str) -> tuple[float, float, float, float]:
    """CSS color -> matplotlib RGBA tuple in [0, 1]."""
    value = color.strip()
    if value.startswith("#"):
        value = color_with_alpha(value, 1.0)
    if value.startswith("rgb"):
        inner = value[value.index("(") + 1 : value.rindex(")")]
        parts = [part.strip() for part in inner.split(",")]
        red, green, blue = (float(part) / 255.0 for part in parts[:3])
        alpha = float(parts[3]) if len(parts) > 3 else 1.0
        return (red, green, blue, alpha)
    raise ValueError(f"unsupported color format: {color!r}")


class ThemeStore:
    """Single persisted theme preference.

    `load()` is called once at startup; every `set()` writes through to disk
    before returning. Anything missing or unreadable resolves to the default.
    """

    def __init__(
        self,
        path: Path,
        *,
        default: str = DEFAULT_THEME,
        allowed: tuple[str, ...] = THEME_NAMES,
        key: str = THEME_STORAGE_KEY,
    ) -> None:
        if default not in allowed:
            raise ValueError(f"default theme {default!r} is not one of {list(allowed)}")
        self.path = Path(path)
        self.default = default
        self.allowed = allowed
        self.key = key
        self._value = default

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable preference file %s: %s", self.path, exc)
            return {}
        if not isinstance(document, dict):
            LOGGER.warning("Ignoring preference file %s: expected a JSON object", self.path)
            return {}
        return document

    def load(self) -> str:
        stored = self._read_document().get(self.key)
        if stored is None:
            self._value = self.default
        elif isinstance(stored, str) and stored in self.allowed:
            self._value = stored
        else:
            LOGGER.warning("Unknown stored theme %r; using %s", stored, self.default)
            self._value = self.default
        return self._value

    def get(self) -> str:
        return self._value

    def set(self, value: str) -> str:
        if value not in self.allowed:
            raise ValueError(f"unknown theme {value!r}; expected one of {list(self.allowed)}")
        document = self._read_document()
        document[self.key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        self._value = value
        return value
