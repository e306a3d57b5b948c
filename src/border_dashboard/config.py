from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

PRODUCTION_BASE_URL = "https://cdn.yuenimillion.live/data"
DEFAULT_THEME = "cupcake"


class SourceConfig(BaseModel):
    mode: Literal["auto", "local", "remote"] = "auto"
    base_url: str = PRODUCTION_BASE_URL
    local_dir: str = "normal/data"
    local_hosts: list[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "::1", "0.0.0.0"]
    )
    debug: bool = False
    max_workers: int = Field(default=8, ge=1, le=64)
    user_agent: str = "mltd-border-dashboard"
    validate_freshness: bool = True


class DisplayConfig(BaseModel):
    timezone: str = "Asia/Tokyo"
    step_minutes: int = Field(default=30, ge=1)
    warmup_hours: float = Field(default=36.0, ge=0.0)
    outlier_window: int = Field(default=3, ge=1)


class ThemeConfig(BaseModel):
    storage_path: str = "preferences.json"
    default: str = DEFAULT_THEME


class MaintenanceConfig(BaseModel):
    enabled: bool = False
    end_time: str | None = None


class LinksConfig(BaseModel):
    event_url_template: str = "https://mltd.matsurihi.me/events/{event_id}"


class OutputsConfig(BaseModel):
    figure_width: float = Field(default=12.0, gt=0.0)
    figure_height: float = Field(default=5.0, gt=0.0)
    dpi: int = Field(default=100, ge=50, le=400)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source: SourceConfig = Field(default_factory=SourceConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    maintenance: MaintenanceConfig = Field(default_factory=MaintenanceConfig)
    links: LinksConfig = Field(default_factory=LinksConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_path(path_value: str, base_dir: Path) -> str:
    candidate = Path(path_value).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path | None) -> AppConfig:
    """Load YAML config; a missing path yields the built-in defaults."""
    if path is None or not path.exists():
        config = AppConfig()
        base_dir = Path.cwd()
    else:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        config = AppConfig.model_validate(data)
        base_dir = path.resolve().parent

    config.source.local_dir = _resolve_path(config.source.local_dir, base_dir)
    config.theme.storage_path = _resolve_path(config.theme.storage_path, base_dir)
    config.source.base_url = (
        os.getenv("BORDER_DASHBOARD_BASE_URL") or config.source.base_url
    ).rstrip("/")
    return config
