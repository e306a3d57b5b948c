from __future__ import annotations

import json
import logging
import os
import socket
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any, Protocol

import requests

from border_dashboard.config import SourceConfig
from border_dashboard.io.errors import ArtifactFetchError

LOGGER = logging.getLogger(__name__)

EVENT_INFO_PATH = "metadata/latest_event_border_info.json"
SERVING_HOST_ENV = "DASHBOARD_SERVING_HOST"


def prediction_path(subject_id: int, border_rank: int) -> str:
    # Published directories are named after the float rank, e.g. "100.0".
    return f"prediction/{int(subject_id)}/{float(border_rank):.1f}/predictions.json"


class ArtifactSource(Protocol):
    description: str

    def fetch_json(self, relative_path: str) -> Any: ...

    def last_modified(self, relative_path: str) -> datetime | None: ...


class HttpArtifactSource:
    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        user_agent: str = "mltd-border-dashboard",
        debug: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", user_agent)
        self.debug = debug
        self.description = self.base_url

    def url_for(self, relative_path: str) -> str:
        url = f"{self.base_url}/{relative_path.lstrip('/')}"
        return f"{url}?debug" if self.debug else url

    def fetch_json(self, relative_path: str) -> Any:
        url = self.url_for(relative_path)
        try:
            response = self.session.get(url)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise ArtifactFetchError(url, str(exc)) from exc
        except ValueError as exc:
            raise ArtifactFetchError(url, f"invalid JSON: {exc}") from exc

    def last_modified(self, relative_path: str) -> datetime | None:
        url = self.url_for(relative_path)
        try:
            response = self.session.head(url)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ArtifactFetchError(url, str(exc)) from exc
        header = response.headers.get("Last-Modified")
        if not header:
            return None
        try:
            modified = parsedate_to_datetime(header)
        except (TypeError, ValueError):
            LOGGER.warning("Unparseable Last-Modified header %r for %s", header, url)
            return None
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        return modified


class LocalArtifactSource:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.description = str(self.root)

    def _path(self, relative_path: str) -> Path:
        return self.root / relative_path.lstrip("/")

    def fetch_json(self, relative_path: str) -> Any:
        path = self._path(relative_path)
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except OSError as exc:
            raise ArtifactFetchError(str(path), str(exc)) from exc
        except json.JSONDecodeError as exc:
            raise ArtifactFetchError(str(path), f"invalid JSON: {exc}") from exc

    def last_modified(self, relative_path: str) -> datetime | None:
        path = self._path(relative_path)
        try:
            return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        except OSError as exc:
            raise ArtifactFetchError(str(path), str(exc)) from exc


def detect_serving_host() -> str:
    return os.getenv(SERVING_HOST_ENV) or socket.gethostname()


def is_local_host(host: str, local_hosts: list[str]) -> bool:
    hostname = host.strip().lower()
    if hostname.startswith("[") and "]" in hostname:
        hostname = hostname[1 : hostname.index("]")]
    elif hostname.count(":") == 1:
        hostname = hostname.split(":", 1)[0]
    return hostname in {value.lower() for value in local_hosts} or hostname.endswith(".local")


def resolve_source(config: SourceConfig, *, serving_host: str | None = None) -> ArtifactSource:
    """Local development directory or the production CDN, by serving host."""
    mode = config.mode
    if mode == "auto":
        host = serving_host if serving_host is not None else detect_serving_host()
        mode = "local" if is_local_host(host, config.local_hosts) else "remote"
        LOGGER.info("Serving host %r -> %s artifact source", host, mode)
    if mode == "local":
        return LocalArtifactSource(Path(config.local_dir))
    return HttpArtifactSource(config.base_url, user_agent=config.user_agent, debug=config.debug)
