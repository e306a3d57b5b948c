from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from border_dashboard.paths import OutputPaths
from border_dashboard.report.payload import _json_safe

LOGGER = logging.getLogger(__name__)

DASHBOARD_TITLE = "ミリシタ・ボーダー予想 (ベータ版)"
TEMPLATE_NAME = "dashboard.html.j2"
PAYLOAD_FILENAME = "dashboard.json"


def _template_env() -> Environment:
    templates_path = Path(__file__).resolve().parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_path)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def base_context(
    *,
    status: str,
    theme: dict[str, Any],
    source: str,
    warmup_hours: float,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    generated = generated_at or datetime.now(timezone.utc)
    return {
        "title": DASHBOARD_TITLE,
        "status": status,
        "theme": theme,
        "source": source,
        "generated_at": generated.isoformat(timespec="seconds"),
        "event": None,
        "layout": None,
        "tabs": [],
        "subjects": [],
        "selected_subject": None,
        "warnings": [],
        "reason": None,
        "maintenance_end": None,
        "warmup_hours": f"{warmup_hours:g}",
    }


def render_dashboard(
    context: dict[str, Any],
    paths: OutputPaths,
    *,
    payload: dict[str, Any] | None = None,
) -> Path:
    """Write `index.html` and the machine-readable `artifacts/dashboard.json`."""
    env = _template_env()
    template = env.get_template(TEMPLATE_NAME)

    payload_path = paths.artifacts / PAYLOAD_FILENAME
    document = _json_safe(payload if payload is not None else {"status": context["status"]})
    payload_path.write_text(
        json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False),
        encoding="utf-8",
    )

    html = template.render(**context)
    paths.index_html.write_text(html, encoding="utf-8")
    LOGGER.info("Wrote dashboard (%s) to %s", context["status"], paths.index_html)
    return paths.index_html
