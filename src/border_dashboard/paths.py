from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    figures: Path
    tables: Path
    summary: Path
    artifacts: Path

    @property
    def index_html(self) -> Path:
        return self.root / "index.html"


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        figures=out_dir / "figures",
        tables=out_dir / "tables",
        summary=out_dir / "summary",
        artifacts=out_dir / "artifacts",
    )
    for path in (paths.root, paths.figures, paths.tables, paths.summary, paths.artifacts):
        path.mkdir(parents=True, exist_ok=True)
    return paths
