from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping


def ensure_parent_dir(path: Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, obj: Mapping[str, Any]) -> None:
    path = Path(path)
    ensure_parent_dir(path)
    path.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def summary_path_for(csv_path: Path) -> Path:
    """``results/sweep.csv`` -> ``results/sweep_summary.json``."""
    csv_path = Path(csv_path)
    return csv_path.with_name(f"{csv_path.stem}_summary.json")
