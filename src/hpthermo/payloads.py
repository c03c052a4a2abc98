from __future__ import annotations

import platform
import subprocess
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hpthermo.services.manager import SystemManager

SCHEMA_VERSION = "1.0"


def get_git_commit() -> str | None:
    """Current git commit, or None outside a repository or without git."""
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return None

    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


def build_provenance(
    *,
    cli_args: dict[str, Any] | None,
    input_hash: str | None,
    package_version: str,
) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "package_version": package_version,
        "python_version": platform.python_version(),
        "platform": platform.platform(),
        "cli_args": {} if cli_args is None else dict(cli_args),
        "input_hash": input_hash,
        "git_commit": get_git_commit(),
    }


def build_sweep_summary_payload(
    manager: "SystemManager",
    *,
    csv_path: str | None,
    created_at: str,
    provenance: dict[str, Any] | None,
) -> dict[str, Any]:
    params = manager.params
    to_float = manager.backend.to_float
    payload: dict[str, Any] = {
        "backend": manager.backend.name,
        "precision": manager.precision,
        "uses_chemical_potentials": params.uses_chemical_potentials,
        "T_min_K": to_float(params.T_min),
        "T_max_K": to_float(params.T_max),
        "step_K": to_float(params.T_step),
        "temperature_grid_K": [float(t) for t in manager.temperatures()],
        "csv_path": csv_path,
        "created_at": created_at,
    }
    payload.update(asdict(manager.summary()))
    if provenance is not None:
        payload["provenance"] = dict(provenance)
    return payload
