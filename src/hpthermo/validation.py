from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Callable


class ValidationError(ValueError):
    """Raised when a JSON payload violates an output contract."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def require_key(obj: dict[str, Any], key: str, *, path: str) -> Any:
    if key not in obj:
        raise ValidationError(_join(path, key), "missing required key")
    return obj[key]


def require_bool(value: Any, *, path: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(path, f"expected bool, got {type(value).__name__}")
    return value


def require_number(
    value: Any,
    *,
    path: str,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(path, f"expected number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        raise ValidationError(path, "must be a finite number")
    if minimum is not None and number < minimum:
        raise ValidationError(path, f"must be >= {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(path, f"must be <= {maximum}")
    return number


def require_int(value: Any, *, path: str, minimum: int | None = None) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(path, f"expected int, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ValidationError(path, f"must be >= {minimum}")
    return value


def require_string(value: Any, *, path: str, nullable: bool = False) -> str | None:
    if value is None and nullable:
        return None
    if not isinstance(value, str):
        raise ValidationError(path, f"expected str, got {type(value).__name__}")
    return value


def require_list(value: Any, *, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise ValidationError(path, f"expected list, got {type(value).__name__}")
    return value


def _validate_provenance(payload: Any, *, path: str) -> None:
    if not isinstance(payload, dict):
        raise ValidationError(path, f"expected object, got {type(payload).__name__}")
    for key in ("schema_version", "package_version", "python_version", "platform"):
        require_string(require_key(payload, key, path=path), path=_join(path, key))
    for key in ("input_hash", "git_commit"):
        require_string(require_key(payload, key, path=path), path=_join(path, key), nullable=True)
    if not isinstance(require_key(payload, "cli_args", path=path), dict):
        raise ValidationError(_join(path, "cli_args"), "expected object")


def _validate_sweep_summary(payload: dict[str, Any], *, path: str) -> None:
    require_string(require_key(payload, "backend", path=path), path=_join(path, "backend"))
    require_int(require_key(payload, "precision", path=path), path=_join(path, "precision"), minimum=1)
    require_int(require_key(payload, "states", path=path), path=_join(path, "states"), minimum=1)
    num_samples = require_int(require_key(payload, "num_samples", path=path), path=_join(path, "num_samples"), minimum=1)
    require_bool(require_key(payload, "uses_chemical_potentials", path=path), path=_join(path, "uses_chemical_potentials"))
    require_bool(require_key(payload, "all_converged", path=path), path=_join(path, "all_converged"))

    t_min = require_number(require_key(payload, "T_min_K", path=path), path=_join(path, "T_min_K"), minimum=0.0)
    require_number(require_key(payload, "T_max_K", path=path), path=_join(path, "T_max_K"), minimum=t_min)
    # The step bound and strict grid order hold for the exact values; float
    # rounding keeps them only as non-strict order.
    require_number(require_key(payload, "step_K", path=path), path=_join(path, "step_K"), minimum=0.0)

    grid_path = _join(path, "temperature_grid_K")
    grid = require_list(require_key(payload, "temperature_grid_K", path=path), path=grid_path)
    if len(grid) != num_samples:
        raise ValidationError(grid_path, f"expected {num_samples} temperatures, got {len(grid)}")
    previous = 0.0
    for index, value in enumerate(grid):
        temperature = require_number(value, path=f"{grid_path}[{index}]", minimum=0.0)
        if index and temperature < previous:
            raise ValidationError(f"{grid_path}[{index}]", "temperatures must be non-decreasing")
        previous = temperature

    require_number(
        require_key(payload, "max_probability_error", path=path),
        path=_join(path, "max_probability_error"),
        minimum=0.0,
        maximum=1.0,
    )
    for key in ("min_probability", "max_probability"):
        require_number(require_key(payload, key, path=path), path=_join(path, key), minimum=0.0, maximum=1.0)

    require_string(require_key(payload, "csv_path", path=path), path=_join(path, "csv_path"), nullable=True)
    require_string(require_key(payload, "created_at", path=path), path=_join(path, "created_at"))

    provenance = payload.get("provenance")
    if provenance is not None:
        _validate_provenance(provenance, path=_join(path, "provenance"))


def _validate_run_manifest(payload: dict[str, Any], *, path: str) -> None:
    for key in ("config_sha256", "package_version", "platform", "python_version"):
        require_string(require_key(payload, key, path=path), path=_join(path, key))
    require_int(
        require_key(payload, "config_schema_version", path=path),
        path=_join(path, "config_schema_version"),
        minimum=1,
    )
    require_string(require_key(payload, "git_commit", path=path), path=_join(path, "git_commit"), nullable=True)
    outputs_path = _join(path, "produced_outputs")
    outputs = require_list(require_key(payload, "produced_outputs", path=path), path=outputs_path)
    for index, output in enumerate(outputs):
        require_string(output, path=f"{outputs_path}[{index}]")


_VALIDATORS: dict[str, Callable[[dict[str, Any]], None]] = {
    "sweep_summary": lambda p: _validate_sweep_summary(p, path="root"),
    "run_manifest": lambda p: _validate_run_manifest(p, path="root"),
}


def detect_kind_from_filename(path: Path) -> str:
    if Path(path).name.lower() == "run_manifest.json":
        return "run_manifest"
    return "sweep_summary"


def validate_output(obj: dict[str, Any], *, kind: str | None = None) -> None:
    output_kind = "sweep_summary" if kind is None else kind
    validator = _VALIDATORS.get(output_kind)
    if validator is None:
        raise ValidationError("root", f"unknown output kind '{output_kind}'")
    validator(obj)


def validate_output_file(path: Path, *, kind: str | None = None) -> None:
    file_path = Path(path)
    payload = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValidationError("root", f"expected top-level object, got {type(payload).__name__}")
    validate_output(payload, kind=kind or detect_kind_from_filename(file_path))
