from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Sequence

from hpthermo.science.hpmath import DEFAULT_MAX_TERMS
from hpthermo.science.numeric import BACKENDS, DEFAULT_BACKEND, DEFAULT_PRECISION
from hpthermo.science.parameters import ParameterRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
TOML_SUFFIXES = {".toml"}
CSV_SUFFIXES = {".csv"}


@dataclass(frozen=True)
class RunConfig:
    """A TOML run description: the system itself plus how to compute and report it."""

    record: ParameterRecord
    backend: str = DEFAULT_BACKEND
    precision: int = DEFAULT_PRECISION
    max_terms: int = DEFAULT_MAX_TERMS
    write_summary: bool = False
    plot_path: Path | None = None
    units_note: bool = True


def load_toml(path: Path) -> dict[str, Any]:
    try:
        parser = importlib.import_module("tomllib")
    except ModuleNotFoundError:
        parser = importlib.import_module("tomli")

    parsed = parser.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(parsed, dict):
        raise ValueError("Top-level TOML document must be a table.")
    return parsed


def _number_list(values: Any, *, name: str) -> tuple[Any, ...]:
    if not isinstance(values, list):
        raise ValueError(f"{name} must be an array of numbers.")
    numbers = []
    for index, value in enumerate(values):
        # Strings keep every digit; TOML floats are binary doubles.
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"{name}[{index}] must be a number or a numeric string.")
        numbers.append(value)
    return tuple(numbers)


def _scalar(table: dict[str, Any], key: str, *, section: str) -> Any:
    if key not in table:
        raise ValueError(f"[{section}] is missing required value '{key}'.")
    value = table[key]
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"[{section}] value '{key}' must be a number or a numeric string.")
    return value


def _table(config: dict[str, Any], name: str, *, required: bool) -> dict[str, Any]:
    table = config.get(name)
    if table is None and not required:
        return {}
    if not isinstance(table, dict):
        raise ValueError(f"Config must contain a [{name}] table.")
    return table


def _resolve(base_dir: Path, value: str) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return path


def load_run_config(config_path: Path) -> RunConfig:
    config_path = Path(config_path)
    config = load_toml(config_path)

    version = int(config.get("schema_version", -1))
    if version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported config schema_version={version}; expected {SCHEMA_VERSION}.")

    system = _table(config, "system", required=True)
    sweep = _table(config, "sweep", required=True)
    numeric = _table(config, "numeric", required=False)
    output = _table(config, "output", required=False)
    base_dir = config_path.parent

    energies = _number_list(system.get("energies_eV"), name="energies_eV")
    potentials_raw = system.get("chemical_potentials_eV")
    potentials = None if potentials_raw is None else _number_list(potentials_raw, name="chemical_potentials_eV")

    backend = str(numeric.get("backend", DEFAULT_BACKEND)).lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown numeric backend '{backend}'. Use one of: {', '.join(sorted(BACKENDS))}")
    precision = int(numeric.get("precision", DEFAULT_PRECISION))
    if precision < 1:
        raise ValueError("[numeric] precision must be >= 1.")
    max_terms = int(numeric.get("max_terms", DEFAULT_MAX_TERMS))
    if max_terms < 1:
        raise ValueError("[numeric] max_terms must be >= 1.")

    csv_path = _resolve(base_dir, str(output.get("csv", "partition_function.csv")))
    plot = output.get("plot", False)
    if isinstance(plot, str):
        plot_path: Path | None = _resolve(base_dir, plot)
    elif plot is True:
        plot_path = csv_path.with_suffix(".png")
    else:
        plot_path = None

    record = ParameterRecord(
        output_path=str(csv_path),
        energies_eV=energies,
        T_min=_scalar(sweep, "T_min", section="sweep"),
        T_max=_scalar(sweep, "T_max", section="sweep"),
        step=_scalar(sweep, "step", section="sweep"),
        chemical_potentials_eV=potentials,
    )
    logger.debug("Loaded run config %s: states=%d backend=%s precision=%d", config_path, len(energies), backend, precision)
    return RunConfig(
        record=record,
        backend=backend,
        precision=precision,
        max_terms=max_terms,
        write_summary=bool(output.get("summary", False)),
        plot_path=plot_path,
        units_note=bool(output.get("units_note", True)),
    )


def read_legacy_config(config_path: Path) -> ParameterRecord:
    """
    Read a plain-text system description.

    Layout: the first line names the output CSV; the remaining
    whitespace-separated tokens are ``T_min T_max step n`` followed by n
    energies (eV) and, optionally, n chemical potentials (eV).
    """
    config_path = Path(config_path)
    lines = config_path.read_text(encoding="utf-8").splitlines()
    if not lines or not lines[0].strip():
        raise ValueError(f"{config_path}: first line must name the output file.")

    filename = lines[0].strip()
    tokens = " ".join(lines[1:]).split()
    if len(tokens) < 4:
        raise ValueError(f"{config_path}: expected 'T_min T_max step n' after the output filename.")

    t_min, t_max, step, n_token = tokens[:4]
    try:
        n = int(n_token)
    except ValueError as e:
        raise ValueError(f"{config_path}: state count must be an integer, got {n_token!r}.") from e
    if n <= 0:
        raise ValueError(f"{config_path}: state count must be > 0.")

    values = tokens[4:]
    if len(values) == n:
        energies, potentials = values, None
    elif len(values) == 2 * n:
        energies, potentials = values[:n], values[n:]
    else:
        raise ValueError(
            f"{config_path}: expected {n} energies (or {2 * n} values with chemical potentials), got {len(values)}."
        )

    return ParameterRecord(
        output_path=filename,
        energies_eV=tuple(energies),
        T_min=t_min,
        T_max=t_max,
        step=step,
        chemical_potentials_eV=None if potentials is None else tuple(potentials),
    )


def read_energies_csv(
    csv_path: Path,
    energy_col: str = "energy_eV",
    potential_col: str | None = None,
) -> tuple[list[str], list[str] | None]:
    """
    Read state energies (and optionally chemical potentials) from a CSV file.

    Values are returned as the file's text so no digits are lost before
    conversion into the high-precision backend.
    """
    import pandas as pd

    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    df = pd.read_csv(csv_path, dtype=str, skipinitialspace=True)
    if df.empty:
        raise ValueError(f"{csv_path} must contain at least 1 row.")

    columns = [energy_col] if potential_col is None else [energy_col, potential_col]
    missing = [column for column in columns if column not in df.columns]
    if missing:
        raise ValueError(f"{csv_path} is missing required columns: {', '.join(missing)}")

    frame = df.loc[:, columns]
    nan_columns = frame.columns[frame.isna().any()].tolist()
    if nan_columns:
        raise ValueError(f"{csv_path} contains empty values in columns: {', '.join(nan_columns)}")

    for column in columns:
        if pd.to_numeric(frame[column], errors="coerce").isna().any():
            raise ValueError(f"Column '{column}' must contain numeric values.")

    energies = [str(value).strip() for value in frame[energy_col].tolist()]
    potentials = None
    if potential_col is not None:
        potentials = [str(value).strip() for value in frame[potential_col].tolist()]
    return energies, potentials


def load_parameter_record(
    path: Path,
    *,
    energy_col: str = "energy_eV",
    potential_col: str | None = None,
    output_path: str | None = None,
    T_min: Any = None,
    T_max: Any = None,
    step: Any = None,
) -> ParameterRecord:
    """
    Build a ParameterRecord from a TOML run config, an energies CSV or a legacy text config.

    An energies CSV carries no sweep, so ``T_min``, ``T_max`` and ``step`` are
    required for it. ``output_path`` overrides the file's output name.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Parameter source not found: {path}")

    suffix = path.suffix.lower()
    if suffix in TOML_SUFFIXES:
        record = load_run_config(path).record
    elif suffix in CSV_SUFFIXES:
        if T_min is None or T_max is None or step is None:
            raise ValueError("An energies CSV needs T_min, T_max and step supplied alongside it.")
        energies, potentials = read_energies_csv(path, energy_col=energy_col, potential_col=potential_col)
        record = ParameterRecord(
            output_path=output_path or str(path.with_name(f"{path.stem}_partition.csv")),
            energies_eV=tuple(energies),
            T_min=T_min,
            T_max=T_max,
            step=step,
            chemical_potentials_eV=None if potentials is None else tuple(potentials),
        )
    else:
        record = read_legacy_config(path)

    if output_path is not None and record.output_path != output_path:
        record = replace(record, output_path=output_path)
    return record


def parse_number_list(text: str) -> tuple[str, ...]:
    """Split a comma-separated command-line list such as ``"0, 0.05, 1e-3"``."""
    values = tuple(token.strip() for token in str(text).split(",") if token.strip())
    if not values:
        raise ValueError("Expected a comma-separated list of numbers.")
    return values


def record_from_values(
    energies_eV: Sequence[Any],
    *,
    T_min: Any,
    T_max: Any,
    step: Any,
    output_path: str = "partition_function.csv",
    chemical_potentials_eV: Sequence[Any] | None = None,
) -> ParameterRecord:
    return ParameterRecord(
        output_path=output_path,
        energies_eV=tuple(energies_eV),
        T_min=T_min,
        T_max=T_max,
        step=step,
        chemical_potentials_eV=None if chemical_potentials_eV is None else tuple(chemical_potentials_eV),
    )
