from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

from hpthermo.io.config import load_run_config, record_from_values
from hpthermo.science.hpmath import DEFAULT_MAX_TERMS
from hpthermo.science.numeric import DEFAULT_BACKEND, DEFAULT_PRECISION, NumericBackend
from hpthermo.services.manager import SystemManager

logger = logging.getLogger(__name__)


def compute_partition_sweep(
    energies_eV: Sequence[Any],
    *,
    T_min: Any,
    T_max: Any,
    step: Any,
    chemical_potentials_eV: Sequence[Any] | None = None,
    backend: str | NumericBackend = DEFAULT_BACKEND,
    precision: int = DEFAULT_PRECISION,
    max_terms: int = DEFAULT_MAX_TERMS,
) -> SystemManager:
    """
    Sweep a system given directly as energies (eV) and return the computed manager.

    Pass numbers as strings to keep every digit; floats are converted through
    their shortest repr. Nothing is written to disk.
    """
    record = record_from_values(
        energies_eV,
        T_min=T_min,
        T_max=T_max,
        step=step,
        chemical_potentials_eV=chemical_potentials_eV,
    )
    manager = SystemManager(backend=backend, precision=precision, max_terms=max_terms)
    manager.initialize(record)
    manager.run_sweep()
    logger.debug("Computed partition sweep: states=%d n_samples=%d", manager.params.states, manager.n_samples)
    return manager


def sweep_from_config(config_path: Path) -> SystemManager:
    """Compute the sweep a TOML config describes, using its numeric settings, without writing outputs."""
    run_config = load_run_config(Path(config_path))
    manager = SystemManager(
        backend=run_config.backend,
        precision=run_config.precision,
        max_terms=run_config.max_terms,
    )
    manager.initialize(run_config.record)
    manager.run_sweep()
    return manager


def sweep_from_csv(
    csv_path: Path,
    *,
    T_min: Any,
    T_max: Any,
    step: Any,
    energy_col: str = "energy_eV",
    potential_col: str | None = None,
    backend: str | NumericBackend = DEFAULT_BACKEND,
    precision: int = DEFAULT_PRECISION,
) -> SystemManager:
    """Compute the sweep for state energies stored in a CSV column."""
    csv_path = Path(csv_path)
    manager = SystemManager(backend=backend, precision=precision)
    manager.initialize(
        csv_path,
        energy_col=energy_col,
        potential_col=potential_col,
        T_min=T_min,
        T_max=T_max,
        step=step,
    )
    manager.run_sweep()
    logger.debug("Swept partition function from CSV: path=%s n_samples=%d", csv_path, manager.n_samples)
    return manager
