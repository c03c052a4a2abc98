from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from hpthermo.science.constants import (
    MAX_STATES,
    MAX_TEMPERATURE_K_LITERAL,
    MIN_TEMPERATURE_K_LITERAL,
)
from hpthermo.science.numeric import DEFAULT_BACKEND, NumericBackend, get_backend

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterRecord:
    """Parsed description of a system, as handed over by a parameter source.

    Numbers may be ints, floats, strings or backend numbers; they are converted
    into the numeric backend when a ``SystemParameters`` is populated.
    """

    output_path: str
    energies_eV: tuple[Any, ...]
    T_min: Any
    T_max: Any
    step: Any
    chemical_potentials_eV: tuple[Any, ...] | None = None


@dataclass(frozen=True)
class TemperatureSweep:
    T_min: Any
    T_max: Any
    step: Any

    @property
    def n_samples(self) -> int:
        return int((self.T_max - self.T_min) / self.step)


def validate_sweep(backend: NumericBackend, T_min: Any, T_max: Any, step: Any) -> TemperatureSweep:
    t_min = backend.convert(T_min)
    t_max = backend.convert(T_max)
    t_step = backend.convert(step)
    lowest = backend.convert(MIN_TEMPERATURE_K_LITERAL)
    highest = backend.convert(MAX_TEMPERATURE_K_LITERAL)

    for name, value in (("T_min", t_min), ("T_max", t_max), ("step", t_step)):
        if not backend.is_finite(value):
            raise ValueError(f"{name} must be a finite number.")
    if t_min < lowest or t_min > highest:
        raise ValueError(f"T_min must be a positive temperature between {MIN_TEMPERATURE_K_LITERAL} and {MAX_TEMPERATURE_K_LITERAL} K.")
    if t_max <= t_min or t_max > highest:
        raise ValueError("T_max must be greater than T_min and at most the Planck temperature.")
    if t_step <= 0:
        raise ValueError("step must be > 0.")
    if not t_step < t_max - t_min:
        raise ValueError("step must be smaller than the temperature range T_max - T_min.")

    sweep = TemperatureSweep(T_min=t_min, T_max=t_max, step=t_step)
    if sweep.n_samples < 1:
        raise ValueError("Temperature sweep must contain at least one sample.")
    return sweep


def _convert_levels(backend: NumericBackend, values: Sequence[Any], name: str) -> tuple[Any, ...]:
    converted = []
    for index, value in enumerate(values):
        number = backend.convert(value)
        if not backend.is_finite(number):
            raise ValueError(f"{name}[{index}] must be a finite number.")
        converted.append(number)
    return tuple(converted)


class SystemParameters:
    """Fixed description of a thermodynamic system and its temperature sweep.

    A fresh instance holds no energies; ``populate`` (or ``acquire``) fills it
    in one step and leaves it untouched when validation fails. Energies and
    chemical potentials are stored as tuples owned by this instance.
    """

    def __init__(self, backend: str | NumericBackend = DEFAULT_BACKEND) -> None:
        self.backend = get_backend(backend)
        self.filename = ""
        self._energies: tuple[Any, ...] = ()
        self._potentials: tuple[Any, ...] | None = None
        self._sweep: TemperatureSweep | None = None
        self._temperature: Any = None

    def populate(self, record: ParameterRecord) -> "SystemParameters":
        n = len(record.energies_eV)
        if n == 0:
            raise ValueError("A system needs at least one energy state.")
        if n > MAX_STATES:
            raise ValueError(f"A system supports at most {MAX_STATES} states, got {n}.")

        energies = _convert_levels(self.backend, record.energies_eV, "energies_eV")
        potentials = None
        if record.chemical_potentials_eV is not None:
            if len(record.chemical_potentials_eV) != n:
                raise ValueError(
                    "chemical_potentials_eV must have the same length as energies_eV "
                    f"({len(record.chemical_potentials_eV)} != {n})."
                )
            potentials = _convert_levels(self.backend, record.chemical_potentials_eV, "chemical_potentials_eV")

        sweep = validate_sweep(self.backend, record.T_min, record.T_max, record.step)

        self.filename = str(record.output_path)
        self._energies = energies
        self._potentials = potentials
        self._sweep = sweep
        self._temperature = None
        LOGGER.debug(
            "Populated system parameters: states=%d n_samples=%d chemical_potentials=%s",
            n,
            sweep.n_samples,
            potentials is not None,
        )
        return self

    def acquire(self, source: ParameterRecord | str | Path, **loader_options: Any) -> "SystemParameters":
        """Populate from a record or from a config/energies file understood by ``load_parameter_record``."""
        if isinstance(source, ParameterRecord):
            return self.populate(source)

        from hpthermo.io.config import load_parameter_record

        return self.populate(load_parameter_record(Path(source), **loader_options))

    @property
    def states(self) -> int:
        return len(self._energies)

    @property
    def energies(self) -> tuple[Any, ...]:
        return self._energies

    @property
    def chemical_potentials(self) -> tuple[Any, ...] | None:
        return self._potentials

    @property
    def uses_chemical_potentials(self) -> bool:
        return self._potentials is not None

    def energy(self, i: int) -> Any:
        if 0 <= i < len(self._energies):
            return self._energies[i]
        return self.backend.convert(0)

    def chemical_potential(self, i: int) -> Any:
        if self._potentials is not None and 0 <= i < len(self._potentials):
            return self._potentials[i]
        return self.backend.convert(0)

    @property
    def sweep(self) -> TemperatureSweep:
        if self._sweep is None:
            raise ValueError("Temperature sweep is undefined before the parameters are populated.")
        return self._sweep

    @property
    def T_min(self) -> Any:
        return self.sweep.T_min

    @property
    def T_max(self) -> Any:
        return self.sweep.T_max

    @property
    def T_step(self) -> Any:
        return self.sweep.step

    @property
    def n_samples(self) -> int:
        if self._sweep is None:
            return 0
        return self._sweep.n_samples

    @property
    def temperature(self) -> Any:
        """Temperature (K) of the sweep step currently being computed, or None."""
        return self._temperature

    @temperature.setter
    def temperature(self, value: Any) -> None:
        self._temperature = None if value is None else self.backend.convert(value)
