from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterator, TypedDict

import numpy as np
from numpy.typing import NDArray

from hpthermo.io.results_csv import partition_csv_header, write_partition_csv
from hpthermo.progress import ProgressReporter
from hpthermo.science.hpmath import DEFAULT_MAX_TERMS
from hpthermo.science.numeric import (
    CSV_SIGNIFICANT_DIGITS,
    DEFAULT_BACKEND,
    DEFAULT_PRECISION,
    NumericBackend,
    get_backend,
)
from hpthermo.science.parameters import ParameterRecord, SystemParameters
from hpthermo.science.sample import PartitionFunctionSample

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_SAVE_ATTEMPTS = 3


class SweepRow(TypedDict):
    temperature_K: Any
    tau_eV: Any
    partition_function: Any
    probabilities: tuple[Any, ...]


@dataclass(frozen=True)
class SweepSummary:
    num_samples: int
    states: int
    max_probability_error: float
    min_probability: float
    max_probability: float
    all_converged: bool


class SystemManager:
    """Owns one system description and the samples of its temperature sweep."""

    def __init__(
        self,
        backend: str | NumericBackend = DEFAULT_BACKEND,
        precision: int = DEFAULT_PRECISION,
        max_terms: int = DEFAULT_MAX_TERMS,
    ) -> None:
        self.backend = get_backend(backend)
        if precision < 1:
            raise ValueError("precision must be >= 1.")
        self.precision = int(precision)
        self.max_terms = int(max_terms)
        self.params = SystemParameters(self.backend)
        self.samples: list[PartitionFunctionSample] = []

    def working_precision(self) -> Any:
        return self.backend.working_precision(self.precision)

    def initialize(self, parameter_source: ParameterRecord | str | Path, **loader_options: Any) -> None:
        """
        Populate the parameters from ``parameter_source`` and allocate one empty
        sample per sweep step. Population errors propagate unchanged.
        """
        with self.working_precision():
            self.params.acquire(parameter_source, **loader_options)
            states = self.params.states
            self.samples = [PartitionFunctionSample(states, self.backend) for _ in range(self.params.n_samples)]

        logger.debug(
            "Initialized sweep: states=%d n_samples=%d backend=%s precision=%d",
            self.params.states,
            len(self.samples),
            self.backend.name,
            self.precision,
        )

    @property
    def n_samples(self) -> int:
        return len(self.samples)

    @property
    def is_complete(self) -> bool:
        return bool(self.samples) and all(sample.is_computed for sample in self.samples)

    def calculate_sample(self, index: int, temperature: Any) -> PartitionFunctionSample:
        """Compute sample ``index`` at ``temperature`` (K) for callers driving the sweep loop themselves."""
        sample = self.samples[index]
        with self.working_precision():
            self.params.temperature = temperature
            sample.calculate(temperature, self.params, max_terms=self.max_terms)
        return sample

    def run_sweep(self, progress: ProgressReporter | None = None) -> None:
        """
        Compute every sample, starting at T_min and advancing by the step.

        The loop starts one step below T_min and advances before each
        calculation, so sample i sits at T_min + i * step. ``progress`` is told
        the number of completed samples after each one.
        """
        if not self.samples:
            raise ValueError("No samples allocated; call initialize() first.")

        with self.working_precision():
            step = self.params.T_step
            temperature = self.params.T_min - step
            for index, sample in enumerate(self.samples):
                temperature = temperature + step
                self.params.temperature = temperature
                sample.calculate(temperature, self.params, max_terms=self.max_terms)
                if progress is not None:
                    progress.increment(index + 1)

        logger.debug("Completed sweep of %d samples.", len(self.samples))

    def rows(self) -> Iterator[SweepRow]:
        for sample in self.samples:
            yield {
                "temperature_K": sample.T,
                "tau_eV": sample.tau,
                "partition_function": sample.Z,
                "probabilities": sample.probabilities,
            }

    def header(self) -> list[str]:
        return partition_csv_header(self.params.states)

    def table_rows(self, digits: int = CSV_SIGNIFICANT_DIGITS) -> Iterator[list[str]]:
        fmt = self.backend.format
        for row in self.rows():
            yield [
                fmt(row["temperature_K"], digits),
                fmt(row["tau_eV"], digits),
                fmt(row["partition_function"], digits),
                *(fmt(p, digits) for p in row["probabilities"]),
            ]

    def save_to_disk(self, path: str | Path, include_units_note: bool = True) -> bool:
        """
        Write the sweep as CSV. Returns False when the file cannot be written;
        the computed samples are never touched, so a retry needs no recomputation.
        """
        try:
            write_partition_csv(self.header(), self.table_rows(), Path(path), include_units_note=include_units_note)
        except OSError as e:
            logger.warning("Could not write %s: %s", path, e)
            return False
        logger.info("Wrote: %s", path)
        return True

    def temperatures(self) -> NDArray[np.float64]:
        return np.asarray([self.backend.to_float(sample.T) for sample in self.samples], dtype=float)

    def probability_matrix(self) -> NDArray[np.float64]:
        """Probabilities as a float64 array of shape (n_samples, states) for plotting and analysis."""
        matrix = np.zeros((len(self.samples), self.params.states), dtype=float)
        for i, sample in enumerate(self.samples):
            matrix[i, :] = [self.backend.to_float(p) for p in sample.probabilities]
        return matrix

    def to_dataframe(self) -> "pd.DataFrame":
        import pandas as pd

        header = self.header()
        data = {
            header[0]: self.temperatures(),
            header[1]: [self.backend.to_float(sample.tau) for sample in self.samples],
            header[2]: [self.backend.to_float(sample.Z) for sample in self.samples],
        }
        matrix = self.probability_matrix()
        for j, column in enumerate(header[3:]):
            data[column] = matrix[:, j]
        return pd.DataFrame(data, columns=header)

    def summary(self) -> SweepSummary:
        """Probability-conservation diagnostics, evaluated at the working precision."""
        if not self.is_complete:
            raise ValueError("Sweep summary is undefined before every sample is computed.")

        with self.working_precision():
            zero = self.backend.convert(0)
            one = self.backend.convert(1)
            worst = zero
            for sample in self.samples:
                error = abs(sum(sample.probabilities, zero) - one)
                if error > worst:
                    worst = error
            all_p = [p for sample in self.samples for p in sample.probabilities]
            smallest = min(all_p)
            largest = max(all_p)

        return SweepSummary(
            num_samples=len(self.samples),
            states=self.params.states,
            max_probability_error=self.backend.to_float(worst),
            min_probability=self.backend.to_float(smallest),
            max_probability=self.backend.to_float(largest),
            all_converged=all(sample.converged for sample in self.samples),
        )


def save_with_retry(
    manager: SystemManager,
    path: str | Path,
    next_path: Callable[[int], str | None],
    max_attempts: int = DEFAULT_SAVE_ATTEMPTS,
    include_units_note: bool = True,
) -> Path | None:
    """
    Caller-side retry policy around ``save_to_disk``.

    ``next_path(attempt)`` supplies a replacement path after each failure (or
    None to give up). Returns the path that was written, or None.
    """
    current: str | Path | None = path
    for attempt in range(1, max_attempts + 1):
        if current is None:
            return None
        if manager.save_to_disk(current, include_units_note=include_units_note):
            return Path(current)
        if attempt < max_attempts:
            current = next_path(attempt)
    logger.warning("Giving up after %d failed save attempts.", max_attempts)
    return None
