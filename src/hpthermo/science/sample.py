from __future__ import annotations

import logging
from typing import Any

from hpthermo.science.constants import boltzmann_constant
from hpthermo.science.hpmath import DEFAULT_MAX_TERMS, exp_series
from hpthermo.science.numeric import DEFAULT_BACKEND, NumericBackend, get_backend
from hpthermo.science.parameters import SystemParameters

LOGGER = logging.getLogger(__name__)


class PartitionFunctionSample:
    """Partition function and occupation probabilities at one temperature.

    Lifecycle: ``initialize(n)`` allocates zero-filled storage, ``calculate``
    fills it exactly once, after which the sample is read-only until it is
    initialized again.
    """

    def __init__(self, states: int = 0, backend: str | NumericBackend = DEFAULT_BACKEND) -> None:
        self.backend = get_backend(backend)
        self.initialize(states)

    def initialize(self, states: int) -> None:
        if states < 0:
            raise ValueError("states must be >= 0.")
        zero = self.backend.convert(0)
        self._states = states
        self._probabilities: list[Any] = [zero] * states
        self._potentials: list[Any] = [zero] * states
        self._temperature: Any = zero
        self._tau: Any = zero
        self._partition: Any = zero
        self._log_shift: Any = zero
        self._computed = False
        self._converged = True

    def calculate(
        self,
        temperature: Any,
        params: SystemParameters,
        max_terms: int = DEFAULT_MAX_TERMS,
    ) -> None:
        """
        Compute tau = k_B * T, Z = sum_i exp((mu_i - E_i) / tau) and P_i = w_i / Z.

        mu_i is zero when the system has no chemical potentials. ``params`` is
        only read. A non-positive temperature has no physical meaning here
        (tau would be zero or negative) and raises ValueError.

        Exponents are shifted by their maximum before exponentiating, so every
        shifted weight lies in [0, 1] and the largest is exactly 1. P_i is
        taken from the shifted weights; Z is scaled back by exp(max exponent)
        and the shift is kept in ``log_shift``.
        """
        if self._computed:
            raise RuntimeError("Sample was already calculated; call initialize() before reusing it.")

        T = self.backend.convert(temperature)
        if not T > 0:
            raise ValueError("temperature must be > 0 K.")

        tau = boltzmann_constant(self.backend) * T
        uses_potentials = params.uses_chemical_potentials
        exponents: list[Any] = []
        for i in range(self._states):
            mu = params.chemical_potential(i)
            exponents.append((mu - params.energy(i)) / tau)
            if uses_potentials:
                self._potentials[i] = mu

        shift = max(exponents) if exponents else self.backend.convert(0)
        weights: list[Any] = []
        shifted_sum = self.backend.convert(0)
        converged = True
        for exponent in exponents:
            result = exp_series(exponent - shift, max_terms=max_terms)
            converged = converged and result.converged
            weights.append(result.value)
            shifted_sum += result.value

        if exponents:
            scale = exp_series(shift, max_terms=max_terms)
            partition = shifted_sum * scale.value
            probabilities = [w / shifted_sum for w in weights]
        else:
            scale = None
            partition = shifted_sum
            probabilities = []

        if not converged:
            LOGGER.warning(
                "Boltzmann weights at T=%s K did not converge within %d terms or left the exponent range; "
                "probabilities are approximate.",
                self.backend.format(T),
                max_terms,
            )
        if scale is not None and not scale.converged:
            LOGGER.warning(
                "Z at T=%s K is out of range for exp(%s); see log_shift for the exact scale.",
                self.backend.format(T),
                self.backend.format(shift),
            )

        self._probabilities = probabilities
        self._temperature = T
        self._tau = tau
        self._partition = partition
        self._log_shift = shift
        self._converged = converged
        self._computed = True

    @property
    def states(self) -> int:
        return self._states

    @property
    def T(self) -> Any:
        return self._temperature

    @property
    def tau(self) -> Any:
        return self._tau

    @property
    def Z(self) -> Any:
        return self._partition

    @property
    def log_shift(self) -> Any:
        """Largest exponent (mu_i - E_i) / tau; Z = exp(log_shift) * sum of shifted weights."""
        return self._log_shift

    def P_i(self, i: int) -> Any:
        if 0 <= i < self._states:
            return self._probabilities[i]
        return self.backend.convert(0)

    def mu_i(self, i: int) -> Any:
        """Chemical potential consumed for state i (bookkeeping echo only)."""
        if 0 <= i < self._states:
            return self._potentials[i]
        return self.backend.convert(0)

    @property
    def probabilities(self) -> tuple[Any, ...]:
        return tuple(self._probabilities)

    @property
    def is_computed(self) -> bool:
        return self._computed

    @property
    def converged(self) -> bool:
        return self._converged
