from __future__ import annotations

from typing import Any

from hpthermo.science.numeric import NumericBackend

# Exact decimal literals; converted into the active numeric backend on use
# so no binary rounding leaks into high-precision arithmetic.
K_B_EV_PER_K_LITERAL = "8.6173324e-5"  # Boltzmann constant in eV/K

MAX_STATES = 65535

# Accepted sweep bounds (K): the upper bound is the Planck temperature.
MIN_TEMPERATURE_K_LITERAL = "1e-100"
MAX_TEMPERATURE_K_LITERAL = "1.416833e32"


def boltzmann_constant(backend: NumericBackend) -> Any:
    """Return k_B (eV/K) in the backend's number type."""
    return backend.convert(K_B_EV_PER_K_LITERAL)
