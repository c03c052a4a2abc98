from __future__ import annotations

from hpthermo.science.constants import K_B_EV_PER_K_LITERAL, MAX_STATES, boltzmann_constant
from hpthermo.science.hpmath import (
    SeriesResult,
    exp,
    exp_series,
    factorial,
    ln,
    ln_newton,
    tetrate,
)
from hpthermo.science.numeric import (
    BACKENDS,
    DEFAULT_BACKEND,
    DEFAULT_PRECISION,
    HighPrecisionNumber,
    NumericBackend,
    get_backend,
)
from hpthermo.science.parameters import ParameterRecord, SystemParameters, TemperatureSweep
from hpthermo.science.sample import PartitionFunctionSample

__all__ = [
    "BACKENDS",
    "DEFAULT_BACKEND",
    "DEFAULT_PRECISION",
    "HighPrecisionNumber",
    "K_B_EV_PER_K_LITERAL",
    "MAX_STATES",
    "NumericBackend",
    "ParameterRecord",
    "PartitionFunctionSample",
    "SeriesResult",
    "SystemParameters",
    "TemperatureSweep",
    "boltzmann_constant",
    "exp",
    "exp_series",
    "factorial",
    "get_backend",
    "ln",
    "ln_newton",
    "tetrate",
]
