from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hpthermo")
except PackageNotFoundError:
    __version__ = "0+unknown"

from hpthermo.api import compute_partition_sweep, sweep_from_config, sweep_from_csv
from hpthermo.science import (
    PartitionFunctionSample,
    SeriesResult,
    SystemParameters,
    exp,
    factorial,
    ln,
    tetrate,
)
from hpthermo.services.manager import SystemManager

__all__ = [
    "PartitionFunctionSample",
    "SeriesResult",
    "SystemManager",
    "SystemParameters",
    "__version__",
    "compute_partition_sweep",
    "exp",
    "factorial",
    "ln",
    "sweep_from_config",
    "sweep_from_csv",
    "tetrate",
]
