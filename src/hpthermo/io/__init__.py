from hpthermo.io.config import (
    RunConfig,
    load_parameter_record,
    load_run_config,
    read_energies_csv,
    read_legacy_config,
)
from hpthermo.io.results_csv import partition_csv_header, read_partition_csv, write_partition_csv

__all__ = [
    "RunConfig",
    "load_parameter_record",
    "load_run_config",
    "partition_csv_header",
    "read_energies_csv",
    "read_legacy_config",
    "read_partition_csv",
    "write_partition_csv",
]
