from hpthermo.services.manager import SweepRow, SweepSummary, SystemManager, save_with_retry
from hpthermo.services.sweep import SweepArtifacts, sweep_run

__all__ = [
    "SweepArtifacts",
    "SweepRow",
    "SweepSummary",
    "SystemManager",
    "save_with_retry",
    "sweep_run",
]
