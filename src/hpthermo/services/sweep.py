from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from hpthermo.artifacts import ensure_parent_dir, summary_path_for, write_json
from hpthermo.payloads import build_sweep_summary_payload
from hpthermo.progress import ProgressReporter
from hpthermo.services.manager import DEFAULT_SAVE_ATTEMPTS, SystemManager, save_with_retry
from hpthermo.validation import validate_output_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepArtifacts:
    manager: SystemManager
    csv_path: Path
    summary_path: Path | None = None
    plot_path: Path | None = None

    @property
    def produced_outputs(self) -> list[str]:
        paths = [self.csv_path, self.summary_path, self.plot_path]
        return sorted(str(path) for path in paths if path is not None)


def _no_retry(attempt: int) -> str | None:
    return None


def sweep_run(
    manager: SystemManager,
    *,
    csv_path: Path,
    write_summary: bool = False,
    plot_path: Path | None = None,
    include_units_note: bool = True,
    created_at: str,
    provenance: dict[str, Any] | None = None,
    progress: ProgressReporter | None = None,
    next_path: Callable[[int], str | None] | None = None,
    max_attempts: int = DEFAULT_SAVE_ATTEMPTS,
) -> SweepArtifacts:
    """
    Compute the sweep (unless already computed) and write its artifacts.

    The CSV is always written; the summary JSON and the probability plot are
    optional. Raises OSError when no CSV path could be written.
    """
    if not manager.is_complete:
        manager.run_sweep(progress=progress)

    csv_path = Path(csv_path)
    ensure_parent_dir(csv_path)
    written = save_with_retry(
        manager,
        csv_path,
        next_path or _no_retry,
        max_attempts=max_attempts,
        include_units_note=include_units_note,
    )
    if written is None:
        raise OSError(f"Could not write partition function CSV: {csv_path}")

    summary_path = None
    if write_summary:
        summary_path = summary_path_for(written)
        payload = build_sweep_summary_payload(
            manager,
            csv_path=str(written),
            created_at=created_at,
            provenance=provenance,
        )
        write_json(summary_path, payload)
        validate_output_file(summary_path, kind="sweep_summary")
        logger.info("Wrote: %s", summary_path)

    if plot_path is not None:
        from hpthermo.viz.partition import plot_probabilities_vs_T

        plot_probabilities_vs_T(manager.temperatures(), manager.probability_matrix(), Path(plot_path))
        logger.info("Wrote: %s", plot_path)

    return SweepArtifacts(manager=manager, csv_path=written, summary_path=summary_path, plot_path=plot_path)
