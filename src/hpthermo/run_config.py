from __future__ import annotations

import logging
import platform
from datetime import datetime, timezone
from hashlib import sha256
from pathlib import Path

from hpthermo import __version__
from hpthermo.artifacts import write_json
from hpthermo.io.config import SCHEMA_VERSION, load_run_config
from hpthermo.payloads import build_provenance, get_git_commit
from hpthermo.progress import ProgressReporter
from hpthermo.services.manager import SystemManager
from hpthermo.services.sweep import SweepArtifacts, sweep_run
from hpthermo.validation import validate_output_file

logger = logging.getLogger(__name__)

MANIFEST_NAME = "run_manifest.json"


def _file_sha256(path: Path) -> str:
    return sha256(path.read_bytes()).hexdigest()


def _iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def run_from_config(config_path: Path, progress: ProgressReporter | None = None) -> SweepArtifacts:
    """
    Run a complete sweep described by a TOML config.

    Writes the partition-function CSV, the optional summary JSON and plot, and
    a ``run_manifest.json`` beside the CSV.
    """
    config_path = Path(config_path)
    run_config = load_run_config(config_path)
    config_hash = _file_sha256(config_path)

    manager = SystemManager(
        backend=run_config.backend,
        precision=run_config.precision,
        max_terms=run_config.max_terms,
    )
    manager.initialize(run_config.record)
    logger.info(
        "Running %d samples over %d states (backend=%s, precision=%d)",
        manager.n_samples,
        manager.params.states,
        run_config.backend,
        run_config.precision,
    )

    cli_args = {
        "config_path": str(config_path),
        "backend": run_config.backend,
        "precision": run_config.precision,
        "max_terms": run_config.max_terms,
        "csv": run_config.record.output_path,
    }
    provenance = build_provenance(cli_args=cli_args, input_hash=config_hash, package_version=__version__)

    artifacts = sweep_run(
        manager,
        csv_path=Path(run_config.record.output_path),
        write_summary=run_config.write_summary,
        plot_path=run_config.plot_path,
        include_units_note=run_config.units_note,
        created_at=_iso_utc_now(),
        provenance=provenance,
        progress=progress,
    )

    manifest = {
        "config_sha256": config_hash,
        "config_schema_version": SCHEMA_VERSION,
        "git_commit": get_git_commit(),
        "package_version": __version__,
        "platform": platform.platform(),
        "produced_outputs": artifacts.produced_outputs,
        "python_version": platform.python_version(),
    }
    manifest_path = artifacts.csv_path.parent / MANIFEST_NAME
    write_json(manifest_path, manifest)
    validate_output_file(manifest_path, kind="run_manifest")
    logger.info("Wrote: %s", manifest_path)
    return artifacts
