from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from hpthermo.run_config import run_from_config

REPO_ROOT = Path(__file__).resolve().parents[1]


def _run_cli(*args: str, cwd: Path, check: bool = True) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    src_path = str(REPO_ROOT / "src")
    env["PYTHONPATH"] = src_path if not env.get("PYTHONPATH") else f"{src_path}{os.pathsep}{env['PYTHONPATH']}"
    return subprocess.run(
        [sys.executable, "-m", "hpthermo.cli", *args],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        check=check,
    )


def _write_config(path: Path, *, summary: bool = True) -> Path:
    path.write_text(
        "\n".join(
            [
                "schema_version = 1",
                "",
                "[system]",
                'energies_eV = ["0", "0.05"]',
                "",
                "[sweep]",
                "T_min = 100.0",
                "T_max = 300.0",
                "step = 50.0",
                "",
                "[numeric]",
                "precision = 50",
                "",
                "[output]",
                'csv = "results/two_level.csv"',
                f"summary = {'true' if summary else 'false'}",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return path


def test_run_from_config_writes_csv_summary_and_manifest(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "run_config.toml")

    artifacts = run_from_config(config)

    out_dir = tmp_path / "results"
    csv_path = out_dir / "two_level.csv"
    summary_path = out_dir / "two_level_summary.json"
    manifest_path = out_dir / "run_manifest.json"
    assert artifacts.csv_path == csv_path.resolve()
    assert csv_path.exists()
    assert summary_path.exists()
    assert manifest_path.exists()

    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    assert summary["num_samples"] == 4
    assert summary["precision"] == 50
    assert summary["all_converged"] is True

    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    assert manifest["config_schema_version"] == 1
    assert sorted(Path(p).name for p in manifest["produced_outputs"]) == ["two_level.csv", "two_level_summary.json"]


def test_run_from_config_without_summary(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "run_config.toml", summary=False)

    artifacts = run_from_config(config)

    assert artifacts.summary_path is None
    assert not (tmp_path / "results" / "two_level_summary.json").exists()


def test_cli_config_matches_direct_run(tmp_path: Path) -> None:
    direct_root = tmp_path / "direct"
    cli_root = tmp_path / "cli"
    direct_root.mkdir()
    cli_root.mkdir()
    run_from_config(_write_config(direct_root / "run_config.toml"))
    _run_cli("--config", str(_write_config(cli_root / "run_config.toml")), cwd=tmp_path)

    direct_csv = (direct_root / "results" / "two_level.csv").read_text(encoding="utf-8")
    cli_csv = (cli_root / "results" / "two_level.csv").read_text(encoding="utf-8")
    assert direct_csv == cli_csv


def test_cli_config_validation_error_exits_nonzero(tmp_path: Path) -> None:
    config = tmp_path / "bad.toml"
    config.write_text("schema_version = 7\n", encoding="utf-8")

    completed = _run_cli("--config", str(config), cwd=tmp_path, check=False)

    assert completed.returncode != 0
    assert "Config validation error" in completed.stderr


def test_cli_missing_config_file(tmp_path: Path) -> None:
    completed = _run_cli("--config", str(tmp_path / "absent.toml"), cwd=tmp_path, check=False)

    assert completed.returncode != 0
    assert "Config file not found" in completed.stderr


def test_example_config_runs(tmp_path: Path) -> None:
    example = REPO_ROOT / "examples" / "two_level" / "run_config.toml"
    if not example.exists():
        pytest.skip("example config not present")
    config = tmp_path / "run_config.toml"
    config.write_text(example.read_text(encoding="utf-8"), encoding="utf-8")

    artifacts = run_from_config(config)

    assert artifacts.csv_path == (tmp_path / "_outputs" / "two_level.csv").resolve()
    assert artifacts.summary_path is not None and artifacts.summary_path.exists()
