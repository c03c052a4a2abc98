from __future__ import annotations

import json
from pathlib import Path

import pytest

from hpthermo.payloads import build_provenance, build_sweep_summary_payload
from hpthermo.science.parameters import ParameterRecord
from hpthermo.services.manager import SystemManager
from hpthermo.validation import ValidationError, detect_kind_from_filename, validate_output, validate_output_file


@pytest.fixture
def summary_payload() -> dict:
    manager = SystemManager(precision=40)
    manager.initialize(ParameterRecord("s.csv", ("0", "0.02", "0.04"), "100", "300", "50"))
    manager.run_sweep()
    provenance = build_provenance(cli_args={"command": "sweep"}, input_hash=None, package_version="0.1.0")
    return build_sweep_summary_payload(
        manager,
        csv_path="s.csv",
        created_at="2026-01-01T00:00:00+00:00",
        provenance=provenance,
    )


def test_summary_payload_passes_contract(summary_payload: dict) -> None:
    validate_output(summary_payload, kind="sweep_summary")

    assert summary_payload["num_samples"] == 4
    assert summary_payload["temperature_grid_K"] == [100.0, 150.0, 200.0, 250.0]
    assert summary_payload["backend"] == "decimal"
    assert summary_payload["provenance"]["package_version"] == "0.1.0"
    json.dumps(summary_payload)


def test_validation_error_includes_json_path(summary_payload: dict) -> None:
    del summary_payload["max_probability_error"]

    with pytest.raises(ValidationError) as exc:
        validate_output(summary_payload)

    assert exc.value.path == "root.max_probability_error"
    assert "missing required key" in str(exc.value)


@pytest.mark.parametrize(
    ("key", "value", "path"),
    [
        ("all_converged", 1, "root.all_converged"),
        ("precision", True, "root.precision"),
        ("temperature_grid_K", [100.0, 90.0, 200.0, 250.0], "root.temperature_grid_K[1]"),
        ("temperature_grid_K", [100.0], "root.temperature_grid_K"),
        ("max_probability", 1.5, "root.max_probability"),
        ("max_probability_error", -0.1, "root.max_probability_error"),
        ("csv_path", 3, "root.csv_path"),
    ],
)
def test_contract_violations_are_located(summary_payload: dict, key: str, value: object, path: str) -> None:
    summary_payload[key] = value

    with pytest.raises(ValidationError) as exc:
        validate_output(summary_payload, kind="sweep_summary")

    assert exc.value.path == path


def test_provenance_is_checked_when_present(summary_payload: dict) -> None:
    summary_payload["provenance"]["cli_args"] = "sweep"

    with pytest.raises(ValidationError, match="root.provenance.cli_args"):
        validate_output(summary_payload)


def test_run_manifest_contract(tmp_path: Path) -> None:
    manifest = {
        "config_sha256": "abc",
        "config_schema_version": 1,
        "git_commit": None,
        "package_version": "0.1.0",
        "platform": "linux",
        "produced_outputs": ["a.csv"],
        "python_version": "3.12.0",
    }
    path = tmp_path / "run_manifest.json"
    path.write_text(json.dumps(manifest), encoding="utf-8")

    validate_output_file(path)

    manifest["produced_outputs"] = [1]
    path.write_text(json.dumps(manifest), encoding="utf-8")
    with pytest.raises(ValidationError, match=r"produced_outputs\[0\]"):
        validate_output_file(path)


def test_unknown_kind_and_non_object_payloads(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="unknown output kind"):
        validate_output({}, kind="thermo")

    path = tmp_path / "list_summary.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValidationError, match="top-level object"):
        validate_output_file(path)


def test_detect_kind_from_filename() -> None:
    assert detect_kind_from_filename(Path("out/run_manifest.json")) == "run_manifest"
    assert detect_kind_from_filename(Path("out/sweep_summary.json")) == "sweep_summary"
