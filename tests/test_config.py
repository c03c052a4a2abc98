from __future__ import annotations

import json
from pathlib import Path

import pytest

from hpthermo.io.config import (
    load_parameter_record,
    load_run_config,
    parse_number_list,
    read_energies_csv,
    read_legacy_config,
)


def _write_config(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_load_run_config_resolves_paths_against_config_dir(tmp_path: Path) -> None:
    config = _write_config(
        tmp_path / "run.toml",
        "\n".join(
            [
                "schema_version = 1",
                "[system]",
                'energies_eV = ["0", 0.05, 1]',
                'chemical_potentials_eV = [0, 0, "0.01"]',
                "[sweep]",
                "T_min = 100",
                'T_max = "300"',
                "step = 50.0",
                "[numeric]",
                'backend = "mpmath"',
                "precision = 40",
                "[output]",
                'csv = "out/sweep.csv"',
                "summary = true",
                "plot = true",
                "units_note = false",
            ]
        )
        + "\n",
    )

    run_config = load_run_config(config)

    assert run_config.backend == "mpmath"
    assert run_config.precision == 40
    assert run_config.write_summary
    assert not run_config.units_note
    assert run_config.record.output_path == str((tmp_path / "out" / "sweep.csv").resolve())
    assert run_config.plot_path == (tmp_path / "out" / "sweep.png").resolve()
    assert run_config.record.energies_eV == ("0", 0.05, 1)
    assert run_config.record.chemical_potentials_eV == (0, 0, "0.01")
    assert run_config.record.T_max == "300"


def test_load_run_config_defaults(tmp_path: Path) -> None:
    config = _write_config(
        tmp_path / "run.toml",
        "schema_version = 1\n[system]\nenergies_eV = [0.0]\n[sweep]\nT_min = 1\nT_max = 2\nstep = 0.5\n",
    )

    run_config = load_run_config(config)

    assert run_config.backend == "decimal"
    assert run_config.precision == 100
    assert run_config.plot_path is None
    assert not run_config.write_summary
    assert run_config.record.chemical_potentials_eV is None
    assert Path(run_config.record.output_path).name == "partition_function.csv"


@pytest.mark.parametrize(
    ("body", "match"),
    [
        ("schema_version = 2\n", "schema_version=2"),
        ("schema_version = 1\n", r"\[system\] table"),
        ("schema_version = 1\n[system]\nenergies_eV = [0]\n", r"\[sweep\] table"),
        (
            "schema_version = 1\n[system]\nenergies_eV = 0\n[sweep]\nT_min = 1\nT_max = 2\nstep = 0.5\n",
            "energies_eV must be an array",
        ),
        (
            "schema_version = 1\n[system]\nenergies_eV = [true]\n[sweep]\nT_min = 1\nT_max = 2\nstep = 0.5\n",
            r"energies_eV\[0\]",
        ),
        (
            "schema_version = 1\n[system]\nenergies_eV = [0]\n[sweep]\nT_min = 1\nstep = 0.5\n",
            "missing required value 'T_max'",
        ),
        (
            "schema_version = 1\n[system]\nenergies_eV = [0]\n[sweep]\nT_min = 1\nT_max = 2\nstep = 0.5\n"
            '[numeric]\nbackend = "float"\n',
            "Unknown numeric backend",
        ),
        (
            "schema_version = 1\n[system]\nenergies_eV = [0]\n[sweep]\nT_min = 1\nT_max = 2\nstep = 0.5\n"
            "[numeric]\nprecision = 0\n",
            "precision must be >= 1",
        ),
    ],
)
def test_load_run_config_rejects_invalid_files(tmp_path: Path, body: str, match: str) -> None:
    config = _write_config(tmp_path / "bad.toml", body)

    with pytest.raises(ValueError, match=match):
        load_run_config(config)


def test_read_legacy_config_without_potentials(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "config.txt", "results.csv\n10 1000 10 3\n0 0.01\n0.025\n")

    record = read_legacy_config(config)

    assert record.output_path == "results.csv"
    assert (record.T_min, record.T_max, record.step) == ("10", "1000", "10")
    assert record.energies_eV == ("0", "0.01", "0.025")
    assert record.chemical_potentials_eV is None


def test_read_legacy_config_with_potentials(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "config.txt", "r.csv\n1 2 0.5 2 0 1 0.1 0.2\n")

    record = read_legacy_config(config)

    assert record.energies_eV == ("0", "1")
    assert record.chemical_potentials_eV == ("0.1", "0.2")


@pytest.mark.parametrize(
    ("body", "match"),
    [
        ("", "first line"),
        ("r.csv\n1 2\n", "T_min T_max step n"),
        ("r.csv\n1 2 0.5 two 0 1\n", "state count must be an integer"),
        ("r.csv\n1 2 0.5 0\n", "must be > 0"),
        ("r.csv\n1 2 0.5 2 0 1 3\n", "expected 2 energies"),
    ],
)
def test_read_legacy_config_rejects_malformed_files(tmp_path: Path, body: str, match: str) -> None:
    config = _write_config(tmp_path / "config.txt", body)

    with pytest.raises(ValueError, match=match):
        read_legacy_config(config)


def test_read_energies_csv_keeps_text_values(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    csv_path = tmp_path / "levels.csv"
    csv_path.write_text(
        "state,energy_eV,mu_eV\n"
        "a,0.123456789012345678901234567890,0\n"
        "b,-1.5,0.25\n",
        encoding="utf-8",
    )

    energies, potentials = read_energies_csv(csv_path, potential_col="mu_eV")

    assert energies == ["0.123456789012345678901234567890", "-1.5"]
    assert potentials == ["0", "0.25"]


def test_read_energies_csv_validation_errors(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    missing = tmp_path / "missing.csv"
    missing.write_text("state,E\na,0\n", encoding="utf-8")
    empty_value = tmp_path / "empty.csv"
    empty_value.write_text("state,energy_eV\na,\n", encoding="utf-8")
    text_value = tmp_path / "text.csv"
    text_value.write_text("state,energy_eV\na,low\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing required columns: energy_eV"):
        read_energies_csv(missing)
    with pytest.raises(ValueError, match="empty values"):
        read_energies_csv(empty_value)
    with pytest.raises(ValueError, match="numeric values"):
        read_energies_csv(text_value)
    with pytest.raises(FileNotFoundError):
        read_energies_csv(tmp_path / "nope.csv")


def test_load_parameter_record_dispatches_on_suffix(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    toml_path = _write_config(
        tmp_path / "run.toml",
        "schema_version = 1\n[system]\nenergies_eV = [0, 1]\n[sweep]\nT_min = 1\nT_max = 2\nstep = 0.5\n",
    )
    csv_path = tmp_path / "levels.csv"
    csv_path.write_text("energy_eV\n0\n0.5\n", encoding="utf-8")
    legacy_path = _write_config(tmp_path / "legacy.cfg", "legacy.csv\n1 2 0.5 1 0\n")

    from_toml = load_parameter_record(toml_path)
    from_csv = load_parameter_record(csv_path, T_min="1", T_max="2", step="0.25")
    from_legacy = load_parameter_record(legacy_path, output_path="override.csv")

    assert from_toml.energies_eV == (0, 1)
    assert from_csv.energies_eV == ("0", "0.5")
    assert from_csv.output_path == str(tmp_path / "levels_partition.csv")
    assert from_legacy.output_path == "override.csv"


def test_load_parameter_record_csv_requires_sweep(tmp_path: Path) -> None:
    csv_path = tmp_path / "levels.csv"
    csv_path.write_text("energy_eV\n0\n", encoding="utf-8")

    with pytest.raises(ValueError, match="T_min, T_max and step"):
        load_parameter_record(csv_path)


def test_load_parameter_record_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_parameter_record(tmp_path / "absent.toml")


def test_parse_number_list() -> None:
    assert parse_number_list(" 0, 0.05 ,1e-3,") == ("0", "0.05", "1e-3")
    with pytest.raises(ValueError):
        parse_number_list(" , ")


def test_toml_numeric_strings_keep_every_digit(tmp_path: Path) -> None:
    config = _write_config(
        tmp_path / "run.toml",
        "schema_version = 1\n[system]\n"
        f"energies_eV = {json.dumps(['0.1000000000000000000000000001'])}\n"
        "[sweep]\nT_min = 1\nT_max = 2\nstep = 0.5\n",
    )

    assert load_run_config(config).record.energies_eV == ("0.1000000000000000000000000001",)
