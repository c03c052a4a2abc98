from __future__ import annotations

from decimal import Decimal

import pytest

from hpthermo.science.constants import MAX_STATES
from hpthermo.science.parameters import ParameterRecord, SystemParameters


def _record(**overrides: object) -> ParameterRecord:
    values: dict[str, object] = {
        "output_path": "out.csv",
        "energies_eV": ("0", "0.05", "0.1"),
        "T_min": "100",
        "T_max": "300",
        "step": "50",
        "chemical_potentials_eV": None,
    }
    values.update(overrides)
    return ParameterRecord(**values)  # type: ignore[arg-type]


def test_sample_count_is_floor_of_range_over_step() -> None:
    params = SystemParameters().populate(_record())

    assert params.n_samples == 4
    assert params.states == 3
    assert params.T_min == Decimal(100)
    assert params.T_step == Decimal(50)
    assert params.filename == "out.csv"


def test_populate_keeps_exact_decimal_values() -> None:
    params = SystemParameters().populate(_record(energies_eV=("0.1", 0.2, 3)))

    assert params.energies == (Decimal("0.1"), Decimal("0.2"), Decimal(3))


def test_fresh_parameters_are_empty() -> None:
    params = SystemParameters()

    assert params.states == 0
    assert params.n_samples == 0
    assert not params.uses_chemical_potentials
    with pytest.raises(ValueError, match="undefined"):
        _ = params.T_min


def test_out_of_range_accessors_return_zero() -> None:
    params = SystemParameters().populate(_record(chemical_potentials_eV=("0.01", "0.02", "0.03")))

    assert params.energy(1) == Decimal("0.05")
    assert params.energy(3) == 0
    assert params.energy(-1) == 0
    assert params.chemical_potential(2) == Decimal("0.03")
    assert params.chemical_potential(99) == 0


def test_chemical_potentials_are_optional() -> None:
    params = SystemParameters().populate(_record())

    assert not params.uses_chemical_potentials
    assert params.chemical_potentials is None
    assert params.chemical_potential(0) == 0


@pytest.mark.parametrize(
    ("overrides", "match"),
    [
        ({"energies_eV": ()}, "at least one energy"),
        ({"energies_eV": ("0", "nan")}, r"energies_eV\[1\] must be a finite"),
        ({"chemical_potentials_eV": ("0",)}, "same length"),
        ({"T_min": "0"}, "T_min must be a positive temperature"),
        ({"T_min": "-5"}, "T_min must be a positive temperature"),
        ({"T_max": "100"}, "T_max must be greater than T_min"),
        ({"T_max": "1e40"}, "Planck"),
        ({"step": "0"}, "step must be > 0"),
        ({"step": "200"}, "smaller than the temperature range"),
        ({"T_max": "inf"}, "T_max must be a finite number"),
        ({"T_min": "abc"}, "Cannot convert"),
    ],
)
def test_populate_rejects_invalid_records(overrides: dict[str, object], match: str) -> None:
    with pytest.raises(ValueError, match=match):
        SystemParameters().populate(_record(**overrides))


def test_populate_rejects_too_many_states() -> None:
    with pytest.raises(ValueError, match=str(MAX_STATES)):
        SystemParameters().populate(_record(energies_eV=("0",) * (MAX_STATES + 1)))


def test_failed_populate_leaves_previous_state_untouched() -> None:
    params = SystemParameters().populate(_record())

    with pytest.raises(ValueError):
        params.populate(_record(energies_eV=("1", "2"), step="-1"))

    assert params.states == 3
    assert params.n_samples == 4


def test_acquire_accepts_a_legacy_config_file(tmp_path) -> None:
    config = tmp_path / "system.cfg"
    config.write_text("results.csv\n100 300 50 2\n0 0.05\n", encoding="utf-8")

    params = SystemParameters().acquire(config)

    assert params.states == 2
    assert params.n_samples == 4
    assert params.filename == "results.csv"


def test_temperature_setter_converts_into_backend() -> None:
    params = SystemParameters("mpmath").populate(_record())
    params.temperature = 150

    assert params.backend.is_finite(params.temperature)
    assert params.temperature == 150
