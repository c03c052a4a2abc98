from __future__ import annotations

from pathlib import Path

import pytest

from hpthermo.io.results_csv import (
    UNITS_NOTE,
    partition_csv_header,
    read_partition_csv,
    write_partition_csv,
)


def test_header_numbers_states_from_one() -> None:
    assert partition_csv_header(3) == ["T (K)", "tau", "Z(tau)", "P_1(tau)", "P_2(tau)", "P_3(tau)"]


def test_write_partition_csv_layout(tmp_path: Path) -> None:
    out_csv = tmp_path / "out.csv"

    write_partition_csv(partition_csv_header(1), [["100", "0.0086", "1", "1"]], out_csv)

    assert out_csv.read_text(encoding="utf-8") == (
        f"{UNITS_NOTE}\n\nT (K),tau,Z(tau),P_1(tau)\n100,0.0086,1,1\n"
    )


def test_write_partition_csv_rejects_ragged_rows(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Row has 2 fields"):
        write_partition_csv(partition_csv_header(1), [["100", "1"]], tmp_path / "out.csv")


def test_write_partition_csv_does_not_create_directories(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        write_partition_csv(partition_csv_header(1), [], tmp_path / "missing" / "out.csv")


@pytest.mark.parametrize("units_note", [True, False])
def test_read_partition_csv_skips_units_note(tmp_path: Path, units_note: bool) -> None:
    pytest.importorskip("pandas")
    out_csv = tmp_path / "out.csv"
    rows = [["100", "0.0086", "1.5", "0.6", "0.4"], ["200", "0.0172", "1.7", "0.55", "0.45"]]
    write_partition_csv(partition_csv_header(2), rows, out_csv, include_units_note=units_note)

    df = read_partition_csv(out_csv)

    assert list(df.columns) == partition_csv_header(2)
    assert df["T (K)"].tolist() == [100.0, 200.0]
    assert df["P_2(tau)"].tolist() == pytest.approx([0.4, 0.45])


def test_read_partition_csv_requires_leading_columns(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    bad = tmp_path / "bad.csv"
    bad.write_text("T,P\n1,1\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing required columns"):
        read_partition_csv(bad)
