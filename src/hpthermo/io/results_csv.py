from __future__ import annotations

import csv
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    import pandas as pd

UNITS_NOTE = "All energies are in eV"
LEADING_COLUMNS = ("T (K)", "tau", "Z(tau)")


def partition_csv_header(states: int) -> list[str]:
    return [*LEADING_COLUMNS, *(f"P_{i}(tau)" for i in range(1, states + 1))]


def write_partition_csv(
    header: Sequence[str],
    rows: Iterable[Sequence[str]],
    out_csv: Path,
    include_units_note: bool = True,
) -> None:
    """
    Write already-formatted rows under ``header``.

    The file is opened as-is (no parent directories are created), so an
    unwritable path raises OSError before anything is written.
    """
    out_csv = Path(out_csv)
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        if include_units_note:
            f.write(f"{UNITS_NOTE}\n\n")
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(header)
        for row in rows:
            if len(row) != len(header):
                raise ValueError(f"Row has {len(row)} fields; header has {len(header)}.")
            writer.writerow(row)


def read_partition_csv(csv_path: Path) -> "pd.DataFrame":
    """Load a partition-function CSV (with or without the units note) into a DataFrame of floats."""
    import pandas as pd

    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    with csv_path.open("r", encoding="utf-8") as f:
        first_line = f.readline().strip()
    skiprows = 2 if first_line == UNITS_NOTE else 0

    df = pd.read_csv(csv_path, skiprows=skiprows)
    missing = [column for column in LEADING_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"{csv_path} is missing required columns: {', '.join(missing)}")
    return df
