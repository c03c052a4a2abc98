from __future__ import annotations

import os
from importlib.util import find_spec
from pathlib import Path
from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike

MAX_LABELLED_STATES = 10


def ensure_agg() -> None:
    """Select a headless backend before pyplot is imported."""
    if not os.environ.get("MPLBACKEND"):
        os.environ["MPLBACKEND"] = "Agg"

    if find_spec("matplotlib") is None:
        raise RuntimeError("Plotting requires matplotlib; install hpthermo[plot].")

    import matplotlib

    matplotlib.use("Agg", force=True)


def plot_probabilities_vs_T(
    temperatures_K: ArrayLike,
    probabilities: ArrayLike,
    out_png: Path,
    labels: Sequence[str] | None = None,
) -> None:
    """Plot P_i(T) for every state; ``probabilities`` has shape (n_samples, states)."""
    temperatures = np.asarray(temperatures_K, dtype=float)
    matrix = np.atleast_2d(np.asarray(probabilities, dtype=float))
    if matrix.shape[0] != temperatures.shape[0]:
        raise ValueError(
            f"Got {temperatures.shape[0]} temperatures but {matrix.shape[0]} rows of probabilities."
        )
    states = matrix.shape[1]
    if labels is None:
        labels = [f"P_{i}" for i in range(1, states + 1)]
    elif len(labels) != states:
        raise ValueError(f"Expected {states} labels, got {len(labels)}.")

    ensure_agg()
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots()
    for j in range(states):
        ax.plot(temperatures, matrix[:, j], label=labels[j])
    ax.set_xlabel("Temperature (K)")
    ax.set_ylabel("Occupation probability")
    ax.set_ylim(0.0, 1.0)
    if states <= MAX_LABELLED_STATES:
        ax.legend()

    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png, dpi=200, bbox_inches="tight")
    plt.close(fig)
