"""Results tables: per-tick (t, S, I, R) rows as pandas DataFrames."""

from __future__ import annotations

import numpy as np
import pandas as pd

COLUMNS = ["t", "S", "I", "R"]

COUNTS_SHAPE_ERROR = "counts must have shape (n, 3); got {shape}"
LENGTH_MISMATCH_ERROR = "time has {n_time} entries but counts has {n_rows} rows"
MISSING_COLUMNS_ERROR = "results table is missing column(s): {missing}"


def counts_to_frame(time: np.ndarray, counts: np.ndarray) -> pd.DataFrame:
    """Build the results table from a time vector and an (n, 3) count array.

    Integer counts keep an int64 dtype; real-valued compartments (from the
    deterministic map) stay float64.
    """
    counts = np.asarray(counts)
    time = np.asarray(time, dtype=np.float64)
    if counts.ndim != 2 or counts.shape[1] != 3:
        msg = COUNTS_SHAPE_ERROR.format(shape=counts.shape)
        raise ValueError(msg)
    if time.shape[0] != counts.shape[0]:
        msg = LENGTH_MISMATCH_ERROR.format(n_time=time.shape[0], n_rows=counts.shape[0])
        raise ValueError(msg)

    return pd.DataFrame(
        {
            "t": time,
            "S": counts[:, 0],
            "I": counts[:, 1],
            "R": counts[:, 2],
        },
        columns=COLUMNS,
    )


def summarize(df: pd.DataFrame) -> dict[str, float]:
    """Headline numbers of an epidemic curve.

    Returns a dict with the peak number infected, the time of the peak
    (first occurrence), the final number recovered and the final size
    (fraction of the population ever infected).
    """
    missing = [c for c in COLUMNS if c not in df.columns]
    if missing:
        msg = MISSING_COLUMNS_ERROR.format(missing=missing)
        raise ValueError(msg)

    peak_idx = int(df["I"].to_numpy().argmax())
    last = df.iloc[-1]
    population = float(last["S"] + last["I"] + last["R"])
    first = df.iloc[0]
    ever_infected = float(last["I"] + last["R"]) - float(first["R"])
    return {
        "peak_infected": float(df["I"].iloc[peak_idx]),
        "peak_time": float(df["t"].iloc[peak_idx]),
        "final_recovered": float(last["R"]),
        "final_size": ever_infected / population if population > 0 else 0.0,
    }
