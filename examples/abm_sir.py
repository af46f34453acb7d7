# sirabm/examples/abm_sir.py
"""Agent-based SIR compared against the deterministic SIR map.

Both models share one configuration (examples/abm_sir.yaml): 1000 agents,
10 initially infected, beta = 0.05 per contact, 10 contacts per unit time and
a recovery rate of 0.25 converted to a per-step proportion over dt = 0.1.
"""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from sirabm import SIRModel
from sirabm.results import summarize

CONFIG_PATH = Path(__file__).with_name("abm_sir.yaml")


def run_comparison(config_path: Path = CONFIG_PATH) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Run the agent-based model and the map from the same YAML file.

    Returns:
        tuple[pd.DataFrame, pd.DataFrame]: The agent-based and map results
        tables, each with columns (t, S, I, R).
    """
    model = SIRModel.from_yaml(config_path.read_text())
    return model.simulate(), model.simulate_map()


def plot_sir(abm: pd.DataFrame, mean_field: pd.DataFrame) -> None:
    """Plot agent-based trajectories as solid lines and the map as dashed lines."""
    plt.figure(figsize=(8, 5))
    for column in ("S", "I", "R"):
        (line,) = plt.plot(abm["t"], abm[column], label=f"{column} (agents)")
        plt.plot(
            mean_field["t"],
            mean_field[column],
            linestyle="--",
            color=line.get_color(),
            label=f"{column} (map)",
        )
    plt.grid(visible=True)
    plt.legend()
    plt.title("Agent-based SIR vs discrete-time map")
    plt.xlabel("Time")
    plt.ylabel("Number")
    plt.tight_layout()
    plt.show()


def main() -> None:
    """Run, summarize and plot both models."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    abm, mean_field = run_comparison()
    for name, df in (("agents", abm), ("map", mean_field)):
        logging.getLogger(__name__).info("%s: %s", name, summarize(df))
    plot_sir(abm, mean_field)


if __name__ == "__main__":
    main()
