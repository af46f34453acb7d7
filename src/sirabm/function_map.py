"""Deterministic discrete-time SIR map.

The map is the mean-field counterpart of the agent-based model: each step
moves a fixed proportion of susceptibles to infected and of infected to
recovered,

    infection = (1 - exp(-beta * c * I / N * dt)) * S
    recovery  = gamma * I

where ``gamma`` is the same per-step recovery proportion the agents use.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from ._utils import rate_to_proportion
from .results import counts_to_frame

if TYPE_CHECKING:
    import pandas as pd

    from .parser import SimulationConfig

logger = logging.getLogger(__name__)

STATE_SHAPE_ERROR = "state must have 3 entries (S, I, R); got shape {shape}"
NEGATIVE_STATE_ERROR = "state entries must be non-negative; got {state}"


def sir_map(
    state: np.ndarray,
    *,
    beta: float,
    c: float,
    gamma: float,
    dt: float,
) -> np.ndarray:
    """Apply one step of the SIR map to (S, I, R) and return the next state."""
    susceptibles, infecteds, recovered = (float(x) for x in state)
    total = susceptibles + infecteds + recovered

    if total > 0.0:
        infection = rate_to_proportion(beta * c * infecteds / total, dt) * susceptibles
    else:
        infection = 0.0
    recovery = gamma * infecteds

    return np.array(
        [
            susceptibles - infection,
            infecteds + infection - recovery,
            recovered + recovery,
        ],
        dtype=np.float64,
    )


def run_sir_map(
    initial_state: np.ndarray,
    nsteps: int,
    *,
    beta: float,
    c: float,
    gamma: float,
    dt: float,
) -> np.ndarray:
    """Iterate the map ``nsteps`` times.

    Returns:
        Array of shape (nsteps + 1, 3) holding (S, I, R) at every step,
        starting with ``initial_state``.
    """
    u0 = np.asarray(initial_state, dtype=np.float64)
    if u0.shape != (3,):
        msg = STATE_SHAPE_ERROR.format(shape=u0.shape)
        raise ValueError(msg)
    if np.any(u0 < 0):
        msg = NEGATIVE_STATE_ERROR.format(state=u0.tolist())
        raise ValueError(msg)

    out = np.empty((nsteps + 1, 3), dtype=np.float64)
    out[0] = u0
    for k in range(nsteps):
        out[k + 1] = sir_map(out[k], beta=beta, c=c, gamma=gamma, dt=dt)
    return out


def simulate_map(config: SimulationConfig) -> pd.DataFrame:
    """Run the map for a validated configuration and return the results table."""
    u0 = np.array([config.N - config.I0, config.I0, 0], dtype=np.float64)
    logger.info(
        "Iterating SIR map '%s' for %d step(s) (N=%d, I0=%d)",
        config.model,
        config.nsteps,
        config.N,
        config.I0,
    )
    trajectory = run_sir_map(
        u0,
        config.nsteps,
        beta=config.beta,
        c=config.c,
        gamma=config.gamma,
        dt=config.dt,
    )
    return counts_to_frame(config.time_grid, trajectory)
