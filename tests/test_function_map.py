"""Unit tests for the deterministic SIR map."""

from __future__ import annotations

import math

import numpy as np
import pytest

from sirabm import SIRModel, rate_to_proportion
from sirabm.function_map import run_sir_map, sir_map

BETA = 0.05
C = 10.0
DT = 0.1
GAMMA = rate_to_proportion(0.25, DT)


def test_first_step_matches_hand_computation() -> None:
    """One map step moves the expected proportions between compartments."""
    u1 = sir_map(np.array([990.0, 10.0, 0.0]), beta=BETA, c=C, gamma=GAMMA, dt=DT)

    infection = (1.0 - math.exp(-BETA * C * 10.0 / 1000.0 * DT)) * 990.0
    recovery = (1.0 - math.exp(-0.25 * DT)) * 10.0
    assert u1[0] == pytest.approx(990.0 - infection)
    assert u1[1] == pytest.approx(10.0 + infection - recovery)
    assert u1[2] == pytest.approx(recovery)


def test_trajectory_conserves_population_and_r_grows() -> None:
    """S + I + R is constant and R never decreases."""
    traj = run_sir_map(np.array([990.0, 10.0, 0.0]), 400, beta=BETA, c=C, gamma=GAMMA, dt=DT)
    assert traj.shape == (401, 3)
    assert np.allclose(traj.sum(axis=1), 1000.0)
    assert np.all(np.diff(traj[:, 2]) >= 0)
    assert np.all(traj >= 0)


def test_no_infected_is_a_fixed_point() -> None:
    """Without infected individuals nothing changes."""
    traj = run_sir_map(np.array([100.0, 0.0, 0.0]), 10, beta=BETA, c=C, gamma=GAMMA, dt=DT)
    assert np.array_equal(traj, np.tile([100.0, 0.0, 0.0], (11, 1)))


def test_empty_population_stays_empty() -> None:
    """N = 0 does not divide by zero."""
    traj = run_sir_map(np.zeros(3), 3, beta=BETA, c=C, gamma=GAMMA, dt=DT)
    assert np.array_equal(traj, np.zeros((4, 3)))


def test_invalid_initial_state_rejected() -> None:
    """Initial states must be three non-negative numbers."""
    with pytest.raises(ValueError, match="3 entries"):
        run_sir_map(np.array([1.0, 2.0]), 1, beta=BETA, c=C, gamma=GAMMA, dt=DT)
    with pytest.raises(ValueError, match="non-negative"):
        run_sir_map(np.array([1.0, -2.0, 0.0]), 1, beta=BETA, c=C, gamma=GAMMA, dt=DT)


def test_simulate_map_uses_model_configuration() -> None:
    """SIRModel.simulate_map starts from (N - I0, I0, 0) on the shared time grid."""
    model = SIRModel.from_dict(
        {
            "population": {"N": 1000, "I0": 10},
            "parameters": {"beta": BETA, "c": C, "gamma_rate": 0.25},
            "time": {"dt": DT, "tf": 40},
        }
    )
    df = model.simulate_map()
    assert list(df.columns) == ["t", "S", "I", "R"]
    assert len(df) == 401
    assert df.iloc[0][["S", "I", "R"]].tolist() == [990.0, 10.0, 0.0]
    assert df["t"].iloc[-1] == pytest.approx(40.0)
    assert df["I"].max() > 10.0
