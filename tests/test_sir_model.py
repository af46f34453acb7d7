# tests/test_sir_model.py
"""Tests for the SIRModel wrapper and agent-based runs end to end.

This module contains tests for:
- SIRModel.from_yaml and SIRModel.from_dict constructors
- The reference run (seed 1234, N=1000, I0=10) and its invariants
- Reproducibility for a fixed seed and an injected generator
- The disease-free edge case (I0 = 0)
- Optional per-agent history and logging
"""

from __future__ import annotations

import logging
import textwrap

import numpy as np
import pandas as pd
import pytest

from sirabm import SIRModel, parse_config_dict, simulate_abm
from sirabm.model_core import initial_population
from sirabm.sir_model import run_abm


def _reference_yaml() -> str:
    return textwrap.dedent(
        """
        model: sir-abm
        seed: 1234
        population:
          N: 1000
          I0: 10
        parameters:
          beta: 0.05
          c: 10.0
          gamma_rate: 0.25
        time:
          dt: 0.1
          tf: 40
        """
    )


def _small_cfg(**engine) -> dict:
    return {
        "model": "sir-small",
        "seed": 7,
        "population": {"N": 200, "I0": 5},
        "parameters": {"beta": 0.1, "c": 10.0, "gamma_rate": 0.25},
        "time": {"dt": 0.1, "nsteps": 120},
        "engine": engine,
    }


@pytest.fixture(scope="module")
def reference_results() -> pd.DataFrame:
    return SIRModel.from_yaml(_reference_yaml()).simulate()


def test_reference_run_initial_row(reference_results: pd.DataFrame) -> None:
    """The first tick of the reference run reports S=990, I=10, R=0."""
    first = reference_results.iloc[0]
    assert first["t"] == 0.0
    assert (first["S"], first["I"], first["R"]) == (990, 10, 0)


def test_reference_run_shape(reference_results: pd.DataFrame) -> None:
    """One row per tick including t = 0, with integer counts."""
    assert list(reference_results.columns) == ["t", "S", "I", "R"]
    assert len(reference_results) == 401
    assert reference_results["t"].iloc[-1] == pytest.approx(40.0)
    for column in ("S", "I", "R"):
        assert reference_results[column].dtype == np.int64


def test_reference_run_conserves_population(reference_results: pd.DataFrame) -> None:
    """S + I + R == N at every tick."""
    totals = reference_results[["S", "I", "R"]].sum(axis=1)
    assert (totals == 1000).all()


def test_reference_run_recovered_non_decreasing(reference_results: pd.DataFrame) -> None:
    """Recovered is absorbing, so its count never drops."""
    assert (reference_results["R"].diff().dropna() >= 0).all()
    assert (reference_results["S"].diff().dropna() <= 0).all()


def test_reference_run_epidemic_size(reference_results: pd.DataFrame) -> None:
    """With R0 = beta * c / gamma_rate = 2 the epidemic infects most, not all, agents.

    The mean-field final size for R0 = 2 is about 80%, with a peak of about
    150 infected; the bounds leave room for stochastic variation.
    """
    final_susceptible = reference_results["S"].iloc[-1]
    peak_infected = reference_results["I"].max()
    assert 100 < final_susceptible < 450
    assert 80 < peak_infected < 260


def test_from_dict_matches_from_yaml() -> None:
    """YAML and dict constructors normalize to the same configuration."""
    from_yaml = SIRModel.from_yaml(_reference_yaml())
    from_dict = SIRModel.from_dict(
        {
            "model": "sir-abm",
            "seed": 1234,
            "population": {"N": 1000, "I0": 10},
            "parameters": {"beta": 0.05, "c": 10.0, "gamma_rate": 0.25},
            "time": {"dt": 0.1, "tf": 40},
        }
    )
    assert from_yaml.config == from_dict.config
    assert from_yaml.model == "sir-abm"
    assert from_yaml.population_size == 1000
    assert from_yaml.time_grid.shape == (401,)


def test_from_yaml_rejects_non_mapping() -> None:
    """A YAML list is not a configuration."""
    with pytest.raises(ValueError, match="Top-level YAML must be a mapping"):
        SIRModel.from_yaml("- a\n- b\n")


def test_same_seed_gives_identical_trajectories() -> None:
    """Running the same configuration twice yields identical counts."""
    model = SIRModel.from_dict(_small_cfg())
    first = model.simulate()
    second = model.simulate()
    pd.testing.assert_frame_equal(first, second)
    assert first["R"].iloc[-1] > 0


def test_strategies_give_identical_trajectories() -> None:
    """Fresh and double-buffer runs agree for the same seed."""
    fresh = SIRModel.from_dict(_small_cfg(strategy="fresh")).simulate()
    swapped = SIRModel.from_dict(_small_cfg(strategy="double_buffer")).simulate()
    pd.testing.assert_frame_equal(fresh, swapped)


def test_injected_generator_matches_seeded_run() -> None:
    """Passing a generator seeded like the config reproduces the default run."""
    model = SIRModel.from_dict(_small_cfg())
    expected = model.simulate()
    actual = model.simulate(rng=np.random.default_rng(7))
    pd.testing.assert_frame_equal(expected, actual)

    rng = model.make_rng()
    assert isinstance(rng, np.random.Generator)
    pd.testing.assert_frame_equal(expected, model.simulate(rng=rng))


def test_no_initial_infected_stays_disease_free() -> None:
    """With I0 = 0 there is nobody to transmit, so I and R stay zero."""
    cfg = _small_cfg()
    cfg["population"] = {"N": 100, "I0": 0}
    df = simulate_abm(parse_config_dict(cfg))
    assert (df["I"] == 0).all()
    assert (df["R"] == 0).all()
    assert (df["S"] == 100).all()


def test_zero_steps_reports_only_initial_tick() -> None:
    """nsteps = 0 gives a single-row table."""
    cfg = _small_cfg()
    cfg["time"] = {"dt": 0.1, "nsteps": 0}
    df = simulate_abm(parse_config_dict(cfg))
    assert df[["S", "I", "R"]].to_numpy().tolist() == [[195, 5, 0]]


def test_store_history_keeps_every_tick() -> None:
    """With store_history the core keeps each tick's agent states."""
    model = SIRModel.from_dict(_small_cfg(store_history=True))
    assert model.core is None
    df = model.simulate()

    core = model.core
    assert core is not None
    assert core.state_array is not None
    assert core.state_array.shape == (121, 200)
    assert np.array_equal(core.get_state_at(0), initial_population(200, 5))
    last = np.bincount(core.get_state_at(120), minlength=3)
    assert last.tolist() == df[["S", "I", "R"]].iloc[-1].tolist()


def test_run_abm_returns_core_without_history() -> None:
    """run_abm returns the final core even when history is off."""
    df, core = run_abm(parse_config_dict(_small_cfg()))
    assert core.state_array is None
    assert core.current_step == 120
    counts = np.bincount(core.get_current_state(), minlength=3)
    assert counts.tolist() == df[["S", "I", "R"]].iloc[-1].tolist()


def test_run_logs_start_and_finish(caplog: pytest.LogCaptureFixture) -> None:
    """Runs are reported through the package logger."""
    caplog.set_level(logging.INFO, logger="sirabm")
    SIRModel.from_dict(_small_cfg()).simulate()
    assert "Running agent-based SIR 'sir-small'" in caplog.text
    assert "Finished at t=12" in caplog.text
