# src/sirabm/sir_model.py
"""High-level Pydantic wrapper that orchestrates parsing, seeding and running.

This object keeps the low-level parser and solver intact while providing a
single place to:
- hold the validated ModelSpec and the normalized SimulationConfig,
- create the seeded random generator for a run,
- run the agent-based model or the deterministic map into a results table.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np
import yaml as _yaml  # types provided by types-PyYAML in dev deps
from pydantic import BaseModel, PrivateAttr, model_validator

from .core_solver import CoreSolver
from .function_map import simulate_map
from .model_core import ModelCore, initial_population
from .parser import ModelSpec, SimulationConfig, normalize_spec_to_config
from .results import counts_to_frame

if TYPE_CHECKING:
    from collections.abc import Mapping

    import pandas as pd

    from .core_solver import RandomSource

logger = logging.getLogger(__name__)

CONFIG_NOT_BUILT_ERROR = "SIRModel configuration was not built"


def build_core(config: SimulationConfig) -> ModelCore:
    """Allocate a ModelCore for ``config`` and place the initial population."""
    core = ModelCore(
        n_agents=config.N,
        time_grid=config.time_grid,
        store_history=config.store_history,
    )
    core.set_initial_state(initial_population(config.N, config.I0))
    return core


def run_abm(
    config: SimulationConfig,
    rng: RandomSource | None = None,
) -> tuple[pd.DataFrame, ModelCore]:
    """Run the agent-based model for ``config``.

    Args:
        config: Validated run configuration.
        rng: Random source for every draw of the run. When omitted a new
            ``numpy.random.Generator`` is seeded from ``config.seed``.

    Returns:
        The results table (one row per tick, including t = 0) and the core
        holding the final population and any stored history.
    """
    if rng is None:
        rng = np.random.default_rng(config.seed)

    core = build_core(config)
    solver = CoreSolver(
        core,
        beta=config.beta,
        c=config.c,
        gamma=config.gamma,
        dt=config.dt,
        strategy=config.strategy,
    )

    logger.info(
        "Running agent-based SIR '%s': N=%d, I0=%d, nsteps=%d, seed=%s",
        config.model,
        config.N,
        config.I0,
        config.nsteps,
        config.seed,
    )
    counts = solver.run(rng)
    final = counts[-1]
    logger.info("Finished at t=%g with S=%d, I=%d, R=%d", config.tf, *final)

    return counts_to_frame(config.time_grid, counts), core


def simulate_abm(
    config: SimulationConfig,
    rng: RandomSource | None = None,
) -> pd.DataFrame:
    """Run the agent-based model and return only the results table."""
    df, _ = run_abm(config, rng)
    return df


class SIRModel(BaseModel):
    """Meta wrapper around the parse / validate / run pipeline."""

    # The validated spec we run through the pipeline.
    spec: ModelSpec

    # Computed artifact, populated by the model validator.
    config: SimulationConfig | None = None

    _core: ModelCore | None = PrivateAttr(default=None)

    model_config = {
        # SimulationConfig is a frozen dataclass, ModelCore a plain class.
        "arbitrary_types_allowed": True
    }

    @model_validator(mode="after")
    def _build_config(self) -> SIRModel:
        """Normalize the spec into a SimulationConfig.

        Returns:
            The validated and fully-initialized `SIRModel` instance (self).
        """
        self.config = normalize_spec_to_config(self.spec)
        return self

    # --------------------------
    # Convenience constructors
    # --------------------------
    @classmethod
    def from_yaml(cls, yaml_str: str) -> SIRModel:
        """Build from a YAML string.

        Returns:
            A fully-initialized `SIRModel` created from the YAML text.
        """
        data = _yaml.safe_load(yaml_str)
        if not isinstance(data, dict):
            raise ValueError("Top-level YAML must be a mapping (dict).")
        return cls(spec=ModelSpec.model_validate(data))

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> SIRModel:
        """Build from an in-memory config mapping.

        Returns:
            A fully-initialized `SIRModel` created from the provided mapping.
        """
        return cls(spec=ModelSpec.model_validate(dict(cfg)))

    # --------------------------
    # Running
    # --------------------------
    def _require_config(self) -> SimulationConfig:
        if self.config is None:
            raise RuntimeError(CONFIG_NOT_BUILT_ERROR)
        return self.config

    def make_rng(self) -> np.random.Generator:
        """Return a new generator seeded from the configured seed."""
        return np.random.default_rng(self._require_config().seed)

    def simulate(self, rng: RandomSource | None = None) -> pd.DataFrame:
        """Run the agent-based model and keep its core for inspection."""
        df, core = run_abm(self._require_config(), rng)
        self._core = core
        return df

    def simulate_map(self) -> pd.DataFrame:
        """Iterate the deterministic SIR map with the same configuration."""
        return simulate_map(self._require_config())

    # --------------------------
    # Convenience accessors
    # --------------------------
    @property
    def core(self) -> ModelCore | None:
        """Return the core of the last agent-based run, if any."""
        return self._core

    @property
    def model(self) -> str:
        """Return the model name."""
        return self.spec.model

    @property
    def population_size(self) -> int:
        """Return the population size N."""
        return self._require_config().N

    @property
    def time_grid(self) -> np.ndarray:
        """Return the recorded tick times."""
        return self._require_config().time_grid
