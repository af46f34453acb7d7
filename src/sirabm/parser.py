# parser.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
import yaml
from pydantic import BaseModel, Field, field_validator

from ._utils import _normalize_scalars, _safe_eval_integer, rate_to_proportion

logger = logging.getLogger(__name__)

STRATEGIES = ("fresh", "double_buffer")
MAX_NSTEPS = 10_000_000

# Error / message constants -------------------------------------------------

POPULATION_SIZE_ERROR = "N must be a positive integer; got {value}."
INITIAL_INFECTED_ERROR = "I0 must satisfy 0 <= I0 <= N; got I0={i0}, N={n}."
PROBABILITY_ERROR = "{name} must be a probability in [0, 1]; got {value}."
NEGATIVE_RATE_ERROR = "{name} must be non-negative; got {value}."
STEP_SIZE_ERROR = "dt must be positive; got {value}."
NSTEPS_ERROR = "nsteps must be a non-negative integer; got {value}."
NSTEPS_LIMIT_ERROR = "nsteps must not exceed {limit}; got {value}."
NON_FINITE_ERROR = "{name} must be finite; got {value}."
STRATEGY_ERROR = "strategy must be one of {choices}; got {value!r}."
SEED_ERROR = "seed must be a non-negative integer or None; got {value}."

# =============================================================================
# Pydantic v2 models
# =============================================================================


class EngineConfig(BaseModel):
    """Driver configuration: buffer strategy and history retention."""
    strategy: Literal["fresh", "double_buffer"] = "double_buffer"
    store_history: bool = False


class ModelSpec(BaseModel):
    """Top-level simulation specification parsed from YAML."""
    model: str = "sir-abm"
    seed: int | None = None
    population: dict[str, Any]
    parameters: dict[str, Any]
    time: dict[str, Any]
    engine: EngineConfig = Field(default_factory=EngineConfig)

    @field_validator("population")
    @classmethod
    def _validate_population(cls, v: dict[str, Any]) -> dict[str, Any]:
        if "N" not in v:
            raise ValueError("population.N is required.")
        unknown = set(v) - {"N", "I0"}
        if unknown:
            raise ValueError(f"Unknown population key(s): {sorted(unknown)}.")
        return v

    @field_validator("parameters")
    @classmethod
    def _validate_parameters(cls, v: dict[str, Any]) -> dict[str, Any]:
        unknown = set(v) - {"beta", "c", "gamma", "gamma_rate"}
        if unknown:
            raise ValueError(f"Unknown parameter(s): {sorted(unknown)}.")
        missing = {"beta", "c"} - set(v)
        if missing:
            raise ValueError(f"Missing parameter(s): {sorted(missing)}.")
        if ("gamma" in v) == ("gamma_rate" in v):
            raise ValueError("Exactly one of parameters.gamma or parameters.gamma_rate is required.")
        return v

    @field_validator("time")
    @classmethod
    def _validate_time(cls, v: dict[str, Any]) -> dict[str, Any]:
        if "dt" not in v:
            raise ValueError("time.dt is required.")
        unknown = set(v) - {"dt", "tf", "nsteps"}
        if unknown:
            raise ValueError(f"Unknown time key(s): {sorted(unknown)}.")
        if ("tf" in v) == ("nsteps" in v):
            raise ValueError("Exactly one of time.tf or time.nsteps is required.")
        return v


# =============================================================================
# Normalized configuration
# =============================================================================

@dataclass(frozen=True)
class SimulationConfig:
    """Validated scalar configuration for a single SIR run.

    Attributes:
    ----------
    N : int
        Population size.
    I0 : int
        Number of agents infected at t = 0.
    beta : float
        Transmission probability per contact with an infected agent.
    c : float
        Contact rate per unit time.
    gamma : float
        Per-step recovery probability.
    dt : float
        Step size.
    nsteps : int
        Number of steps to run (the results table has nsteps + 1 rows).
    """

    N: int
    I0: int
    beta: float
    c: float
    gamma: float
    dt: float
    nsteps: int
    seed: int | None = None
    strategy: str = "double_buffer"
    store_history: bool = False
    model: str = "sir-abm"

    def __post_init__(self) -> None:
        if isinstance(self.N, bool) or not isinstance(self.N, (int, np.integer)) or self.N <= 0:
            raise ValueError(POPULATION_SIZE_ERROR.format(value=self.N))
        if (
            isinstance(self.I0, bool)
            or not isinstance(self.I0, (int, np.integer))
            or not 0 <= self.I0 <= self.N
        ):
            raise ValueError(INITIAL_INFECTED_ERROR.format(i0=self.I0, n=self.N))
        for name in ("beta", "gamma"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(PROBABILITY_ERROR.format(name=name, value=value))
        for name in ("c", "dt"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(NON_FINITE_ERROR.format(name=name, value=value))
        if not self.c >= 0.0:
            raise ValueError(NEGATIVE_RATE_ERROR.format(name="c", value=self.c))
        if not self.dt > 0.0:
            raise ValueError(STEP_SIZE_ERROR.format(value=self.dt))
        if (
            isinstance(self.nsteps, bool)
            or not isinstance(self.nsteps, (int, np.integer))
            or self.nsteps < 0
        ):
            raise ValueError(NSTEPS_ERROR.format(value=self.nsteps))
        if self.nsteps > MAX_NSTEPS:
            raise ValueError(NSTEPS_LIMIT_ERROR.format(limit=MAX_NSTEPS, value=self.nsteps))
        if self.strategy not in STRATEGIES:
            raise ValueError(STRATEGY_ERROR.format(choices=STRATEGIES, value=self.strategy))
        if self.seed is not None and (isinstance(self.seed, bool) or self.seed < 0):
            raise ValueError(SEED_ERROR.format(value=self.seed))

    @property
    def tf(self) -> float:
        """Final simulation time."""
        return self.nsteps * self.dt

    @property
    def time_grid(self) -> np.ndarray:
        """Times of every recorded tick, shape (nsteps + 1,)."""
        return np.arange(self.nsteps + 1, dtype=np.float64) * self.dt


def normalize_spec_to_config(spec: ModelSpec) -> SimulationConfig:
    """Evaluate scalar expressions in a validated spec and build the run config."""
    population = spec.population
    n_agents = _safe_eval_integer(population["N"], "N")
    i0 = _safe_eval_integer(population.get("I0", 0), "I0")

    params = _normalize_scalars(spec.parameters)
    time = _normalize_scalars({k: v for k, v in spec.time.items() if k != "nsteps"})
    dt = time["dt"]
    if not dt > 0.0:
        raise ValueError(STEP_SIZE_ERROR.format(value=dt))

    if "nsteps" in spec.time:
        nsteps = _safe_eval_integer(spec.time["nsteps"], "nsteps")
    else:
        tf = time["tf"]
        if not math.isfinite(tf):
            raise ValueError(NON_FINITE_ERROR.format(name="tf", value=tf))
        if tf < 0.0:
            raise ValueError(NEGATIVE_RATE_ERROR.format(name="tf", value=tf))
        steps = tf / dt
        if not steps <= MAX_NSTEPS:
            raise ValueError(NSTEPS_LIMIT_ERROR.format(limit=MAX_NSTEPS, value=steps))
        nsteps = int(round(steps))

    if "gamma_rate" in params:
        gamma_rate = params["gamma_rate"]
        if gamma_rate < 0.0:
            raise ValueError(NEGATIVE_RATE_ERROR.format(name="gamma_rate", value=gamma_rate))
        gamma = rate_to_proportion(gamma_rate, dt)
    else:
        gamma = params["gamma"]

    config = SimulationConfig(
        N=n_agents,
        I0=i0,
        beta=params["beta"],
        c=params["c"],
        gamma=gamma,
        dt=dt,
        nsteps=nsteps,
        seed=spec.seed,
        strategy=spec.engine.strategy,
        store_history=spec.engine.store_history,
        model=spec.model,
    )
    logger.debug("Normalized configuration for model '%s': %s", spec.model, config)
    return config


# =============================================================================
# Public API
# =============================================================================

def parse_config_yaml(yaml_str: str) -> SimulationConfig:
    data = yaml.safe_load(yaml_str)
    if not isinstance(data, dict):
        raise ValueError("Top-level YAML must be a mapping (dict).")
    spec = ModelSpec.model_validate(data)
    return normalize_spec_to_config(spec)


def parse_config_dict(cfg: dict[str, Any]) -> SimulationConfig:
    if not isinstance(cfg, dict):
        raise ValueError("Expected a mapping for configuration.")
    spec = ModelSpec.model_validate(cfg)
    return normalize_spec_to_config(spec)
