"""sirabm agent-based SIR simulation package."""

from __future__ import annotations

from ._utils import rate_to_proportion
from .model_core import AgentState
from .parser import (
    EngineConfig,
    ModelSpec,
    SimulationConfig,
    parse_config_yaml,
    parse_config_dict,
)
from .sir_model import SIRModel, run_abm, simulate_abm
from .function_map import simulate_map

__all__ = [
    "AgentState",
    "EngineConfig",
    "ModelSpec",
    "SimulationConfig",
    "SIRModel",
    "parse_config_yaml",
    "parse_config_dict",
    "rate_to_proportion",
    "run_abm",
    "simulate_abm",
    "simulate_map",
]

__version__ = "0.1.0"
