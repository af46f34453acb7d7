"""Agent update step and the driver that advances a ModelCore tick by tick."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import numpy as np

from .model_core import AgentState

if TYPE_CHECKING:
    from .model_core import ModelCore

logger = logging.getLogger(__name__)

STRATEGY_ERROR_MSG = "strategy must be 'fresh' or 'double_buffer'; got {strategy!r}"
ALIASED_BUFFERS_ERROR_MSG = "update_agents requires distinct input and output buffers"
BUFFER_SHAPE_ERROR_MSG = "output shape {actual} does not match input shape {expected}"

_SUSCEPTIBLE = int(AgentState.SUSCEPTIBLE)
_INFECTED = int(AgentState.INFECTED)
_RECOVERED = int(AgentState.RECOVERED)


# Type aliases / protocols -------------------------------------------------


class RandomSource(Protocol):
    """The subset of ``numpy.random.Generator`` used by the update step."""

    def poisson(self, lam: float) -> int:
        """Draw a Poisson-distributed count with mean ``lam``."""

    def integers(self, low: int, high: int) -> int:
        """Draw an integer uniformly from ``[low, high)``."""

    def random(self) -> float:
        """Draw a float uniformly from ``[0, 1)``."""


def update_agents(
    current: np.ndarray,
    out: np.ndarray,
    *,
    beta: float,
    c: float,
    gamma: float,
    dt: float,
    rng: RandomSource,
) -> None:
    """Write the next tick's agent states into ``out``.

    Agents are visited in index order and only read ``current``:

    - A susceptible agent draws ``Poisson(c * dt)`` contacts. Each contact is a
      uniformly chosen other agent; if it is infected, a uniform draw below
      ``beta`` infects the agent and no further contacts are made this tick.
    - An infected agent recovers when a uniform draw falls below ``gamma``.
    - Recovered agents stay recovered.

    Args:
        current: Population vector at tick t. Never written.
        out: Buffer receiving the population vector at tick t + 1.
        beta: Transmission probability per infectious contact.
        c: Contact rate per unit time.
        gamma: Per-step recovery probability.
        dt: Step size.
        rng: Random source; every draw of the step comes from it.

    Raises:
        ValueError: If ``out`` aliases ``current`` or has a different shape.
    """
    if out.shape != current.shape:
        msg = BUFFER_SHAPE_ERROR_MSG.format(actual=out.shape, expected=current.shape)
        raise ValueError(msg)
    if np.shares_memory(out, current):
        msg = ALIASED_BUFFERS_ERROR_MSG
        raise ValueError(msg)

    n_agents = current.shape[0]
    mean_contacts = c * dt

    for i in range(n_agents):
        state = current[i]
        if state == _SUSCEPTIBLE:
            out[i] = _SUSCEPTIBLE
            n_contacts = int(rng.poisson(mean_contacts))
            if n_agents < 2:
                continue
            for _ in range(n_contacts):
                # Draw from the n - 1 other agents, skipping over self
                j = int(rng.integers(0, n_agents - 1))
                if j >= i:
                    j += 1
                if current[j] == _INFECTED and rng.random() < beta:
                    out[i] = _INFECTED
                    break
        elif state == _INFECTED:
            out[i] = _RECOVERED if rng.random() < gamma else _INFECTED
        else:
            out[i] = _RECOVERED


class CoreSolver:
    """Discrete-time driver that applies update_agents over a ModelCore time grid.

    Two buffer strategies are supported:

    - ``"double_buffer"``: the update writes into the core's scratch buffer and
      the core swaps current/next references after each tick.
    - ``"fresh"``: a new output vector is allocated each tick and handed to the
      core.

    Both consume the random source identically, so for a given seed they
    produce the same trajectory.
    """

    def __init__(
        self,
        core: ModelCore,
        *,
        beta: float,
        c: float,
        gamma: float,
        dt: float | None = None,
        strategy: str = "double_buffer",
    ) -> None:
        """Initialize the CoreSolver.

        Args:
            core: The model core holding the population and time grid.
            beta: Transmission probability per infectious contact.
            c: Contact rate per unit time.
            gamma: Per-step recovery probability.
            dt: Step size; defaults to the core's time grid spacing.
            strategy: ``"double_buffer"`` or ``"fresh"``.

        Raises:
            ValueError: If strategy is not recognized.
        """
        if strategy not in ("fresh", "double_buffer"):
            msg = STRATEGY_ERROR_MSG.format(strategy=strategy)
            raise ValueError(msg)

        self.core = core
        self.beta = float(beta)
        self.c = float(c)
        self.gamma = float(gamma)
        self.dt = float(core.dt if dt is None else dt)
        self.strategy = strategy

    # ------------------------------------------------------------------
    # Single-step advance
    # ------------------------------------------------------------------

    def step(self, rng: RandomSource) -> None:
        """Advance the core by one tick."""
        current = self.core.get_current_state()
        if self.strategy == "double_buffer":
            out = self.core.next_state
        else:
            out = np.empty_like(current)

        update_agents(
            current,
            out,
            beta=self.beta,
            c=self.c,
            gamma=self.gamma,
            dt=self.dt,
            rng=rng,
        )

        if self.strategy == "double_buffer":
            self.core.swap_buffers()
        else:
            self.core.apply_next_state(out)

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run(self, rng: RandomSource) -> np.ndarray:
        """Run the remaining ticks of the time grid.

        Returns:
            The (S, I, R) counts for every tick, shape (n_timesteps, 3).
        """
        remaining = self.core.n_timesteps - 1 - self.core.current_step
        logger.debug(
            "Running %d step(s) over %d agents with strategy '%s'",
            remaining,
            self.core.n_agents,
            self.strategy,
        )
        for _ in range(remaining):
            self.step(rng)
        return self.core.get_counts()
