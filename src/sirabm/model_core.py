# sirabm/src/sirabm/model_core.py
"""Core class for managing the agent population and its tick history."""

from __future__ import annotations

from enum import IntEnum

import numpy as np

# Error / message constants -------------------------------------------------

TIMEGRID_1D_ERROR = "time_grid must be a 1D array"
TIMEGRID_MIN_POINTS_ERROR = "time_grid must contain at least one time point"
TIMEGRID_MONOTONE_ERROR = "time_grid must be strictly increasing"
N_AGENTS_ERROR = "n_agents must be positive; got {value}"
INITIAL_STATE_SHAPE_ERROR = (
    "Initial state shape {actual} does not match expected {expected}"
)
NEXT_STATE_SHAPE_ERROR = "Next state shape {actual} does not match expected {expected}"
INVALID_STATE_ERROR = "State vector contains values outside {valid}"
HISTORY_NOT_STORED_ERROR = (
    "Full history is not stored (store_history=False); get_state_at is unavailable."
)
STEP_OOB_ERROR = "Step out of bounds"
FINAL_TIMESTEP_ERROR = "Simulation has already reached final timestep"


class AgentState(IntEnum):
    """Disease state of a single agent."""

    SUSCEPTIBLE = 0
    INFECTED = 1
    RECOVERED = 2


N_STATES = len(AgentState)
STATE_DTYPE = np.int8


def initial_population(n_agents: int, n_infected: int) -> np.ndarray:
    """Build a population where the first ``n_infected`` agents are infected."""
    states = np.full(n_agents, AgentState.SUSCEPTIBLE, dtype=STATE_DTYPE)
    states[:n_infected] = AgentState.INFECTED
    return states


def count_states(states: np.ndarray) -> np.ndarray:
    """Return the (S, I, R) counts of a population vector."""
    return np.bincount(states, minlength=N_STATES).astype(np.int64)


class ModelCore:
    """
    Core class for managing the population state of an agent-based model.

    Design goals
    ------------
    - Two population buffers (current / next) so a step never reads what it
      writes; committing a step swaps the references instead of copying.
    - Aggregate (S, I, R) counts are always recorded for every tick.
    - Full per-agent history is optional, off by default for large runs.

    Attributes:
    ----------
    time_grid : np.ndarray
        Array of recorded tick times (float64).
    dt : float
        Timestep size (assumed uniform).
    n_agents : int
        Population size N.
    n_timesteps : int
        Number of recorded ticks, including t = 0.
    current_step : int
        Index of the current tick (0-based).
    current_state : np.ndarray
        Agent states at the current tick, shape (n_agents,).
    next_state : np.ndarray
        Scratch buffer the update step writes into, shape (n_agents,).
    counts_array : np.ndarray
        (S, I, R) counts per tick, shape (n_timesteps, 3).
    state_array : np.ndarray | None
        Full agent history, shape (n_timesteps, n_agents), or None if
        store_history=False.
    """

    def __init__(
        self,
        n_agents: int,
        time_grid: np.ndarray,
        *,
        store_history: bool = False,
    ) -> None:
        """
        Initialize the ModelCore.

        Parameters
        ----------
        n_agents : int
            Population size.
        time_grid : array-like
            Monotonic array of tick times.
        store_history : bool, optional
            If True, keep every tick's agent states in state_array.
        """
        self.time_grid = np.asarray(time_grid, dtype=np.float64)
        if self.time_grid.ndim != 1:
            msg = TIMEGRID_1D_ERROR
            raise ValueError(msg)

        self.n_agents = int(n_agents)
        if self.n_agents <= 0:
            msg = N_AGENTS_ERROR.format(value=n_agents)
            raise ValueError(msg)

        self.n_timesteps = int(self.time_grid.size)
        self.store_history = bool(store_history)

        if self.n_timesteps < 1:
            msg = TIMEGRID_MIN_POINTS_ERROR
            raise ValueError(msg)

        if self.n_timesteps > 1:
            dt_arr = np.diff(self.time_grid)
            if np.any(dt_arr <= 0):
                msg = TIMEGRID_MONOTONE_ERROR
                raise ValueError(msg)
            self.dt = float(dt_arr.mean())
        else:
            # Degenerate single-tick case
            self.dt = 0.0

        self.current_step: int = 0

        self.current_state: np.ndarray = np.zeros(self.n_agents, dtype=STATE_DTYPE)
        self.next_state: np.ndarray = np.zeros_like(self.current_state)

        self.counts_array: np.ndarray = np.zeros((self.n_timesteps, N_STATES), dtype=np.int64)

        if self.store_history:
            self.state_array: np.ndarray | None = np.zeros(
                (self.n_timesteps, self.n_agents),
                dtype=STATE_DTYPE,
            )
        else:
            self.state_array = None

    # ------------------------------------------------------------------
    # Initialization / accessors
    # ------------------------------------------------------------------

    def _as_state_vector(self, states: np.ndarray, template: str) -> np.ndarray:
        arr = np.asarray(states)
        if arr.shape != (self.n_agents,):
            msg = template.format(actual=arr.shape, expected=(self.n_agents,))
            raise ValueError(msg)
        if arr.size and (arr.min() < 0 or arr.max() >= N_STATES):
            msg = INVALID_STATE_ERROR.format(valid=[s.value for s in AgentState])
            raise ValueError(msg)
        return arr.astype(STATE_DTYPE, copy=False)

    def _record(self) -> None:
        self.counts_array[self.current_step] = count_states(self.current_state)
        if self.store_history and self.state_array is not None:
            self.state_array[self.current_step] = self.current_state

    def set_initial_state(self, initial_state: np.ndarray) -> None:
        """
        Set the agent states at t = time_grid[0].

        Parameters
        ----------
        initial_state : np.ndarray
            Integer array of shape (n_agents,) holding AgentState values.
        """
        arr = self._as_state_vector(initial_state, INITIAL_STATE_SHAPE_ERROR)
        np.copyto(self.current_state, arr)
        self.current_step = 0
        self._record()

    def get_current_state(self) -> np.ndarray:
        """Return the current population vector."""
        return self.current_state

    def get_counts(self) -> np.ndarray:
        """Return the (S, I, R) counts recorded so far, shape (current_step + 1, 3)."""
        return self.counts_array[: self.current_step + 1]

    def get_state_at(self, step: int) -> np.ndarray:
        """
        Return the agent states at a given tick (requires store_history=True).

        Raises:
        ------
        RuntimeError
            If store_history=False.
        IndexError
            If step is outside [0, n_timesteps).
        """
        if not self.store_history or self.state_array is None:
            msg = HISTORY_NOT_STORED_ERROR
            raise RuntimeError(msg)

        if not (0 <= step < self.n_timesteps):
            msg = STEP_OOB_ERROR
            raise IndexError(msg)

        return self.state_array[step]

    # ------------------------------------------------------------------
    # Stepping / updates
    # ------------------------------------------------------------------

    def _check_can_advance(self) -> None:
        if self.current_step >= self.n_timesteps - 1:
            msg = FINAL_TIMESTEP_ERROR
            raise RuntimeError(msg)

    def swap_buffers(self) -> None:
        """
        Commit next_state as the new current state by swapping buffer references.

        The previous current buffer becomes the scratch buffer for the next
        step; no population data is copied.
        """
        self._check_can_advance()
        self.current_state, self.next_state = self.next_state, self.current_state
        self.current_step += 1
        self._record()

    def apply_next_state(self, next_state: np.ndarray) -> None:
        """
        Commit a freshly allocated population vector as the next tick.

        Ownership of ``next_state`` passes to the core; the caller must not
        write to it afterwards.
        """
        arr = self._as_state_vector(next_state, NEXT_STATE_SHAPE_ERROR)
        self._check_can_advance()
        self.current_state = arr
        self.current_step += 1
        self._record()
