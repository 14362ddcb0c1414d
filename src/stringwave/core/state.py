"""Three-generation displacement buffer of one simulated string."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray


@dataclass
class WaveFieldState:
    """Displacement history of one string instance.

    Holds the ``previous``, ``current`` and ``next`` generations (each of
    length N) and the instance's local simulated time. ``next`` is scratch
    space written during a step; :meth:`rotate` turns it into ``current``
    and allocates a fresh scratch array, so an array handed out as
    ``current`` or ``previous`` is never written again.

    Args:
        node_count: Number of nodes N

    Attributes:
        previous: Displacement one step before ``current``
        current: Displacement at ``time_elapsed``
        next: Scratch buffer for the step in flight
        time_elapsed: Simulated time of ``current`` in seconds
        step_count: Number of steps taken since the last reset
        initialized: False until the integrator seeds the state
    """

    node_count: int
    time_elapsed: float = 0.0
    step_count: int = 0
    initialized: bool = False

    previous: NDArray[np.float64] = field(init=False, repr=False)
    current: NDArray[np.float64] = field(init=False, repr=False)
    next: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.node_count < 3:
            raise ValueError(f"node_count must be at least 3, got {self.node_count}")
        self.previous = np.zeros(self.node_count, dtype=np.float64)
        self.current = np.zeros(self.node_count, dtype=np.float64)
        self.next = np.zeros(self.node_count, dtype=np.float64)

    def clear(self, time_elapsed: float = 0.0) -> None:
        """Zero all generations and set the clock, leaving the state unseeded."""
        self.previous = np.zeros(self.node_count, dtype=np.float64)
        self.current = np.zeros(self.node_count, dtype=np.float64)
        self.next = np.zeros(self.node_count, dtype=np.float64)
        self.time_elapsed = time_elapsed
        self.step_count = 0
        self.initialized = False

    def rotate(self, dt: float) -> None:
        """Shift generations: previous <- current <- next, advance time by dt."""
        self.previous = self.current
        self.current = self.next
        # Every entry of next is written by the step, so no zeroing needed
        self.next = np.empty_like(self.current)
        self.time_elapsed += dt
        self.step_count += 1

    @property
    def displacement(self) -> NDArray[np.float64]:
        """Read-only view of ``current`` for display."""
        view = self.current.view()
        view.flags.writeable = False
        return view

    def copy(self) -> WaveFieldState:
        """Deep copy of this state."""
        other = WaveFieldState(
            self.node_count,
            time_elapsed=self.time_elapsed,
            step_count=self.step_count,
            initialized=self.initialized,
        )
        other.previous[:] = self.previous
        other.current[:] = self.current
        other.next[:] = self.next
        return other

    def __len__(self) -> int:
        return self.node_count
