"""Explicit finite-difference integrator for the damped string.

This module advances the 1D damped wave equation

    u_tt + gamma * u_t = c^2 * u_xx

with the three-level leapfrog scheme. Centering the damping term in time
gives, for interior nodes i = 1..N-2,

    next[i] = ( 2*cur[i] - (1 + gamma*dt/2)*prev[i]
                + r^2 * (cur[i+1] - 2*cur[i] + cur[i-1]) ) / (1 + gamma*dt/2)

where r = c*dt/dx is the Courant number.

Stability: r <= 1 (CFL condition for 1D). Larger values are accepted and
allowed to diverge.

Example:
    >>> from stringwave import PhysicalParameterSet, RightBoundaryMode, WaveIntegrator
    >>> params = PhysicalParameterSet(node_count=101)
    >>> state = WaveIntegrator.reset(None, params)
    >>> for _ in range(200):
    ...     WaveIntegrator.step(state, params, 1.0, RightBoundaryMode.FIXED)
    >>> round(state.time_elapsed, 6)
    1.0
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from scipy.integrate import trapezoid

from stringwave.boundaries import RightBoundaryMode
from stringwave.core.state import WaveFieldState

if TYPE_CHECKING:
    from stringwave.core.drivers import BoundaryDriver
    from stringwave.core.parameters import PhysicalParameterSet


class WaveIntegrator:
    """Stateless leapfrog stepper for :class:`WaveFieldState` buffers.

    All methods are static; the parameter set and boundary value are passed
    in on every call so that one integrator serves every string instance.
    """

    @staticmethod
    def reset(
        state: WaveFieldState | None,
        params: PhysicalParameterSet,
        time_elapsed: float = 0.0,
    ) -> WaveFieldState:
        """Seed a state from rest.

        All generations are zeroed, then one Taylor half-step is applied to
        the interior nodes (zero initial velocity):

            current[i] = previous[i] + 0.5*r^2*(previous[i+1] - 2*previous[i] + previous[i-1])

        Args:
            state: State to reinitialize, or None to allocate a new one. A
                state of the wrong length is replaced.
            params: Parameter set the state is sized to
            time_elapsed: Clock value after the reset

        Returns:
            The seeded state
        """
        if state is None or state.node_count != params.node_count:
            state = WaveFieldState(params.node_count)
        state.clear(time_elapsed)

        prev = state.previous
        state.current[1:-1] = prev[1:-1] + 0.5 * params.r2 * (
            prev[2:] - 2.0 * prev[1:-1] + prev[:-2]
        )
        state.initialized = True
        return state

    @staticmethod
    def step(
        state: WaveFieldState,
        params: PhysicalParameterSet,
        left_value: float,
        right_mode: RightBoundaryMode | str = RightBoundaryMode.FIXED,
    ) -> None:
        """Advance ``state`` by exactly one physical step.

        Args:
            state: Seeded field state of length ``params.node_count``
            params: Parameter set the state was reset with
            left_value: Left-end displacement at ``time_elapsed + dt``
            right_mode: Right-end policy

        Raises:
            RuntimeError: If the state was never seeded or does not match
                the parameter set
        """
        if not state.initialized:
            raise RuntimeError("WaveFieldState not initialized. Call reset() first.")
        if state.node_count != params.node_count:
            raise RuntimeError(
                f"WaveFieldState has {state.node_count} nodes but the parameter "
                f"set has {params.node_count}. Reset the state first."
            )

        prev = state.previous
        cur = state.current
        nxt = state.next
        damp = params.damping_factor

        nxt[1:-1] = (
            2.0 * cur[1:-1]
            - damp * prev[1:-1]
            + params.r2 * (cur[2:] - 2.0 * cur[1:-1] + cur[:-2])
        ) / damp

        nxt[0] = left_value
        RightBoundaryMode.parse(right_mode).boundary.apply(nxt, cur, params)

        state.rotate(params.dt)

    @classmethod
    def advance(
        cls,
        state: WaveFieldState,
        params: PhysicalParameterSet,
        driver: BoundaryDriver,
        right_mode: RightBoundaryMode | str = RightBoundaryMode.FIXED,
    ) -> float:
        """Evaluate ``driver`` at the next instant and take one step.

        The drive is sampled at ``time_elapsed + dt``, the time of the
        generation being computed.

        Returns:
            The left-end value that was applied
        """
        left_value = driver.value_at(state.time_elapsed + params.dt)
        cls.step(state, params, left_value, right_mode)
        return left_value

    @staticmethod
    def compute_energy(state: WaveFieldState, params: PhysicalParameterSet) -> float:
        """Discrete mechanical energy of the string.

        Energy = (1/2) * integral of (mu * u_t^2 + T * u_x^2) dx

        u_t is the backward difference between ``current`` and ``previous``
        and u_x is evaluated on the half-grid between nodes.

        Returns:
            Total energy in joules
        """
        u_t = (state.current - state.previous) / params.dt
        kinetic = 0.5 * params.mass_density * trapezoid(u_t**2, dx=params.dx)

        u_x = np.diff(state.current) / params.dx
        potential = 0.5 * params.tension * float(np.sum(u_x**2)) * params.dx

        return float(kinetic + potential)
