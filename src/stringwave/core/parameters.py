"""Physical parameters of the simulated string.

The string is described by five physical inputs plus the Courant number
that fixes the relationship between spatial and temporal resolution:

    c  = sqrt(T / mu)        wave speed
    dx = L / (N - 1)         spatial step
    dt = r * dx / c          physical time step

All three derived quantities are computed together by :func:`derive` and
stored on the same frozen :class:`PhysicalParameterSet`, so a changed input
can never be paired with a stale derived value.

Example:
    >>> params = PhysicalParameterSet(length=1.0, tension=1.0, mass_density=1.0,
    ...                               damping=0.0, node_count=101)
    >>> params.wave_speed, params.dx, params.dt
    (1.0, 0.01, 0.005)
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass, field, replace

import numpy as np
from numpy.typing import NDArray

#: Default Courant number used by the interactive simulator.
DEFAULT_COURANT = 0.5


class ConfigurationError(ValueError):
    """Raised when physical or playback inputs are outside their valid range."""

    pass


@dataclass(frozen=True)
class ControlDefaults:
    """Initial values of the simulator controls.

    Attributes:
        interval: Playback interval setting in ms (20 = real time)
        length: String length in meters
        tension: Tension in newtons
        mass_density: Linear mass density in kg/m
        damping: Damping coefficient gamma in 1/s
        node_count: Number of grid nodes including both ends
    """

    interval: float = 20.0
    length: float = 1.0
    tension: float = 1.0
    mass_density: float = 1.0
    damping: float = 0.0
    node_count: int = 101


DEFAULT_CONTROLS = ControlDefaults()


def derive(
    length: float,
    tension: float,
    mass_density: float,
    damping: float,
    node_count: int,
    courant: float = DEFAULT_COURANT,
) -> tuple[float, float, float]:
    """Derive wave speed, spatial step and time step from physical inputs.

    Args:
        length: String length L (> 0)
        tension: Tension T (> 0)
        mass_density: Linear mass density mu (> 0)
        damping: Damping coefficient gamma (>= 0)
        node_count: Number of nodes N (>= 3, so at least one interior node)
        courant: Courant number r (> 0; values above 1 are unstable)

    Returns:
        Tuple ``(c, dx, dt)``

    Raises:
        ConfigurationError: If any input is outside its valid range. Inputs
            are never clamped.
    """
    for name, value in (
        ("length", length),
        ("tension", tension),
        ("mass_density", mass_density),
        ("damping", damping),
        ("courant", courant),
        ("node_count", node_count),
    ):
        if not math.isfinite(value):
            raise ConfigurationError(f"{name} must be finite, got {value}")

    if int(node_count) != node_count:
        raise ConfigurationError(f"node_count must be an integer, got {node_count}")
    if node_count < 3:
        raise ConfigurationError(
            f"node_count must be at least 3 (one interior node), got {node_count}"
        )
    if tension <= 0:
        raise ConfigurationError(f"tension must be positive, got {tension}")
    if mass_density <= 0:
        raise ConfigurationError(f"mass_density must be positive, got {mass_density}")
    if length <= 0:
        raise ConfigurationError(f"length must be positive, got {length}")
    if damping < 0:
        raise ConfigurationError(f"damping must be non-negative, got {damping}")
    if courant <= 0:
        raise ConfigurationError(f"courant must be positive, got {courant}")

    c = math.sqrt(tension / mass_density)
    dx = length / (int(node_count) - 1)
    dt = courant * dx / c
    return c, dx, dt


@dataclass(frozen=True)
class PhysicalParameterSet:
    """Immutable physical description of the string plus derived steps.

    Args:
        length: String length in meters
        tension: Tension in newtons
        mass_density: Linear mass density in kg/m
        damping: Damping coefficient gamma in 1/s
        node_count: Number of grid nodes including both ends
        courant: Courant number r = c*dt/dx (default: 0.5)

    Attributes:
        wave_speed: c = sqrt(T/mu)
        dx: Spatial step L/(N-1)
        dt: Physical time step r*dx/c

    Raises:
        ConfigurationError: On invalid inputs (see :func:`derive`)
    """

    length: float = DEFAULT_CONTROLS.length
    tension: float = DEFAULT_CONTROLS.tension
    mass_density: float = DEFAULT_CONTROLS.mass_density
    damping: float = DEFAULT_CONTROLS.damping
    node_count: int = DEFAULT_CONTROLS.node_count
    courant: float = DEFAULT_COURANT

    wave_speed: float = field(init=False)
    dx: float = field(init=False)
    dt: float = field(init=False)

    def __post_init__(self) -> None:
        c, dx, dt = derive(
            self.length,
            self.tension,
            self.mass_density,
            self.damping,
            self.node_count,
            self.courant,
        )
        # Frozen dataclass: derived fields are written once here
        object.__setattr__(self, "node_count", int(self.node_count))
        object.__setattr__(self, "wave_speed", c)
        object.__setattr__(self, "dx", dx)
        object.__setattr__(self, "dt", dt)

        if self.courant > 1.0:
            warnings.warn(
                f"Courant number {self.courant} exceeds 1; the explicit scheme "
                "is unstable and displacements will grow without bound.",
                UserWarning,
                stacklevel=3,
            )

    @classmethod
    def from_controls(cls, defaults: ControlDefaults = DEFAULT_CONTROLS) -> PhysicalParameterSet:
        """Build a parameter set from control values."""
        return cls(
            length=defaults.length,
            tension=defaults.tension,
            mass_density=defaults.mass_density,
            damping=defaults.damping,
            node_count=defaults.node_count,
        )

    def with_changes(self, **changes) -> PhysicalParameterSet:
        """Return a re-derived copy with some inputs replaced."""
        return replace(self, **changes)

    @property
    def r2(self) -> float:
        """Square of the Courant number (the stencil coefficient)."""
        return self.courant**2

    @property
    def damping_factor(self) -> float:
        """1 + gamma*dt/2, the damping term of the leapfrog update."""
        return 1.0 + self.damping * self.dt / 2.0

    @property
    def mur_coefficient(self) -> float:
        """First-order Mur coefficient (c*dt - dx) / (c*dt + dx)."""
        cdt = self.wave_speed * self.dt
        return (cdt - self.dx) / (cdt + self.dx)

    def positions(self) -> NDArray[np.floating]:
        """Node x-coordinates ``i * dx`` in meters."""
        return np.arange(self.node_count, dtype=np.float64) * self.dx
