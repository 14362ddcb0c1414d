"""
Right-end boundary conditions for the string integrator.

The left end is always driven (see :mod:`stringwave.core.drivers`); the right
end uses one of three policies, selected globally and read fresh each step:

    - FixedEnd: Clamped end, u = 0 (inverting reflection)
    - FreeEnd: Zero-slope end, u[N-1] = u[N-2] (non-inverting reflection)
    - MurAbsorbingEnd: First-order Mur outgoing-wave condition

Boundary Selection Guide
------------------------

**FixedEnd**:
- Best for: Standing waves and resonance of a string tied at both ends
- Perfect reflection with sign inversion, no energy loss

**FreeEnd**:
- Best for: A string whose end slides freely on a frictionless rod
- Perfect reflection without inversion

**MurAbsorbingEnd**:
- Best for: Emulating a semi-infinite string, isolating the drive response
- Exact for r = 1 in 1D; residual reflection grows as r drops below 1

Each policy writes ``next[N-1]`` after the interior update and the left
drive have been written to ``next``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from stringwave.core.parameters import PhysicalParameterSet


@dataclass(frozen=True)
class FixedEnd:
    """Clamped right end: ``next[N-1] = 0``."""

    def apply(
        self,
        u_next: NDArray[np.floating],
        u_current: NDArray[np.floating],
        params: PhysicalParameterSet,
    ) -> None:
        u_next[-1] = 0.0


@dataclass(frozen=True)
class FreeEnd:
    """Zero-slope right end: ``next[N-1] = next[N-2]``."""

    def apply(
        self,
        u_next: NDArray[np.floating],
        u_current: NDArray[np.floating],
        params: PhysicalParameterSet,
    ) -> None:
        u_next[-1] = u_next[-2]


@dataclass(frozen=True)
class MurAbsorbingEnd:
    """First-order Mur absorbing boundary at the right end.

    Discretizes the one-way wave equation u_t + c u_x = 0 at x = L:

        alpha = (c*dt - dx) / (c*dt + dx)
        next[N-1] = current[N-2] + alpha * (next[N-2] - current[N-1])

    For r = c*dt/dx = 1, alpha = 0 and the outgoing wave leaves the domain
    without reflection.
    """

    def apply(
        self,
        u_next: NDArray[np.floating],
        u_current: NDArray[np.floating],
        params: PhysicalParameterSet,
    ) -> None:
        alpha = params.mur_coefficient
        u_next[-1] = u_current[-2] + alpha * (u_next[-2] - u_current[-1])


class RightBoundaryMode(Enum):
    """Right-end policy shared by every simulated string."""

    FIXED = "fixed"
    FREE = "free"
    ABSORBING = "absorbing"

    @property
    def boundary(self) -> FixedEnd | FreeEnd | MurAbsorbingEnd:
        """The boundary condition implementing this mode."""
        return _BOUNDARIES[self]

    @classmethod
    def parse(cls, value: str | RightBoundaryMode) -> RightBoundaryMode:
        """Accept an enum member or its name/value (case-insensitive).

        ``"infinite"`` is accepted as an alias of ``ABSORBING``.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key == "infinite":
            return cls.ABSORBING
        for mode in cls:
            if key in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(
            f"Unknown right boundary mode '{value}'. "
            f"Expected one of: {', '.join(m.value for m in cls)}"
        )


_BOUNDARIES = {
    RightBoundaryMode.FIXED: FixedEnd(),
    RightBoundaryMode.FREE: FreeEnd(),
    RightBoundaryMode.ABSORBING: MurAbsorbingEnd(),
}
