"""Right-end boundary conditions for string simulations."""

from stringwave.boundaries._boundaries import (
    FixedEnd,
    FreeEnd,
    MurAbsorbingEnd,
    RightBoundaryMode,
)

__all__ = [
    "RightBoundaryMode",
    "FixedEnd",
    "FreeEnd",
    "MurAbsorbingEnd",
]
