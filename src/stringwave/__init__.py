"""
stringwave - real-time damped string simulation.

Main exports:
- PhysicalParameterSet: String length, tension, density, damping and grid
- WaveIntegrator: Explicit damped leapfrog stepper
- RightBoundaryMode: Fixed, free or absorbing (Mur) right end
- BoundaryExpression: Parsed drive expression of time
- SimulationRegistry: Primary string, drive rows and auxiliary strings
- PlaybackScheduler: Fixed-step playback driven by frame durations
"""

from stringwave.boundaries import FixedEnd, FreeEnd, MurAbsorbingEnd, RightBoundaryMode
from stringwave.core.drivers import ExpressionDrive, ManualDrive, SuperpositionDrive
from stringwave.core.expressions import (
    BoundaryExpression,
    EvaluationResult,
    ExpressionEvaluationError,
    ExpressionEvaluationWarning,
)
from stringwave.core.integrator import WaveIntegrator
from stringwave.core.parameters import (
    DEFAULT_CONTROLS,
    ConfigurationError,
    PhysicalParameterSet,
    derive,
)
from stringwave.core.registry import (
    PRIMARY,
    ControlMode,
    RowHandle,
    SimulationInstance,
    SimulationRegistry,
)
from stringwave.core.scheduler import REFERENCE_INTERVAL, PlaybackScheduler
from stringwave.core.state import WaveFieldState

# Submodules for more specific imports
from . import boundaries, core, io

__version__ = "0.1.0"

__all__ = [
    # Parameters
    "PhysicalParameterSet",
    "ConfigurationError",
    "DEFAULT_CONTROLS",
    "derive",
    # Drives
    "BoundaryExpression",
    "EvaluationResult",
    "ExpressionEvaluationError",
    "ExpressionEvaluationWarning",
    "ManualDrive",
    "ExpressionDrive",
    "SuperpositionDrive",
    # Integration
    "WaveFieldState",
    "WaveIntegrator",
    "RightBoundaryMode",
    "FixedEnd",
    "FreeEnd",
    "MurAbsorbingEnd",
    # Registry and playback
    "SimulationRegistry",
    "SimulationInstance",
    "ControlMode",
    "RowHandle",
    "PRIMARY",
    "PlaybackScheduler",
    "REFERENCE_INTERVAL",
    # Submodules
    "boundaries",
    "core",
    "io",
]
