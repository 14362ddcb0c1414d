"""Core string simulation components."""

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

__all__ = [
    "PhysicalParameterSet",
    "ConfigurationError",
    "DEFAULT_CONTROLS",
    "derive",
    "BoundaryExpression",
    "EvaluationResult",
    "ExpressionEvaluationError",
    "ExpressionEvaluationWarning",
    "ManualDrive",
    "ExpressionDrive",
    "SuperpositionDrive",
    "WaveFieldState",
    "WaveIntegrator",
    "SimulationRegistry",
    "SimulationInstance",
    "ControlMode",
    "RowHandle",
    "PRIMARY",
    "PlaybackScheduler",
    "REFERENCE_INTERVAL",
]
