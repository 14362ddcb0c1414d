"""Simulation context: shared parameters, drive rows and string instances.

The registry is the single explicit context every operation works on. It
owns:

- the shared :class:`PhysicalParameterSet` (replaced only as a whole),
- the primary string, which always exists and is driven either manually or
  by the superposition of every applied row expression,
- the drive rows, addressed by opaque :data:`RowHandle` values issued here,
- one auxiliary string per row whose simulate flag is enabled, driven by
  that row's expression alone.

Example:
    >>> registry = SimulationRegistry()
    >>> row = registry.add_row("0.5*sin(2*pi*t)")
    >>> registry.apply_row(row)
    >>> registry.set_row_enabled(row, True)
    >>> registry.control_mode = ControlMode.FUNCTION
    >>> [inst.handle for inst in registry.active_instances()]
    [0, 1]
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import NewType

import numpy as np
from numpy.typing import NDArray

from stringwave.boundaries import RightBoundaryMode
from stringwave.core.drivers import (
    BoundaryDriver,
    ErrorHook,
    ExpressionDrive,
    ManualDrive,
    SuperpositionDrive,
    warn_evaluation_error,
)
from stringwave.core.expressions import BoundaryExpression
from stringwave.core.integrator import WaveIntegrator
from stringwave.core.parameters import PhysicalParameterSet
from stringwave.core.state import WaveFieldState

RowHandle = NewType("RowHandle", int)

#: Handle of the primary string. Row handles start at 1.
PRIMARY = RowHandle(0)


class ControlMode(Enum):
    """How the primary string's left end is driven."""

    MANUAL = "manual"
    FUNCTION = "function"

    @classmethod
    def parse(cls, value: str | ControlMode) -> ControlMode:
        """Accept an enum member or its name/value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for mode in cls:
            if key in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(
            f"Unknown control mode '{value}'. "
            f"Expected one of: {', '.join(m.value for m in cls)}"
        )


@dataclass
class DriveRow:
    """One user-defined drive.

    Attributes:
        handle: Registry-issued identifier
        text: Live editable text, may differ from the applied expression
        applied: Expression captured by the last apply action
        simulate: Whether an auxiliary string is simulated for this row
    """

    handle: RowHandle
    text: str
    applied: BoundaryExpression
    simulate: bool = False


@dataclass
class SimulationInstance:
    """A simulated string: field state plus its left-end drive."""

    handle: RowHandle
    state: WaveFieldState
    driver: BoundaryDriver
    active: bool = True

    @property
    def is_primary(self) -> bool:
        return self.handle == PRIMARY

    @property
    def displacement(self) -> NDArray[np.float64]:
        """Read-only current displacement."""
        return self.state.displacement

    @property
    def time_elapsed(self) -> float:
        return self.state.time_elapsed


class SimulationRegistry:
    """Owner of the shared parameters and every string instance.

    Args:
        params: Initial parameter set (default: control defaults)
        right_mode: Right-end policy shared by all strings
        control_mode: Drive policy of the primary string
        on_error: Hook receiving expression evaluation failures
            (default: emit ExpressionEvaluationWarning)
    """

    def __init__(
        self,
        params: PhysicalParameterSet | None = None,
        right_mode: RightBoundaryMode | str = RightBoundaryMode.FIXED,
        control_mode: ControlMode | str = ControlMode.MANUAL,
        on_error: ErrorHook | None = None,
    ):
        self._params = params if params is not None else PhysicalParameterSet.from_controls()
        self.right_mode = RightBoundaryMode.parse(right_mode)
        self.on_error = on_error or warn_evaluation_error

        self.manual = ManualDrive()
        self.superposition = SuperpositionDrive(self.applied_expressions, self.on_error)

        self._rows: dict[RowHandle, DriveRow] = {}
        self._auxiliary: dict[RowHandle, SimulationInstance] = {}
        self._next_handle = 1

        # Incremented whenever the parameter set is replaced
        self.epoch = 0

        self._control_mode = ControlMode.parse(control_mode)
        self.primary = SimulationInstance(
            handle=PRIMARY,
            state=WaveIntegrator.reset(None, self._params),
            driver=self._primary_driver(),
        )

    # -------------------------------------------------------------------------
    # Shared configuration
    # -------------------------------------------------------------------------

    @property
    def params(self) -> PhysicalParameterSet:
        """Current shared parameter set."""
        return self._params

    @property
    def control_mode(self) -> ControlMode:
        return self._control_mode

    @control_mode.setter
    def control_mode(self, mode: ControlMode | str) -> None:
        self._control_mode = ControlMode.parse(mode)
        self.primary.driver = self._primary_driver()

    def _primary_driver(self) -> BoundaryDriver:
        if self._control_mode is ControlMode.MANUAL:
            return self.manual
        return self.superposition

    def set_right_mode(self, mode: RightBoundaryMode | str) -> None:
        """Switch the right-end policy for every string from the next step."""
        self.right_mode = RightBoundaryMode.parse(mode)

    def set_manual_value(self, value: float) -> None:
        """Set the held left-end value used in manual mode."""
        self.manual.set(value)

    @property
    def global_time(self) -> float:
        """Simulated time of the primary string."""
        return self.primary.state.time_elapsed

    # -------------------------------------------------------------------------
    # Drive rows
    # -------------------------------------------------------------------------

    def add_row(self, text: str = "0") -> RowHandle:
        """Add a drive row whose live and applied text are ``text``.

        Raises:
            ExpressionEvaluationError: If ``text`` does not parse
        """
        applied = BoundaryExpression.parse(text)
        handle = RowHandle(self._next_handle)
        self._next_handle += 1
        self._rows[handle] = DriveRow(handle=handle, text=text, applied=applied)
        return handle

    def remove_row(self, handle: RowHandle) -> None:
        """Delete a row and its auxiliary string.

        Raises:
            KeyError: If the handle is unknown
        """
        self._require_row(handle)
        self.remove_auxiliary(handle)
        del self._rows[handle]

    def row(self, handle: RowHandle) -> DriveRow:
        return self._require_row(handle)

    @property
    def rows(self) -> tuple[DriveRow, ...]:
        """All rows in ascending handle order."""
        return tuple(self._rows[h] for h in sorted(self._rows))

    def set_row_text(self, handle: RowHandle, text: str) -> None:
        """Edit a row's live text without applying it."""
        self._require_row(handle).text = text

    def apply_row(self, handle: RowHandle) -> None:
        """Capture the row's live text as its applied expression.

        Applying restarts every active string from rest with the current
        parameters. If the live text does not parse, nothing changes.

        Raises:
            ExpressionEvaluationError: If the live text does not parse
        """
        row = self._require_row(handle)
        applied = BoundaryExpression.parse(row.text)
        row.applied = applied
        self.reset_all()

    def applied_expressions(self) -> tuple[BoundaryExpression, ...]:
        """Applied expressions of all rows, ascending handle order.

        The per-row simulate flag does not filter this set.
        """
        return tuple(row.applied for row in self.rows)

    def set_row_enabled(self, handle: RowHandle, enabled: bool) -> None:
        """Toggle simulation of a row's auxiliary string.

        Enabling seeds a fresh string synchronized to the global time;
        disabling discards its state.
        """
        row = self._require_row(handle)
        row.simulate = bool(enabled)
        if row.simulate:
            self.create_or_reset_auxiliary(handle)
        else:
            self.remove_auxiliary(handle)

    def _require_row(self, handle: RowHandle) -> DriveRow:
        try:
            return self._rows[handle]
        except KeyError:
            raise KeyError(f"Drive row {handle} not found") from None

    # -------------------------------------------------------------------------
    # Instances
    # -------------------------------------------------------------------------

    def create_or_reset_auxiliary(self, handle: RowHandle) -> SimulationInstance:
        """Allocate or reinitialize the auxiliary string of a row.

        The new state starts from rest at the current global time so that a
        string enabled mid-run is in step with the primary.
        """
        row = self._require_row(handle)
        existing = self._auxiliary.get(handle)
        state = WaveIntegrator.reset(
            existing.state if existing is not None else None,
            self._params,
            time_elapsed=self.global_time,
        )
        instance = SimulationInstance(
            handle=handle,
            state=state,
            driver=ExpressionDrive(row.applied, self.on_error),
        )
        self._auxiliary[handle] = instance
        return instance

    def remove_auxiliary(self, handle: RowHandle) -> None:
        """Drop a row's auxiliary string; no-op if it does not exist."""
        self._auxiliary.pop(handle, None)

    def auxiliary(self, handle: RowHandle) -> SimulationInstance | None:
        return self._auxiliary.get(handle)

    @property
    def auxiliary_handles(self) -> tuple[RowHandle, ...]:
        return tuple(sorted(self._auxiliary))

    @property
    def primary_enabled(self) -> bool:
        return self.primary.active

    def set_primary_enabled(self, enabled: bool) -> None:
        """Toggle stepping of the primary string.

        Re-enabling restarts it from rest at t = 0.
        """
        enabled = bool(enabled)
        if enabled and not self.primary.active:
            self._reset_primary()
        self.primary.active = enabled

    def active_instances(self) -> Iterator[SimulationInstance]:
        """Strings to step, primary first then auxiliaries by ascending handle."""
        if self.primary.active:
            yield self.primary
        for handle in sorted(self._auxiliary):
            yield self._auxiliary[handle]

    def instance(self, handle: RowHandle) -> SimulationInstance:
        """Look up an instance by handle (PRIMARY for the primary string).

        Raises:
            KeyError: If no auxiliary string exists for the handle
        """
        if handle == PRIMARY:
            return self.primary
        try:
            return self._auxiliary[handle]
        except KeyError:
            raise KeyError(f"No simulated string for row {handle}") from None

    def boundary_value(
        self,
        instance: SimulationInstance,
        t: float,
        snapshot: tuple[BoundaryExpression, ...] | None = None,
    ) -> float:
        """Left-end value of ``instance`` at time ``t``.

        ``snapshot`` fixes the applied-expression set used by the primary's
        superposition drive for the step in flight.
        """
        if instance.driver is self.superposition:
            return self.superposition.value_at(t, snapshot)
        return instance.driver.value_at(t)

    # -------------------------------------------------------------------------
    # Reset
    # -------------------------------------------------------------------------

    def reset_all(self, params: PhysicalParameterSet | None = None, **changes) -> None:
        """Replace the parameter set and restart every active string from rest.

        Args:
            params: New parameter set (default: keep the current one)
            **changes: Inputs to change on top of ``params``, e.g. ``node_count=201``

        Raises:
            ConfigurationError: If the changed inputs are invalid. The
                registry is left exactly as it was.
        """
        new_params = params if params is not None else self._params
        if changes:
            new_params = new_params.with_changes(**changes)

        self._params = new_params
        self.epoch += 1

        self._reset_primary()
        for handle in sorted(self._auxiliary):
            instance = self._auxiliary[handle]
            # reset() reallocates on a node-count change
            instance.state = WaveIntegrator.reset(instance.state, new_params)
            instance.driver = ExpressionDrive(self._rows[handle].applied, self.on_error)

    def _reset_primary(self) -> None:
        self.primary.state = WaveIntegrator.reset(self.primary.state, self._params)
        self.manual.set(0.0)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def positions(self) -> NDArray[np.floating]:
        """Node x-coordinates shared by all strings."""
        return self._params.positions()

    def displacements(self) -> dict[RowHandle, NDArray[np.float64]]:
        """Read-only current displacement of every active string."""
        return {inst.handle: inst.displacement for inst in self.active_instances()}

    def __repr__(self) -> str:
        return (
            f"SimulationRegistry(N={self._params.node_count}, "
            f"rows={len(self._rows)}, auxiliary={len(self._auxiliary)}, "
            f"t={self.global_time:.4f})"
        )
