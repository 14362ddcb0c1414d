"""
Unit tests for the simulation registry.

Tests verify:
- Drive rows: add, edit, apply, remove, unknown handles
- Superposition drive of the primary string
- Auxiliary strings synchronized to the global time
- Atomic, idempotent reset of every string
"""

import numpy as np
import pytest

from stringwave import (
    PRIMARY,
    BoundaryExpression,
    ConfigurationError,
    ControlMode,
    ExpressionEvaluationError,
    PlaybackScheduler,
    RightBoundaryMode,
    SimulationRegistry,
)


@pytest.fixture
def function_registry(params):
    """Registry in function mode with two applied rows."""
    registry = SimulationRegistry(params, control_mode=ControlMode.FUNCTION)
    registry.add_row("sin(2*pi*t)")
    registry.add_row("0.25*t^2")
    return registry


# =============================================================================
# Drive rows
# =============================================================================


class TestRows:
    def test_handles_start_at_one(self, registry):
        first = registry.add_row("t")
        second = registry.add_row("2*t")
        assert first == 1
        assert second == 2
        assert [row.handle for row in registry.rows] == [1, 2]

    def test_add_applies_text(self, registry):
        handle = registry.add_row("3*t")
        row = registry.row(handle)
        assert row.text == "3*t"
        assert row.applied(2.0) == pytest.approx(6.0)
        assert not row.simulate

    def test_add_rejects_bad_text(self, registry):
        with pytest.raises(ExpressionEvaluationError):
            registry.add_row("sin(")
        assert registry.rows == ()

    def test_handles_not_reused_after_remove(self, registry):
        first = registry.add_row()
        registry.remove_row(first)
        assert registry.add_row() == 2

    def test_edit_does_not_apply(self, registry):
        handle = registry.add_row("t")
        registry.set_row_text(handle, "5")
        assert registry.row(handle).text == "5"
        assert registry.row(handle).applied(1.0) == pytest.approx(1.0)

    def test_apply_captures_text(self, registry):
        handle = registry.add_row("t")
        registry.set_row_text(handle, "5")
        registry.apply_row(handle)
        assert registry.row(handle).applied(1.0) == pytest.approx(5.0)

    def test_apply_resets_strings(self, registry):
        handle = registry.add_row("t")
        scheduler = PlaybackScheduler(registry)
        for _ in range(10):
            scheduler.step()
        epoch = registry.epoch
        registry.apply_row(handle)
        assert registry.global_time == 0.0
        assert registry.epoch == epoch + 1

    def test_apply_bad_text_keeps_prior_state(self, registry):
        handle = registry.add_row("t")
        scheduler = PlaybackScheduler(registry)
        registry.set_manual_value(0.5)
        for _ in range(10):
            scheduler.step()
        before = registry.primary.state.current.copy()
        time_before = registry.global_time

        registry.set_row_text(handle, "sin(x)")
        with pytest.raises(ExpressionEvaluationError):
            registry.apply_row(handle)

        assert registry.row(handle).applied.text == "t"
        assert registry.global_time == time_before
        assert np.array_equal(registry.primary.state.current, before)

    @pytest.mark.parametrize(
        "operation",
        [
            lambda r: r.remove_row(99),
            lambda r: r.row(99),
            lambda r: r.set_row_text(99, "t"),
            lambda r: r.apply_row(99),
            lambda r: r.set_row_enabled(99, True),
        ],
    )
    def test_unknown_handle(self, registry, operation):
        with pytest.raises(KeyError, match="99"):
            operation(registry)

    def test_remove_drops_auxiliary(self, registry):
        handle = registry.add_row("t")
        registry.set_row_enabled(handle, True)
        registry.remove_row(handle)
        assert registry.auxiliary(handle) is None
        assert registry.auxiliary_handles == ()


# =============================================================================
# Primary drive
# =============================================================================


class TestPrimaryDrive:
    def test_manual_mode_holds_value(self, registry):
        registry.set_manual_value(0.3)
        PlaybackScheduler(registry).step()
        assert registry.primary.state.current[0] == 0.3

    def test_superposition_equals_sum(self, function_registry):
        f1, f2 = function_registry.applied_expressions()
        for t in (0.0, 0.125, 0.6, 2.3):
            value = function_registry.boundary_value(function_registry.primary, t)
            assert value == pytest.approx(f1(t) + f2(t))

    def test_superposition_applied_after_step(self, function_registry):
        dt = function_registry.params.dt
        f1, f2 = function_registry.applied_expressions()
        PlaybackScheduler(function_registry).step()
        assert function_registry.primary.state.current[0] == pytest.approx(f1(dt) + f2(dt))

    def test_superposition_ignores_simulate_flag(self, function_registry):
        first, second = (row.handle for row in function_registry.rows)
        function_registry.set_row_enabled(first, True)
        assert len(function_registry.applied_expressions()) == 2

    def test_no_rows_drives_zero(self, params):
        registry = SimulationRegistry(params, control_mode="function")
        PlaybackScheduler(registry).step()
        assert registry.primary.state.current[0] == 0.0

    def test_switching_control_mode(self, function_registry):
        function_registry.control_mode = ControlMode.MANUAL
        assert function_registry.primary.driver is function_registry.manual
        function_registry.control_mode = "function"
        assert function_registry.primary.driver is function_registry.superposition

    def test_snapshot_fixes_expression_set(self, function_registry):
        snapshot = function_registry.applied_expressions()
        function_registry.add_row("100")
        value = function_registry.boundary_value(function_registry.primary, 0.0, snapshot)
        assert value == pytest.approx(0.0)


# =============================================================================
# Auxiliary strings
# =============================================================================


class TestAuxiliary:
    def test_enable_creates_string(self, registry):
        handle = registry.add_row("0.5")
        registry.set_row_enabled(handle, True)
        instance = registry.instance(handle)
        assert instance.handle == handle
        assert not instance.is_primary
        assert instance.state.initialized

    def test_enable_syncs_to_global_time(self, registry):
        registry.primary.state.time_elapsed = 5.37
        handle = registry.add_row("t")
        registry.set_row_enabled(handle, True)
        assert registry.instance(handle).time_elapsed == pytest.approx(5.37)

    def test_synced_string_steps_with_primary(self, registry):
        registry.primary.state.time_elapsed = 5.37
        handle = registry.add_row("t")
        registry.set_row_enabled(handle, True)
        PlaybackScheduler(registry).step()
        t = registry.global_time
        assert t == pytest.approx(5.37 + registry.params.dt)
        aux = registry.instance(handle)
        assert aux.time_elapsed == pytest.approx(t)
        assert aux.state.current[0] == pytest.approx(t)

    def test_auxiliary_uses_own_expression(self, function_registry):
        first, second = (row.handle for row in function_registry.rows)
        function_registry.set_row_enabled(second, True)
        PlaybackScheduler(function_registry).step()
        dt = function_registry.params.dt
        aux = function_registry.instance(second)
        assert aux.state.current[0] == pytest.approx(0.25 * dt**2)

    def test_disable_discards_state(self, registry):
        handle = registry.add_row("t")
        registry.set_row_enabled(handle, True)
        registry.set_row_enabled(handle, False)
        assert not registry.row(handle).simulate
        with pytest.raises(KeyError):
            registry.instance(handle)

    def test_remove_auxiliary_is_idempotent(self, registry):
        handle = registry.add_row("t")
        registry.remove_auxiliary(handle)
        registry.remove_auxiliary(handle)

    def test_active_order(self, registry):
        first = registry.add_row("t")
        second = registry.add_row("t")
        registry.set_row_enabled(second, True)
        registry.set_row_enabled(first, True)
        assert [inst.handle for inst in registry.active_instances()] == [PRIMARY, 1, 2]

    def test_primary_toggle(self, registry):
        registry.set_manual_value(1.0)
        scheduler = PlaybackScheduler(registry)
        for _ in range(5):
            scheduler.step()
        registry.set_primary_enabled(False)
        assert not registry.primary_enabled
        assert [inst.handle for inst in registry.active_instances()] == []

        frozen = registry.global_time
        scheduler.step()
        assert registry.global_time == frozen

        registry.set_primary_enabled(True)
        assert registry.global_time == 0.0
        assert not np.any(registry.primary.state.current)

    def test_displacements(self, registry):
        handle = registry.add_row("t")
        registry.set_row_enabled(handle, True)
        disp = registry.displacements()
        assert set(disp) == {PRIMARY, handle}
        assert all(len(u) == registry.params.node_count for u in disp.values())


# =============================================================================
# Reset
# =============================================================================


class TestResetAll:
    def _run(self, registry, n=20):
        scheduler = PlaybackScheduler(registry)
        for _ in range(n):
            scheduler.step()

    def test_restarts_every_string(self, function_registry):
        handle = function_registry.rows[0].handle
        function_registry.set_row_enabled(handle, True)
        self._run(function_registry)
        function_registry.reset_all()
        for instance in function_registry.active_instances():
            assert instance.time_elapsed == 0.0
            assert instance.state.step_count == 0
            assert not np.any(instance.state.current)

    def test_idempotent(self, function_registry):
        function_registry.set_row_enabled(function_registry.rows[0].handle, True)
        self._run(function_registry)
        function_registry.reset_all()
        once = {h: u.copy() for h, u in function_registry.displacements().items()}
        function_registry.reset_all()
        twice = function_registry.displacements()
        assert once.keys() == twice.keys()
        for handle in once:
            assert np.array_equal(once[handle], twice[handle])
            assert function_registry.instance(handle).time_elapsed == 0.0

    def test_resets_manual_value(self, registry):
        registry.set_manual_value(0.8)
        registry.reset_all()
        assert registry.manual.value_at(0.0) == 0.0

    def test_node_count_change_resizes_all(self, registry):
        handle = registry.add_row("t")
        registry.set_row_enabled(handle, True)
        registry.reset_all(node_count=201)
        assert registry.params.node_count == 201
        assert registry.params.dt == pytest.approx(0.0025)
        for instance in registry.active_instances():
            assert len(instance.displacement) == 201
        assert len(registry.positions()) == 201

    def test_new_parameter_set(self, registry):
        registry.reset_all(registry.params.with_changes(tension=4.0))
        assert registry.params.wave_speed == pytest.approx(2.0)

    def test_invalid_change_leaves_state_intact(self, registry):
        registry.set_manual_value(0.5)
        self._run(registry)
        params = registry.params
        epoch = registry.epoch
        state = registry.primary.state
        current = state.current.copy()

        with pytest.raises(ConfigurationError):
            registry.reset_all(node_count=2)

        assert registry.params is params
        assert registry.epoch == epoch
        assert registry.primary.state is state
        assert np.array_equal(state.current, current)
        assert registry.manual.value_at(0.0) == 0.5

    def test_epoch_increments(self, registry):
        registry.reset_all()
        registry.reset_all()
        assert registry.epoch == 2


class TestConfiguration:
    def test_right_mode_from_string(self, registry):
        registry.set_right_mode("absorbing")
        assert registry.right_mode is RightBoundaryMode.ABSORBING

    @pytest.mark.parametrize(
        "text, mode",
        [
            ("function", ControlMode.FUNCTION),
            ("FUNCTION", ControlMode.FUNCTION),
            (" Manual ", ControlMode.MANUAL),
            (ControlMode.MANUAL, ControlMode.MANUAL),
        ],
    )
    def test_control_mode_parse(self, text, mode):
        assert ControlMode.parse(text) is mode

    def test_control_mode_from_name(self, params):
        registry = SimulationRegistry(params, control_mode="FUNCTION")
        assert registry.primary.driver is registry.superposition
        registry.control_mode = "Manual"
        assert registry.primary.driver is registry.manual

    def test_unknown_control_mode(self, registry):
        with pytest.raises(ValueError, match="Unknown control mode"):
            registry.control_mode = "automatic"
        assert registry.control_mode is ControlMode.MANUAL

    def test_unknown_right_mode(self, registry):
        with pytest.raises(ValueError):
            registry.set_right_mode("periodic")

    def test_default_parameters(self):
        registry = SimulationRegistry()
        assert registry.params.node_count == 101
        assert isinstance(registry.applied_expressions(), tuple)

    def test_repr(self, registry):
        assert "N=101" in repr(registry)

    def test_constant_expression_row(self, registry):
        handle = registry.add_row("2")
        assert isinstance(registry.row(handle).applied, BoundaryExpression)
