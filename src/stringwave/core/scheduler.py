"""Fixed-step playback of a simulation registry.

Real time arrives as irregular frame durations; physics advances in fixed
steps of ``dt``. An accumulator converts one into the other:

    accumulator += frame_duration
    while accumulator >= dt * interval / REFERENCE_INTERVAL:
        step every active string once (unless paused)
        accumulator -= effective step

A slow frame runs several physical steps to catch up, a fast frame may run
none. The interval setting scales playback rate only; physical resolution
is always ``dt``. A render callback runs once per frame whether or not the
simulation is paused.

Example:
    >>> scheduler = PlaybackScheduler(SimulationRegistry())
    >>> scheduler.advance(1 / 60)  # one 60 Hz frame at real time
    3
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable

from stringwave.core.integrator import WaveIntegrator
from stringwave.core.parameters import DEFAULT_CONTROLS, ConfigurationError
from stringwave.core.registry import SimulationRegistry

#: Interval setting (ms) at which one physical second plays in one wall second.
REFERENCE_INTERVAL = DEFAULT_CONTROLS.interval


class PlaybackScheduler:
    """Accumulator-driven fixed-step loop over every active string.

    Args:
        registry: Simulation context to advance
        interval: Playback interval setting; larger is slower
            (default: REFERENCE_INTERVAL, i.e. real time)
        paused: Initial pause state
        render: Callback invoked once per frame with the registry
        max_steps_per_frame: Optional cap on catch-up steps per frame.
            Accumulated time beyond the cap is dropped. None (default)
            runs every step that is due.

    Attributes:
        accumulator: Unconsumed real time in seconds
        frame_count: Frames processed so far
        total_steps: Physical steps taken so far
    """

    def __init__(
        self,
        registry: SimulationRegistry,
        interval: float = REFERENCE_INTERVAL,
        paused: bool = False,
        render: Callable[[SimulationRegistry], None] | None = None,
        max_steps_per_frame: int | None = None,
    ):
        self.registry = registry
        self.interval = interval
        self.paused = paused
        self.render = render
        self.max_steps_per_frame = max_steps_per_frame

        self.accumulator = 0.0
        self.frame_count = 0
        self.total_steps = 0
        self._epoch = registry.epoch

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        if not math.isfinite(value) or value <= 0:
            raise ConfigurationError(f"interval must be positive, got {value}")
        self._interval = float(value)

    @property
    def speed_factor(self) -> float:
        """Ratio of the interval setting to the reference interval."""
        return self._interval / REFERENCE_INTERVAL

    @property
    def effective_step_duration(self) -> float:
        """Real time consumed by one physical step."""
        return self.registry.params.dt * self.speed_factor

    def toggle_pause(self) -> bool:
        """Flip the pause state and return the new value."""
        self.paused = not self.paused
        return self.paused

    def advance(self, frame_duration: float) -> int:
        """Process one frame of ``frame_duration`` seconds of real time.

        Returns:
            Number of physical steps taken (0 while paused)

        Raises:
            ValueError: If ``frame_duration`` is negative or not finite
        """
        if not math.isfinite(frame_duration) or frame_duration < 0:
            raise ValueError(f"frame_duration must be non-negative, got {frame_duration}")

        # A parameter reset between frames invalidates time owed to the old dt
        if self.registry.epoch != self._epoch:
            self.accumulator = 0.0
            self._epoch = self.registry.epoch

        self.accumulator += frame_duration
        effective = self.effective_step_duration

        steps = 0
        drained = 0
        while self.accumulator >= effective:
            if (
                self.max_steps_per_frame is not None
                and drained >= self.max_steps_per_frame
            ):
                self.accumulator = 0.0
                break
            if not self.paused:
                self.step()
                steps += 1
            self.accumulator -= effective
            drained += 1

        self.frame_count += 1
        if self.render is not None:
            self.render(self.registry)
        return steps

    def step(self) -> None:
        """Advance every active string by exactly one physical step.

        The applied expressions and the right-end mode are captured once
        before any string is stepped.
        """
        registry = self.registry
        params = registry.params
        right_mode = registry.right_mode
        snapshot = registry.applied_expressions()

        for instance in registry.active_instances():
            t_next = instance.state.time_elapsed + params.dt
            left_value = registry.boundary_value(instance, t_next, snapshot)
            WaveIntegrator.step(instance.state, params, left_value, right_mode)

        self.total_steps += 1

    def run(self, frames: Iterable[float]) -> int:
        """Feed a sequence of frame durations; return total steps taken."""
        return sum(self.advance(duration) for duration in frames)

    def run_for(self, duration: float, frame_rate: float = 60.0) -> int:
        """Play ``duration`` seconds of real time at a fixed frame rate."""
        if frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {frame_rate}")
        n_frames = int(math.ceil(duration * frame_rate))
        return self.run([1.0 / frame_rate] * n_frames)
