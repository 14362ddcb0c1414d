"""Progress display for string simulations.

Provides rich terminal UI for headless playback:
- Progress bar over frames
- Elapsed time and ETA
- Physical step throughput (steps/s)
- Memory usage
"""

import time
from typing import TYPE_CHECKING

import psutil
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

if TYPE_CHECKING:
    from stringwave.core.scheduler import PlaybackScheduler


def format_time(seconds: float) -> str:
    """Format time duration for display.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string like "1m 23s" or "2h 15m"
    """
    if seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs:02d}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes:02d}m"


class SimulationProgress:
    """Real-time progress display for scheduler playback.

    Example:
        >>> progress = SimulationProgress(console, scheduler, num_frames)
        >>> for frame in range(num_frames):
        ...     scheduler.advance(1 / 60)
        ...     progress.update(frame)
        >>> progress.finish()
    """

    def __init__(
        self,
        console: Console,
        scheduler: "PlaybackScheduler",
        num_frames: int,
        update_interval: float = 0.1,
    ):
        """Initialize progress display.

        Args:
            console: Rich console instance
            scheduler: Scheduler being played back
            num_frames: Total number of frames
            update_interval: Minimum time between updates (seconds)
        """
        self.console = console
        self.scheduler = scheduler
        self.num_frames = num_frames
        self.update_interval = update_interval

        self.start_time = time.time()
        self.last_update = 0.0
        self.peak_memory = 0.0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("•"),
            TimeRemainingColumn(),
            console=console,
        )
        self.task = self.progress.add_task("Simulating", total=num_frames)
        self.progress.start()
        self._finished = False

    def update(self, frame: int) -> None:
        """Update the display after ``frame`` (0-indexed) has been processed.

        Updates are rate-limited to ``update_interval``.
        """
        current_time = time.time()
        if current_time - self.last_update < self.update_interval and frame + 1 < self.num_frames:
            return

        self.progress.update(self.task, completed=frame + 1)

        elapsed = current_time - self.start_time
        steps = self.scheduler.total_steps
        steps_per_second = steps / elapsed if elapsed > 0 else 0.0

        memory = psutil.Process().memory_info().rss / (1024**2)  # MB
        self.peak_memory = max(self.peak_memory, memory)

        self.progress.update(
            self.task,
            description=(
                f"Simulating t={self.scheduler.registry.global_time:.3f}s "
                f"[dim]{steps_per_second:,.0f} steps/s, {memory:.0f} MB[/dim]"
            ),
        )
        self.last_update = current_time

    def finish(self) -> None:
        """Stop the progress bar. Safe to call more than once."""
        if self._finished:
            return
        self.progress.stop()
        self._finished = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish()


def print_simulation_info(
    console: Console, scheduler: "PlaybackScheduler", output_path, num_frames: int
) -> None:
    """Print simulation parameters before running.

    Args:
        console: Rich console instance
        scheduler: Scheduler to be played back
        output_path: Path to output file, or None
        num_frames: Number of frames to play
    """
    registry = scheduler.registry
    params = registry.params

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("String", f"L={params.length:g} m, T={params.tension:g} N, "
                  f"μ={params.mass_density:g} kg/m, γ={params.damping:g} 1/s")
    table.add_row("Grid", f"{params.node_count} nodes (dx={params.dx:.3e} m)")
    table.add_row("Wave speed", f"{params.wave_speed:.3f} m/s")
    table.add_row("Timestep", f"{params.dt:.3e} s (r={params.courant:g})")
    table.add_row("Right end", registry.right_mode.value)
    table.add_row("Drive", registry.control_mode.value)
    for row in registry.rows:
        flag = " (simulated)" if row.simulate else ""
        table.add_row(f"  row {row.handle}", f"{row.applied.text}{flag}")
    table.add_row(
        "Playback",
        f"{num_frames} frames, interval {scheduler.interval:g} "
        f"(×{1 / scheduler.speed_factor:.2f} real time)",
    )
    table.add_row("Output", str(output_path) if output_path else "-")

    console.print(table)
    console.print()
