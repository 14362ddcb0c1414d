"""Command-line tool for headless string simulations.

The stringwave-run CLI builds a simulation from command-line options, plays
it back with synthetic fixed-rate frames, and optionally records every frame
to an HDF5 file.
"""

import math
import sys
import time
from pathlib import Path

import click
from rich.console import Console

from stringwave.boundaries import RightBoundaryMode
from stringwave.core.expressions import ExpressionEvaluationError
from stringwave.core.integrator import WaveIntegrator
from stringwave.core.parameters import DEFAULT_CONTROLS, ConfigurationError, PhysicalParameterSet
from stringwave.core.registry import ControlMode, SimulationRegistry
from stringwave.core.scheduler import PlaybackScheduler

from .progress import SimulationProgress, format_time, print_simulation_info

console = Console()


class ErrorCounter:
    """Expression error hook that reports each distinct failure once."""

    def __init__(self, console: Console):
        self.console = console
        self.counts: dict[str, int] = {}

    def __call__(self, error: ExpressionEvaluationError) -> None:
        if error.text not in self.counts:
            self.console.print(f"[yellow]Warning:[/yellow] {error} (term skipped)")
            self.counts[error.text] = 0
        self.counts[error.text] += 1


@click.command()
@click.option("--length", type=float, default=DEFAULT_CONTROLS.length, show_default=True,
              help="String length (m)")
@click.option("--tension", type=float, default=DEFAULT_CONTROLS.tension, show_default=True,
              help="Tension (N)")
@click.option("--density", type=float, default=DEFAULT_CONTROLS.mass_density,
              show_default=True, help="Linear mass density (kg/m)")
@click.option("--damping", type=float, default=DEFAULT_CONTROLS.damping, show_default=True,
              help="Damping coefficient (1/s)")
@click.option("--nodes", "-n", type=int, default=DEFAULT_CONTROLS.node_count,
              show_default=True, help="Number of grid nodes")
@click.option("--courant", type=float, default=0.5, show_default=True, help="Courant number")
@click.option(
    "--right-end",
    type=click.Choice([m.value for m in RightBoundaryMode]),
    default=RightBoundaryMode.FIXED.value,
    show_default=True,
    help="Right-end boundary condition",
)
@click.option("--drive", "-d", "drives", multiple=True,
              help="Drive expression of t (repeatable). Enables function mode.")
@click.option("--simulate", "-s", "simulated", type=int, multiple=True,
              help="1-based index of a drive to also simulate on its own (repeatable)")
@click.option("--manual", type=float, default=0.0, show_default=True,
              help="Held left-end value when no drive is given")
@click.option("--duration", type=float, default=2.0, show_default=True,
              help="Simulated time to play (s)")
@click.option("--fps", type=float, default=60.0, show_default=True, help="Frame rate")
@click.option("--interval", type=float, default=DEFAULT_CONTROLS.interval, show_default=True,
              help="Playback interval (20 = real time, larger is slower)")
@click.option("--output", "-o", type=click.Path(path_type=Path),
              help="HDF5 file to record every frame to")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output with debug info")
@click.option("--dry-run", is_flag=True, help="Validate options without running")
@click.version_option(version="0.1.0", prog_name="stringwave-run")
def main(
    length: float,
    tension: float,
    density: float,
    damping: float,
    nodes: int,
    courant: float,
    right_end: str,
    drives: tuple[str, ...],
    simulated: tuple[int, ...],
    manual: float,
    duration: float,
    fps: float,
    interval: float,
    output: Path | None,
    verbose: bool,
    dry_run: bool,
):
    """Simulate a driven damped string and report its final state.

    Example:

    \b
        stringwave-run --drive "0.5*sin(2*pi*t)" --drive "0.2*sin(6*pi*t)" \\
            --simulate 1 --simulate 2 --right-end absorbing -o run.h5
    """
    console.print("\n[bold]String simulation[/bold]", style="blue")
    console.print("─" * 60)

    try:
        params = PhysicalParameterSet(
            length=length,
            tension=tension,
            mass_density=density,
            damping=damping,
            node_count=nodes,
            courant=courant,
        )
    except ConfigurationError as e:
        console.print(f"\n[bold red]Configuration Error:[/bold red] {e}")
        sys.exit(2)

    errors = ErrorCounter(console)
    registry = SimulationRegistry(params, right_mode=right_end, on_error=errors)
    registry.set_manual_value(manual)

    try:
        handles = [registry.add_row(text) for text in drives]
    except ExpressionEvaluationError as e:
        console.print(f"\n[bold red]Expression Error:[/bold red] {e}")
        sys.exit(2)

    for index in simulated:
        if not 1 <= index <= len(handles):
            console.print(
                f"\n[bold red]Error:[/bold red] --simulate {index} does not name a drive "
                f"(have {len(handles)})"
            )
            sys.exit(2)
        registry.set_row_enabled(handles[index - 1], True)

    if handles:
        registry.control_mode = ControlMode.FUNCTION

    try:
        scheduler = PlaybackScheduler(registry, interval=interval)
    except ConfigurationError as e:
        console.print(f"\n[bold red]Configuration Error:[/bold red] {e}")
        sys.exit(2)

    if fps <= 0 or duration < 0:
        console.print("\n[bold red]Error:[/bold red] fps must be positive and duration non-negative")
        sys.exit(2)

    # Real time needed to play `duration` simulated seconds at this interval
    wall_duration = duration * scheduler.speed_factor
    num_frames = int(math.ceil(wall_duration * fps))
    frame_duration = 1.0 / fps

    print_simulation_info(console, scheduler, output, num_frames)

    if dry_run:
        console.print("[yellow]Dry run - simulation not executed[/yellow]")
        return

    writer = None
    if output is not None:
        from stringwave.io import HDF5ResultWriter

        writer = HDF5ResultWriter(output, registry, script_content=" ".join(sys.argv))

    start_time = time.time()
    progress = SimulationProgress(console, scheduler, num_frames)
    try:
        for frame in range(num_frames):
            scheduler.advance(frame_duration)
            if writer is not None:
                writer.write_frame(scheduler.total_steps)
            progress.update(frame)
    except KeyboardInterrupt:
        progress.finish()
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    finally:
        progress.finish()
        if writer is not None:
            writer.finalize(runtime=time.time() - start_time)

    runtime = time.time() - start_time

    console.print("─" * 60)
    console.print("✓ [bold green]Simulation complete![/bold green]")
    console.print(f"  Steps: {scheduler.total_steps} (t={registry.global_time:.4f} s)")
    console.print(f"  Runtime: {format_time(runtime)}")
    for instance in registry.active_instances():
        name = "primary" if instance.is_primary else f"row {instance.handle}"
        peak = float(abs(instance.state.current).max())
        energy = WaveIntegrator.compute_energy(instance.state, registry.params)
        console.print(f"  {name}: max |u| = {peak:.4g}, energy = {energy:.4g} J")
    if errors.counts:
        skipped = sum(errors.counts.values())
        console.print(f"  [yellow]{skipped} drive evaluations failed and were skipped[/yellow]")
    if output is not None:
        console.print(f"  Output: {output}")
    if verbose:
        console.print("\n[dim]Results can be analyzed with HDF5 tools (h5py, HDFView)[/dim]")


if __name__ == "__main__":
    main()
