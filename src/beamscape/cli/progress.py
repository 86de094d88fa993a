"""Progress display for field simulation jobs.

Provides rich terminal UI for job progress tracking including:
- Progress bar with percentage
- Elapsed time
- Memory usage
"""

from __future__ import annotations

import time

import psutil
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from beamscape.core.field import FieldSimulationRequest, RenderMode, WidebandMode
from beamscape.presets import Scenario


def format_time(seconds: float) -> str:
    """Format time duration for display.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string like "350 ms", "12.3s" or "1m 23s"
    """
    if seconds < 1:
        return f"{seconds * 1e3:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs:02d}s"


def format_bytes(num_bytes: float) -> str:
    """Format byte count for display, e.g. "1.5 GB" or "256.0 MB"."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(num_bytes) < 1024.0:
            return f"{num_bytes:.1f} {unit}"
        num_bytes /= 1024.0
    return f"{num_bytes:.1f} PB"


class JobProgressDisplay:
    """Progress bar fed by ``FieldJobClient`` progress callbacks.

    Example:
        >>> with JobProgressDisplay(console) as display:
        ...     client = FieldJobClient(on_progress=display.update)
    """

    def __init__(self, console: Console, description: str = "Computing field"):
        self.console = console
        self.start_time = time.time()
        self.peak_memory = 0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("•"),
            TextColumn("{task.fields[memory]}", style="dim"),
            console=console,
        )
        self.task = self.progress.add_task(description, total=1.0, memory="")
        self.progress.start()

    def update(self, job_id: str, fraction: float) -> None:
        """Advance the bar to ``fraction`` of the job."""
        rss = psutil.Process().memory_info().rss
        self.peak_memory = max(self.peak_memory, rss)
        self.progress.update(self.task, completed=fraction, memory=format_bytes(rss))

    def finish(self) -> None:
        self.progress.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish()


def print_simulation_info(
    console: Console,
    scenario: Scenario,
    request: FieldSimulationRequest,
    output_path,
) -> None:
    """Print scenario and request parameters before running."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Scenario", f"{scenario.name} ({scenario.id})")
    table.add_row("Medium", f"c = {request.speed_of_sound:.1f} m/s")
    table.add_row("Mode", RenderMode(request.render_mode).value)
    table.add_row("Wideband", WidebandMode(request.wideband_mode).value)
    table.add_row("Grid", f"{request.resolution} × {request.resolution}")
    b = request.bounds
    table.add_row("Bounds", f"x [{b.x_min:g}, {b.x_max:g}] m, y [{b.y_min:g}, {b.y_max:g}] m")
    for config in request.enabled_units:
        table.add_row(
            config.name,
            f"{config.element_count} el @ {config.pitch * 1e3:.3f} mm, "
            f"{config.frequency:.0f} Hz, steer {config.steering_angle:+.1f}°",
        )
    table.add_row("Output", str(output_path))

    console.print(table)
    console.print()
