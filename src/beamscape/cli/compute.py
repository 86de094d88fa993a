"""Command-line tool for computing phased-array fields.

The beamscape-compute CLI loads a scenario preset, runs a field
simulation job on a background worker with progress tracking, and writes
the normalized heatmap to HDF5.
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from beamscape import __version__
from beamscape.analysis.pattern import analyze_beam_pattern
from beamscape.core.array_unit import ArrayUnit
from beamscape.core.field import Bounds, FieldSimulationRequest, RenderMode, WidebandMode
from beamscape.core.transport import FieldJobClient, FieldJobError
from beamscape.dsp.taper import TAPER_KINDS
from beamscape.io.hdf5 import write_field_result
from beamscape.media import get_medium, list_media
from beamscape.presets import list_scenarios, load_scenario

from .progress import JobProgressDisplay, format_time, print_simulation_info

console = Console()


def print_beam_metrics(console: Console, units: list[ArrayUnit]) -> None:
    """Print far-field metrics for each enabled unit."""
    table = Table(title="Beam metrics", box=None, padding=(0, 2))
    table.add_column("Array", style="cyan")
    table.add_column("d/λ", justify="right")
    table.add_column("Main lobe", justify="right")
    table.add_column("HPBW", justify="right")
    table.add_column("Peak SLL", justify="right")
    table.add_column("Grating lobes")

    for unit in units:
        if not unit.enabled:
            continue
        metrics = analyze_beam_pattern(unit)
        sll = "-" if metrics.peak_sidelobe_db is None else f"{metrics.peak_sidelobe_db:.1f} dB"
        table.add_row(
            unit.name,
            f"{metrics.pitch_lambda_ratio:.3f}",
            f"{metrics.main_lobe_angle:+.1f}°",
            f"{metrics.half_power_beamwidth:.1f}°",
            sll,
            "[green]no[/green]" if metrics.grating_lobe_free else "[yellow]yes[/yellow]",
        )

    console.print(table)
    console.print()


def run_compute(
    scenario_id: str,
    output: Path | None,
    medium: str | None,
    mode: str,
    wideband: str,
    resolution: int,
    extent: float,
    steer: float | None,
    taper: str | None,
    timeout: float | None,
    verbose: bool,
    dry_run: bool,
) -> int:
    """Run one field computation and return the process exit code."""
    try:
        scenario = load_scenario(scenario_id)
        console.print(f"\n[bold]Field Simulation:[/bold] {scenario.name}", style="blue")
        console.print("─" * 60)

        resolved_medium = get_medium(medium) if medium else scenario.medium
        units = scenario.build_units(speed_of_sound=resolved_medium.speed_of_sound)
        for unit in units:
            if steer is not None:
                unit.steering_angle = steer
            if taper is not None:
                unit.apply_taper(taper)

        request = FieldSimulationRequest.from_units(
            units,
            medium=resolved_medium,
            steering=steer if steer is not None else 0.0,
            render_mode=mode,
            wideband_mode=wideband,
            resolution=resolution,
            bounds=Bounds(-extent, extent, -extent, extent),
        )

        if output is None:
            output = Path(f"field_{scenario.id}_{RenderMode(mode).value}.h5")

        print_simulation_info(console, scenario, request, output)
        if verbose:
            print_beam_metrics(console, units)

        if dry_run:
            console.print("[yellow]Dry run - field not computed[/yellow]")
            return 0

        start_time = time.time()
        display = JobProgressDisplay(console)
        try:
            with FieldJobClient(on_progress=display.update) as client:
                job_id = client.submit(request)
                if verbose:
                    console.print(f"Job id: {job_id}", style="dim")
                result = client.wait_for_result(timeout=timeout)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            return 130
        except FieldJobError as e:
            console.print(f"\n[bold red]Simulation Error ({e.error_type}):[/bold red] {e}")
            return 1
        except TimeoutError as e:
            console.print(f"\n[bold red]Timeout:[/bold red] {e}")
            return 1
        finally:
            display.finish()

        if result is None:
            console.print("[yellow]Job canceled[/yellow]")
            return 1

        write_field_result(output, result, request)
        runtime = time.time() - start_time

        console.print("─" * 60)
        console.print("✓ [bold green]Field complete![/bold green]")
        if output.exists():
            console.print(f"  Output: {output} ({output.stat().st_size / 1e3:.1f} kB)")
        else:
            console.print(f"  Output: {output}")
        console.print(f"  Compute time: {result.compute_time_ms:.1f} ms")
        console.print(f"  Runtime: {format_time(runtime)}")
        if verbose:
            console.print(f"  Peak memory: {display.peak_memory / 1e6:.1f} MB")
            console.print("\n[dim]Results can be analyzed with HDF5 tools (h5py, HDFView)[/dim]")

        return 0

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        return 1


@click.command()
@click.argument("scenario", type=click.Choice(list_scenarios(), case_sensitive=False))
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file path (default: field_{scenario}_{mode}.h5)",
)
@click.option(
    "--medium",
    "-m",
    type=click.Choice(list_media(), case_sensitive=False),
    help="Override the scenario's propagation medium",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in RenderMode]),
    default=RenderMode.INTERFERENCE.value,
    show_default=True,
    help="Render mode",
)
@click.option(
    "--wideband",
    type=click.Choice([m.value for m in WidebandMode]),
    default=WidebandMode.AGGREGATED.value,
    show_default=True,
    help="How multiple carriers are combined",
)
@click.option("--resolution", "-r", type=int, default=128, show_default=True, help="Grid size")
@click.option(
    "--extent",
    type=float,
    default=1.0,
    show_default=True,
    help="Half-width of the square field of view in meters",
)
@click.option("--steer", type=float, help="Steering angle in degrees applied to every array")
@click.option(
    "--taper",
    type=click.Choice(list(TAPER_KINDS)),
    help="Amplitude taper applied to every array",
)
@click.option("--timeout", type=float, help="Give up after this many seconds")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output with beam metrics")
@click.option("--dry-run", is_flag=True, help="Show parameters without computing the field")
@click.version_option(version=__version__, prog_name="beamscape-compute")
def main(
    scenario: str,
    output: Path | None,
    medium: str | None,
    mode: str,
    wideband: str,
    resolution: int,
    extent: float,
    steer: float | None,
    taper: str | None,
    timeout: float | None,
    verbose: bool,
    dry_run: bool,
):
    """Compute the field of a phased-array scenario.

    SCENARIO is one of the built-in presets. The field is computed on a
    background worker and saved to an HDF5 file.

    Example:

    \b
        beamscape-compute 5g-beamforming --steer 30 -r 256 -o 5g.h5
        beamscape-compute tumor-ablation --mode near-field --taper hamming
    """
    sys.exit(
        run_compute(
            scenario_id=scenario,
            output=output,
            medium=medium,
            mode=mode,
            wideband=wideband,
            resolution=resolution,
            extent=extent,
            steer=steer,
            taper=taper,
            timeout=timeout,
            verbose=verbose,
            dry_run=dry_run,
        )
    )


if __name__ == "__main__":
    main()
