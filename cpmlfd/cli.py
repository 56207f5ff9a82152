"""
Command-line interface of the cpmlfd modeling engine.

Commands that run a simulation are meant to be launched on every worker at
once, e.g. ``mpiexec -n 4 cpmlfd forward ...``. Only the master worker reads
the inputs, prints and writes files.
"""

# Imports
from __future__ import annotations
from pathlib import Path
from typing import Optional, Sequence, Union
import click
import numpy as np
import yaml
from rich.console import Console
from rich.table import Table
from cpmlfd.config import load_simulation_config
from cpmlfd.errors import SimulationError
from cpmlfd.modeling.acquisition import extend_boundary, point_source, strip_boundary
from cpmlfd.modeling.coefficients import courant_limit, difference_coefficients, normalize_stencil_type
from cpmlfd.modeling.wavelets import ricker
from cpmlfd.parallel.decomposition import partition_columns
from cpmlfd.parallel.runtime import WorkerGroup
from cpmlfd.simulators.forward import forward_model
from cpmlfd.simulators.plotting import plot_shot_record

# Shared rich console instance to keep styling consistent across commands.
console = Console()


class ClickBaseException(click.ClickException):
    """
    Convert arbitrary exceptions into Click-friendly messages.
    """

    def __init__(self, exc: Union[Exception, str]):
        super().__init__(str(exc))
    # end def __init__

# end class ClickBaseException


@click.group(help="Distributed 2-D acoustic finite-difference modeling with CPML.")
def cli() -> None:
    """
    Top-level Click group used as the entry point for all subcommands.
    """
# end def cli


def _prepare_shot(
        model_path: Path,
        config_path: Path
):
    """
    Read the model and configuration and build the padded shot inputs.

    Returns:
        tuple: ``(config, velocity, source, dt)`` with padded arrays.
    """
    config = load_simulation_config(config_path)
    model = np.load(model_path)
    if model.ndim != 2:
        raise ValueError(f"Velocity model must be a 2-D array, got shape {model.shape}")
    # end if
    nz, nx = model.shape
    if config.source_x >= nx or config.source_z >= nz:
        raise ValueError(
            f"Source ({config.source_z}, {config.source_x}) is outside the {nz}x{nx} model"
        )
    # end if

    dt, nt = config.time_sampling(model)
    wavelet, _ = ricker(config.frequency, dt, nt)
    velocity = extend_boundary(model, config.boundary)
    source = point_source(velocity.shape, config.source_z, config.source_x + config.boundary, wavelet)
    return config, velocity, source, dt
# end def _prepare_shot


@cli.command(help="Model one shot and save the surface record.")
@click.option(
    "--model",
    "model_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="NumPy file holding the (nz, nx) velocity model.",
)
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="YAML simulation configuration.",
)
@click.option(
    "--output",
    "output_path",
    required=True,
    type=click.Path(path_type=Path, dir_okay=False),
    help="Destination .npz file.",
)
@click.option(
    "--snapshots/--no-snapshots",
    default=False,
    help="Also save the full wavefield at every time step.",
)
@click.option(
    "--figure",
    "figure_path",
    default=None,
    type=click.Path(path_type=Path, dir_okay=False),
    help="Optional image of the shot record.",
)
@click.option(
    "--verbose/--quiet",
    default=True,
    help="Show a progress bar while stepping.",
)
def forward(
        model_path: Path,
        config_path: Path,
        output_path: Path,
        snapshots: bool,
        figure_path: Optional[Path],
        verbose: bool,
) -> None:
    """
    Run a forward simulation on every worker and save the gathered record.

    Args:
        model_path: Path to the unpadded velocity model.
        config_path: Path to the YAML configuration.
        output_path: Where the master writes the ``.npz`` output.
        snapshots: Whether to gather and save the wavefield.
        figure_path: Optional image of the record.
        verbose: Whether to display progress.
    """
    group = WorkerGroup()

    # Inputs are read on the master only
    config = velocity = source = dt = None
    failure = None
    if group.is_master:
        try:
            config, velocity, source, dt = _prepare_shot(model_path, config_path)
        except (OSError, ValueError, yaml.YAMLError, SimulationError) as exc:
            failure = str(exc)
        # end try
    # end if
    failure = group.broadcast(failure)
    if failure is not None:
        raise ClickBaseException(failure)
    # end if
    config, dt = group.broadcast((config, dt))

    try:
        result = forward_model(
            velocity,
            source,
            order=config.order,
            boundary=config.boundary,
            dz=config.dz,
            dx=config.dx,
            dt=dt,
            receiver_depth=config.receiver_depth,
            snapshots=snapshots,
            group=group,
            verbose=verbose,
        )
    except SimulationError as exc:
        raise ClickBaseException(exc) from exc
    # end try

    if not group.is_master:
        return
    # end if

    traces = strip_boundary(result.traces, config.boundary, traces=True)
    arrays = dict(traces=traces, dt=dt, dx=config.dx, dz=config.dz)
    if result.snapshots is not None:
        arrays["snapshots"] = strip_boundary(result.snapshots, config.boundary)
    # end if
    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.savez(output_path, **arrays)

    if figure_path is not None:
        plot_shot_record(traces, dt, config.dx, output_path=figure_path)
    # end if

    info_table = Table(title="Forward Modeling Summary")
    info_table.add_column("Setting", style="cyan", no_wrap=True)
    info_table.add_column("Value", style="magenta")
    info_table.add_row("Model", str(model_path))
    info_table.add_row("Workers", str(group.size))
    info_table.add_row("Record", f"{traces.shape[0]} traces x {traces.shape[1]} samples")
    info_table.add_row("Time step", f"{dt:.3e} s")
    info_table.add_row("Output", str(output_path))
    if figure_path:
        info_table.add_row("Figure", str(figure_path))
    # end if
    console.print(info_table)
# end def forward


@cli.command(help="Print finite-difference stencil coefficients.")
@click.option("--order", type=int, default=3, show_default=True, help="Stencil half-length.")
@click.option(
    "--type",
    "stencil_type",
    type=click.Choice(["staggered", "regular", "s", "r"], case_sensitive=False),
    default="staggered",
    show_default=True,
    help="Grid type.",
)
def coefficients(
        order: int,
        stencil_type: str
) -> None:
    """
    Solve and display the stencil weights for ``order`` and ``stencil_type``.
    """
    try:
        weights = difference_coefficients(order, stencil_type)
    except SimulationError as exc:
        raise ClickBaseException(exc) from exc
    # end try

    table = Table(title=f"{normalize_stencil_type(stencil_type).capitalize()} stencil, order {order}")
    table.add_column("k", style="cyan", justify="right")
    table.add_column("c[k]", style="magenta", justify="right")
    for k, weight in enumerate(weights):
        table.add_row(str(k), f"{weight:.10f}")
    # end for
    console.print(table)
    if normalize_stencil_type(stencil_type) == "staggered":
        console.print(f"[green]Courant limit:[/] {courant_limit(weights):.6f}")
    # end if
# end def coefficients


@cli.command(help="Show how grid columns are split across workers.")
@click.option("--nx", type=int, required=True, help="Number of grid columns.")
@click.option("--workers", type=int, required=True, help="Number of workers.")
def partition(
        nx: int,
        workers: int
) -> None:
    """
    Display the column block of every worker.
    """
    try:
        partitions = partition_columns(nx, workers)
    except SimulationError as exc:
        raise ClickBaseException(exc) from exc
    # end try

    table = Table(title=f"{nx} columns on {workers} workers")
    table.add_column("Rank", style="cyan", justify="right")
    table.add_column("Offset", style="magenta", justify="right")
    table.add_column("Count", style="magenta", justify="right")
    for rank, block in enumerate(partitions):
        table.add_row(str(rank), str(block.offset), str(block.count))
    # end for
    console.print(table)
# end def partition


def main(
        argv: Optional[Sequence[str]] = None
) -> int:
    """Execute the CLI entry point as expected by ``console_scripts`` hooks.

    Args:
        argv: Optional sequence of command-line arguments. When ``None`` the
            process ``sys.argv`` is used instead.

    Returns:
        Zero on success, or one if a Click-handled exception was raised.
    """
    try:
        cli.main(args=list(argv) if argv is not None else None, prog_name="cpmlfd", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return 1
    # end try
    return 0
# end def main


if __name__ == "__main__":
    raise SystemExit(main())
# end if
