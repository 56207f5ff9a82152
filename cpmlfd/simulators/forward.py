"""
Distributed forward modeling of the 2-D acoustic wave equation.

Every worker of the run calls :func:`forward_model`. The master (rank 0)
passes the full velocity model and source field; the other workers pass
``None`` and receive their column blocks by scatter. Input validation runs on
the master and its verdict is broadcast, so a bad input makes every worker
raise the same error instead of leaving peers blocked in a collective.

Example (run with ``mpiexec -n 4 python script.py``)::

    result = forward_model(velocity, source, order=3, boundary=20,
                           dz=10.0, dx=10.0, dt=1e-3)
    if result.is_master:
        np.save("traces.npy", result.traces)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeRemainingColumn

from cpmlfd.errors import (
    CommunicationFailure,
    ConfigurationError,
    InvalidArgument,
    ShapeMismatch,
    SimulationError,
)
from cpmlfd.modeling.coefficients import courant_limit, difference_coefficients
from cpmlfd.modeling.cpml import build_damping
from cpmlfd.parallel.decomposition import BlockLayout, partition_columns
from cpmlfd.parallel.halo import HaloExchange
from cpmlfd.parallel.runtime import MASTER, WorkerGroup
from cpmlfd.simulators.gatherer import ResultGatherer
from cpmlfd.simulators.stepper import WaveStepper


console = Console()


@dataclass(frozen=True)
class GridHeader:
    """
    Run parameters shared by every worker, as validated by the master.
    """
    nz: int
    nx: int
    nt: int
    order: int
    boundary: int
    dz: float
    dx: float
    dt: float
    receiver_depth: int
    snapshots: bool
# end class GridHeader


@dataclass
class ForwardResult:
    """
    Output of a forward run.

    Attributes:
        traces (numpy.ndarray or None): Record ``(nx, nt)`` of row
            ``receiver_depth``, on the master only.
        snapshots (numpy.ndarray or None): Pressure ``(nz, nx, nt)`` on the
            master when snapshots were requested.
        rank (int): Rank of the worker holding this result.
    """
    traces: Optional[np.ndarray]
    snapshots: Optional[np.ndarray]
    rank: int

    @property
    def is_master(self) -> bool:
        """Whether this result carries the gathered output."""
        return self.rank == MASTER
    # end def is_master

# end class ForwardResult


def validate_inputs(
        velocity: np.ndarray,
        source: np.ndarray,
        order: int,
        boundary: int,
        dz: float,
        dx: float,
        dt: float,
        receiver_depth: int,
        snapshots: bool
) -> GridHeader:
    """
    Check a forward run's inputs and summarize them as a header.

    Raises:
        ShapeMismatch: If velocity and source do not cover the same grid.
        InvalidArgument: If a scalar parameter is out of range.
    """
    velocity = np.asarray(velocity)
    source = np.asarray(source)
    if velocity.ndim != 2:
        raise ShapeMismatch(f"Velocity model must be 2-D (z, x), got shape {velocity.shape}")
    # end if
    if source.ndim != 3 or source.shape[:2] != velocity.shape:
        raise ShapeMismatch(
            f"Source field {source.shape} does not match velocity model {velocity.shape} (z, x, t)"
        )
    # end if

    nz, nx = velocity.shape
    nt = source.shape[2]
    if nt < 1:
        raise InvalidArgument("Source field has no time samples")
    # end if
    if int(order) != order or order < 1:
        raise InvalidArgument(f"Stencil order must be a positive integer, got {order}")
    # end if
    if int(boundary) != boundary or not 0 <= boundary < min(nz, nx) / 2:
        raise InvalidArgument(
            f"Boundary width must be an integer in [0, {min(nz, nx) / 2}), got {boundary}"
        )
    # end if
    if dz <= 0 or dx <= 0:
        raise InvalidArgument(f"Grid spacings must be positive, got dz={dz}, dx={dx}")
    # end if
    if dt <= 0:
        raise InvalidArgument(f"Time step must be positive, got {dt}")
    # end if
    if not 0 <= receiver_depth < nz:
        raise InvalidArgument(f"Receiver depth {receiver_depth} is outside the grid (nz={nz})")
    # end if
    if np.any(velocity <= 0) or not np.all(np.isfinite(velocity)):
        raise InvalidArgument("Velocity model must be finite and strictly positive")
    # end if

    return GridHeader(
        nz=nz,
        nx=nx,
        nt=nt,
        order=int(order),
        boundary=int(boundary),
        dz=float(dz),
        dx=float(dx),
        dt=float(dt),
        receiver_depth=int(receiver_depth),
        snapshots=bool(snapshots),
    )
# end def validate_inputs


def _share_header(
        group: WorkerGroup,
        velocity: Optional[np.ndarray],
        source: Optional[np.ndarray],
        **params
) -> GridHeader:
    """
    Validate on the master and hand the verdict to every worker.
    """
    verdict = None
    if group.is_master:
        try:
            verdict = validate_inputs(velocity, source, **params)
        except SimulationError as exc:
            verdict = exc
        # end try
    # end if

    verdict = group.broadcast(verdict)
    if isinstance(verdict, SimulationError):
        raise verdict
    # end if
    return verdict
# end def _share_header


def check_stability(
        coefficients: np.ndarray,
        vmax: float,
        dz: float,
        dx: float,
        dt: float
) -> float:
    """
    Courant number of a run, with a console warning when it is unstable.

    Returns:
        float: ``vmax * dt * sqrt(1/dz**2 + 1/dx**2)``.
    """
    courant = vmax * dt * np.sqrt(1.0 / dz ** 2 + 1.0 / dx ** 2)
    limit = courant_limit(coefficients)
    if courant > limit:
        console.print(
            f"[bold yellow]Warning:[/] Courant number {courant:.3f} exceeds the stability "
            f"limit {limit:.3f} of this stencil; the run will diverge"
        )
    # end if
    return float(courant)
# end def check_stability


def forward_model(
        velocity: Optional[np.ndarray],
        source: Optional[np.ndarray],
        order: int = 3,
        boundary: int = 20,
        dz: float = 10.0,
        dx: float = 10.0,
        dt: float = 1e-3,
        receiver_depth: int = 0,
        snapshots: bool = True,
        group: Optional[WorkerGroup] = None,
        verbose: bool = False
) -> ForwardResult:
    """
    Propagate a source through a velocity model and record the wavefield.

    The velocity model and the source field must already include the
    absorbing padding (see :func:`cpmlfd.modeling.acquisition.extend_boundary`).

    Args:
        velocity (numpy.ndarray, optional): Velocity ``(nz, nx)`` on the master.
        source (numpy.ndarray, optional): Source ``(nz, nx, nt)`` on the master.
        order (int): Stencil half-length.
        boundary (int): CPML width in grid points on the left, right and bottom.
        dz (float): Depth grid spacing.
        dx (float): Lateral grid spacing.
        dt (float): Time step.
        receiver_depth (int): Row recorded into the traces.
        snapshots (bool): Whether to return the full wavefield.
        group (WorkerGroup, optional): Workers of the run, ``MPI.COMM_WORLD``
            by default.
        verbose (bool): Show a progress bar on the master.

    Returns:
        ForwardResult: Gathered outputs on the master, empty elsewhere.

    Raises:
        ShapeMismatch: If velocity and source do not cover the same grid.
        InvalidArgument: If a parameter is out of range.
        ConfigurationError: If the grid is too narrow for the number of workers.
        CommunicationFailure: If a transfer between workers fails. With more
            than one worker the run is aborted on every worker first.
    """
    group = group if group is not None else WorkerGroup()
    header = _share_header(
        group,
        velocity,
        source,
        order=order,
        boundary=boundary,
        dz=dz,
        dx=dx,
        dt=dt,
        receiver_depth=receiver_depth,
        snapshots=snapshots,
    )
    coefficients = difference_coefficients(header.order, "staggered")
    span = 2 * header.order - 1

    # Column blocks
    partitions = partition_columns(header.nx, group.size)
    if group.size > 1 and min(p.count for p in partitions) < span:
        raise ConfigurationError(
            f"{group.size} workers leave blocks of {min(p.count for p in partitions)} columns, "
            f"narrower than the halo width {span} of order {header.order}"
        )
    # end if

    # Communication failures stop every worker
    try:
        return _simulate(group, header, partitions, coefficients, velocity, source, verbose)
    except CommunicationFailure as exc:
        console.print(f"[bold red]Fatal:[/] {exc}")
        if group.size > 1:
            group.abort()
        # end if
        raise
    # end try
# end def forward_model


def _simulate(
        group: WorkerGroup,
        header: GridHeader,
        partitions,
        coefficients: np.ndarray,
        velocity: Optional[np.ndarray],
        source: Optional[np.ndarray],
        verbose: bool
) -> ForwardResult:
    """
    Scatter, step and gather one validated run on this worker.
    """
    nz, nx, nt = header.nz, header.nx, header.nt
    span = 2 * header.order - 1
    partition = partitions[group.rank]

    # Scatter inputs
    velocity_layout = BlockLayout(nz, nx, 1, partitions)
    source_layout = BlockLayout(nz, nx, nt, partitions)
    local_velocity = group.scatter(
        velocity_layout.pack(velocity) if group.is_master else None,
        velocity_layout
    ).reshape((nz, partition.count), order="F")
    local_source = group.scatter(
        source_layout.pack(source) if group.is_master else None,
        source_layout
    ).reshape((nz, partition.count, nt), order="F")

    if group.is_master:
        check_stability(coefficients, float(np.max(velocity)), header.dz, header.dx, header.dt)
    # end if

    damping = build_damping(local_velocity, partition.offset, nx, header.boundary, header.dz, header.dx)
    halo = HaloExchange(group.comm, span) if group.size > 1 else None
    stepper = WaveStepper(
        velocity=local_velocity,
        source=local_source,
        coefficients=coefficients,
        damping=damping,
        dz=header.dz,
        dx=header.dx,
        dt=header.dt,
        halo=halo,
        receiver_depth=header.receiver_depth,
        record_snapshots=header.snapshots,
    )
    stepper.initialize()

    if verbose and group.is_master:
        console.print(
            f"[green]Forward modeling[/] {nz}x{nx} grid, {nt} steps, "
            f"order {header.order}, {group.size} worker(s)"
        )
        with Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("[cyan]Time stepping...", total=nt)
            stepper.run(callback=lambda t: progress.update(task, completed=t))
        # end with
    else:
        stepper.run()
    # end if

    gatherer = ResultGatherer(group, partitions, nz, nt)
    traces = gatherer.gather_traces(stepper.traces)
    gathered_snapshots = gatherer.gather_snapshots(stepper.snapshots) if header.snapshots else None

    return ForwardResult(traces=traces, snapshots=gathered_snapshots, rank=group.rank)
# end def _simulate
