"""
Reverse-time migration (RTM) of surface shot records.

A shot is imaged by correlating the forward source wavefield, propagated in
a smooth background model, with the receiver wavefield obtained by
injecting the time-reversed residual record back into the model from the
surface. The imaging condition is normalized by the source illumination::

    image = sum_t S(t) * R(t) / (eps + sum_t S(t)**2)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
from rich.console import Console

from cpmlfd.errors import ShapeMismatch
from cpmlfd.parallel.runtime import WorkerGroup
from cpmlfd.simulators.forward import forward_model


console = Console()


# Stabilizer of the illumination-normalized imaging condition
EPSILON = 1e-3


@dataclass
class MigrationResult:
    """
    Image of one shot and the records it was built from (master only).
    """
    image: Optional[np.ndarray]
    observed: Optional[np.ndarray]
    background: Optional[np.ndarray]
# end class MigrationResult


def reverse_time_model(
        velocity: Optional[np.ndarray],
        data: Optional[np.ndarray],
        order: int = 3,
        boundary: int = 20,
        dz: float = 10.0,
        dx: float = 10.0,
        dt: float = 1e-3,
        group: Optional[WorkerGroup] = None,
        verbose: bool = False
) -> Optional[np.ndarray]:
    """
    Back-propagate a surface record.

    The record is injected time-reversed along the surface row, and the
    resulting snapshots are flipped back so that index ``t`` matches the
    forward time ``t``.

    Args:
        velocity (numpy.ndarray, optional): Padded velocity ``(nz, nx)`` on the master.
        data (numpy.ndarray, optional): Record ``(nx, nt)`` on the master.
        order (int): Stencil half-length.
        boundary (int): CPML width in grid points.
        dz (float): Depth grid spacing.
        dx (float): Lateral grid spacing.
        dt (float): Time step.
        group (WorkerGroup, optional): Workers of the run.
        verbose (bool): Show progress on the master.

    Returns:
        numpy.ndarray or None: Receiver wavefield ``(nz, nx, nt)`` on the
        master, ``None`` elsewhere.
    """
    group = group if group is not None else WorkerGroup()
    source = None
    if group.is_master:
        velocity = np.asarray(velocity, dtype=np.float64)
        data = np.asarray(data, dtype=np.float64)
        if data.ndim == 2 and velocity.ndim == 2 and data.shape[0] == velocity.shape[1]:
            source = np.zeros(velocity.shape + (data.shape[1],))
            source[0, :, :] = data[:, ::-1]
        else:
            # Rejected collectively by forward_model
            source = data
        # end if
    # end if

    result = forward_model(
        velocity,
        source,
        order=order,
        boundary=boundary,
        dz=dz,
        dx=dx,
        dt=dt,
        snapshots=True,
        group=group,
        verbose=verbose,
    )
    if result.snapshots is None:
        return None
    # end if
    return result.snapshots[:, :, ::-1]
# end def reverse_time_model


def cross_correlation_image(
        source_snapshots: np.ndarray,
        receiver_snapshots: np.ndarray,
        epsilon: float = EPSILON
) -> np.ndarray:
    """
    Illumination-normalized zero-lag cross-correlation of two wavefields.

    Args:
        source_snapshots (numpy.ndarray): Forward wavefield ``(nz, nx, nt)``.
        receiver_snapshots (numpy.ndarray): Back-propagated wavefield, same shape.
        epsilon (float): Stabilizer added to the illumination.

    Returns:
        numpy.ndarray: Image of shape ``(nz, nx)``.
    """
    source_snapshots = np.asarray(source_snapshots, dtype=np.float64)
    receiver_snapshots = np.asarray(receiver_snapshots, dtype=np.float64)
    if source_snapshots.shape != receiver_snapshots.shape or source_snapshots.ndim != 3:
        raise ShapeMismatch(
            f"Wavefields must share a (z, x, t) shape, got {source_snapshots.shape} "
            f"and {receiver_snapshots.shape}"
        )
    # end if
    correlation = np.sum(source_snapshots * receiver_snapshots, axis=2)
    illumination = epsilon + np.sum(source_snapshots ** 2, axis=2)
    return correlation / illumination
# end def cross_correlation_image


def migrate_shot(
        velocity: Optional[np.ndarray],
        background: Optional[np.ndarray],
        source: Optional[np.ndarray],
        order: int = 3,
        boundary: int = 20,
        dz: float = 10.0,
        dx: float = 10.0,
        dt: float = 1e-3,
        group: Optional[WorkerGroup] = None,
        verbose: bool = False
) -> MigrationResult:
    """
    Model one shot in the true and background models and image the residual.

    Args:
        velocity (numpy.ndarray, optional): True padded velocity on the master.
        background (numpy.ndarray, optional): Smooth padded velocity on the master.
        source (numpy.ndarray, optional): Shot source field ``(nz, nx, nt)``.
        order (int): Stencil half-length.
        boundary (int): CPML width in grid points.
        dz (float): Depth grid spacing.
        dx (float): Lateral grid spacing.
        dt (float): Time step.
        group (WorkerGroup, optional): Workers of the run.
        verbose (bool): Show progress on the master.

    Returns:
        MigrationResult: The image and both records on the master.
    """
    group = group if group is not None else WorkerGroup()
    options = dict(order=order, boundary=boundary, dz=dz, dx=dx, dt=dt, group=group, verbose=verbose)

    observed = forward_model(velocity, source, snapshots=False, **options)
    modeled = forward_model(background, source, snapshots=True, **options)

    residual = None
    if group.is_master:
        residual = observed.traces - modeled.traces
    # end if
    receiver_wavefield = reverse_time_model(velocity, residual, **options)

    if not group.is_master:
        return MigrationResult(image=None, observed=None, background=None)
    # end if
    image = cross_correlation_image(modeled.snapshots, receiver_wavefield)
    return MigrationResult(image=image, observed=observed.traces, background=modeled.traces)
# end def migrate_shot


def migrate_survey(
        velocity: Optional[np.ndarray],
        background: Optional[np.ndarray],
        sources: Iterable[Optional[np.ndarray]],
        group: Optional[WorkerGroup] = None,
        verbose: bool = False,
        **options
) -> Optional[np.ndarray]:
    """
    Stack the images of several shots.

    Every worker must iterate over the same number of shots; workers other
    than the master may pass ``None`` for each source.

    Returns:
        numpy.ndarray or None: The stacked image on the master.
    """
    group = group if group is not None else WorkerGroup()
    stacked = None
    for index, source in enumerate(sources):
        if verbose and group.is_master:
            console.print(f"[green]Migrating shot[/] {index}")
        # end if
        result = migrate_shot(velocity, background, source, group=group, **options)
        if result.image is not None:
            stacked = result.image if stacked is None else stacked + result.image
        # end if
    # end for
    return stacked
# end def migrate_survey
