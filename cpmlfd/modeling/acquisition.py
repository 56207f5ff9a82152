"""
Survey geometry helpers: absorbing padding, time sampling and source fields.

The absorbing layer is attached to the left, right and bottom edges of the
model. The top edge is the free surface where shots and receivers sit, so
it is never padded.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from cpmlfd.errors import InvalidArgument
from cpmlfd.modeling.coefficients import courant_limit


def extend_boundary(
        model: np.ndarray,
        boundary: int
) -> np.ndarray:
    """
    Pad a model with ``boundary`` cells on the left, right and bottom.

    Padding cells repeat the nearest edge value of the model.

    Args:
        model (numpy.ndarray): Model of shape ``(nz, nx)``.
        boundary (int): Padding width in grid points.

    Returns:
        numpy.ndarray: Array of shape ``(nz + boundary, nx + 2 * boundary)``.
    """
    model = np.asarray(model, dtype=np.float64)
    if model.ndim != 2:
        raise InvalidArgument(f"Expected a 2-D model, got {model.ndim} dimensions")
    # end if
    if boundary < 0:
        raise InvalidArgument(f"Boundary width must be non-negative, got {boundary}")
    # end if
    return np.pad(model, ((0, boundary), (boundary, boundary)), mode="edge")
# end def extend_boundary


def strip_boundary(
        array: np.ndarray,
        boundary: int,
        traces: bool = False
) -> np.ndarray:
    """
    Remove the padding added by :func:`extend_boundary`.

    Args:
        array (numpy.ndarray): Padded field ``(z, x)``, snapshots
            ``(z, x, t)``, or traces ``(x, t)`` when ``traces`` is True.
        boundary (int): Padding width in grid points.
        traces (bool): Whether ``array`` is a trace record.

    Returns:
        numpy.ndarray: The interior part of ``array``.
    """
    if boundary < 0:
        raise InvalidArgument(f"Boundary width must be non-negative, got {boundary}")
    # end if
    if boundary == 0:
        return array
    # end if
    if traces:
        return array[boundary:-boundary]
    # end if
    return array[:-boundary, boundary:-boundary]
# end def strip_boundary


def stable_time_step(
        vmax: float,
        dz: float,
        dx: float,
        coefficients: Optional[np.ndarray] = None,
        safety: float = 0.3
) -> float:
    """
    Time step satisfying the stability condition of the leapfrog scheme.

    Without coefficients the classic second-order bound
    ``safety * min(dz, dx) / (vmax * sqrt(2))`` is used. With the stencil
    weights, the bound is the Courant limit of the stencil scaled by
    ``safety``.

    Args:
        vmax (float): Largest velocity of the model.
        dz (float): Depth grid spacing.
        dx (float): Lateral grid spacing.
        coefficients (numpy.ndarray, optional): Staggered stencil weights.
        safety (float): Fraction of the stability limit to use.

    Returns:
        float: The time step in seconds.
    """
    if vmax <= 0 or dz <= 0 or dx <= 0:
        raise InvalidArgument("Velocity and grid spacings must be positive")
    # end if
    if coefficients is None:
        return safety * min(dz, dx) / vmax / np.sqrt(2.0)
    # end if
    return safety * courant_limit(coefficients) / (vmax * np.sqrt(1.0 / dz ** 2 + 1.0 / dx ** 2))
# end def stable_time_step


def record_length(
        nz: int,
        nx: int,
        dz: float,
        dx: float,
        vmin: float,
        dt: float
) -> int:
    """
    Number of time samples for a wave to cross the model diagonal and back.
    """
    if vmin <= 0 or dt <= 0:
        raise InvalidArgument("Minimum velocity and time step must be positive")
    # end if
    diagonal = np.sqrt((dx * nx) ** 2 + (dz * nz) ** 2)
    return int(np.floor(diagonal * 2.0 / vmin / dt + 1.0 + 0.5))
# end def record_length


def point_source(
        shape: Tuple[int, int],
        z_index: int,
        x_index: int,
        wavelet: np.ndarray
) -> np.ndarray:
    """
    Source field firing ``wavelet`` at a single grid point.

    Args:
        shape (tuple): Grid shape ``(nz, nx)``.
        z_index (int): Row of the source.
        x_index (int): Column of the source.
        wavelet (numpy.ndarray): Source signature, one value per time sample.

    Returns:
        numpy.ndarray: Source field of shape ``(nz, nx, nt)``.
    """
    nz, nx = shape
    if not (0 <= z_index < nz and 0 <= x_index < nx):
        raise InvalidArgument(f"Source position ({z_index}, {x_index}) is outside the {nz}x{nx} grid")
    # end if
    wavelet = np.asarray(wavelet, dtype=np.float64).ravel()
    source = np.zeros((nz, nx, wavelet.size))
    source[z_index, x_index, :] = wavelet
    return source
# end def point_source


def surface_source(
        shape: Tuple[int, int],
        x_index: int,
        wavelet: np.ndarray
) -> np.ndarray:
    """
    Source field of a shot fired on the free surface.
    """
    return point_source(shape, 0, x_index, wavelet)
# end def surface_source
