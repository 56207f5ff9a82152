"""
Staggered Finite-Difference Operator.

Applies a centered difference along one axis of a 2-D or 3-D array. The
result lives on the half-grid between input samples and is ``2*order - 1``
samples shorter along the differenced axis.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from cpmlfd.errors import InvalidArgument


def axis_window(
        ndim: int,
        axis: int,
        start: int,
        length: int
) -> Tuple[slice, ...]:
    """
    Index tuple selecting ``length`` samples from ``start`` along ``axis``.
    """
    window = [slice(None)] * ndim
    window[axis] = slice(start, start + length)
    return tuple(window)
# end def axis_window


def difference(
        data: np.ndarray,
        coefficients: np.ndarray,
        spacing: float,
        axis: int = 0
) -> np.ndarray:
    """
    Differentiate ``data`` along ``axis`` with a staggered stencil.

    For every output position ``p`` along the axis::

        out[p] = sum_k c[k] * (data[p + order + k] - data[p + order - 1 - k]) / spacing

    so ``out[p]`` is the derivative halfway between ``data[p + order - 1]`` and
    ``data[p + order]``.

    Args:
        data (numpy.ndarray): 2-D or 3-D array of samples.
        coefficients (numpy.ndarray): Stencil weights, nearest pair first.
        spacing (float): Grid spacing along ``axis``.
        axis (int): Axis to differentiate (0, 1, or 2 for 3-D data).

    Returns:
        numpy.ndarray: A new array, ``2*order - 1`` shorter along ``axis``.

    Raises:
        InvalidArgument: If the array rank, axis, spacing or order is unusable.
    """
    data = np.asarray(data, dtype=np.float64)
    coefficients = np.asarray(coefficients, dtype=np.float64).ravel()

    if data.ndim not in (2, 3):
        raise InvalidArgument(f"Difference operator expects 2-D or 3-D data, got {data.ndim}-D")
    # end if
    if not 0 <= axis < data.ndim:
        raise InvalidArgument(f"Axis {axis} is not valid for {data.ndim}-D data")
    # end if
    if spacing <= 0:
        raise InvalidArgument(f"Grid spacing must be positive, got {spacing}")
    # end if

    order = coefficients.size
    if order == 0:
        raise InvalidArgument("At least one stencil coefficient is required")
    # end if

    extent = data.shape[axis]
    span = 2 * order - 1
    if span >= extent:
        raise InvalidArgument(
            f"Stencil of order {order} needs more than {span} samples along axis {axis}, "
            f"got {extent}"
        )
    # end if

    length = extent - span
    out_shape = list(data.shape)
    out_shape[axis] = length
    derivative = np.zeros(out_shape)

    for k, weight in enumerate(coefficients):
        ahead = data[axis_window(data.ndim, axis, order + k, length)]
        behind = data[axis_window(data.ndim, axis, order - 1 - k, length)]
        derivative += weight * (ahead - behind)
    # end for

    derivative /= spacing
    return derivative
# end def difference


def staggered_average(
        data: np.ndarray,
        order: int,
        axis: int
) -> np.ndarray:
    """
    Move integer-grid values onto the half-grid produced by :func:`difference`.

    Each output sample is the mean of the two input samples it sits between,
    so the result has the same shape as a difference of order ``order``.

    Args:
        data (numpy.ndarray): Values on the integer grid.
        order (int): Stencil order of the matching difference.
        axis (int): Axis along which the half-grid is staggered.

    Returns:
        numpy.ndarray: Values on the half-grid.
    """
    data = np.asarray(data, dtype=np.float64)
    length = data.shape[axis] - (2 * order - 1)
    before = data[axis_window(data.ndim, axis, order - 1, length)]
    after = data[axis_window(data.ndim, axis, order, length)]
    return 0.5 * (before + after)
# end def staggered_average
