"""
Finite-Difference Stencil Coefficients.

The weights of a centered difference of half-length ``order`` follow from the
Taylor-series consistency conditions: the stencil must reproduce the first
derivative exactly and cancel every higher odd power up to ``2*order - 1``.
Those conditions form a small dense linear system that we solve once per run.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from scipy.linalg import lu_factor, lu_solve

from cpmlfd.errors import InvalidArgument


# Accepted spellings of the two grid types
STENCIL_TYPES = {
    "s": "staggered",
    "staggered": "staggered",
    "r": "regular",
    "regular": "regular",
}


def normalize_stencil_type(
        stencil_type: str
) -> str:
    """
    Map a stencil type spelling to its canonical name.

    Args:
        stencil_type (str): ``"staggered"``/``"s"`` or ``"regular"``/``"r"``.

    Returns:
        str: ``"staggered"`` or ``"regular"``.

    Raises:
        InvalidArgument: If the type is not recognized.
    """
    key = str(stencil_type).strip().lower()
    if key not in STENCIL_TYPES:
        raise InvalidArgument(
            f"Stencil type must be 'staggered' ('s') or 'regular' ('r'), got {stencil_type!r}"
        )
    # end if
    return STENCIL_TYPES[key]
# end def normalize_stencil_type


def coefficient_system(
        order: int,
        stencil_type: str = "staggered"
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the consistency system ``A @ c = b`` for a stencil.

    Row ``i`` enforces the odd power ``2*(i+1) - 1`` of the Taylor expansion,
    column ``j`` corresponds to the ``j``-th neighbour pair. On a staggered grid
    the pair sits at half-distance ``2*(j+1) - 1``, on a regular grid at
    distance ``j+1``.

    Args:
        order (int): Stencil half-length (number of neighbour pairs).
        stencil_type (str): ``"staggered"`` or ``"regular"``.

    Returns:
        tuple: ``(A, b)`` with shapes ``(order, order)`` and ``(order,)``.

    Raises:
        InvalidArgument: If ``order`` is not a positive integer or the type is unknown.
    """
    grid = normalize_stencil_type(stencil_type)
    if int(order) != order or order < 1:
        raise InvalidArgument(f"Stencil order must be a positive integer, got {order}")
    # end if
    order = int(order)

    powers = 2 * np.arange(1, order + 1) - 1
    pairs = np.arange(1, order + 1, dtype=np.float64)

    rhs = np.zeros(order)
    if grid == "regular":
        rhs[0] = 0.5
    else:
        pairs = 2.0 * pairs - 1.0
        rhs[0] = 1.0
    # end if

    matrix = pairs[np.newaxis, :] ** powers[:, np.newaxis]
    return matrix, rhs
# end def coefficient_system


def difference_coefficients(
        order: int,
        stencil_type: str = "staggered"
) -> np.ndarray:
    """
    Derive the finite-difference weights for a given order and grid type.

    Args:
        order (int): Stencil half-length, typically between 1 and 10.
        stencil_type (str): ``"staggered"`` (``"s"``) or ``"regular"`` (``"r"``).

    Returns:
        numpy.ndarray: The ``order`` weights, nearest neighbour pair first.

    Raises:
        InvalidArgument: If ``order`` is not positive or the type is unknown.

    Example:
        >>> difference_coefficients(2, "staggered")
        array([ 1.125     , -0.04166667])
    """
    matrix, rhs = coefficient_system(order, stencil_type)
    factorization = lu_factor(matrix)
    return lu_solve(factorization, rhs)
# end def difference_coefficients


def courant_limit(
        coefficients: np.ndarray
) -> float:
    """
    Largest stable value of ``v * dt * sqrt(1/dz**2 + 1/dx**2)``.

    Args:
        coefficients (numpy.ndarray): Staggered stencil weights.

    Returns:
        float: The leapfrog stability bound for this stencil.
    """
    return 1.0 / float(np.sum(np.abs(coefficients)))
# end def courant_limit
