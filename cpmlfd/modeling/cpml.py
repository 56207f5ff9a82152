"""
Convolutional PML damping profiles.

The absorbing layer wraps the left, right and bottom edges of the grid; the
top edge is a free surface and stays undamped. Inside a layer of physical
width ``L`` the damping grows quadratically with the distance ``u`` into the
layer::

    d0 = -3 * v / (2 * L) * ln(R)
    d  = d0 * (u / L) ** 2

with a target reflection coefficient ``R``. Each worker only fills the
columns of its own block, so the block is classified against every padding
region before the profile is evaluated on the overlap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from cpmlfd.errors import InvalidArgument, ShapeMismatch
from cpmlfd.modeling.difference import axis_window


# Target reflection coefficient of the absorbing layer
REFLECTION_COEFFICIENT = 1e-6


def damping_profile(
        distance: np.ndarray,
        velocity: np.ndarray,
        width: float
) -> np.ndarray:
    """
    Evaluate the quadratic CPML damping profile.

    Args:
        distance (numpy.ndarray): Distance into the layer, in metres.
        velocity (numpy.ndarray): Local wave velocity at the same points (m/s).
        width (float): Physical width of the layer, in metres.

    Returns:
        numpy.ndarray: Damping values (1/s), same shape as the inputs.

    Raises:
        ShapeMismatch: If ``distance`` and ``velocity`` have different shapes.
        InvalidArgument: If ``width`` is not positive.
    """
    distance = np.asarray(distance, dtype=np.float64)
    velocity = np.asarray(velocity, dtype=np.float64)
    if distance.shape != velocity.shape:
        raise ShapeMismatch(
            f"Distance {distance.shape} and velocity {velocity.shape} must have the same shape"
        )
    # end if
    if width <= 0:
        raise InvalidArgument(f"Padding width must be positive, got {width}")
    # end if

    d0 = -(3.0 * velocity) / (2.0 * width) * np.log(REFLECTION_COEFFICIENT)
    return d0 * (distance / width) ** 2
# end def damping_profile


def decay_factor(
        damping: np.ndarray,
        time_step: float
) -> np.ndarray:
    """
    Per-step decay ``exp(-d * dt)`` of the CPML memory variables.
    """
    return np.exp(-np.asarray(damping, dtype=np.float64) * time_step)
# end def decay_factor


class Overlap(str, Enum):
    """How a block of grid indices meets a padding region."""
    INSIDE = "inside"
    INNER_EDGE = "inner-edge"
    SPANNING = "spanning"
    OUTSIDE = "outside"
# end class Overlap


class Side(str, Enum):
    """Grid edge a padding region is attached to."""
    LOW = "low"
    HIGH = "high"
# end class Side


@dataclass(frozen=True)
class PaddingRegion:
    """
    A padding strip ``[start, stop)`` of grid indices along one axis.

    On the ``LOW`` side the damping grows toward ``start`` (the left edge), on
    the ``HIGH`` side toward ``stop`` (the right or bottom edge).
    """
    start: int
    stop: int
    side: Side

    @property
    def inner_edge(self) -> int:
        """Index of the edge that faces the interior."""
        return self.stop if self.side is Side.LOW else self.start
    # end def inner_edge

    def classify(
            self,
            lo: int,
            hi: int,
            opposite: Optional["PaddingRegion"] = None
    ) -> Overlap:
        """
        Classify the block ``[lo, hi)`` against this region.

        Args:
            lo (int): First index of the block.
            hi (int): One past the last index of the block.
            opposite (PaddingRegion, optional): Padding region on the other
                side of the same axis.

        Returns:
            Overlap: ``INSIDE`` when the block lies within the region,
            ``INNER_EDGE`` when it crosses the interior-facing edge,
            ``SPANNING`` when it crosses that edge and also reaches the
            ``opposite`` region, and
            ``OUTSIDE`` when the two do not intersect.
        """
        if self.start >= self.stop or hi <= self.start or lo >= self.stop:
            return Overlap.OUTSIDE
        # end if
        if lo >= self.start and hi <= self.stop:
            return Overlap.INSIDE
        # end if
        if opposite is not None and opposite.classify(lo, hi) is not Overlap.OUTSIDE:
            return Overlap.SPANNING
        # end if
        return Overlap.INNER_EDGE
    # end def classify

    def distance(
            self,
            index: np.ndarray,
            spacing: float
    ) -> np.ndarray:
        """
        Distance into the region of the grid indices ``index``, in metres.
        """
        index = np.asarray(index, dtype=np.float64)
        if self.side is Side.LOW:
            return (self.stop - index) * spacing
        # end if
        return (index - self.start + 1) * spacing
    # end def distance

# end class PaddingRegion


@dataclass
class DampingProfile:
    """
    Damping of one worker's block for both physical axes.

    Attributes:
        z (numpy.ndarray): Damping acting on depth derivatives, ``(nz, count)``.
        x (numpy.ndarray): Damping acting on lateral derivatives, ``(nz, count)``.
        cases (dict): Overlap of the block with each padding region.
    """
    z: np.ndarray
    x: np.ndarray
    cases: Dict[str, Overlap] = field(default_factory=dict)
# end class DampingProfile


def fill_region(
        damping: np.ndarray,
        velocity: np.ndarray,
        region: PaddingRegion,
        lo: int,
        axis: int,
        spacing: float,
        width: float,
        opposite: Optional[PaddingRegion] = None
) -> Overlap:
    """
    Write the damping of one padding region into a block.

    Args:
        damping (numpy.ndarray): Block damping array, modified in place.
        velocity (numpy.ndarray): Velocity of the same block.
        region (PaddingRegion): Padding region, in global grid indices.
        lo (int): Global index of the block's first sample along ``axis``.
        axis (int): Axis the region is attached to.
        spacing (float): Grid spacing along ``axis``.
        width (float): Physical width of the padding layer.
        opposite (PaddingRegion, optional): Padding region on the other side
            of the axis, used to classify blocks reaching both.

    Returns:
        Overlap: The classification of the block against the region.
    """
    hi = lo + damping.shape[axis]
    overlap = region.classify(lo, hi, opposite)
    if overlap is Overlap.OUTSIDE:
        return overlap
    # end if

    first = max(lo, region.start)
    last = min(hi, region.stop)
    window = axis_window(damping.ndim, axis, first - lo, last - first)

    shape = [1] * damping.ndim
    shape[axis] = last - first
    distance = region.distance(np.arange(first, last), spacing).reshape(shape)
    local_velocity = velocity[window]

    damping[window] = damping_profile(
        np.broadcast_to(distance, local_velocity.shape),
        local_velocity,
        width
    )
    return overlap
# end def fill_region


def lateral_regions(
        nx: int,
        boundary: int
) -> Tuple[PaddingRegion, PaddingRegion]:
    """
    Left and right padding regions of a grid ``nx`` columns wide.
    """
    return (
        PaddingRegion(0, boundary, Side.LOW),
        PaddingRegion(nx - boundary, nx, Side.HIGH),
    )
# end def lateral_regions


def lateral_damping(
        velocity: np.ndarray,
        offset: int,
        nx: int,
        boundary: int,
        dx: float
) -> Tuple[np.ndarray, Dict[str, Overlap]]:
    """
    Damping along ``x`` for the column block starting at ``offset``.

    Args:
        velocity (numpy.ndarray): Velocity of the block, ``(nz, count)``.
        offset (int): Global index of the block's first column.
        nx (int): Number of columns of the full grid.
        boundary (int): Padding width in grid points.
        dx (float): Lateral grid spacing.

    Returns:
        tuple: The damping array and the overlap with the left and right regions.
    """
    damping = np.zeros(velocity.shape)
    if boundary <= 0:
        return damping, {"left": Overlap.OUTSIDE, "right": Overlap.OUTSIDE}
    # end if

    left, right = lateral_regions(nx, boundary)
    width = boundary * dx
    cases = {
        "left": fill_region(damping, velocity, left, offset, 1, dx, width, right),
        "right": fill_region(damping, velocity, right, offset, 1, dx, width, left),
    }
    return damping, cases
# end def lateral_damping


def bottom_damping(
        velocity: np.ndarray,
        boundary: int,
        dz: float
) -> np.ndarray:
    """
    Damping along ``z``: only the bottom rows are padded.

    Every worker holds the full depth, so this is the same computation on each
    block.
    """
    damping = np.zeros(velocity.shape)
    if boundary <= 0:
        return damping
    # end if

    nz = velocity.shape[0]
    bottom = PaddingRegion(nz - boundary, nz, Side.HIGH)
    fill_region(damping, velocity, bottom, 0, 0, dz, boundary * dz)
    return damping
# end def bottom_damping


def build_damping(
        velocity: np.ndarray,
        offset: int,
        nx: int,
        boundary: int,
        dz: float,
        dx: float
) -> DampingProfile:
    """
    Build both damping arrays of one worker's block.

    Args:
        velocity (numpy.ndarray): Velocity of the block, ``(nz, count)``.
        offset (int): Global index of the block's first column.
        nx (int): Number of columns of the full grid.
        boundary (int): Padding width in grid points.
        dz (float): Depth grid spacing.
        dx (float): Lateral grid spacing.

    Returns:
        DampingProfile: Depth and lateral damping with the overlap cases.
    """
    velocity = np.asarray(velocity, dtype=np.float64)
    x_damping, cases = lateral_damping(velocity, offset, nx, boundary, dx)
    z_damping = bottom_damping(velocity, boundary, dz)
    return DampingProfile(z=z_damping, x=x_damping, cases=cases)
# end def build_damping
