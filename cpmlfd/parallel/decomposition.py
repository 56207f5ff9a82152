"""
Column-wise domain decomposition.

The grid is split along ``x`` into contiguous column blocks, one per worker.
Blocks differ in size by at most one column; the first ``nx % workers``
blocks take the extra column.

Arrays are exchanged in column-major order (``i + nz*j + nz*nx*t``), so a
worker's block of a ``z × x × t`` volume is ``t`` planes of ``nz*count``
values separated by ``nz*nx``. :class:`BlockLayout` packs those strided
planes into one contiguous run per worker before a scatter and unpacks them
after a gather.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from cpmlfd.errors import ConfigurationError, ShapeMismatch


@dataclass(frozen=True)
class Partition:
    """
    Contiguous column range ``[offset, offset + count)`` owned by one worker.
    """
    offset: int
    count: int

    @property
    def stop(self) -> int:
        """One past the last owned column."""
        return self.offset + self.count
    # end def stop

    @property
    def columns(self) -> slice:
        """Slice selecting the owned columns of a full grid."""
        return slice(self.offset, self.stop)
    # end def columns

# end class Partition


def partition_columns(
        nx: int,
        num_workers: int
) -> List[Partition]:
    """
    Split ``nx`` columns across ``num_workers`` workers.

    Args:
        nx (int): Number of grid columns.
        num_workers (int): Number of cooperating workers.

    Returns:
        list: One :class:`Partition` per worker, ordered by rank.

    Raises:
        ConfigurationError: If there are no workers or more workers than columns.
    """
    if num_workers < 1:
        raise ConfigurationError(f"At least one worker is required, got {num_workers}")
    # end if
    if num_workers > nx:
        raise ConfigurationError(
            f"Too many workers: {num_workers} workers for {nx} grid columns"
        )
    # end if

    average, remainder = divmod(nx, num_workers)
    partitions = []
    offset = 0
    for rank in range(num_workers):
        count = average + 1 if rank < remainder else average
        partitions.append(Partition(offset=offset, count=count))
        offset += count
    # end for
    return partitions
# end def partition_columns


class BlockLayout:
    """
    Transfer layout of a ``height × width × depth`` array split by columns.

    ``height`` is the number of rows per column (``nz`` for fields, ``1`` for
    traces), ``width`` the number of columns and ``depth`` the number of planes
    (time samples, or ``1`` for the velocity model).
    """

    def __init__(
            self,
            height: int,
            width: int,
            depth: int,
            partitions: Sequence[Partition]
    ):
        """
        Initialize the layout.

        Args:
            height (int): Rows per column.
            width (int): Columns of the full array.
            depth (int): Number of planes.
            partitions (Sequence[Partition]): Column blocks, ordered by rank.
        """
        self.height = int(height)
        self.width = int(width)
        self.depth = int(depth)
        self.partitions = tuple(partitions)

        if sum(p.count for p in self.partitions) != self.width:
            raise ShapeMismatch(
                f"Partitions cover {sum(p.count for p in self.partitions)} columns, "
                f"array has {self.width}"
            )
        # end if
    # end def __init__

    @property
    def counts(self) -> Tuple[int, ...]:
        """Number of values sent to each worker."""
        return tuple(self.height * p.count * self.depth for p in self.partitions)
    # end def counts

    @property
    def displacements(self) -> Tuple[int, ...]:
        """Offset of each worker's run in the packed buffer."""
        return tuple(self.height * p.offset * self.depth for p in self.partitions)
    # end def displacements

    @property
    def size(self) -> int:
        """Total number of values."""
        return self.height * self.width * self.depth
    # end def size

    def block_shape(
            self,
            rank: int
    ) -> Tuple[int, ...]:
        """
        Shape of the local block of worker ``rank``.
        """
        count = self.partitions[rank].count
        if self.height == 1:
            return (count, self.depth)
        # end if
        if self.depth == 1:
            return (self.height, count)
        # end if
        return (self.height, count, self.depth)
    # end def block_shape

    def _global_shape(self) -> Tuple[int, ...]:
        if self.height == 1:
            return (self.width, self.depth)
        # end if
        if self.depth == 1:
            return (self.height, self.width)
        # end if
        return (self.height, self.width, self.depth)
    # end def _global_shape

    def _plane_runs(self):
        """
        Yield ``(source, target, length)`` copies, one per worker and plane.

        ``source`` indexes the column-major array (plane stride
        ``height * width``), ``target`` the packed buffer (plane stride
        ``height * count``).
        """
        plane = self.height * self.width
        for partition, displacement in zip(self.partitions, self.displacements):
            band = self.height * partition.count
            for t in range(self.depth):
                yield self.height * partition.offset + t * plane, displacement + t * band, band
            # end for
        # end for
    # end def _plane_runs

    def pack(
            self,
            array: np.ndarray
    ) -> np.ndarray:
        """
        Reorder a full array into contiguous per-worker runs.

        Args:
            array (numpy.ndarray): Full array of the layout's shape.

        Returns:
            numpy.ndarray: 1-D buffer, worker ``i``'s block at ``displacements[i]``.

        Raises:
            ShapeMismatch: If the array does not match the layout.
        """
        array = np.asarray(array, dtype=np.float64)
        if array.shape not in (self._global_shape(), (self.height, self.width, self.depth)):
            raise ShapeMismatch(f"Expected array of shape {self._global_shape()}, got {array.shape}")
        # end if

        flat = np.ravel(array, order="F")
        packed = np.empty(self.size)
        for source, target, length in self._plane_runs():
            packed[target:target + length] = flat[source:source + length]
        # end for
        return packed
    # end def pack

    def unpack(
            self,
            packed: np.ndarray
    ) -> np.ndarray:
        """
        Inverse of :meth:`pack`: rebuild the full array from per-worker runs.
        """
        packed = np.asarray(packed, dtype=np.float64).ravel()
        if packed.size != self.size:
            raise ShapeMismatch(f"Expected {self.size} packed values, got {packed.size}")
        # end if

        flat = np.empty(self.size)
        for source, target, length in self._plane_runs():
            flat[source:source + length] = packed[target:target + length]
        # end for
        return flat.reshape(self._global_shape(), order="F")
    # end def unpack

    def to_block(
            self,
            run: np.ndarray,
            rank: int
    ) -> np.ndarray:
        """
        View a worker's received run as its local block.
        """
        return np.asarray(run, dtype=np.float64).reshape(self.block_shape(rank), order="F")
    # end def to_block

    def from_block(
            self,
            block: np.ndarray
    ) -> np.ndarray:
        """
        Flatten a local block into the run expected by a gather.
        """
        return np.ravel(np.asarray(block, dtype=np.float64), order="F")
    # end def from_block

# end class BlockLayout
