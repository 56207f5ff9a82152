"""
Collection of the per-worker outputs on the master.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from cpmlfd.parallel.decomposition import BlockLayout, Partition
from cpmlfd.parallel.runtime import WorkerGroup


class ResultGatherer:
    """
    Assemble the global traces and snapshots from every worker's block.
    """

    def __init__(
            self,
            group: WorkerGroup,
            partitions: Sequence[Partition],
            nz: int,
            nt: int
    ):
        """
        Initialize the gatherer.

        Args:
            group (WorkerGroup): Workers of the run.
            partitions (Sequence[Partition]): Column blocks, ordered by rank.
            nz (int): Number of grid rows.
            nt (int): Number of time samples.
        """
        self.group = group
        nx = sum(p.count for p in partitions)
        self.trace_layout = BlockLayout(1, nx, nt, partitions)
        self.snapshot_layout = BlockLayout(nz, nx, nt, partitions)
    # end def __init__

    def gather_traces(
            self,
            local_traces: np.ndarray
    ) -> Optional[np.ndarray]:
        """
        Gather the ``count × nt`` local traces into the ``nx × nt`` record.

        Returns:
            numpy.ndarray or None: The record on the master, ``None`` elsewhere.
        """
        traces = self.group.gather(local_traces, self.trace_layout)
        if traces is None:
            return None
        # end if
        layout = self.trace_layout
        return traces.reshape((layout.width, layout.depth), order="F")
    # end def gather_traces

    def gather_snapshots(
            self,
            local_snapshots: np.ndarray
    ) -> Optional[np.ndarray]:
        """
        Gather the ``nz × count × nt`` local snapshots into ``nz × nx × nt``.

        Returns:
            numpy.ndarray or None: The snapshots on the master, ``None`` elsewhere.
        """
        snapshots = self.group.gather(local_snapshots, self.snapshot_layout)
        if snapshots is None:
            return None
        # end if
        layout = self.snapshot_layout
        return snapshots.reshape((layout.height, layout.width, layout.depth), order="F")
    # end def gather_snapshots

# end class ResultGatherer
