"""
Cooperating worker processes.

A simulation runs as one program on ``N`` MPI ranks (``mpiexec -n N``). Rank 0
is the master: it owns the full input arrays and the gathered output. This
module wraps the mpi4py communicator with the few collectives the engine
needs and turns MPI failures into :class:`CommunicationFailure`.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np
from mpi4py import MPI

from cpmlfd.errors import CommunicationFailure
from cpmlfd.parallel.decomposition import BlockLayout


# Rank owning the inputs and the gathered results
MASTER = 0


class WorkerGroup:
    """
    The set of workers taking part in one simulation.
    """

    def __init__(
            self,
            comm: Optional[MPI.Comm] = None
    ):
        """
        Initialize the group.

        Args:
            comm (MPI.Comm, optional): Communicator to use. Defaults to
                ``MPI.COMM_WORLD``.
        """
        self.comm = comm if comm is not None else MPI.COMM_WORLD
        self.rank = self.comm.Get_rank()
        self.size = self.comm.Get_size()
    # end def __init__

    @property
    def is_master(self) -> bool:
        """Whether this worker owns the inputs and outputs."""
        return self.rank == MASTER
    # end def is_master

    def broadcast(
            self,
            value: Any
    ) -> Any:
        """
        Send a picklable value from the master to every worker.
        """
        try:
            return self.comm.bcast(value, root=MASTER)
        except MPI.Exception as exc:
            raise CommunicationFailure(f"Broadcast failed on worker {self.rank}: {exc}") from exc
        # end try
    # end def broadcast

    def scatter(
            self,
            packed: Optional[np.ndarray],
            layout: BlockLayout
    ) -> np.ndarray:
        """
        Distribute packed per-worker runs from the master.

        Args:
            packed (numpy.ndarray, optional): Output of ``layout.pack`` on the
                master, ignored elsewhere.
            layout (BlockLayout): Transfer layout shared by all workers.

        Returns:
            numpy.ndarray: This worker's local block.
        """
        run = np.empty(layout.counts[self.rank])
        send = None
        if self.is_master:
            send = [np.ascontiguousarray(packed), layout.counts, layout.displacements, MPI.DOUBLE]
        # end if

        try:
            self.comm.Scatterv(send, [run, MPI.DOUBLE], root=MASTER)
        except MPI.Exception as exc:
            raise CommunicationFailure(f"Scatter failed on worker {self.rank}: {exc}") from exc
        # end try
        return layout.to_block(run, self.rank)
    # end def scatter

    def gather(
            self,
            block: np.ndarray,
            layout: BlockLayout
    ) -> Optional[np.ndarray]:
        """
        Collect every worker's local block on the master.

        Args:
            block (numpy.ndarray): This worker's local block.
            layout (BlockLayout): Transfer layout shared by all workers.

        Returns:
            numpy.ndarray or None: The full array on the master, ``None`` elsewhere.
        """
        run = layout.from_block(block)
        if run.size != layout.counts[self.rank]:
            raise CommunicationFailure(
                f"Worker {self.rank} holds {run.size} values, layout expects {layout.counts[self.rank]}"
            )
        # end if

        receive = None
        packed = None
        if self.is_master:
            packed = np.empty(layout.size)
            receive = [packed, layout.counts, layout.displacements, MPI.DOUBLE]
        # end if

        try:
            self.comm.Gatherv([run, MPI.DOUBLE], receive, root=MASTER)
        except MPI.Exception as exc:
            raise CommunicationFailure(f"Gather failed on worker {self.rank}: {exc}") from exc
        # end try

        if not self.is_master:
            return None
        # end if
        return layout.unpack(packed)
    # end def gather

    def abort(
            self,
            errorcode: int = 1
    ) -> None:
        """
        Terminate every worker of the run.
        """
        self.comm.Abort(errorcode)
    # end def abort

# end class WorkerGroup
