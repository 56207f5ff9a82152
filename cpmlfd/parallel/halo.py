"""
Halo exchange between neighbouring column blocks.

A local field carries ``width`` ghost columns on each side of the owned
columns. Before each stencil evaluation the ghost columns are refreshed with
the neighbours' outermost owned columns. Workers on the grid edges have no
neighbour on that side; their ghost columns are left untouched.
"""

from __future__ import annotations

import numpy as np
from mpi4py import MPI

from cpmlfd.errors import CommunicationFailure


# Message tags, one per direction
TAG_TO_RIGHT = 1
TAG_TO_LEFT = 2


class HaloExchange:
    """
    Blocking point-to-point exchange of ghost columns.
    """

    def __init__(
            self,
            comm: MPI.Comm,
            width: int
    ):
        """
        Initialize the exchange.

        Args:
            comm (MPI.Comm): Communicator of the column-decomposed workers.
            width (int): Number of ghost columns on each side.
        """
        self.comm = comm
        self.width = int(width)
        rank = comm.Get_rank()
        size = comm.Get_size()
        self.rank = rank
        self.left = rank - 1 if rank > 0 else MPI.PROC_NULL
        self.right = rank + 1 if rank < size - 1 else MPI.PROC_NULL
    # end def __init__

    def _sendrecv(
            self,
            send: np.ndarray,
            dest: int,
            source: int,
            tag: int
    ) -> np.ndarray:
        """
        Send ``send`` to ``dest`` and receive an array of the same shape from ``source``.

        Raises:
            CommunicationFailure: If the transfer fails.
        """
        receive = np.empty_like(send)
        try:
            self.comm.Sendrecv(
                send, dest=dest, sendtag=tag,
                recvbuf=receive, source=source, recvtag=tag
            )
        except MPI.Exception as exc:
            raise CommunicationFailure(
                f"Halo exchange failed on worker {self.rank}: {exc}"
            ) from exc
        # end try
        return receive
    # end def _sendrecv

    def exchange(
            self,
            field: np.ndarray
    ) -> None:
        """
        Refresh the ghost columns of ``field`` in place.

        Args:
            field (numpy.ndarray): Local array of shape
                ``(rows, count + 2 * width)``.
        """
        w = self.width
        if w == 0 or (self.left == MPI.PROC_NULL and self.right == MPI.PROC_NULL):
            return
        # end if
        if field.shape[1] < 3 * w:
            raise CommunicationFailure(
                f"Worker {self.rank} owns {field.shape[1] - 2 * w} columns, "
                f"fewer than the halo width {w}"
            )
        # end if

        # Rightmost owned columns travel right, the left ghost fills from the left
        from_left = self._sendrecv(
            np.ascontiguousarray(field[:, -2 * w:-w]), self.right, self.left, TAG_TO_RIGHT
        )
        if self.left != MPI.PROC_NULL:
            field[:, :w] = from_left
        # end if

        from_right = self._sendrecv(
            np.ascontiguousarray(field[:, w:2 * w]), self.left, self.right, TAG_TO_LEFT
        )
        if self.right != MPI.PROC_NULL:
            field[:, -w:] = from_right
        # end if
    # end def exchange

# end class HaloExchange
