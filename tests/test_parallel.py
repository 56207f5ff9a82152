"""
Tests for the halo exchange and the worker group.

Halo exchanges run on thread-backed workers (see ``conftest.py``); the
collectives of :class:`WorkerGroup` run on the real ``MPI.COMM_WORLD`` of a
single-process test session.
"""

import numpy as np
import pytest
from mpi4py import MPI

from cpmlfd.errors import CommunicationFailure
from cpmlfd.parallel.decomposition import BlockLayout, partition_columns
from cpmlfd.parallel.halo import HaloExchange
from cpmlfd.parallel.runtime import MASTER, WorkerGroup


def _labelled_field(rows, partition, width):
    """Local field whose owned columns hold their global index, ghosts -1."""
    field = np.full((rows, partition.count + 2 * width), -1.0)
    field[:, width:width + partition.count] = np.arange(partition.offset, partition.stop)
    return field
# end def _labelled_field


@pytest.mark.parametrize("workers, width", [(2, 1), (3, 3), (4, 5)])
def test_ghost_columns_hold_neighbour_columns(run_workers, workers, width):
    """After an exchange each ghost column holds the neighbour's owned column."""
    nx, rows = 30, 4
    partitions = partition_columns(nx, workers)

    def work(comm):
        block = partitions[comm.Get_rank()]
        field = _labelled_field(rows, block, width)
        HaloExchange(comm, width).exchange(field)
        return field
    # end def work

    fields = run_workers(workers, work)
    for rank, (block, field) in enumerate(zip(partitions, fields)):
        left_ghost = field[:, :width]
        right_ghost = field[:, -width:]
        if rank == 0:
            assert np.all(left_ghost == -1.0)
        else:
            np.testing.assert_array_equal(left_ghost[0], np.arange(block.offset - width, block.offset))
        # end if
        if rank == workers - 1:
            assert np.all(right_ghost == -1.0)
        else:
            np.testing.assert_array_equal(right_ghost[0], np.arange(block.stop, block.stop + width))
        # end if
        # Owned columns are untouched
        np.testing.assert_array_equal(field[0, width:-width], np.arange(block.offset, block.stop))
    # end for
# end def test_ghost_columns_hold_neighbour_columns


def test_single_worker_exchange_is_a_no_op(run_workers):
    """A lone worker has no neighbours to talk to."""
    def work(comm):
        halo = HaloExchange(comm, 2)
        field = np.arange(24, dtype=float).reshape(3, 8)
        original = field.copy()
        halo.exchange(field)
        return np.array_equal(field, original), halo.left, halo.right
    # end def work

    unchanged, left, right = run_workers(1, work)[0]
    assert unchanged
    assert left == MPI.PROC_NULL and right == MPI.PROC_NULL
# end def test_single_worker_exchange_is_a_no_op


def test_block_narrower_than_halo(run_workers):
    """Each block must own at least one halo width of columns."""
    def work(comm):
        field = np.zeros((3, 2 + 2 * 3))
        HaloExchange(comm, 3).exchange(field)
    # end def work

    with pytest.raises(CommunicationFailure):
        run_workers(2, work)
    # end with
# end def test_block_narrower_than_halo


class FailingComm:
    """Communicator whose collectives report an MPI error."""

    def Get_rank(self):
        return 0
    # end def Get_rank

    def Get_size(self):
        return 1
    # end def Get_size

    def bcast(self, value, root=0):
        raise MPI.Exception(MPI.ERR_OTHER)
    # end def bcast

# end class FailingComm


def test_mpi_errors_become_communication_failures():
    """MPI errors surface as CommunicationFailure."""
    group = WorkerGroup(FailingComm())
    with pytest.raises(CommunicationFailure):
        group.broadcast({"nx": 10})
    # end with
# end def test_mpi_errors_become_communication_failures


class FailingLinkComm(FailingComm):
    """First of two workers whose link to its neighbour is down."""

    def Get_size(self):
        return 2
    # end def Get_size

    def Sendrecv(self, *args, **kwargs):
        raise MPI.Exception(MPI.ERR_OTHER)
    # end def Sendrecv

# end class FailingLinkComm


def test_halo_errors_become_communication_failures():
    """A failed neighbour exchange surfaces as CommunicationFailure."""
    halo = HaloExchange(FailingLinkComm(), 2)
    with pytest.raises(CommunicationFailure, match="Halo exchange failed on worker 0"):
        halo.exchange(np.zeros((3, 10)))
    # end with
# end def test_halo_errors_become_communication_failures


def test_world_group():
    """Without an explicit communicator the group spans MPI.COMM_WORLD."""
    group = WorkerGroup()
    assert group.size == MPI.COMM_WORLD.Get_size()
    assert group.is_master == (group.rank == MASTER)
# end def test_world_group


def test_broadcast_returns_master_value():
    """The master's value reaches every worker."""
    group = WorkerGroup(MPI.COMM_SELF)
    assert group.broadcast({"nz": 3, "nx": 4}) == {"nz": 3, "nx": 4}
# end def test_broadcast_returns_master_value


def test_scatter_gather_round_trip():
    """Scatter then gather of a source-like volume on one worker."""
    group = WorkerGroup(MPI.COMM_SELF)
    volume = np.random.default_rng(4).normal(size=(5, 7, 3))
    layout = BlockLayout(5, 7, 3, partition_columns(7, group.size))

    block = group.scatter(layout.pack(volume), layout)
    np.testing.assert_array_equal(block, volume)

    gathered = group.gather(block, layout)
    np.testing.assert_array_equal(gathered, volume)
# end def test_scatter_gather_round_trip


def test_gather_rejects_wrong_block_size():
    """A block that does not match the layout is not sent."""
    group = WorkerGroup(MPI.COMM_SELF)
    layout = BlockLayout(1, 6, 4, partition_columns(6, 1))
    with pytest.raises(CommunicationFailure):
        group.gather(np.zeros((5, 4)), layout)
    # end with
# end def test_gather_rejects_wrong_block_size
