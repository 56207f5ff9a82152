"""
Shared fixtures of the cpmlfd test suite.

Multi-worker code paths are exercised in a single process: each worker runs
in its own thread and talks to its neighbours through :class:`ThreadComm`, a
stand-in for the point-to-point part of an MPI communicator.
"""

import os
import queue
import sys
import threading
from itertools import product

import matplotlib
import pytest
from mpi4py import MPI

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

matplotlib.use("Agg")


# Seconds a worker waits for a neighbour's message
RECEIVE_TIMEOUT = 60.0


class ThreadComm:
    """
    Point-to-point messaging between threads with the mpi4py call signatures.
    """

    def __init__(self, rank, size, mailboxes):
        self.rank = rank
        self.size = size
        self.mailboxes = mailboxes
    # end def __init__

    def Get_rank(self):
        return self.rank
    # end def Get_rank

    def Get_size(self):
        return self.size
    # end def Get_size

    def Sendrecv(self, sendbuf, dest, sendtag=0, recvbuf=None, source=MPI.ANY_SOURCE, recvtag=MPI.ANY_TAG):
        if dest != MPI.PROC_NULL:
            self.mailboxes[(self.rank, dest, sendtag)].put(sendbuf.copy())
        # end if
        if source != MPI.PROC_NULL:
            recvbuf[...] = self.mailboxes[(source, self.rank, recvtag)].get(timeout=RECEIVE_TIMEOUT)
        # end if
    # end def Sendrecv

# end class ThreadComm


def _run_workers(size, target, tags=(1, 2)):
    """
    Run ``target(comm)`` on ``size`` threads and return the results by rank.
    """
    mailboxes = {
        (src, dst, tag): queue.Queue()
        for src, dst, tag in product(range(size), range(size), tags)
    }
    results = [None] * size
    errors = [None] * size

    def work(rank):
        try:
            results[rank] = target(ThreadComm(rank, size, mailboxes))
        except Exception as exc:
            errors[rank] = exc
        # end try
    # end def work

    threads = [threading.Thread(target=work, args=(rank,)) for rank in range(size)]
    for thread in threads:
        thread.start()
    # end for
    for thread in threads:
        thread.join()
    # end for

    for error in errors:
        if error is not None:
            raise error
        # end if
    # end for
    return results
# end def _run_workers


@pytest.fixture
def run_workers():
    """Callable running a function on a group of thread-backed workers."""
    return _run_workers
# end def run_workers
