"""Column decomposition and message passing between workers."""

from .decomposition import BlockLayout, Partition, partition_columns
from .halo import HaloExchange
from .runtime import MASTER, WorkerGroup

__all__ = [
    "BlockLayout",
    "Partition",
    "partition_columns",
    "HaloExchange",
    "MASTER",
    "WorkerGroup",
]
