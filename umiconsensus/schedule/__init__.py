"""
Parallel computation of the consensus reads with a deterministic output order.

Each cluster is sent to a worker pool as an independent unit of work. The results are tagged with the sort key of
their cluster and held in a bounded reorder buffer so that they are emitted in exactly the order the clusters were
dispatched, regardless of the order in which the workers finish.
"""
from .constants import DEFAULTS
from .executor import ParallelExecutor, default_workers

__all__ = ['DEFAULTS', 'ParallelExecutor', 'default_workers']
