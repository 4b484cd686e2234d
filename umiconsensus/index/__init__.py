"""
The index sub-package holds the ordered, spill-capable stores. GroupIndex keeps the reads keyed by their duplicate
group and the same sorted runs back the mate records of the cluster sub-package.

Algorithm Overview
--------------------

- Buffer (key, serial, read) entries in memory
- Once the buffer exceeds buffer_size, sort it and write it as a run file in a temporary directory
- Whenever merge_fan_in runs of the same size exist, merge them into a single larger run
- On iteration, merge all runs with the sorted buffer and group consecutive entries by key

The serial number assigned at insertion keeps reads of the same group in insertion order regardless of
which runs they were spilled to.
"""
from .constants import DEFAULTS
from .store import GroupIndex, SortedRunStore
