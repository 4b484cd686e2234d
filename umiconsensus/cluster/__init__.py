"""
The cluster sub-package turns the ordered groups of the index into frozen duplicate clusters.

Algorithm Overview
--------------------

- While reads are ingested, record each paired read in a spillable store ordered by template (barcode, read name)
- After ingestion, one pass over the templates moves the reads of templates missing a mate into a second store
  ordered by duplicate group
- For each complete group from the index

    - Merge the unmatched mates of the group from the second store, which is read alongside the groups
    - Unpaired reads and paired reads whose mate was also ingested form the primary cluster (ordinal 0)
    - Each paired read whose mate never appeared becomes its own degraded singleton cluster (ordinals 1..n)

- Clusters are yielded in increasing (group key, ordinal) order

Barcodes are compared for exact equality. Reads whose barcodes differ by a single base form separate clusters.
"""
from .builder import ClusterBuilder, DuplicateCluster
from .mates import MateRecord, MateTable
from .constants import DEFAULTS
