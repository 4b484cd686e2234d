from ..constants import non_negative_integer, positive_integer
from ..tabfile import cast_boolean
from ..util import WeakConsensusNamespace


DEFAULTS = WeakConsensusNamespace(__name__='umiconsensus.schedule.constants.DEFAULTS')
"""
- workers
- max_pending
- drain_timeout
- strict
"""
DEFAULTS.add(
    'workers',
    None,
    cast_type=non_negative_integer,
    nullable=True,
    defn='number of worker processes computing consensus reads. Defaults to one less than the number of cpus. '
    'Use 0 to compute inline in the main process',
)
DEFAULTS.add(
    'max_pending',
    1000,
    cast_type=positive_integer,
    defn='maximum number of completed consensus reads held in the reorder buffer before dispatch pauses',
)
DEFAULTS.add(
    'drain_timeout',
    300.0,
    cast_type=float,
    nullable=True,
    defn='seconds to wait for any in-flight cluster to complete before giving up. No limit when None',
)
DEFAULTS.add(
    'strict',
    False,
    cast_type=cast_boolean,
    defn='abort the run when the consensus calculation fails for a cluster instead of skipping it',
)
