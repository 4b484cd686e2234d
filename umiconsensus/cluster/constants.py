from ..constants import positive_integer
from ..util import WeakConsensusNamespace


DEFAULTS = WeakConsensusNamespace()
"""
- min_support
- pair_mates
"""
DEFAULTS.add(
    'min_support',
    1,
    cast_type=positive_integer,
    defn='the minimum number of reads a duplicate cluster must have to be collapsed. Smaller clusters are dropped',
)
DEFAULTS.add(
    'pair_mates',
    True,
    defn='split paired reads whose mate is missing from the input into their own degraded singleton clusters',
)
