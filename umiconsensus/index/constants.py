import argparse

from ..constants import positive_integer
from ..util import WeakConsensusNamespace


def fan_in(num):
    """
    cast input to an integer of at least 2

    Raises:
        argparse.ArgumentTypeError: if the input cannot be cast or is less than 2
    """
    try:
        num = int(num)
    except ValueError:
        raise argparse.ArgumentTypeError('Must be an integer of at least 2')
    if num < 2:
        raise argparse.ArgumentTypeError('Must be an integer of at least 2')
    return num


DEFAULTS = WeakConsensusNamespace()
"""
- buffer_size
- merge_fan_in
- temp_dir
"""
DEFAULTS.add(
    'buffer_size',
    1000000,
    cast_type=positive_integer,
    defn='the number of reads held in memory before the group index spills sorted runs to disk',
)
DEFAULTS.add(
    'merge_fan_in',
    32,
    cast_type=fan_in,
    defn='the number of spilled runs of the same size which are merged together to bound the number of open files',
)
DEFAULTS.add(
    'temp_dir',
    None,
    cast_type=str,
    nullable=True,
    defn='directory to create the temporary group index storage in. Defaults to the system temporary directory',
)
