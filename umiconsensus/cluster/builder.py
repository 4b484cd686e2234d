from collections import namedtuple
import logging

from .constants import DEFAULTS
from ..constants import CONFIDENCE
from ..util import DEVNULL


class DuplicateCluster(namedtuple('DuplicateCluster', ['key', 'ordinal', 'reads', 'confidence'])):
    """
    A frozen, non-empty set of reads sharing one GroupKey

    Attributes:
        key (GroupKey): the shared duplicate group
        ordinal (int): 0 for the primary cluster of the group, 1..n for the unmatched mates split from it
        reads (tuple of SequencingRead): the member reads
        confidence (CONFIDENCE): the confidence flag given by the builder
    """
    __slots__ = ()

    def sort_key(self):
        return (self.key, self.ordinal)

    def read_ids(self):
        return [read.identifier for read in self.reads]

    def __len__(self):
        return len(self.reads)


class ClusterBuilder:
    """
    Consumes the ordered groups of a GroupIndex and yields frozen duplicate clusters
    """

    def __init__(self, min_support=DEFAULTS.min_support, log=DEVNULL):
        """
        Args:
            min_support (int): primary clusters with fewer reads are dropped
            log (Log): function to print logging messages to
        """
        self.min_support = min_support
        self.log = log
        self.clusters = 0
        self.unmatched = 0
        self.dropped = 0

    def build(self, groups, unmatched_mates=None):
        """
        Args:
            groups (iterable of tuple of GroupKey and list of SequencingRead): complete groups in increasing key order
            unmatched_mates (iterable of MateRecord): the paired reads whose mate is missing, in increasing group key
                order. When None no mate pairing is done

        Yields:
            DuplicateCluster: clusters in increasing (key, ordinal) order
        """
        pending = iter(unmatched_mates or [])
        next_mate = next(pending, None)

        for key, reads in groups:
            if not reads:
                raise AssertionError('duplicate groups cannot be empty', str(key))
            for read in reads:
                if read.key() != key:
                    raise AssertionError('read does not belong to the group', read.identifier, str(read.key()), str(key))

            missing = set()
            while next_mate is not None and next_mate.key <= key:
                if next_mate.key == key:
                    missing.add((next_mate.identifier, next_mate.mate))
                next_mate = next(pending, None)
            primary = [read for read in reads if (read.identifier, read.mate) not in missing]
            unmatched = [read for read in reads if (read.identifier, read.mate) in missing]

            if primary:
                if len(primary) < self.min_support:
                    self.dropped += 1
                    self.log('dropping cluster', key, 'with', len(primary), 'reads', level=logging.DEBUG)
                else:
                    confidence = CONFIDENCE.SINGLETON if len(primary) == 1 else CONFIDENCE.FULL
                    self.clusters += 1
                    yield DuplicateCluster(key, 0, tuple(primary), confidence)

            for ordinal, read in enumerate(sorted(unmatched, key=lambda r: (r.identifier, r.mate)), 1):
                self.unmatched += 1
                self.clusters += 1
                yield DuplicateCluster(key, ordinal, (read, ), CONFIDENCE.DEGRADED)
