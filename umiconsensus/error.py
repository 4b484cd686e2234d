class UmiConsensusError(Exception):
    """
    base class for the errors raised while collapsing duplicate reads
    """
    pass


class IngestError(UmiConsensusError):
    """
    raised for a malformed input record. Depending on the skip_invalid_reads setting the record is either
    skipped (and logged) or the run is aborted
    """
    pass


class StorageError(UmiConsensusError):
    """
    raised when the group index cannot write or read its spilled data. Always fatal since the ordering of the
    groups can no longer be guaranteed
    """
    pass


class ConsensusError(UmiConsensusError):
    """
    raised for corrupt or out-of-range quality values inside a cluster. The caller recovers from this
    by emitting a degraded consensus read
    """
    pass


class BackpressureTimeout(UmiConsensusError):
    """
    raised when the reorder buffer does not drain in time, which indicates a stuck worker
    """

    def __init__(self, key, timeout, pending):
        UmiConsensusError.__init__(self, key, timeout, pending)
        self.key = key
        self.timeout = timeout
        self.pending = pending

    def __str__(self):
        return 'no cluster completed within {}s while waiting on {} ({} clusters in flight)'.format(
            self.timeout, self.key, self.pending)


class WorkerError(UmiConsensusError):
    """
    raised when the consensus calculation for a single cluster fails in a worker
    """

    def __init__(self, key, read_ids, reason):
        UmiConsensusError.__init__(self, key, read_ids, reason)
        self.key = key
        self.read_ids = read_ids
        self.reason = reason

    def __str__(self):
        return 'consensus failed for {} (reads: {}): {}'.format(self.key, ', '.join(self.read_ids), self.reason)
