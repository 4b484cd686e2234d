from collections import namedtuple
import math

import numpy as np
from pysam import qualities_to_qualitystring

from ..constants import CONFIDENCE, COLUMNS, DNA_BASES, MAX_QUALITY, QUALITY_OFFSET, UNKNOWN_BASE
from ..error import ConsensusError

MIN_ERROR = 10 ** (-MAX_QUALITY / 10)
MAX_ERROR = 0.75
TIE_TOLERANCE = 1e-9
_LOG10 = math.log(10)
_BASE_CODES = np.full(256, -1, dtype=np.int8)
for _code, _base in enumerate(DNA_BASES):
    _BASE_CODES[ord(_base)] = _code


class ConsensusRead(namedtuple('ConsensusRead', [
    'key', 'ordinal', 'sequence', 'qualities', 'support', 'discordant', 'confidence', 'tail_sequence', 'tail_coverage',
    'read_ids',
])):
    """
    The error-corrected read representing one duplicate cluster

    Attributes:
        key (GroupKey): the duplicate group
        ordinal (int): 0 for the primary cluster, 1..n for unmatched mates of the same group
        sequence (str): the consensus over the positions covered by every read
        qualities (tuple of int): recalibrated phred quality per consensus position
        support (int): number of reads in the cluster
        discordant (tuple of int): per position, the number of reads disagreeing with the consensus base
        confidence (CONFIDENCE): full, degraded or singleton
        tail_sequence (str): majority bases beyond the shortest read
        tail_coverage (tuple of int): number of reads covering each tail position
        read_ids (tuple of str): identifiers of the member reads
    """
    __slots__ = ()

    def sort_key(self):
        return (self.key, self.ordinal)

    @property
    def name(self):
        if self.ordinal:
            return '{}:{}'.format(self.key, self.ordinal)
        return str(self.key)

    @property
    def verbose_name(self):
        """
        the name followed by the identifiers of the reads the consensus was called from
        """
        return '{}_consensus-read-from:{}'.format(self.name, ','.join(self.read_ids))

    def flatten(self, verbose_read_names=False):
        return {
            COLUMNS.name: self.verbose_name if verbose_read_names else self.name,
            COLUMNS.contig: self.key.contig,
            COLUMNS.position: self.key.position,
            COLUMNS.strand: self.key.strand,
            COLUMNS.barcode: self.key.barcode,
            COLUMNS.ordinal: self.ordinal,
            COLUMNS.consensus_sequence: self.sequence,
            COLUMNS.consensus_quality: qualities_to_qualitystring(self.qualities, offset=QUALITY_OFFSET),
            COLUMNS.support: self.support,
            COLUMNS.discordant: ','.join([str(d) for d in self.discordant]),
            COLUMNS.confidence: self.confidence,
            COLUMNS.tail_sequence: self.tail_sequence,
            COLUMNS.tail_coverage: ','.join([str(c) for c in self.tail_coverage]),
        }


def encode_bases(sequences, length):
    """
    Returns:
        numpy.ndarray: (reads x length) base codes, the index into DNA_BASES or -1 for any other base
    """
    raw = np.array([np.frombuffer(seq[:length].encode('ascii'), dtype=np.uint8) for seq in sequences])
    return _BASE_CODES[raw]


def check_qualities(qualities):
    """
    Raises:
        ConsensusError: any quality is negative or above the maximum representable value
    """
    if qualities.size and (qualities.min() < 0 or qualities.max() > MAX_QUALITY):
        raise ConsensusError('quality values must be between 0 and {}'.format(MAX_QUALITY), int(qualities.min()), int(qualities.max()))


def error_probabilities(qualities):
    """
    convert phred qualities to error probabilities, clipped so that log(1 - e) and log(e / 3) stay finite

    Example:
        >>> error_probabilities(np.array([10, 20]))
        array([0.1 , 0.01])
    """
    return np.clip(np.power(10.0, -np.asarray(qualities, dtype=float) / 10), MIN_ERROR, MAX_ERROR)


def base_log_likelihoods(bases, errors):
    """
    Args:
        bases (numpy.ndarray): (reads x positions) base codes
        errors (numpy.ndarray): (reads x positions) error probabilities

    Returns:
        numpy.ndarray: (positions x 4) log likelihood of each base given all reads. Bases outside ACGT contribute nothing
    """
    agree = np.log1p(-errors)
    disagree = np.log(errors / 3)
    informative = bases >= 0
    likelihoods = np.empty((bases.shape[1], len(DNA_BASES)))
    for code in range(len(DNA_BASES)):
        observed = np.where(bases == code, agree, np.where(informative, disagree, 0.0))
        likelihoods[:, code] = observed.sum(axis=0)
    return likelihoods


def _log_sum_exp(values, axis=-1):
    peak = values.max(axis=axis, keepdims=True)
    return (peak + np.log(np.exp(values - peak).sum(axis=axis, keepdims=True))).squeeze(axis)


def call_bases(likelihoods):
    """
    Select the maximum posterior base per position (uniform prior) and its recalibrated quality

    Ties resolve to the lexicographically smallest base

    Returns:
        tuple of numpy.ndarray: base codes and phred qualities per position
    """
    best = likelihoods.max(axis=1, keepdims=True)
    winners = np.argmax(likelihoods >= best - TIE_TOLERANCE, axis=1)
    losers = likelihoods.copy()
    losers[np.arange(len(winners)), winners] = -np.inf
    log_error = _log_sum_exp(losers, axis=1) - _log_sum_exp(likelihoods, axis=1)
    qualities = np.clip(np.rint(-10 * log_error / _LOG10), 0, MAX_QUALITY).astype(int)
    return winners, qualities


def compute_consensus(reads, length, clamp=False):
    """
    Args:
        reads (list of SequencingRead): the cluster members
        length (int): the number of leading positions covered by every read
        clamp (bool): clamp out-of-range qualities instead of raising

    Returns:
        tuple: the consensus sequence, the qualities and the discordant read counts per position

    Raises:
        ConsensusError: a quality of any read, including those of the tail, is out of range and clamp is False
    """
    if not clamp:
        for read in reads:
            check_qualities(np.asarray(read.qualities, dtype=int))
    bases = encode_bases([read.sequence for read in reads], length)
    qualities = np.array([read.qualities[:length] for read in reads], dtype=int)
    if clamp:
        qualities = np.clip(qualities, 0, MAX_QUALITY)

    winners, consensus_qualities = call_bases(base_log_likelihoods(bases, error_probabilities(qualities)))
    # positions where no read has an ACGT base
    uninformative = ~(bases >= 0).any(axis=0)
    winners = np.where(uninformative, -1, winners)
    consensus_qualities = np.where(uninformative, 0, consensus_qualities)
    discordant = (bases != winners[np.newaxis, :]).sum(axis=0)

    sequence = ''.join([DNA_BASES[code] if code >= 0 else UNKNOWN_BASE for code in winners])
    return sequence, tuple(consensus_qualities.tolist()), tuple(discordant.tolist())


def tail_base(bases):
    """
    most common base of a low-support position, ties going to the smaller base symbol

    Example:
        >>> tail_base(['A', 'C', 'C'])
        'C'
        >>> tail_base(['T', 'G'])
        'G'
    """
    counts = {}
    for base in bases:
        counts[base] = counts.get(base, 0) + 1
    return min(counts.items(), key=lambda x: (-x[1], x[0]))[0]


def compute_tail(reads, length):
    """
    majority base and coverage for the positions beyond the shortest read
    """
    longest = max([len(read.sequence) for read in reads])
    sequence = []
    coverage = []
    for pos in range(length, longest):
        bases = [read.sequence[pos] for read in reads if len(read.sequence) > pos]
        sequence.append(tail_base(bases))
        coverage.append(len(bases))
    return ''.join(sequence), tuple(coverage)


def call_consensus(cluster):
    """
    Compute the consensus read for a frozen duplicate cluster. Invalid quality values are clamped into range and the
    result is flagged as degraded

    Args:
        cluster (DuplicateCluster): the cluster to collapse

    Returns:
        ConsensusRead: the consensus of the cluster
    """
    length = min([len(read.sequence) for read in cluster.reads])
    confidence = cluster.confidence
    try:
        sequence, qualities, discordant = compute_consensus(cluster.reads, length)
    except ConsensusError:
        sequence, qualities, discordant = compute_consensus(cluster.reads, length, clamp=True)
        confidence = CONFIDENCE.DEGRADED
    tail_sequence, tail_coverage = compute_tail(cluster.reads, length)
    return ConsensusRead(
        cluster.key,
        cluster.ordinal,
        sequence,
        qualities,
        len(cluster.reads),
        discordant,
        confidence,
        tail_sequence,
        tail_coverage,
        tuple(cluster.read_ids()),
    )
