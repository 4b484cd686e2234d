"""
Collapses a frozen duplicate cluster into a single consensus read.

For each position covered by every read of the cluster the log likelihood of each of the bases A, C, G and T is
summed over the reads, using the phred quality of each observed base as its error probability. The base with the
highest posterior (uniform prior) is called and its quality is recalibrated from the posterior probability of the
other bases. Positions beyond the shortest read are reported separately as the low-support tail.
"""
from .caller import ConsensusRead, call_consensus

__all__ = ['ConsensusRead', 'call_consensus']
