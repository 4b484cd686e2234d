from collections import namedtuple
import re

from .constants import MATE_ROLE, STRAND
from .error import IngestError

_TEXT_FIELD = re.compile(r'^[^\t\n\r]+$')
_SEQUENCE = re.compile(r'^[A-Z]*$')


class GroupKey(namedtuple('GroupKey', ['contig', 'position', 'strand', 'barcode'])):
    """
    identifies one duplicate group. Compares by contig, then position, then strand and finally barcode. Text fields
    compare lexicographically

    Example:
        >>> GroupKey('1', 100, '+', 'AA') < GroupKey('1', 100, '+', 'AC')
        True
    """
    __slots__ = ()

    def __str__(self):
        return '{}:{}:{}:{}'.format(self.contig, self.position, self.strand, self.barcode)


class SequencingRead(
    namedtuple('SequencingRead', ['identifier', 'sequence', 'qualities', 'contig', 'position', 'strand', 'barcode', 'mate'])
):
    """
    An aligned, barcode tagged read. Immutable once created

    Attributes:
        identifier (str): the read (query) name
        sequence (str): the base sequence, upper case
        qualities (tuple of int): the phred quality of each base
        contig (str): the reference name the read is aligned to
        position (int): the 0-based start of the alignment
        strand (STRAND): the strand the read is aligned to
        barcode (str): the molecular barcode
        mate (MATE_ROLE): the role of the read within its template
    """
    __slots__ = ()

    def __new__(cls, identifier, sequence, qualities, contig, position, strand, barcode, mate=MATE_ROLE.UNPAIRED):
        for name, value in [('identifier', identifier), ('contig', contig), ('barcode', barcode)]:
            if not isinstance(value, str) or not _TEXT_FIELD.match(value):
                raise IngestError('invalid {}: must be a non-empty string without tabs or newlines'.format(name), identifier, value)
        sequence = str(sequence).upper()
        if not _SEQUENCE.match(sequence):
            raise IngestError('invalid characters in the read sequence', identifier, sequence)
        try:
            qualities = tuple([int(q) for q in qualities])
            position = int(position)
        except (TypeError, ValueError) as err:
            raise IngestError('non-integer position or quality value', identifier, str(err))
        if len(sequence) != len(qualities):
            raise IngestError('sequence and qualities must be the same length', identifier, len(sequence), len(qualities))
        if not sequence:
            raise IngestError('empty read sequence', identifier)
        if position < 0:
            raise IngestError('position must be a non-negative integer', identifier, position)
        try:
            STRAND.enforce(strand)
            MATE_ROLE.enforce(mate)
        except KeyError as err:
            raise IngestError('invalid strand or mate role', identifier, str(err))
        return super(SequencingRead, cls).__new__(cls, identifier, sequence, qualities, contig, position, strand, barcode, mate)

    def key(self):
        return GroupKey(self.contig, self.position, self.strand, self.barcode)

    def mate_key(self):
        """
        reads of the same template share their barcode and read name
        """
        return (self.barcode, self.identifier)

    def is_paired(self):
        return self.mate != MATE_ROLE.UNPAIRED

    @classmethod
    def from_aligned_segment(cls, segment, barcode_tag='RX'):
        """
        Create a read from a pysam.AlignedSegment

        Args:
            segment (pysam.AlignedSegment): the alignment record
            barcode_tag (str): the tag holding the molecular barcode

        Raises:
            IngestError: the record is unmapped, is missing the barcode tag or has no base qualities
        """
        if segment.is_unmapped:
            raise IngestError('cannot collapse unmapped reads', segment.query_name)
        if not segment.has_tag(barcode_tag):
            raise IngestError('missing the barcode tag', segment.query_name, barcode_tag)
        if segment.query_qualities is None or segment.query_sequence is None:
            raise IngestError('missing the sequence or base qualities', segment.query_name)
        if segment.is_paired:
            mate = MATE_ROLE.FIRST if segment.is_read1 else MATE_ROLE.SECOND
        else:
            mate = MATE_ROLE.UNPAIRED
        return cls(
            segment.query_name,
            segment.query_sequence,
            segment.query_qualities,
            segment.reference_name,
            segment.reference_start,
            STRAND.NEG if segment.is_reverse else STRAND.POS,
            str(segment.get_tag(barcode_tag)),
            mate,
        )

