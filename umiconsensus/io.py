"""
Record sources and sinks. Readers and writers are plain functions registered by format name in READERS and WRITERS

A reader is called with the input file path and yields SequencingRead objects. Invalid records are passed to the
on_error callback (raised when no callback is given). A writer is called with the output path and an iterable of
ConsensusRead objects and returns the number of records written
"""
import contextlib
import gzip
import os
import re

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord
import pysam
from shortuuid import uuid

from .constants import COLUMNS, CONSENSUS_OUTPUT_COLUMNS, FORMAT, INPUT_FORMAT, OUTPUT_FORMAT, QUALITY_OFFSET, READ_INPUT_COLUMNS
from .error import IngestError
from .read import SequencingRead
from .tabfile import cast_boolean, read_file, write_header, write_row
from .util import WeakConsensusNamespace


DEFAULTS = WeakConsensusNamespace(__name__='umiconsensus.io.DEFAULTS')
"""
- barcode_tag
- skip_invalid_reads
- input_format
- output_format
- verbose_read_names
"""
DEFAULTS.add('barcode_tag', 'RX', defn='the alignment tag holding the molecular barcode for bam/sam input')
DEFAULTS.add(
    'skip_invalid_reads',
    False,
    cast_type=cast_boolean,
    defn='skip (and log) malformed input records instead of aborting the run',
)
DEFAULTS.add(
    'input_format',
    None,
    cast_type=INPUT_FORMAT,
    nullable=True,
    defn='format of the input files. Detected from the file extension when not given',
)
DEFAULTS.add(
    'output_format',
    None,
    cast_type=OUTPUT_FORMAT,
    nullable=True,
    defn='format of the output file. Detected from the file extension when not given',
)
DEFAULTS.add(
    'verbose_read_names',
    False,
    cast_type=cast_boolean,
    defn='name each consensus read with the identifiers of the reads it was called from',
)

_EXTENSIONS = {
    '.bam': FORMAT.BAM,
    '.sam': FORMAT.SAM,
    '.fastq': FORMAT.FASTQ,
    '.fq': FORMAT.FASTQ,
}
_QUALITY_STRING = re.compile(r'^[!-~]*$')
GZIP_EXTENSION = '.gz'


def is_gzipped(filename):
    return filename.lower().endswith(GZIP_EXTENSION)


def detect_format(filename, default=FORMAT.TAB):
    """
    Example:
        >>> detect_format('reads.bam')
        'bam'
        >>> detect_format('consensus.fastq.gz')
        'fastq'
        >>> detect_format('consensus.txt')
        'tab'
    """
    if is_gzipped(filename):
        filename = filename[:-len(GZIP_EXTENSION)]
    _, ext = os.path.splitext(filename)
    return _EXTENSIONS.get(ext.lower(), default)


def open_text(filename, mode='r'):
    """
    open a text file for reading or writing, gzip (de)compressed when the name ends with .gz
    """
    if is_gzipped(filename):
        return gzip.open(filename, mode + 't')
    return open(filename, mode)


def decode_qualities(quality_string):
    """
    convert a phred+33 quality string to a list of integer qualities

    Example:
        >>> decode_qualities('!+I')
        [0, 10, 40]
    """
    if not _QUALITY_STRING.match(quality_string):
        raise IngestError('invalid phred+33 quality string', quality_string)
    if not quality_string:
        return []
    return list(pysam.qualitystring_to_array(quality_string, offset=QUALITY_OFFSET))


def _raise(error):
    raise error


def read_tab(filename, on_error=None, **kwargs):
    """
    Read the tab-delimited read file format, gzip compressed when the name ends with .gz. Qualities are phred+33 encoded

    Args:
        filename (str): path to the input file
        on_error (callable): called with the IngestError for each malformed line

    Yields:
        SequencingRead: the reads in file order
    """
    on_error = _raise if on_error is None else on_error
    try:
        with open_text(filename, 'r') as fh:
            try:
                header, rows = read_file(
                    fh,
                    strict=False,
                    on_error=lambda err, line: on_error(IngestError('malformed line', filename, line, str(err))),
                    require=READ_INPUT_COLUMNS,
                )
            except KeyError as err:
                raise IngestError('invalid header in the input file', filename, str(err))

            for row in rows:
                try:
                    read = SequencingRead(
                        row[COLUMNS.read_id],
                        row[COLUMNS.sequence],
                        decode_qualities(row[COLUMNS.qualities]),
                        row[COLUMNS.contig],
                        row[COLUMNS.position],
                        row[COLUMNS.strand],
                        row[COLUMNS.barcode],
                        row[COLUMNS.mate],
                    )
                except IngestError as err:
                    on_error(IngestError('invalid read at line {}'.format(row['_index']), filename, str(err)))
                    continue
                yield read
    except (OSError, EOFError) as err:  # includes truncated or corrupt gzip input
        raise IngestError('failed reading the input file', filename, str(err))


def read_alignments(filename, barcode_tag=DEFAULTS.barcode_tag, on_error=None, **kwargs):
    """
    Read a bam or sam file. Unmapped, secondary and supplementary alignments are ignored

    Args:
        filename (str): path to the alignment file
        barcode_tag (str): the tag holding the molecular barcode
        on_error (callable): called with the IngestError for each record which cannot be converted to a read

    Yields:
        SequencingRead: the reads in file order
    """
    on_error = _raise if on_error is None else on_error
    mode = 'rb' if detect_format(filename) == FORMAT.BAM else 'r'
    try:
        fh = pysam.AlignmentFile(filename, mode, check_sq=False)
    except (OSError, ValueError) as err:
        raise IngestError('could not open the alignment file', filename, str(err))
    with fh:
        try:
            for segment in fh.fetch(until_eof=True):
                if segment.is_unmapped or segment.is_secondary or segment.is_supplementary:
                    continue
                try:
                    read = SequencingRead.from_aligned_segment(segment, barcode_tag=barcode_tag)
                except IngestError as err:
                    on_error(err)
                    continue
                yield read
        except OSError as err:
            raise IngestError('failed reading the alignment file', filename, str(err))


def write_tab(filename, consensus_reads, verbose_read_names=False):
    """
    write the consensus reads as a tab-delimited file with the CONSENSUS_OUTPUT_COLUMNS header

    Args:
        filename (str): path to the output file. Compressed with gzip when the name ends with .gz
        consensus_reads (iterable of ConsensusRead): the reads to write
        verbose_read_names (bool): name each consensus read with the identifiers of its member reads

    Returns:
        int: the number of consensus reads written
    """
    count = 0
    with open_text(filename, 'w') as fh:
        write_header(fh, CONSENSUS_OUTPUT_COLUMNS)
        for consensus in consensus_reads:
            write_row(fh, CONSENSUS_OUTPUT_COLUMNS, consensus.flatten(verbose_read_names=verbose_read_names))
            count += 1
    return count


def consensus_to_record(consensus, verbose_read_names=False):
    """
    Returns:
        Bio.SeqRecord.SeqRecord: the consensus read as a fastq record named by its group key
    """
    return SeqRecord(
        Seq(consensus.sequence),
        id=consensus.verbose_name if verbose_read_names else consensus.name,
        description='support={} confidence={}'.format(consensus.support, consensus.confidence),
        letter_annotations={'phred_quality': list(consensus.qualities)},
    )


def write_fastq(filename, consensus_reads, verbose_read_names=False):
    with open_text(filename, 'w') as fh:
        return SeqIO.write(
            (consensus_to_record(c, verbose_read_names=verbose_read_names) for c in consensus_reads), fh, 'fastq')


READERS = {
    FORMAT.TAB: read_tab,
    FORMAT.BAM: read_alignments,
    FORMAT.SAM: read_alignments,
}

WRITERS = {
    FORMAT.TAB: write_tab,
    FORMAT.FASTQ: write_fastq,
}


@contextlib.contextmanager
def atomic_output(filename):
    """
    Yields a temporary path next to the final output file. The temporary file is renamed to the output file once the
    with block exits normally and is removed otherwise, so that a failed run never leaves a partial output. A .gz suffix
    is kept on the temporary path so that writers compress it

    Example:
        >>> with atomic_output('consensus.tab') as temp_output:
        ...     write_tab(temp_output, consensus_reads)
    """
    if is_gzipped(filename):
        temp_filename = '{}.{}.part{}'.format(filename[:-len(GZIP_EXTENSION)], uuid(), GZIP_EXTENSION)
    else:
        temp_filename = '{}.{}.part'.format(filename, uuid())
    try:
        yield temp_filename
    except BaseException:
        if os.path.exists(temp_filename):
            os.remove(temp_filename)
        raise
    os.replace(temp_filename, filename)
