import glob
import gzip
import os

import pytest

from umiconsensus.constants import MATE_ROLE, READ_INPUT_COLUMNS, STRAND
from umiconsensus.read import SequencingRead

long_running_test = pytest.mark.skipif(
    os.environ.get('RUN_FULL') != '1',
    reason='Only running FAST tests subset',
)


def mock_read(
    identifier='r1',
    sequence='ACGT',
    qualities=None,
    contig='1',
    position=100,
    strand=STRAND.POS,
    barcode='AA',
    mate=MATE_ROLE.UNPAIRED,
):
    if qualities is None:
        qualities = [40] * len(sequence)
    return SequencingRead(identifier, sequence, qualities, contig, position, strand, barcode, mate)


def quality_string(qualities):
    return ''.join([chr(q + 33) for q in qualities])


def write_read_file(filename, reads, header=True):
    """
    write reads to the tab-delimited input format, gzip compressed when the name ends with .gz
    """
    with (gzip.open(filename, 'wt') if filename.endswith('.gz') else open(filename, 'w')) as fh:
        if header:
            fh.write('#' + '\t'.join(READ_INPUT_COLUMNS) + '\n')
        for read in reads:
            fh.write('\t'.join([
                read.identifier,
                read.contig,
                str(read.position),
                read.strand,
                read.barcode,
                read.mate,
                read.sequence,
                quality_string(read.qualities),
            ]) + '\n')
    return filename


def read_output_rows(filename):
    """
    Returns:
        list of dict: the rows of a tab-delimited consensus output file
    """
    with (gzip.open(filename, 'rt') if filename.endswith('.gz') else open(filename, 'r')) as fh:
        lines = [line.rstrip('\n') for line in fh.readlines()]
    header = lines[0].lstrip('#').split('\t')
    return [dict(zip(header, line.split('\t'))) for line in lines[1:]]


def glob_exists(*pos):
    return glob.glob(os.path.join(*pos))
