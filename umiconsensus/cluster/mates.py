from collections import namedtuple

from ..constants import MATE_ROLE
from ..index.constants import DEFAULTS as INDEX_DEFAULTS
from ..index.store import SortedRunStore
from ..read import GroupKey
from ..util import DEVNULL

_BOTH_MATES = {MATE_ROLE.FIRST, MATE_ROLE.SECOND}


class MateRecord(namedtuple('MateRecord', ['key', 'identifier', 'mate'])):
    """
    The parts of a paired read needed to decide if its mate was ingested

    Attributes:
        key (GroupKey): the duplicate group of the read
        identifier (str): the read name, shared by both mates
        mate (MATE_ROLE): first or second
    """
    __slots__ = ()

    def template(self):
        return (self.key.barcode, self.identifier)


class MateRecordStore(SortedRunStore):
    """
    Spillable store of mate records ordered either by template (barcode and read name) or by duplicate group
    """

    def __init__(self, by_template, **kwargs):
        SortedRunStore.__init__(self, **kwargs)
        self.by_template = by_template

    def sort_key(self, record):
        if self.by_template:
            return record.template()
        return (record.key, record.identifier, record.mate)

    def add(self, record):
        self.insert(self.sort_key(record), record)

    def _format_entry(self, key, serial, record):
        return '\t'.join([
            record.key.contig,
            str(record.key.position),
            record.key.strand,
            record.key.barcode,
            str(serial),
            record.identifier,
            record.mate,
        ]) + '\n'

    def _parse_entry(self, line):
        contig, position, strand, barcode, serial, identifier, mate = line.rstrip('\n').split('\t')
        record = MateRecord(GroupKey(contig, int(position), strand, barcode), identifier, mate)
        return self.sort_key(record), int(serial), record


class MateTable:
    """
    Finds the paired reads whose mate is missing from the input without holding every template in memory

    Paired reads are recorded during ingestion in a store ordered by template. Once ingestion is complete a single
    pass over the templates collects the reads of incomplete templates into a second store ordered by duplicate
    group, so they can be matched against the ordered groups of the GroupIndex

    Example:
        >>> with MateTable() as mates:
        ...     for read in reads:
        ...         mates.add(read)
        ...     unmatched = mates.unmatched_mates()
    """

    def __init__(
        self,
        buffer_size=INDEX_DEFAULTS.buffer_size,
        temp_dir=INDEX_DEFAULTS.temp_dir,
        merge_fan_in=INDEX_DEFAULTS.merge_fan_in,
        log=DEVNULL,
    ):
        store_args = dict(buffer_size=buffer_size, temp_dir=temp_dir, merge_fan_in=merge_fan_in, log=log)
        self._templates = MateRecordStore(by_template=True, **store_args)
        self._unmatched = MateRecordStore(by_template=False, **store_args)

    def __enter__(self):
        self._templates.open()
        try:
            self._unmatched.open()
        except Exception:
            self._templates.close()
            raise
        return self

    def __exit__(self, *pos):
        self._templates.close()
        self._unmatched.close()

    def add(self, read):
        """
        record a read. Unpaired reads are ignored
        """
        if read.is_paired():
            self._templates.add(MateRecord(read.key(), read.identifier, read.mate))

    def __len__(self):
        return self._templates.inserted

    def unmatched_mates(self):
        """
        Can only be called once, after every read has been added

        Returns:
            iterator of MateRecord: the paired reads whose mate was not added, in increasing
            (group key, read name, role) order
        """
        for _, records in self._templates.iterate():
            if {record.mate for record in records} != _BOTH_MATES:
                for record in records:
                    self._unmatched.add(record)
        return (record for _, records in self._unmatched.iterate() for record in records)
