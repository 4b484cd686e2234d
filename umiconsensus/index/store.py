import heapq
import itertools
import logging
import os
import shutil
import tempfile

from shortuuid import uuid

from .constants import DEFAULTS
from ..error import IngestError, StorageError
from ..read import GroupKey, SequencingRead
from ..util import DEVNULL


class SortedRunStore:
    """
    Ordered store of keyed entries larger than memory. Entries are buffered in memory and spilled to sorted run files
    in a temporary directory once the buffer holds more than buffer_size entries. Iterating merges the runs with
    whatever is still buffered so that spilling never changes the output

    Subclasses define how a single entry is written to and parsed from one line of a run file

    Must be used as a context manager, the temporary directory only exists within the with block
    """

    def __init__(
        self,
        buffer_size=DEFAULTS.buffer_size,
        temp_dir=DEFAULTS.temp_dir,
        merge_fan_in=DEFAULTS.merge_fan_in,
        log=DEVNULL,
    ):
        """
        Args:
            buffer_size (int): the number of entries to hold in memory before spilling to disk
            temp_dir (str): parent directory for the spilled runs (the system default when None)
            merge_fan_in (int): number of runs of the same size merged together to bound the number of open files
            log (Log): function to print logging messages to
        """
        if buffer_size < 1:
            raise ValueError('buffer_size must be a positive integer', buffer_size)
        if merge_fan_in < 2:
            raise ValueError('merge_fan_in must be at least 2', merge_fan_in)
        self.buffer_size = buffer_size
        self.temp_dir = temp_dir
        self.merge_fan_in = merge_fan_in
        self.log = log
        self.directory = None
        self.inserted = 0
        self.groups = 0
        self.spills = 0
        self._buffer = []
        self._runs = []  # list of (level, path)
        self._serial = itertools.count()
        self._iterated = False
        self._closed = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *pos):
        self.close()

    def open(self):
        try:
            self.directory = tempfile.mkdtemp(prefix='umiconsensus-{}-'.format(uuid()[:8]), dir=self.temp_dir)
        except OSError as err:
            raise StorageError('could not create the temporary index directory', self.temp_dir, str(err))
        self.log('created temporary index directory:', self.directory, level=logging.DEBUG)

    def close(self):
        """
        remove any spilled runs and the temporary directory
        """
        self._closed = True
        self._buffer = []
        self._runs = []
        if self.directory is not None:
            shutil.rmtree(self.directory, ignore_errors=True)
            self.directory = None

    def _format_entry(self, key, serial, value):
        raise NotImplementedError('abstract method')

    def _parse_entry(self, line):
        raise NotImplementedError('abstract method')

    def insert(self, key, value):
        """
        Args:
            key: the sort key the value is grouped by
            value: the value to store

        Raises:
            StorageError: the store is closed, already being iterated, or a spill failed
        """
        if self._closed or self.directory is None:
            raise StorageError('cannot insert into a closed index', str(key))
        if self._iterated:
            raise StorageError('cannot insert into an index which is already being iterated', str(key))
        self._buffer.append((key, next(self._serial), value))
        self.inserted += 1
        if len(self._buffer) > self.buffer_size:
            self.spill()

    def __len__(self):
        return self.inserted

    def _run_path(self):
        return os.path.join(self.directory, 'run-{}.tab'.format(uuid()))

    def _write_run(self, entries, level):
        path = self._run_path()
        try:
            with open(path, 'w') as fh:
                for key, serial, value in entries:
                    fh.write(self._format_entry(key, serial, value))
        except OSError as err:
            raise StorageError('failed writing spilled entries', path, str(err))
        self._runs.append((level, path))
        return path

    def _read_run(self, path):
        try:
            with open(path, 'r') as fh:
                for line_index, line in enumerate(fh):
                    try:
                        entry = self._parse_entry(line)
                    except (ValueError, IngestError) as err:
                        raise StorageError('corrupt spilled entry', path, line_index + 1, str(err))
                    yield entry
        except OSError as err:
            raise StorageError('failed reading spilled entries', path, str(err))

    def spill(self):
        """
        sort the in-memory buffer and write it to a new run file
        """
        if not self._buffer:
            return
        self._buffer.sort(key=lambda x: (x[0], x[1]))
        self._write_run(self._buffer, 0)
        self.spills += 1
        self.log('spilled', len(self._buffer), 'entries to disk', level=logging.DEBUG)
        self._buffer = []
        self._compact(0)

    def _compact(self, level):
        while True:
            same_level = [r for r in self._runs if r[0] == level]
            if len(same_level) < self.merge_fan_in:
                return
            self._runs = [r for r in self._runs if r[0] != level]
            merged = heapq.merge(*[self._read_run(path) for _, path in same_level], key=lambda x: (x[0], x[1]))
            self._write_run(merged, level + 1)
            for _, path in same_level:
                try:
                    os.remove(path)
                except OSError as err:
                    raise StorageError('failed removing merged run', path, str(err))
            level += 1

    def _merged_entries(self):
        self._buffer.sort(key=lambda x: (x[0], x[1]))
        streams = [self._read_run(path) for _, path in self._runs]
        streams.append(iter(self._buffer))
        return heapq.merge(*streams, key=lambda x: (x[0], x[1]))

    def iterate(self):
        """
        Lazily yield each group of entries sharing a key in strictly increasing key order. Each group is complete
        before it is yielded and the values within it are in insertion order. Can only be called once

        Yields:
            tuple of key and list: the key and all values inserted with it

        Raises:
            StorageError: the store was already iterated or a run could not be read
        """
        if self._iterated:
            raise StorageError('the group index can only be iterated once')
        if self._closed:
            raise StorageError('cannot iterate a closed index')
        self._iterated = True
        return self._iterate()

    def _iterate(self):
        previous = None
        for key, entries in itertools.groupby(self._merged_entries(), key=lambda x: x[0]):
            if previous is not None and not previous < key:
                raise StorageError('group keys out of order', str(previous), str(key))
            previous = key
            self.groups += 1
            yield key, [value for _, _, value in entries]


class GroupIndex(SortedRunStore):
    """
    Ordered store of reads by their duplicate group

    Example:
        >>> with GroupIndex(buffer_size=1000) as index:
        ...     for read in reads:
        ...         index.insert(read.key(), read)
        ...     for key, group in index.iterate():
        ...         pass
    """

    def _format_entry(self, key, serial, read):
        return '\t'.join([
            key.contig,
            str(key.position),
            key.strand,
            key.barcode,
            str(serial),
            read.identifier,
            read.mate,
            read.sequence,
            ','.join([str(q) for q in read.qualities]),
        ]) + '\n'

    def _parse_entry(self, line):
        contig, position, strand, barcode, serial, identifier, mate, sequence, qualities = line.rstrip('\n').split('\t')
        key = GroupKey(contig, int(position), strand, barcode)
        qualities = [int(q) for q in qualities.split(',')] if qualities else []
        read = SequencingRead(identifier, sequence, qualities, contig, key.position, strand, barcode, mate)
        return key, int(serial), read
