"""
module responsible for small utility functions and constants used throughout the umiconsensus package
"""
import argparse
import os

from .tabfile import cast_boolean


PROGNAME = 'umiconsensus'
EXIT_OK = 0
EXIT_ERROR = 1


class ConsensusNamespace:
    """
    Namespace of named values. Used both for the controlled vocabularies and for the typed default settings of each
    component, where every setting carries a definition (shown in the help menu) and the type used to cast it

    Example:
        >>> nspace = ConsensusNamespace(thing=1, otherthing=2)
        >>> nspace.thing
        1
        >>> 2 in nspace.values()
        True
    """
    ENV_PREFIX = PROGNAME.upper()

    def __init__(self, __name__=None, **kwargs):
        object.__setattr__(self, '_defns', {})
        object.__setattr__(self, '_types', {})
        object.__setattr__(self, '_members', {})
        object.__setattr__(self, '_nullable', set())
        if __name__:  # for building auto documentation
            object.__setattr__(self, '__name__', __name__)

        for attr, value in kwargs.items():
            self[attr] = value
            self._set_type(attr, type(value))

    def __repr__(self):
        return '{}({})'.format(self.__class__.__name__, ', '.join(sorted(['{}={}'.format(k, repr(v)) for k, v in self.items()])))

    def get_env_name(self, attr):
        """
        Example:
            >>> ConsensusNamespace(a=1).get_env_name('a')
            'UMICONSENSUS_A'
        """
        return '{}_{}'.format(self.ENV_PREFIX, attr).upper()

    def get_env_string(self, attr):
        """
        Returns:
            str: the uncast environment value overriding the given attribute or None when there is none
        """
        if not self.is_env_overwritable(attr):
            return None
        env = os.environ.get(self.get_env_name(attr))
        return None if env is None else env.strip()

    def get_env_var(self, attr):
        """
        read and cast the environment variable equivalent of a given attribute

        Raises:
            KeyError: the environment variable is not set
        """
        env = os.environ[self.get_env_name(attr)].strip()
        if attr in self._nullable and env.lower() == 'none':
            return None
        return self._types.get(attr, str)(env)

    def is_env_overwritable(self, attr):
        return False

    def is_nullable(self, attr):
        return attr in self._nullable

    def __getattribute__(self, attr):
        try:
            return object.__getattribute__(self, attr)
        except AttributeError as err:
            variables = object.__getattribute__(self, '_members')
            if attr not in variables:
                raise err
            if self.is_env_overwritable(attr):
                try:
                    return self.get_env_var(attr)
                except (KeyError, ValueError, TypeError, argparse.ArgumentTypeError):
                    pass  # unset, or invalid and reported by the argument parser
            return variables[attr]

    def items(self):
        return [(k, self[k]) for k in self.keys()]

    def __getitem__(self, key):
        return getattr(self, key)

    def __setitem__(self, key, val):
        self.__setattr__(key, val)

    def __setattr__(self, attr, val):
        if attr.startswith('_'):
            raise ValueError('cannot set private', attr)
        members = object.__getattribute__(self, '_members')
        if attr in members:
            raise AttributeError('Cannot respecify existing attribute', attr, members[attr])
        members[attr] = val

    def __contains__(self, attr):
        return attr in self._members

    def keys(self):
        return list(self._members)

    def values(self):
        return [self[k] for k in self._members]

    def enforce(self, value):
        """
        checks that the current namespace has a given value

        Returns:
            the input value

        Raises:
            KeyError: the value did not exist
        """
        if value not in self.values():
            raise KeyError('value {0} is not a valid member of '.format(repr(value)), self.values())
        return value

    def __iter__(self):
        return iter(self.keys())

    def _set_type(self, attr, cast_type):
        self._types[attr] = cast_boolean if cast_type == bool else cast_type

    def type(self, attr):
        """
        Example:
            >>> ConsensusNamespace(thing=1).type('thing')
            <class 'int'>
        """
        return self._types[attr]

    def define(self, attr, default=None):
        return self._defns.get(attr, default)

    def add(self, attr, value, defn=None, cast_type=None, nullable=False):
        """
        Add a setting to the name space

        Args:
            attr (str): name of the setting
            value: the default value
            defn (str): the definition, used in generating the help menu
            cast_type (callable): the function used to cast values given on the command line, in the environment or
                in the configuration file. Defaults to the type of value
            nullable (bool): True if this setting can be None

        Example:
            >>> nspace = ConsensusNamespace()
            >>> nspace.add('thing', value=1, cast_type=int, defn='I am a thing')
        """
        self[attr] = value
        self._set_type(attr, cast_type or type(value))
        if defn:
            self._defns[attr] = defn
        if nullable:
            self._nullable.add(attr)

    def __call__(self, value):
        try:
            return self.enforce(value)
        except KeyError:
            raise TypeError('Invalid value {} for {}. Must be a valid member: {}'.format(
                repr(value), self.__class__.__name__, self.values()))


def positive_integer(num):
    """
    cast input to an integer greater than zero

    Raises:
        argparse.ArgumentTypeError: if the input cannot be cast or is not positive
    """
    try:
        num = int(num)
    except ValueError:
        raise argparse.ArgumentTypeError('Must be an integer greater than 0')
    if num < 1:
        raise argparse.ArgumentTypeError('Must be an integer greater than 0')
    return num


def non_negative_integer(num):
    try:
        num = int(num)
    except ValueError:
        raise argparse.ArgumentTypeError('Must be an integer greater than or equal to 0')
    if num < 0:
        raise argparse.ArgumentTypeError('Must be an integer greater than or equal to 0')
    return num


DNA_BASES = 'ACGT'
""":class:`str`: the bases a consensus can be called as, in tie-breaking order"""

UNKNOWN_BASE = 'N'

MAX_QUALITY = 93
""":class:`int`: highest phred score representable in a phred+33 quality string"""

QUALITY_OFFSET = 33

STRAND = ConsensusNamespace(POS='+', NEG='-', __name__='umiconsensus.constants.STRAND')
"""ConsensusNamespace: holds controlled vocabulary for allowed strand values

- ``POS``: the forward/positive strand
- ``NEG``: the reverse/negative strand
"""

MATE_ROLE = ConsensusNamespace(
    FIRST='first', SECOND='second', UNPAIRED='unpaired', __name__='umiconsensus.constants.MATE_ROLE'
)
"""ConsensusNamespace: the role of a read within its sequenced template

- ``FIRST``: first read of a pair
- ``SECOND``: second read of a pair
- ``UNPAIRED``: single-end read
"""

CONFIDENCE = ConsensusNamespace(
    FULL='full', DEGRADED='degraded', SINGLETON='singleton', __name__='umiconsensus.constants.CONFIDENCE'
)
"""ConsensusNamespace: confidence flag attached to each consensus read

- ``FULL``: called from two or more reads without errors
- ``DEGRADED``: unmatched mate, or called after recovering from invalid quality values
- ``SINGLETON``: the cluster held a single read
"""

FORMAT = ConsensusNamespace(TAB='tab', BAM='bam', SAM='sam', FASTQ='fastq', __name__='umiconsensus.constants.FORMAT')
"""ConsensusNamespace: supported record file formats"""

INPUT_FORMAT = ConsensusNamespace(TAB=FORMAT.TAB, BAM=FORMAT.BAM, SAM=FORMAT.SAM, __name__='umiconsensus.constants.INPUT_FORMAT')
""":class:`ConsensusNamespace`: formats reads can be loaded from"""

OUTPUT_FORMAT = ConsensusNamespace(TAB=FORMAT.TAB, FASTQ=FORMAT.FASTQ, __name__='umiconsensus.constants.OUTPUT_FORMAT')
""":class:`ConsensusNamespace`: formats consensus reads can be written to"""

COLUMNS = ConsensusNamespace(
    read_id='read_id',
    contig='contig',
    position='position',
    strand='strand',
    barcode='barcode',
    mate='mate',
    sequence='sequence',
    qualities='qualities',
    name='name',
    ordinal='ordinal',
    consensus_sequence='consensus_sequence',
    consensus_quality='consensus_quality',
    support='support',
    discordant='discordant',
    confidence='confidence',
    tail_sequence='tail_sequence',
    tail_coverage='tail_coverage',
    __name__='umiconsensus.constants.COLUMNS',
)
"""ConsensusNamespace: column names for the tab-delimited read input and consensus output files"""

READ_INPUT_COLUMNS = [
    COLUMNS.read_id,
    COLUMNS.contig,
    COLUMNS.position,
    COLUMNS.strand,
    COLUMNS.barcode,
    COLUMNS.mate,
    COLUMNS.sequence,
    COLUMNS.qualities,
]

CONSENSUS_OUTPUT_COLUMNS = [
    COLUMNS.name,
    COLUMNS.contig,
    COLUMNS.position,
    COLUMNS.strand,
    COLUMNS.barcode,
    COLUMNS.ordinal,
    COLUMNS.consensus_sequence,
    COLUMNS.consensus_quality,
    COLUMNS.support,
    COLUMNS.discordant,
    COLUMNS.confidence,
    COLUMNS.tail_sequence,
    COLUMNS.tail_coverage,
]
