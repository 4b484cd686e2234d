import argparse
import configparser
import logging

from . import __version__
from .cluster.constants import DEFAULTS as CLUSTER_DEFAULTS
from .constants import non_negative_integer, positive_integer
from .index.constants import DEFAULTS as INDEX_DEFAULTS, fan_in
from .io import DEFAULTS as IO_DEFAULTS
from .schedule.constants import DEFAULTS as SCHEDULE_DEFAULTS
from .tabfile import cast_boolean
from .util import LOG, NullableType, filepath

CONFIG_SECTION = 'consensus'
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
DEFAULTS = [INDEX_DEFAULTS, CLUSTER_DEFAULTS, SCHEDULE_DEFAULTS, IO_DEFAULTS]
""":class:`list` of :class:`ConsensusNamespace`: the namespaces holding the settings configurable by the user"""


class CustomHelpFormatter(argparse.ArgumentDefaultsHelpFormatter):
    """
    subclass the default help formatter to stop default printing for required arguments
    """

    def _format_args(self, action, default_metavar):
        if action.metavar is None:
            action.metavar = get_metavar(action.type)
        return super(CustomHelpFormatter, self)._format_args(action, default_metavar)

    def _get_help_string(self, action):
        if action.required:
            return action.help
        return super(CustomHelpFormatter, self)._get_help_string(action)

    def add_arguments(self, actions):
        # sort the arguments alphanumerically so they print in the help that way
        actions = sorted(actions, key=lambda x: getattr(x, 'option_strings'))
        super(CustomHelpFormatter, self).add_arguments(actions)


def get_metavar(arg_type):
    """
    For a given argument type, returns the string to be used for the metavar argument in add_argument

    Example:
        >>> get_metavar(bool)
        '{True,False}'
    """
    if isinstance(arg_type, NullableType):
        arg_type = arg_type.callback_func
    if arg_type in [bool, cast_boolean]:
        return '{True,False}'
    elif arg_type == float:
        return 'FLOAT'
    elif arg_type in [int, positive_integer, non_negative_integer, fan_in]:
        return 'INT'
    elif arg_type == filepath:
        return 'FILEPATH'
    elif hasattr(arg_type, 'values'):
        return '{{{}}}'.format(','.join(sorted(arg_type.values())))
    return None


def find_setting(name):
    """
    Returns:
        ConsensusNamespace: the defaults namespace which defines the given setting

    Raises:
        KeyError: the setting is not defined by any namespace
    """
    for nspace in DEFAULTS:
        if name in nspace:
            return nspace
    raise KeyError('invalid setting', name)


def setting_type(name):
    nspace = find_setting(name)
    cast_type = nspace.type(name)
    if nspace.is_nullable(name):
        return NullableType(cast_type)
    return cast_type


def augment_parser(arguments, parser, required=None):
    """
    Adds the given arguments to the parser using the defaults, types and definitions from the settings namespaces

    Args:
        arguments (list of str): names of the arguments to add
        parser (argparse.ArgumentParser): the parser or argument group to add them to
        required (bool): mark the arguments as required (or not). Defaults to required when there is no default value
    """
    for arg in arguments:
        if arg == 'help':
            parser.add_argument('-h', '--help', action='help', help='show this help message and exit')
        elif arg == 'version':
            parser.add_argument(
                '-v', '--version', action='version', version='%(prog)s version ' + __version__,
                help='Outputs the version number')
        elif arg == 'log':
            parser.add_argument('--log', help='redirect stdout to a log file', default=None, metavar='FILEPATH')
        elif arg == 'log_level':
            parser.add_argument('--log_level', help='level of logging to output', choices=LOG_LEVELS, default='INFO')
        elif arg == 'config':
            parser.add_argument(
                '--config', type=filepath, metavar='FILEPATH', default=None,
                help='path to an INI file with a [{}] section holding any of the optional settings'.format(CONFIG_SECTION))
        elif arg == 'inputs':
            parser.add_argument(
                '-n', '--inputs', nargs='+', help='path to the input files. Glob and brace expansions are allowed',
                required=True if required is None else required, metavar='FILEPATH')
        elif arg == 'output':
            parser.add_argument(
                '-o', '--output', help='path to the output file', required=True if required is None else required,
                metavar='FILEPATH')
        else:
            nspace = find_setting(arg)
            # environment values are cast by the parser so that invalid values are reported as argument errors
            env = nspace.get_env_string(arg)
            parser.add_argument(
                '--{}'.format(arg),
                default=nspace[arg] if env is None else env,
                type=setting_type(arg),
                help=nspace.define(arg),
                required=False if required is None else required,
            )


def read_config_file(filename):
    """
    read the optional settings from the [consensus] section of an INI file

    Args:
        filename (str): path to the configuration file

    Returns:
        dict: setting names mapped to their cast values

    Raises:
        KeyError: the section is missing or holds an unknown setting
        TypeError: a value cannot be cast to the type of its setting
    """
    parser = configparser.ConfigParser(interpolation=None)
    with open(filename, 'r') as fh:
        parser.read_file(fh)
    if not parser.has_section(CONFIG_SECTION):
        raise KeyError('the configuration file is missing the section', CONFIG_SECTION, filename)

    settings = {}
    for attr, value in parser.items(CONFIG_SECTION):
        cast_type = setting_type(attr)
        try:
            settings[attr] = cast_type(value)
        except (ValueError, TypeError, argparse.ArgumentTypeError) as err:
            raise TypeError('invalid value for the setting', attr, value, str(err))
    LOG('read', len(settings), 'settings from', filename, level=logging.DEBUG)
    return settings
