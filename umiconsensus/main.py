#!python
import argparse
from concurrent import futures
import configparser
import logging
import platform
import sys
import time

from . import __version__
from . import config as _config
from .cluster import ClusterBuilder, MateTable
from .cluster.constants import DEFAULTS as CLUSTER_DEFAULTS
from .consensus import call_consensus
from .constants import EXIT_ERROR, EXIT_OK, PROGNAME
from .error import IngestError, UmiConsensusError
from .index import GroupIndex
from .index.constants import DEFAULTS as INDEX_DEFAULTS
from .io import DEFAULTS as IO_DEFAULTS, READERS, WRITERS, atomic_output, detect_format
from .schedule import ParallelExecutor
from .schedule.constants import DEFAULTS as SCHEDULE_DEFAULTS
from . import util as _util


def ingest(
    inputs, index, mates,
    input_format=IO_DEFAULTS.input_format,
    barcode_tag=IO_DEFAULTS.barcode_tag,
    skip_invalid_reads=IO_DEFAULTS.skip_invalid_reads,
    log=_util.DEVNULL,
):
    """
    load the reads from all input files into the group index and the mate table

    Args:
        inputs (list of str): paths to the input files
        index (GroupIndex): the open index to insert the reads into
        mates (MateTable): records the paired reads. Mates are not recorded when None
        input_format (str): format of the input files, detected per file from the extension when None
        barcode_tag (str): the tag holding the barcode for alignment input
        skip_invalid_reads (bool): log and skip malformed records instead of raising

    Returns:
        int: the number of skipped records

    Raises:
        IngestError: a record is malformed and skip_invalid_reads is not set
    """
    skipped = []

    def on_error(err):
        if not skip_invalid_reads:
            raise err
        skipped.append(err)
        log('skipping invalid read:', err, level=logging.WARNING)

    for filename in inputs:
        file_format = input_format or detect_format(filename)
        if file_format not in READERS:
            raise IngestError('cannot read reads from this format', filename, file_format)
        log('loading:', filename, '({})'.format(file_format), time_stamp=True)
        for read in READERS[file_format](filename, barcode_tag=barcode_tag, on_error=on_error):
            if mates is not None:
                mates.add(read)
            index.insert(read.key(), read)
    return len(skipped)


def run(
    inputs, output,
    input_format=IO_DEFAULTS.input_format,
    output_format=IO_DEFAULTS.output_format,
    barcode_tag=IO_DEFAULTS.barcode_tag,
    skip_invalid_reads=IO_DEFAULTS.skip_invalid_reads,
    buffer_size=INDEX_DEFAULTS.buffer_size,
    merge_fan_in=INDEX_DEFAULTS.merge_fan_in,
    temp_dir=INDEX_DEFAULTS.temp_dir,
    min_support=CLUSTER_DEFAULTS.min_support,
    pair_mates=CLUSTER_DEFAULTS.pair_mates,
    workers=SCHEDULE_DEFAULTS.workers,
    max_pending=SCHEDULE_DEFAULTS.max_pending,
    drain_timeout=SCHEDULE_DEFAULTS.drain_timeout,
    strict=SCHEDULE_DEFAULTS.strict,
    verbose_read_names=IO_DEFAULTS.verbose_read_names,
    pool_factory=futures.ProcessPoolExecutor,
    log=_util.LOG,
    **kwargs
):
    """
    collapse the reads of the input files into consensus reads and write them to the output file

    Returns:
        int: the number of consensus reads written
    """
    output_format = output_format or detect_format(output)
    if output_format not in WRITERS:
        raise UmiConsensusError('cannot write consensus reads in this format', output, output_format)
    writer = WRITERS[output_format]
    store_args = dict(buffer_size=buffer_size, temp_dir=temp_dir, merge_fan_in=merge_fan_in, log=log.indent())

    with GroupIndex(**store_args) as index, MateTable(**store_args) as mates:
        skipped = ingest(
            inputs, index, mates if pair_mates else None,
            input_format=input_format,
            barcode_tag=barcode_tag,
            skip_invalid_reads=skip_invalid_reads,
            log=log,
        )
        log('loaded', index.inserted, 'reads ({} skipped, {} runs spilled)'.format(skipped, index.spills))

        unmatched_mates = mates.unmatched_mates() if pair_mates else None
        builder = ClusterBuilder(min_support=min_support, log=log.indent())
        executor = ParallelExecutor(
            call_consensus,
            workers=workers,
            max_pending=max_pending,
            drain_timeout=drain_timeout,
            strict=strict,
            pool_factory=pool_factory,
            log=log.indent(),
        )
        log('computing consensus reads with', executor.workers, 'workers', time_stamp=True)
        with atomic_output(output) as temp_output:
            consensus_reads = executor.run(builder.build(index.iterate(), unmatched_mates))
            count = writer(temp_output, consensus_reads, verbose_read_names=verbose_read_names)

        log('wrote', count, 'consensus reads:', output, time_stamp=True)
        with log.indent() as sublog:
            sublog('groups:', index.groups)
            sublog('clusters:', builder.clusters)
            sublog('unmatched mates:', builder.unmatched)
            sublog('dropped clusters:', builder.dropped)
            sublog('skipped clusters:', executor.skipped)
    return count


def build_parser():
    parser = argparse.ArgumentParser(prog=PROGNAME, formatter_class=_config.CustomHelpFormatter, add_help=False)
    required = parser.add_argument_group('required arguments')
    optional = parser.add_argument_group('optional arguments')
    _config.augment_parser(['inputs', 'output'], required)
    _config.augment_parser(['help', 'version', 'config', 'log', 'log_level'], optional)
    _config.augment_parser(
        list(IO_DEFAULTS.keys()) + list(INDEX_DEFAULTS.keys()) + list(CLUSTER_DEFAULTS.keys()) + list(SCHEDULE_DEFAULTS.keys()),
        optional,
    )
    return parser


def parse_arguments(parser, argv):
    """
    parse the command line. Values from the configuration file replace the defaults and are themselves overridden by
    any value given on the command line
    """
    args = parser.parse_args(argv)
    if args.config:
        try:
            settings = _config.read_config_file(args.config)
        except (KeyError, TypeError, configparser.Error) as err:
            parser.error('argument --config: {}'.format(err))
        parser.set_defaults(**settings)
        args = parser.parse_args(argv)

    try:
        args.inputs = _util.bash_expands(*args.inputs)
    except FileNotFoundError:
        parser.error('--inputs file(s) {} do not exist'.format(args.inputs))
    output_format = args.output_format or detect_format(args.output)
    if output_format not in WRITERS:
        parser.error('argument --output_format: cannot write consensus reads as {}'.format(output_format))
    return args


def main(argv=None):
    """
    sets up the parser and checks the validity of command line args then runs the consensus calling

    Args:
        argv (list): List of arguments, defaults to command line arguments

    Returns:
        int: the exit code
    """
    if argv is None:  # need to do at run time or patching will not behave as expected
        argv = sys.argv[1:]
    start_time = int(time.time())

    parser = build_parser()
    args = parse_arguments(parser, argv)

    log_conf = {'format': '{message}', 'style': '{', 'level': args.log_level}

    original_logging_handlers = logging.root.handlers[:]
    for handler in original_logging_handlers:
        logging.root.removeHandler(handler)
    if args.log:  # redirect stdout AND stderr to a log file
        log_conf['filename'] = args.log
    logging.basicConfig(**log_conf)

    try:
        _util.LOG('{}: {}'.format(PROGNAME.upper(), __version__))
        _util.LOG('hostname:', platform.node(), time_stamp=False)
        _util.log_arguments(vars(args))
        run_args = {k: v for k, v in vars(args).items() if k not in {'config', 'log', 'log_level'}}
        try:
            run(**run_args)
        except UmiConsensusError as err:
            _util.LOG('{}: {}'.format(err.__class__.__name__, err), time_stamp=True, level=logging.CRITICAL)
            return EXIT_ERROR
        duration, _ = _util.format_run_time(start_time)
        _util.LOG('run time (hh/mm/ss): {}'.format(duration), time_stamp=True)
        return EXIT_OK
    finally:
        for handler in logging.root.handlers[:]:
            logging.root.removeHandler(handler)
            handler.close()
        for handler in original_logging_handlers:
            logging.root.addHandler(handler)


if __name__ == '__main__':
    sys.exit(main())
