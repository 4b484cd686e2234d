import argparse
import os
import unittest
from unittest.mock import patch

import pytest

from umiconsensus.config import (
    CustomHelpFormatter,
    augment_parser,
    find_setting,
    get_metavar,
    read_config_file,
)
from umiconsensus.constants import INPUT_FORMAT, positive_integer
from umiconsensus.index.constants import DEFAULTS as INDEX_DEFAULTS, fan_in
from umiconsensus.tabfile import cast_boolean
from umiconsensus.util import NullableType


class TestGetMetavar(unittest.TestCase):

    def test_boolean(self):
        self.assertEqual('{True,False}', get_metavar(bool))
        self.assertEqual('{True,False}', get_metavar(cast_boolean))

    def test_integer(self):
        self.assertEqual('INT', get_metavar(positive_integer))
        self.assertEqual('INT', get_metavar(NullableType(int)))

    def test_namespace_choices(self):
        self.assertEqual('{bam,sam,tab}', get_metavar(INPUT_FORMAT))

    def test_unknown(self):
        self.assertIsNone(get_metavar(str))


class TestAugmentParser(unittest.TestCase):

    def test_setting_defaults_and_types(self):
        parser = argparse.ArgumentParser(formatter_class=CustomHelpFormatter)
        augment_parser(['buffer_size', 'strict', 'input_format', 'drain_timeout'], parser)
        args = parser.parse_args(['--buffer_size', '10', '--strict', 'yes', '--drain_timeout', 'none'])
        self.assertEqual(10, args.buffer_size)
        self.assertTrue(args.strict)
        self.assertIsNone(args.input_format)
        self.assertIsNone(args.drain_timeout)

    def test_invalid_value(self):
        parser = argparse.ArgumentParser()
        augment_parser(['buffer_size'], parser)
        with self.assertRaises(SystemExit):
            parser.parse_args(['--buffer_size', '0'])

    def test_invalid_choice(self):
        parser = argparse.ArgumentParser()
        augment_parser(['input_format'], parser)
        with self.assertRaises(SystemExit):
            parser.parse_args(['--input_format', 'fastq'])

    def test_unknown_setting(self):
        with self.assertRaises(KeyError):
            augment_parser(['not_a_setting'], argparse.ArgumentParser())

    def test_help_lists_settings(self):
        parser = argparse.ArgumentParser(formatter_class=CustomHelpFormatter)
        augment_parser(['min_support', 'workers'], parser)
        text = parser.format_help()
        self.assertIn('--min_support INT', text)
        self.assertIn('--workers INT', text)

    def test_find_setting(self):
        self.assertIs(INDEX_DEFAULTS, find_setting('buffer_size'))

    def test_environment_value_cast_by_parser(self):
        with patch.dict(os.environ, {'UMICONSENSUS_MERGE_FAN_IN': '4'}):
            parser = argparse.ArgumentParser()
            augment_parser(['merge_fan_in'], parser)
            self.assertEqual(4, parser.parse_args([]).merge_fan_in)
            self.assertEqual(8, parser.parse_args(['--merge_fan_in', '8']).merge_fan_in)

    def test_invalid_environment_value_is_an_argument_error(self):
        with patch.dict(os.environ, {'UMICONSENSUS_MERGE_FAN_IN': '1'}):
            self.assertEqual(32, INDEX_DEFAULTS.merge_fan_in)
            parser = argparse.ArgumentParser()
            augment_parser(['merge_fan_in'], parser)
            with self.assertRaises(SystemExit) as cm:
                parser.parse_args([])
        self.assertEqual(2, cm.exception.code)


class TestFanIn(unittest.TestCase):

    def test_minimum(self):
        self.assertEqual(2, fan_in('2'))
        with self.assertRaises(argparse.ArgumentTypeError):
            fan_in('1')
        with self.assertRaises(argparse.ArgumentTypeError):
            fan_in('x')

    def test_metavar(self):
        self.assertEqual('INT', get_metavar(fan_in))


class TestReadConfigFile:
    def test_values_are_cast(self, tmp_path):
        filename = tmp_path / 'settings.cfg'
        filename.write_text('[consensus]\nbuffer_size = 5\nstrict = true\ntemp_dir = None\n')
        settings = read_config_file(str(filename))
        assert settings == {'buffer_size': 5, 'strict': True, 'temp_dir': None}

    def test_missing_section(self, tmp_path):
        filename = tmp_path / 'settings.cfg'
        filename.write_text('[other]\nbuffer_size = 5\n')
        with pytest.raises(KeyError):
            read_config_file(str(filename))

    def test_unknown_setting(self, tmp_path):
        filename = tmp_path / 'settings.cfg'
        filename.write_text('[consensus]\nnot_a_setting = 5\n')
        with pytest.raises(KeyError):
            read_config_file(str(filename))

    def test_invalid_value(self, tmp_path):
        filename = tmp_path / 'settings.cfg'
        filename.write_text('[consensus]\nbuffer_size = -1\n')
        with pytest.raises(TypeError):
            read_config_file(str(filename))
