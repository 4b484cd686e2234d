import logging
import os

import pytest

from umiconsensus.util import (
    DEVNULL,
    Log,
    NullableType,
    bash_expands,
    filepath,
)


class TestNullableType:
    def test_none(self):
        assert NullableType(int)('None') is None

    def test_value(self):
        assert NullableType(int)('4') == 4


class TestBashExpands:
    def test_brace_and_glob(self, tmp_path):
        for name in ['a.tab', 'b.tab', 'c.bam']:
            (tmp_path / name).write_text('')
        result = bash_expands(str(tmp_path / '{a,b}.tab'), str(tmp_path / '*.bam'))
        assert [os.path.basename(f) for f in result] == ['a.tab', 'b.tab', 'c.bam']

    def test_no_match(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            bash_expands(str(tmp_path / '*.tab'))

    def test_filepath_multiple(self, tmp_path):
        for name in ['a.tab', 'b.tab']:
            (tmp_path / name).write_text('')
        with pytest.raises(TypeError):
            filepath(str(tmp_path / '*.tab'))


class TestLog:
    def test_devnull_is_silent(self, caplog):
        with caplog.at_level(logging.DEBUG):
            DEVNULL('hidden', level=logging.CRITICAL)
        assert caplog.records == []

    def test_indent(self, caplog):
        with caplog.at_level(logging.DEBUG):
            Log().indent()('message')
        assert caplog.records[0].getMessage().endswith('  message')

    def test_level(self, caplog):
        with caplog.at_level(logging.INFO):
            Log()('debug message', level=logging.DEBUG)
            Log()('info message')
        assert [r.getMessage().strip() for r in caplog.records] == ['info message']
