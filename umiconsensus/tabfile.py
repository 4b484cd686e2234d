"""
streaming reader/writer for the tab-delimited read and consensus files. It is fairly basic and does not support
quoting text or escaping delimiters

Example:

```
>>> header, rows = read_file(fh, require=['read_id'])
>>> for row in rows:
>>>    print('row number:', row['_index'])
'row number:' 1
```
"""
import re


def cast_boolean(input_value):
    value = str(input_value).lower()
    if value in ['t', 'true', '1', 'y', 'yes', '+']:
        return True
    elif value in ['f', 'false', '0', 'n', 'no', '-']:
        return False
    raise TypeError('casting to boolean failed', input_value)


class FileTransform:
    """
    Checks the header of a file and turns each line into a row dictionary keyed by column name.
    Generally a single FileTransform object is required per file as lines are expected to have the same format
    """
    def __init__(self, header, require=None):
        """
        Args:
            header (list of str): the header from the file as a list of column names (in-order)
            require (list of str): list of columns that must be in the input header

        Raises:
            KeyError: the header has duplicate columns or is missing a required column
        """
        self.header = header[:]
        self.require = require or []

        if len(set(header)) != len(header):
            raise KeyError('duplicate input col: column names in input header must be unique', header)

        for col in self.require:
            if col not in header:
                raise KeyError('cannot require: column not found in the input header', col, sorted(header))

    def transform_line(self, line):
        """
        Args:
            line (list of str): list of values for a row with the same input header as the transform

        Returns:
            dict of str: the row keyed by column name
        """
        if len(self.header) != len(line):
            raise AssertionError('length of input list {0} does not match length of the expected header {1}: '.format(
                len(line), len(self.header)) + re.sub('\n', '\\n', '\\t'.join(line)), self.header)
        return dict(zip(self.header, line))


def _clean(line):
    return re.sub(r'[\r\n]*$', '', line)


def read_file(fh, delimiter='\t', strict=True, on_error=None, require=None):
    """
    Reads the header of an open file and returns it along with a lazy iterator over the transformed rows

    Comment lines starting with ## are skipped. The first remaining line is the header (a leading # is removed).
    A file with no header line is treated as having no rows

    Args:
        fh: file handle open for reading
        delimiter (str): the delimiter (what to split on)
        strict (bool): if false will ignore lines that fail transform
        on_error (callable): called with the error and line number of each ignored line when not strict
        require (list of str): columns which must be in the header

    Returns:
        tuple of list of str and generator of dict: header and the row dictionaries
    """
    line_index = 0
    header = None
    for line in fh:
        line_index += 1
        if re.match(r'^\s*##', line):
            continue
        line = re.sub(r'(^#)|([\r\n\s]*$)', '', line)
        header = line.split(delimiter) if line else []
        break

    if not header:
        return [], iter(())

    transform = FileTransform(header, require=require)

    def rows(line_index=line_index):
        for line in fh:
            line_index += 1
            line = _clean(line)
            if not line:
                continue
            try:
                row = transform.transform_line(line.split(delimiter))
            except AssertionError as error:
                if strict:
                    raise type(error)('{0} happens at line {1}'.format(error, line_index))
                if on_error is not None:
                    on_error(error, line_index)
                continue
            row['_index'] = line_index
            yield row

    return transform.header, rows()


def write_header(fh, header, delimiter='\t'):
    fh.write('#' + delimiter.join(header) + '\n')


def write_row(fh, header, row, delimiter='\t'):
    fh.write(delimiter.join([str(row.get(c, None)) for c in header]) + '\n')
