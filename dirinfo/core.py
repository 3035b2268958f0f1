import io
import logging
from collections.abc import Mapping

from dirinfo import quotedprintable
from dirinfo.errors import (DecodeError, DirectoryInfoError, MissingColon, MissingName,
                            UnterminatedContinuation)
from dirinfo.text import Value, StructuredValue, split_structured_value, join_structured_value, fold


logger = logging.getLogger(__name__)


class TextReader:
    def __init__(self, stream):
        self.stream = stream
        self.line_number = 0

        self._next_line = None

    def readline(self):
        if self._next_line is None:
            line = self.stream.readline()
        else:
            line = self._next_line
            self._next_line = None

        if line:
            self.line_number += 1

        return line

    def peekline(self):
        if self._next_line is None:
            self._next_line = self.stream.readline()

        return self._next_line


class LineSpan:
    def __init__(self, start=1, end=None):
        self.start = start
        self.end = start if end is None else end

    def __str__(self):
        return f'{self.start}:{self.end}'

    def __repr__(self):
        return f'LineSpan({self.start}, {self.end})'


class Parameters(Mapping):
    """Parameters of a content line.

    Names are looked up case-insensitively; iteration yields them as first
    written. A parameter given several times has its values merged.
    """

    def __init__(self, items=()):
        self._names = {}
        self._values = {}

        if isinstance(items, Mapping):
            items = items.items()

        for name, values in items:
            self._add(name, values)

    def _add(self, name, values):
        key = name.upper()
        merged = list(self._values.get(key, ()))

        for value in Value(values):
            if value not in merged:
                merged.append(value)

        self._names.setdefault(key, name)
        self._values[key] = Value(merged)

    def __getitem__(self, name):
        return self._values[name.upper()]

    def __contains__(self, name):
        return isinstance(name, str) and name.upper() in self._values

    def __iter__(self):
        return iter(self._names.values())

    def __len__(self):
        return len(self._names)

    def __eq__(self, other):
        if isinstance(other, Parameters):
            return self._values == other._values

        if isinstance(other, Mapping):
            return self == Parameters(other)

        return NotImplemented

    __hash__ = None

    def get_text(self, name, default=''):
        values = self.get(name)

        if not values:
            return default

        return values[0]

    def has_value(self, name, value):
        value = value.upper()
        return any(v.upper() == value for v in self.get(name, ()))

    def __repr__(self):
        return f'Parameters({dict(self.items())!r})'


class ContentLine:
    """One logical ``[group.]name[;params]:value`` entry.

    Read-only once built. The reader also records where the line came from
    (`__line_span__`) and whether it undid a transfer encoding (`decoded`);
    neither takes part in comparisons.
    """

    __line_span__ = None

    def __init__(self, name, value='', params=None, group='', *, decoded=False):
        if not name:
            raise ValueError('content line name must not be empty')

        if not isinstance(value, StructuredValue):
            value = StructuredValue(value)

        if not isinstance(params, Parameters):
            params = Parameters(params or ())

        self._group = group or ''
        self._name = name
        self._params = params
        self._value = value
        self.decoded = decoded

    @property
    def group(self):
        return self._group

    @property
    def name(self):
        return self._name

    @property
    def params(self):
        return self._params

    @property
    def value(self):
        return self._value

    @property
    def text(self):
        return self._value.text

    def __eq__(self, other):
        if not isinstance(other, ContentLine):
            return NotImplemented

        return (self._group == other._group and self._name.upper() == other._name.upper()
                and self._params == other._params and self._value == other._value)

    __hash__ = None

    def __repr__(self):
        return (f'ContentLine({self._name!r}, {self._value!r}, params={dict(self._params.items())!r}, '
                f'group={self._group!r})')


def _report(exc):
    logger.warning('%s', exc)


def _split_content_line(line):
    segments = []
    chars = []
    quoted = False
    index = 0
    end = len(line)

    while index < end:
        char = line[index]
        index += 1

        if char == '"':
            quoted = not quoted
            chars.append(char)
        elif quoted:
            chars.append(char)
        elif char == '\\' and index < end:
            chars.append(char)
            chars.append(line[index])
            index += 1
        elif char == ';':
            segments.append(''.join(chars))
            chars = []
        elif char == ':':
            segments.append(''.join(chars))
            return segments, line[index:]
        else:
            chars.append(char)

    raise MissingColon('missing ":" between name and value')


def _split_parameter_values(string):
    values = []
    chars = []
    quoted = False

    for char in string:
        if char == '"':
            quoted = not quoted
        elif char == ',' and not quoted:
            values.append(_strip_unquoted(chars))
            chars = []
        else:
            chars.append((char, quoted))

    values.append(_strip_unquoted(chars))

    return values


def _strip_unquoted(chars):
    start = 0
    end = len(chars)

    while start < end and not chars[start][1] and chars[start][0].isspace():
        start += 1

    while end > start and not chars[end - 1][1] and chars[end - 1][0].isspace():
        end -= 1

    return ''.join(char for char, _ in chars[start:end])


def _parse_parameters(segments):
    params = Parameters()

    for parameter_data in segments:
        if not parameter_data.strip():
            continue

        parameter_name, separator, parameter_value = parameter_data.partition('=')
        parameter_name = parameter_name.strip()

        if not separator:
            params._add(parameter_name.upper(), ())
        else:
            params._add(parameter_name or 'TYPE', _split_parameter_values(parameter_value))

    return params


def _parse_header(line):
    segments, value = _split_content_line(line)
    group_and_name_data = segments[0].strip()
    group, _, name = group_and_name_data.rpartition('.')

    if not name:
        raise MissingName(f'missing property name in {group_and_name_data!r}')

    return group, name, _parse_parameters(segments[1:]), value


def _declares_quoted_printable(params):
    return params.has_value('ENCODING', 'QUOTED-PRINTABLE') or 'QUOTED-PRINTABLE' in params


def parse_content_line(line):
    group, name, params, value = _parse_header(line)
    decoded = False

    if _declares_quoted_printable(params):
        value = quotedprintable.decode_text(value, params.get_text('CHARSET', 'utf-8'))
        decoded = True

    return ContentLine(name, split_structured_value(value), params, group, decoded=decoded)


def _read_logical_line(reader):
    while True:
        line = reader.readline()

        if not line:
            return None, None, ()

        line = line.rstrip('\r\n')

        if line.strip():
            break

    line_span = LineSpan(reader.line_number)

    if line[0] in '\t ':
        line = line[1:]

    fragments = [line]
    folds = []
    size = len(line)

    while True:
        fragment = reader.peekline()

        if not fragment or fragment[0] not in '\t ':
            break

        fragment = reader.readline()
        fragment = fragment.rstrip('\r\n')[1:]
        folds.append(size)
        fragments.append(fragment)
        size += len(fragment)

    line_span.end = reader.line_number

    return ''.join(fragments), line_span, folds


def _mark_soft_breaks(line, value, folds):
    # an "=" right before a fold is a quoted-printable soft break
    start = len(line) - len(value)
    parts = []
    last = start

    for offset in folds:
        if offset > start and line[offset - 1] == '=':
            parts.append(line[last:offset])
            parts.append('\n')
            last = offset

    parts.append(line[last:])

    return ''.join(parts)


def _read_quoted_printable_value(reader, first_fragment, line_span):
    fragment = first_fragment
    fragments = []

    while True:
        fragment = fragment.rstrip()
        fragments.append(fragment)

        if not fragment.endswith('='):
            break

        fragment = reader.readline()

        if not fragment:
            line_span.end = reader.line_number
            raise UnterminatedContinuation('incomplete quoted-printable property value', line_span)

        fragment = fragment.rstrip('\r\n')

    line_span.end = reader.line_number

    return '\n'.join(fragments)


def read_content_line(reader, diagnostics=None):
    """Read the next logical line from `reader` as a `ContentLine`.

    Returns None at end of stream. Malformed lines are skipped and a
    quoted-printable value that cannot be decoded is kept as written;
    either way the error is passed to `diagnostics`, which defaults to a
    warning on this module's logger.
    """
    if diagnostics is None:
        diagnostics = _report

    while True:
        line, line_span, folds = _read_logical_line(reader)

        if line is None:
            return None

        try:
            group, name, params, value = _parse_header(line)
        except DirectoryInfoError as exc:
            exc.line_span = line_span
            diagnostics(exc)
            continue

        decoded = False

        if _declares_quoted_printable(params):
            try:
                value = _mark_soft_breaks(line, value, folds)
                value = _read_quoted_printable_value(reader, value, line_span)
            except UnterminatedContinuation as exc:
                diagnostics(exc)
                return None

            try:
                value = quotedprintable.decode_text(value, params.get_text('CHARSET', 'utf-8'))
                decoded = True
            except DecodeError as exc:
                exc.line_span = line_span
                diagnostics(exc)

        prop = ContentLine(name, split_structured_value(value), params, group, decoded=decoded)
        prop.__line_span__ = line_span

        return prop


def _quote_parameter_value(value):
    if '"' in value:
        raise ValueError(f'double quotes are not allowed in parameter values: {value!r}')

    if value != value.strip():
        return f'"{value}"'

    for char in ';:,':
        if char in value:
            return f'"{value}"'

    return value


def format_content_line(line):
    chars = []

    if line.group:
        chars.append(line.group)
        chars.append('.')

    chars.append(line.name)

    for parameter_name, parameter_values in line.params.items():
        chars.append(';')
        chars.append(parameter_name)

        if parameter_values:
            chars.append('=')
            chars.append(','.join(_quote_parameter_value(v) for v in parameter_values))

    chars.append(':')
    chars.append(join_structured_value(line.value))

    return ''.join(chars)


def write_content_line(stream, line, *, width=75, newline='\r\n'):
    stream.write(fold(format_content_line(line), width=width, newline=newline))
    stream.write(newline)


class DirectoryInfoReader:
    """Reads `ContentLine`s one at a time from a text stream.

    ``BEGIN``/``END`` lines are returned like any other line: grouping them
    into records is up to the caller. Values declaring
    ``ENCODING=QUOTED-PRINTABLE`` are decoded; `DirectoryInfoWriter` never
    encodes, so callers writing such lines back must either re-encode the
    value or drop the parameter.
    """

    def __init__(self, stream, diagnostics=None):
        self.reader = TextReader(stream)
        self.diagnostics = diagnostics

    def read_content_line(self):
        return read_content_line(self.reader, self.diagnostics)

    def __iter__(self):
        while True:
            line = self.read_content_line()

            if line is None:
                return

            yield line


class DirectoryInfoWriter:
    def __init__(self, stream, *, width=75, newline='\r\n'):
        self.stream = stream
        self.width = width
        self.newline = newline

    def write_content_line(self, line):
        write_content_line(self.stream, line, width=self.width, newline=self.newline)

    def write_content_lines(self, lines):
        for line in lines:
            self.write_content_line(line)


def read_content_lines(source, diagnostics=None):
    if isinstance(source, str):
        source = io.StringIO(source)

    return iter(DirectoryInfoReader(source, diagnostics))
