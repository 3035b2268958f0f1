import pytest

from dirinfo.text import (Value, StructuredValue, split_structured_value, join_structured_value, escape,
                          unescape, fold)


def test_split_escaped_semicolon():
    value = split_structured_value('a\\;b;c')

    assert value == StructuredValue([['a;b'], ['c']])
    assert list(value[0]) == ['a;b']
    assert list(value[1]) == ['c']


def test_split_empty_string():
    value = split_structured_value('')

    assert len(value) == 1
    assert len(value[0]) == 1
    assert value[0][0] == ''


def test_split_keeps_empty_positions():
    value = split_structured_value('Doe;John;;Dr.;')

    assert value == (('Doe',), ('John',), ('',), ('Dr.',), ('',))


def test_split_inner_elements():
    assert split_structured_value('WORK,VOICE') == (('WORK', 'VOICE'),)
    assert split_structured_value('a\\,b,c;d') == (('a,b', 'c'), ('d',))


def test_split_escaped_backslash_before_delimiter():
    assert split_structured_value('a\\\\;b') == (('a\\',), ('b',))


def test_split_newline_escape():
    assert split_structured_value('line1\\nline2\\Nline3') == (('line1\nline2\nline3',),)


def test_split_keeps_unknown_escapes():
    assert split_structured_value('C:\\temp') == (('C:\\temp',),)


def test_join_escapes_delimiters():
    value = StructuredValue([['a;b'], ['c,d', 'e\\f']])

    assert join_structured_value(value) == 'a\\;b;c\\,d,e\\\\f'


def test_join_accepts_plain_sequences():
    assert join_structured_value([['Doe'], ['John'], 'Q']) == 'Doe;John;Q'


@pytest.mark.parametrize('value', [
    StructuredValue([['Doe'], ['John'], ['Quincy', 'Q.'], ['Dr.'], ['']]),
    StructuredValue([['back\\slash;semi,comma']]),
    StructuredValue([['multi\nline']]),
    StructuredValue([['', ''], ['']]),
])
def test_split_inverts_join(value):
    assert split_structured_value(join_structured_value(value)) == value


def test_structured_value_is_never_empty():
    assert StructuredValue() == (('',),)
    assert StructuredValue([[], 'x']) == (('',), ('x',))


def test_structured_value_text():
    assert StructuredValue([['a', 'b'], ['c']]).text == 'a,b;c'
    assert StructuredValue('John Doe').text == 'John Doe'


def test_value_from_string():
    assert Value('x') == ('x',)
    assert Value(['a', 'b']).text == 'a,b'


def test_escape_and_unescape():
    assert escape('a,b;c\\d\r\ne') == 'a\\,b\\;c\\\\d\\ne'
    assert unescape('a\\,b\\;c\\\\d\\ne') == 'a,b;c\\d\ne'


def test_fold_short_line_unchanged():
    assert fold('FN:John Doe') == 'FN:John Doe'


def test_fold_long_line():
    folded = fold('A' * 100, width=75)

    assert folded == 'A' * 75 + '\r\n ' + 'A' * 25


def test_fold_respects_width_in_octets():
    string = 'NOTE:' + 'é' * 80
    folded = fold(string, width=75, newline='\n')
    lines = folded.split('\n')

    assert len(lines) > 1
    assert all(len(line.encode('utf-8')) <= 75 for line in lines)
    assert all(line.startswith(' ') for line in lines[1:])
    assert lines[0] + ''.join(line[1:] for line in lines[1:]) == string


def test_fold_does_not_split_escape_pair():
    folded = fold('X' * 74 + '\\;Y', width=75)
    first, second = folded.split('\r\n')

    assert first == 'X' * 74
    assert second == ' \\;Y'


def test_fold_does_not_split_quoted_printable_escape():
    folded = fold('X' * 73 + '=C3=A9', width=75)
    first, second = folded.split('\r\n')

    assert first == 'X' * 73
    assert second == ' =C3=A9'


def test_fold_rejects_tiny_width():
    with pytest.raises(ValueError):
        fold('abc', width=2)
