import re


class Value(tuple):
    """Comma separated list of strings, one component of a structured value.

    Also used for parameter values, which may be multi-valued as well
    (``TYPE=WORK,VOICE``).
    """

    def __new__(cls, items=()):
        if isinstance(items, str):
            items = (items,)

        return super().__new__(cls, items)

    @property
    def text(self):
        return ','.join(self)

    def __repr__(self):
        return f'Value({list(self)!r})'


class StructuredValue(tuple):
    """Semicolon separated list of `Value` components.

    Positions are meaningful to the caller only (the family name is
    component 0 of ``N``), so a structured value is never empty: it holds
    at least one component with one empty string.
    """

    def __new__(cls, components=()):
        if isinstance(components, str):
            components = (components,)

        values = []

        for component in components:
            value = component if isinstance(component, Value) else Value(component)
            values.append(value or Value(''))

        if not values:
            values.append(Value(''))

        return super().__new__(cls, values)

    @property
    def text(self):
        return ';'.join(value.text for value in self)

    def __repr__(self):
        return f'StructuredValue({[list(value) for value in self]!r})'


def escape(string):
    string = re.sub(r'(\r\n|\r)', '\n', string)
    chars = []

    for char in string:
        if char == '\n':
            chars.append('\\n')
        elif char == '\\':
            chars.append('\\\\')
        elif char == ',':
            chars.append('\\,')
        elif char == ';':
            chars.append('\\;')
        else:
            chars.append(char)

    return ''.join(chars)


def unescape(string):
    chars = []
    index = 0
    end = len(string)

    while index < end:
        char = string[index]
        index += 1

        if char == '\\' and index < end:
            next_char = string[index]
            index += 1

            if next_char in r'\,;':
                chars.append(next_char)
            elif next_char in 'nN':
                chars.append('\n')
            else:
                chars.append(char)
                chars.append(next_char)
        else:
            chars.append(char)

    return ''.join(chars)


def split_structured_value(string):
    components = []
    elements = []
    chars = []
    index = 0
    end = len(string)

    while index < end:
        char = string[index]
        index += 1

        if char == '\\' and index < end:
            # keep the pair, unescape() resolves it once the element is complete
            chars.append(char)
            chars.append(string[index])
            index += 1
        elif char == ',':
            elements.append(unescape(''.join(chars)))
            chars = []
        elif char == ';':
            elements.append(unescape(''.join(chars)))
            components.append(Value(elements))
            elements = []
            chars = []
        else:
            chars.append(char)

    elements.append(unescape(''.join(chars)))
    components.append(Value(elements))

    return StructuredValue(components)


def join_structured_value(value):
    if not isinstance(value, StructuredValue):
        value = StructuredValue(value)

    return ';'.join(','.join(escape(element) for element in component) for component in value)


_fold_atom_pattern = re.compile(r'\\.|=[0-9A-Fa-f]{2}|.', re.DOTALL)


def fold(string, *, width=75, newline='\r\n'):
    """Break a logical line into physical lines of at most `width` octets.

    Continuation lines start with a single space, which counts towards
    the width. Escape pairs, quoted-printable triplets and multi-byte
    characters are never split.
    """
    if width < 8:
        raise ValueError(f'fold width too small: {width}')

    parts = []
    chars = []
    size = 0
    limit = width

    for match in _fold_atom_pattern.finditer(string):
        atom = match.group()
        atom_size = len(atom.encode('utf-8', 'surrogatepass'))

        if chars and size + atom_size > limit:
            parts.append(''.join(chars))
            chars = []
            size = 0
            limit = width - 1

        chars.append(atom)
        size += atom_size

    parts.append(''.join(chars))

    return (newline + ' ').join(parts)
