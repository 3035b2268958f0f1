import quopri
import re

from dirinfo.errors import MalformedEscape, CharsetMismatch


_bad_escape_pattern = re.compile(r'=(?![0-9A-Fa-f]{2}|\r?\n|$)')

_plain_bytes = frozenset(range(33, 127)) - {ord('=')}


def decode(text):
    match = _bad_escape_pattern.search(text)

    if match:
        fragment = text[match.start():match.start() + 3]
        raise MalformedEscape(f'malformed quoted-printable escape {fragment!r} at column {match.start() + 1}',
                              position=match.start())

    return quopri.decodestring(text.encode('utf-8'))


def decode_text(text, charset='utf-8'):
    data = decode(text)

    try:
        return data.decode(charset)
    except LookupError:
        raise CharsetMismatch(f'unknown charset {charset!r}')
    except UnicodeDecodeError as exc:
        raise CharsetMismatch(f'quoted-printable value is not valid {charset}: {exc.reason}')


def encode(data):
    chars = []
    last = len(data) - 1

    for index, byte in enumerate(data):
        if byte in _plain_bytes or (byte == 0x20 and index != last):
            chars.append(chr(byte))
        else:
            chars.append(f'={byte:02X}')

    return ''.join(chars)
