import logging

from dirinfo import quotedprintable
from dirinfo.core import ContentLine, DirectoryInfoReader, DirectoryInfoWriter


_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)
logger.addHandler(_handler)


_transfer_parameters = ('ENCODING', 'CHARSET', 'QUOTED-PRINTABLE')

_newlines = {
    'crlf': '\r\n',
    'lf': '\n',
}


def normalize_content_line(prop):
    if not prop.decoded:
        return prop

    params = [(name, values) for name, values in prop.params.items() if name.upper() not in _transfer_parameters]

    return ContentLine(prop.name, prop.value, params, prop.group)


def reencode_content_line(prop):
    if not prop.decoded:
        return prop

    charset = prop.params.get_text('CHARSET', 'utf-8')
    value = [[quotedprintable.encode(element.encode(charset)) for element in component] for component in prop.value]

    return ContentLine(prop.name, value, prop.params, prop.group)


def normalize_vcard_stream(input_stream, output_stream, *, width=75, newline='\r\n', keep_encoding=False,
                           diagnostics=None):
    reader = DirectoryInfoReader(input_stream, diagnostics)
    writer = DirectoryInfoWriter(output_stream, width=width, newline=newline)
    count = 0

    for prop in reader:
        if keep_encoding:
            prop = reencode_content_line(prop)
        else:
            prop = normalize_content_line(prop)

        writer.write_content_line(prop)
        count += 1

    return count


def main(argv=None):
    import os
    import glob
    import sys
    import argparse

    parser = argparse.ArgumentParser(description='unfold, decode and refold vcard files.')
    parser.add_argument('-i', dest='input_files', action='append', required=True, metavar='INPUT',
                        help='specify input vcard files. supports wildcards.')
    parser.add_argument('-o', dest='output_path', required=True, metavar='OUTPUT',
                        help='specify output path.')
    parser.add_argument('--width', type=int, default=75,
                        help='fold lines longer than this many octets (default: %(default)s).')
    parser.add_argument('--newline', choices=sorted(_newlines), default='crlf',
                        help='line terminator of the output (default: %(default)s).')
    parser.add_argument('--keep-encoding', action='store_true',
                        help='keep quoted-printable values encoded, with their ENCODING and CHARSET parameters.')
    args = parser.parse_args(argv)

    if args.width < 8:
        parser.exit(-1, f'width must be at least 8, got {args.width}.\n')

    input_files = set()

    for pathname in args.input_files:
        if glob.has_magic(pathname):
            for p in glob.glob(pathname, recursive=True):
                if os.path.isfile(p):
                    input_files.add(p)
        else:
            if not os.path.exists(pathname):
                parser.exit(-1, f'"{pathname}" does not exist.\n')

            if not os.path.isfile(pathname):
                parser.exit(-1, f'"{pathname}" is not a file.\n')

            input_files.add(pathname)

    if not input_files:
        parser.exit(0)

    if len(input_files) >= 2:
        if os.path.exists(args.output_path) and not os.path.isdir(args.output_path):
            parser.exit(-1, 'multiple files specified but the specified output path is not a directory.\n')

        os.makedirs(args.output_path, exist_ok=True)

    errors = 0

    for input_pathname in sorted(input_files):
        if os.path.isdir(args.output_path):
            output_pathname = os.path.join(args.output_path, os.path.basename(input_pathname))
        else:
            output_pathname = args.output_path

        def diagnostics(exc, pathname=input_pathname):
            logger.warning(f'"{pathname}": {exc}')

        logger.info('normalizing "%s" to "%s"', input_pathname, output_pathname)

        try:
            with open(input_pathname, 'r', encoding='utf-8', newline='') as input_stream, \
                    open(output_pathname, 'w', encoding='utf-8', newline='') as output_stream:
                normalize_vcard_stream(input_stream, output_stream, width=args.width,
                                       newline=_newlines[args.newline], keep_encoding=args.keep_encoding,
                                       diagnostics=diagnostics)
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            logger.error(f'"{input_pathname}": {exc}')
            errors += 1
            continue

    sys.exit(errors)


if __name__ == '__main__':
    main()
