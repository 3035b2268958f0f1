class DirectoryInfoError(ValueError):
    def __init__(self, message, line_span=None):
        super().__init__(message)
        self.message = message
        self.line_span = line_span

    def __str__(self):
        if self.line_span is None:
            return self.message

        return f'{self.message}, line {self.line_span}'


class MalformedLine(DirectoryInfoError):
    pass


class MissingColon(MalformedLine):
    pass


class MissingName(MalformedLine):
    pass


class DecodeError(DirectoryInfoError):
    pass


class MalformedEscape(DecodeError):
    def __init__(self, message, position=None, line_span=None):
        super().__init__(message, line_span)
        self.position = position


class CharsetMismatch(DecodeError):
    pass


class UnterminatedContinuation(DirectoryInfoError):
    pass
