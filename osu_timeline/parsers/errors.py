"""Errors raised while loading a beatmap."""


class ParseError(Exception):
    """Base class for every beatmap loading failure."""

    def __init__(self, message: str, source: str = "", line_number: int = 0):
        super().__init__(message)
        self.message = message
        self.source = source
        self.line_number = line_number

    def locate(self, source: str, line_number: int) -> "ParseError":
        """Attach the input position if it was not known when raising."""
        if not self.source:
            self.source = source
        if not self.line_number:
            self.line_number = line_number
        return self

    def __str__(self) -> str:
        if self.source and self.line_number:
            return f"{self.source}:{self.line_number}: {self.message}"
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class HeaderError(ParseError):
    """The file doesn't start with the ``osu file format v<N>`` magic."""


class SectionError(ParseError):
    """A ``[section]`` line is malformed."""


class FieldError(ParseError):
    """A row could not be parsed, or contradicts what was parsed before.

    Most field errors are reported and the row is dropped. Fatal ones abort
    the whole load because dropping the row would leave the model
    inconsistent.
    """

    def __init__(self, message: str, source: str = "", line_number: int = 0, fatal: bool = False):
        super().__init__(message, source, line_number)
        self.fatal = fatal


class ValidationError(ParseError):
    """The beatmap was read completely but is not playable."""
