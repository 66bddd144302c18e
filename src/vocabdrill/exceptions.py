"""Errors and warnings raised by the drill core and the lesson loader."""


class VocabDrillError(Exception):
    """Base class for drill errors."""


class EmptyLessonError(VocabDrillError):
    """Raised when a lesson has no pairs to drill."""


class InvalidStateError(VocabDrillError):
    """Raised when a session operation is called in a state that does not allow it."""


class ParseError(VocabDrillError):
    """Raised when lesson text contains no valid word pair."""


class MalformedLineError(VocabDrillError):
    """A lesson line that is not a single 'source - target' pair.

    The loader skips such lines; the error object is only used to report them.
    """

    def __init__(self, line_number: int, line: str):
        super().__init__(f"Malformed vocabulary line {line_number}: {line!r}")
        self.line_number = line_number
        self.line = line


class DuplicateSourceWarning(UserWarning):
    """Issued when a lesson contains the same source word more than once."""
