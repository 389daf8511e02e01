# parser/exceptions.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Exceptions raised while reading history logs

"""Exceptions for history log parsing."""


class ParseError(RuntimeError):
    """Raised when text does not conform to the history log grammar."""

    pass


class HistoryParseError(ParseError):
    """Raised when a history log cannot be read back into a History.

    Covers syntax errors, unknown event types or processes, and logs whose
    events do not form a well-formed history.
    """

    def __init__(self, message: str, lineno: int = 0):
        super().__init__(f"line {lineno}: {message}" if lineno else message)
        self.lineno = lineno
