"""
Fatal error taxonomy for the document filter.

Every failure that invalidates a run derives from B64FilterError so the
command line can report it in one place. Components raise these; nothing
below the CLI terminates the process.
"""

from typing import Optional


class B64FilterError(Exception):
    """Base class for all fatal filter errors."""


class MalformedInputError(B64FilterError):
    """An input line could not be base64 decoded."""

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"error decoding input line {line_number}: {reason}")


class PipeBrokenError(B64FilterError):
    """A read from or write to one of the filter's pipes failed."""


class LineCountMismatchError(B64FilterError):
    """The filter did not produce one output line per input line."""

    def __init__(self, message: str, expected: int, actual: int,
                 document_index: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        self.document_index = document_index
        super().__init__(message)


class FilterStartError(B64FilterError):
    """The filter program could not be started."""


class FilterExitError(B64FilterError):
    """The filter program exited abnormally."""

    def __init__(self, command: str, returncode: int):
        self.command = command
        self.returncode = returncode
        if returncode < 0:
            detail = f"killed by signal {-returncode}"
        else:
            detail = f"exit status {returncode}"
        super().__init__(f"filter {command!r} failed: {detail}")


class LedgerClosedError(B64FilterError):
    """A count was pushed after the ledger was marked complete."""
