"""
b64filter - run a line-oriented program as a filter over base64 encoded documents.

Each input line is one base64 encoded, possibly multi-line document. The
documents are decoded, streamed line by line through a single instance of
an external filter program, reassembled from its output by line count, and
encoded again, one output line per input line and in the same order.
"""

__version__ = "1.0.0"
__author__ = "David L Nugent"
__email__ = "davidn@uniquode.io"

from .count_ledger import CountLedger
from .document_decoder import DocumentChannel, DocumentDecoder
from .errors import (
    B64FilterError,
    FilterExitError,
    FilterStartError,
    LedgerClosedError,
    LineCountMismatchError,
    MalformedInputError,
    PipeBrokenError,
)
from .feeder import DocumentFeeder
from .filter_config import FilterConfig
from .multiplexer import DocumentMultiplexer, FilterSummary, PipelineState
from .reassembler import DocumentReassembler

__all__ = [
    "__version__",
    "__author__",
    "__email__",
    "B64FilterError",
    "CountLedger",
    "DocumentChannel",
    "DocumentDecoder",
    "DocumentFeeder",
    "DocumentMultiplexer",
    "DocumentReassembler",
    "FilterConfig",
    "FilterExitError",
    "FilterStartError",
    "FilterSummary",
    "LedgerClosedError",
    "LineCountMismatchError",
    "MalformedInputError",
    "PipeBrokenError",
    "PipelineState",
]
