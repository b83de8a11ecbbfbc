"""
Document encoding and physical line accounting.

A document travels outside the filter as one base64 line and inside it as
``line_count(doc)`` newline-terminated physical lines. Splitting and joining
here are exact inverses, so a line-preserving identity filter reproduces
every document byte for byte.
"""

import base64
import binascii
from typing import List, Sequence

TERMINATOR = b"\n"


def decode_document(line: bytes) -> bytes:
    """
    Decode one base64 input line into a raw document.

    A single trailing carriage return is dropped so CRLF input is accepted.

    Raises:
        ValueError: If the line is not valid standard base64
    """
    if line.endswith(b"\r"):
        line = line[:-1]
    try:
        return base64.b64decode(line, validate=True)
    except binascii.Error as e:
        raise ValueError(str(e)) from e


def encode_document(doc: bytes) -> bytes:
    """Encode a document as one base64 output line, terminator included."""
    return base64.b64encode(doc) + TERMINATOR


def line_count(doc: bytes) -> int:
    """
    Number of physical lines a document occupies inside the filter.

    Every document is sent with one extra terminator, so the count is the
    number of embedded terminators plus one; the empty document is one
    empty line.
    """
    return doc.count(TERMINATOR) + 1


def split_lines(doc: bytes) -> List[bytes]:
    """Split a document into its physical lines, terminators removed."""
    return doc.split(TERMINATOR)


def join_lines(lines: Sequence[bytes]) -> bytes:
    """Rebuild a document from physical lines with terminators removed."""
    return TERMINATOR.join(lines)


def strip_terminator(line: bytes) -> bytes:
    """Remove exactly one trailing terminator, if present."""
    if line.endswith(TERMINATOR):
        return line[:-1]
    return line
