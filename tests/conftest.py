"""
Shared test fixtures and configuration for b64filter tests.

This module provides common fixtures and utilities used across
all test modules in the b64filter test suite.
"""

import base64
import io
import os
import sys
from typing import List

import pytest

from b64filter.app_logger import NullAppLogger, set_default_logger


def pytest_addoption(parser):
    """Add command line options to enable specific test categories."""
    parser.addoption(
        "--enable-slow",
        action="store_true",
        default=False,
        help="Enable tests marked with @pytest.mark.slow (skipped by default)",
    )
    parser.addoption(
        "--enable-hanging",
        action="store_true",
        default=False,
        help="Enable tests marked with @pytest.mark.hanging (skipped by default)",
    )


def pytest_configure(config):
    """Register the custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (>5 seconds) - skipped by default, use --enable-slow",
    )
    config.addinivalue_line(
        "markers",
        "hanging: mark test as exercising a blocked pipeline - skipped by default, "
        "use --enable-hanging",
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to conditionally skip marked tests."""
    enable_slow = config.getoption("--enable-slow") or os.getenv(
        "ENABLE_SLOW_TESTS", ""
    ).lower() in ("true", "1", "yes")
    enable_hanging = config.getoption("--enable-hanging") or os.getenv(
        "ENABLE_HANGING_TESTS", ""
    ).lower() in ("true", "1", "yes")

    if not enable_slow:
        skip_slow = pytest.mark.skip(
            reason="Use --enable-slow or set ENABLE_SLOW_TESTS=true to run slow tests"
        )
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)

    if not enable_hanging:
        skip_hanging = pytest.mark.skip(
            reason="Use --enable-hanging or set ENABLE_HANGING_TESTS=true to run hanging tests"
        )
        for item in items:
            if "hanging" in item.keywords:
                item.add_marker(skip_hanging)


@pytest.fixture(autouse=True)
def null_default_logger():
    """Keep components that fall back to the default logger quiet."""
    set_default_logger(NullAppLogger())
    yield
    set_default_logger(None)


@pytest.fixture
def null_logger() -> NullAppLogger:
    return NullAppLogger()


LOREM_DOCUMENTS = [
    (
        b"Lorem ipsum dolor sit amet, consectetur adipiscing elit,\n"
        b"sed do eiusmod tempor incididunt ut labore et dolore magna aliqua.\n"
        b"Ut enim ad minim veniam, quis nostrud exercitation ullamco laboris\n"
        b"nisi ut aliquip ex ea commodo consequat."
    ),
    (
        b"Sed ut perspiciatis unde omnis iste natus error sit voluptatem,\n"
        b"Nemo enim ipsam voluptatem quia voluptas sit aspernatur aut odit,\n"
        b"Neque porro quisquam est, qui dolorem ipsum quia dolor sit amet."
    ),
]


def encode_input(documents: List[bytes]) -> bytes:
    """Encode documents as the filter's input format: one base64 line each."""
    return b"".join(base64.b64encode(doc) + b"\n" for doc in documents)


def decode_output(data: bytes) -> List[bytes]:
    """Decode the filter's output format back into documents."""
    assert data == b"" or data.endswith(b"\n"), "Output must end with a terminator"
    return [base64.b64decode(line) for line in data.split(b"\n")[:-1]]


@pytest.fixture
def lorem_documents() -> List[bytes]:
    """The two sample documents: four lines and three lines."""
    return list(LOREM_DOCUMENTS)


@pytest.fixture
def lorem_input(lorem_documents) -> bytes:
    """The sample documents in base64 input format."""
    return encode_input(lorem_documents)


@pytest.fixture
def python_filter():
    """
    Build a filter command that runs a Python snippet with this interpreter.

    Returns:
        Function taking source code and returning an argv list
    """

    def _make(source: str) -> List[str]:
        return [sys.executable, "-c", source]

    return _make


class TrackingBytesIO(io.BytesIO):
    """BytesIO that remembers how often it was flushed and keeps its value after close."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.flush_count = 0
        self.final_value = b""

    def flush(self):
        self.flush_count += 1
        super().flush()

    def close(self):
        if not self.closed:
            self.final_value = self.getvalue()
        super().close()
