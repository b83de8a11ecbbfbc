"""
Run configuration for the document filter.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

DEFAULT_LEDGER_CAPACITY = 32
DEFAULT_CHANNEL_SIZE = 16
DEFAULT_PROGRESS_EVERY = 100


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class FilterConfig:
    """Settings for one run of the filter pipeline."""

    command: List[str]
    ledger_capacity: int = DEFAULT_LEDGER_CAPACITY
    channel_size: int = DEFAULT_CHANNEL_SIZE
    progress_every: int = DEFAULT_PROGRESS_EVERY
    debug: bool = False

    def __post_init__(self):
        """Validate the configuration."""
        self.command = list(self.command)
        if not self.command:
            raise ValueError("a filter command is required")
        if self.ledger_capacity < 1:
            raise ValueError(
                f"ledger capacity must be positive, got {self.ledger_capacity}"
            )
        if self.channel_size < 1:
            raise ValueError(f"channel size must be positive, got {self.channel_size}")
        if self.progress_every < 0:
            raise ValueError(
                f"progress interval must not be negative, got {self.progress_every}"
            )

    @classmethod
    def from_env(
        cls,
        command: Sequence[str],
        ledger_capacity: Optional[int] = None,
        channel_size: Optional[int] = None,
        progress_every: Optional[int] = None,
        debug: bool = False,
    ) -> "FilterConfig":
        """
        Build a configuration from B64FILTER_* variables, explicit values winning.

        Args:
            command: Filter program and arguments
            ledger_capacity: Overrides B64FILTER_LEDGER_CAPACITY
            channel_size: Overrides B64FILTER_CHANNEL_SIZE
            progress_every: Overrides B64FILTER_PROGRESS
            debug: Enable per-document debug logging

        Raises:
            ValueError: If any value is malformed or out of range
        """
        if ledger_capacity is None:
            ledger_capacity = _env_int(
                "B64FILTER_LEDGER_CAPACITY", DEFAULT_LEDGER_CAPACITY
            )
        if channel_size is None:
            channel_size = _env_int("B64FILTER_CHANNEL_SIZE", DEFAULT_CHANNEL_SIZE)
        if progress_every is None:
            progress_every = _env_int("B64FILTER_PROGRESS", DEFAULT_PROGRESS_EVERY)

        return cls(
            command=list(command),
            ledger_capacity=ledger_capacity,
            channel_size=channel_size,
            progress_every=progress_every,
            debug=debug,
        )
