"""
Bounded FIFO of per-document line counts.

The ledger is the only structure shared between the feeder and the
reassembler. The feeder pushes the line count of each document in input
order; the reassembler pops them in the same order and reads exactly that
many lines from the filter. Its capacity bounds the number of documents in
flight inside the filter and is the pipeline's back-pressure.
"""

import threading
from collections import deque
from typing import Deque, Optional

from b64filter.errors import LedgerClosedError


class CountLedger:
    """
    Thread-safe bounded queue of line counts with an explicit completion signal.

    ``get()`` distinguishes "empty but more coming" (it blocks) from
    "closed and drained" (it returns None). ``abort()`` wakes every waiter
    and makes all further calls raise the abort cause.
    """

    def __init__(self, capacity: int = 32):
        """
        Initialise the ledger.

        Args:
            capacity: Maximum number of counts held at once

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError(f"ledger capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._counts: Deque[int] = deque()
        self._closed = False
        self._abort_cause: Optional[BaseException] = None
        self._max_depth = 0

        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def max_depth(self) -> int:
        """Largest number of counts held at any one time."""
        with self._lock:
            return self._max_depth

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)

    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def is_aborted(self) -> bool:
        with self._lock:
            return self._abort_cause is not None

    def put(self, count: int, timeout: Optional[float] = None) -> None:
        """
        Append a count, blocking while the ledger is full.

        Args:
            count: Physical line count of the next document
            timeout: Seconds to wait for space; None waits forever

        Raises:
            ValueError: If count is not a positive integer
            LedgerClosedError: If the ledger was already closed
            TimeoutError: If no space became available within timeout
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError(f"line count must be a positive integer, got {count!r}")

        with self._not_full:
            self._raise_if_aborted()
            if self._closed:
                raise LedgerClosedError("cannot push to a closed ledger")

            if not self._not_full.wait_for(
                lambda: len(self._counts) < self._capacity
                or self._abort_cause is not None,
                timeout=timeout,
            ):
                raise TimeoutError(f"ledger full after waiting {timeout}s")
            self._raise_if_aborted()

            self._counts.append(count)
            self._max_depth = max(self._max_depth, len(self._counts))
            self._not_empty.notify()

    def get(self, timeout: Optional[float] = None) -> Optional[int]:
        """
        Remove and return the oldest count, blocking while empty.

        Args:
            timeout: Seconds to wait for a count; None waits forever

        Returns:
            The next count, or None once the ledger is closed and drained

        Raises:
            TimeoutError: If nothing arrived within timeout
        """
        with self._not_empty:
            if not self._not_empty.wait_for(
                lambda: self._counts or self._closed or self._abort_cause is not None,
                timeout=timeout,
            ):
                raise TimeoutError(f"ledger empty after waiting {timeout}s")
            self._raise_if_aborted()

            if not self._counts:
                return None

            count = self._counts.popleft()
            self._not_full.notify()
            return count

    def close(self) -> None:
        """Signal that no more counts will be pushed."""
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def abort(self, cause: BaseException) -> None:
        """Fail every current and future put/get with the given cause."""
        with self._lock:
            if self._abort_cause is None:
                self._abort_cause = cause
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def _raise_if_aborted(self) -> None:
        if self._abort_cause is not None:
            raise self._abort_cause
