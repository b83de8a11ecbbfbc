"""
Thread-safe run statistics for the document filter.

The feeder and the reassembler record into one MetricsCollector from
different threads; the coordinator reads it for progress and the final
summary.
"""

import threading
import time
from typing import Any, Dict, Optional


class MetricsCollector:
    """
    Thread-safe counters for documents and physical lines moving through the filter.

    Thread Safety:
    --------------
    All methods can be called concurrently from multiple threads.
    """

    def __init__(self):
        """Initialise the collector with empty statistics."""
        self._documents_fed = 0
        self._lines_fed = 0
        self._documents_written = 0
        self._lines_written = 0
        self._max_in_flight = 0
        self._started_at: Optional[float] = None

        self._metrics_lock = threading.Lock()

    def start_timer(self) -> None:
        """Mark the start of the run; elapsed time is measured from here."""
        with self._metrics_lock:
            self._started_at = time.monotonic()

    def elapsed(self) -> float:
        """Seconds since start_timer, or 0.0 if the timer was never started."""
        with self._metrics_lock:
            if self._started_at is None:
                return 0.0
            return time.monotonic() - self._started_at

    def record_document_fed(self, lines: int) -> None:
        """Record a document handed to the filter."""
        with self._metrics_lock:
            self._documents_fed += 1
            self._lines_fed += lines
            in_flight = self._documents_fed - self._documents_written
            self._max_in_flight = max(self._max_in_flight, in_flight)

    def record_document_written(self, lines: int) -> int:
        """
        Record a reassembled document written to the output.

        Returns:
            Total number of documents written so far
        """
        with self._metrics_lock:
            self._documents_written += 1
            self._lines_written += lines
            return self._documents_written

    @property
    def documents_written(self) -> int:
        with self._metrics_lock:
            return self._documents_written

    @property
    def lines_written(self) -> int:
        with self._metrics_lock:
            return self._lines_written

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get current run metrics.

        Returns:
            Dictionary containing counters and the derived in-flight figures
        """
        with self._metrics_lock:
            return {
                "documents_fed": self._documents_fed,
                "lines_fed": self._lines_fed,
                "documents_written": self._documents_written,
                "lines_written": self._lines_written,
                "documents_in_flight": self._documents_fed - self._documents_written,
                "max_documents_in_flight": self._max_in_flight,
            }
