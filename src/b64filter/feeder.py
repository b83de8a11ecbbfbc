"""
Feeder stage: documents in, physical lines to the filter, counts to the ledger.
"""

from typing import BinaryIO, Iterable, Optional

from b64filter.app_logger import AppLogger, LogContext, get_default_logger
from b64filter.count_ledger import CountLedger
from b64filter.document_codec import TERMINATOR, split_lines
from b64filter.errors import PipeBrokenError
from b64filter.metrics_collector import MetricsCollector


class DocumentFeeder:
    """
    Writes each document's lines to the filter's input pipe.

    The feeder is the only writer of the filter's stdin and the only
    producer of ledger entries. For every document the line count is pushed
    before the lines are written, so the reassembler is already waiting for
    a document's output while its input is still being sent; a document
    larger than the pipe buffers would otherwise deadlock.
    """

    def __init__(
        self,
        filter_input: BinaryIO,
        ledger: CountLedger,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the feeder.

        Args:
            filter_input: Writable binary pipe to the filter's stdin
            ledger: Ledger receiving one line count per document
            metrics: Optional MetricsCollector for run statistics
            logger: Optional AppLogger; defaults to the process logger
        """
        self._filter_input = filter_input
        self._ledger = ledger
        self._metrics = metrics
        self._logger = logger or get_default_logger()
        self._documents_fed = 0

    @property
    def documents_fed(self) -> int:
        return self._documents_fed

    def feed_document(self, document: bytes) -> int:
        """
        Send one document to the filter.

        Args:
            document: Raw document bytes

        Returns:
            The number of physical lines sent

        Raises:
            PipeBrokenError: If writing to the filter fails
        """
        lines = split_lines(document)
        count = len(lines)

        self._logger.debug(
            f"writing {count} line document to filter",
            context=LogContext(
                component="DocumentFeeder",
                operation="feed_document",
                document_index=self._documents_fed,
            ),
            ledger_depth=len(self._ledger),
        )

        # Blocks while the ledger is full
        self._ledger.put(count)

        try:
            for line in lines:
                self._filter_input.write(line + TERMINATOR)
            self._filter_input.flush()
        except (OSError, ValueError) as e:
            # ValueError: the pipe was closed underneath us during an abort
            raise PipeBrokenError(f"error writing to filter: {e}") from e

        self._documents_fed += 1
        if self._metrics is not None:
            self._metrics.record_document_fed(count)
        return count

    def feed(self, documents: Iterable[bytes]) -> int:
        """
        Feed every document, then signal end of input.

        The filter's input is closed first so it can flush and exit, then
        the ledger is closed so the reassembler stops once it has drained.

        Returns:
            The number of documents fed
        """
        for document in documents:
            self.feed_document(document)
        self.finish()
        return self._documents_fed

    def finish(self) -> None:
        """Close the filter's input pipe and mark the ledger complete."""
        try:
            self._filter_input.close()
        except OSError as e:
            raise PipeBrokenError(f"error closing filter input: {e}") from e
        self._ledger.close()

        self._logger.debug(
            "filter input closed",
            context=LogContext(component="DocumentFeeder", operation="finish"),
            documents=self._documents_fed,
        )
