"""
Reassembler stage: ledger counts plus filter output back into encoded documents.
"""

from typing import BinaryIO, List, Optional

from b64filter.app_logger import AppLogger, LogContext, get_default_logger
from b64filter.count_ledger import CountLedger
from b64filter.document_codec import (
    encode_document,
    join_lines,
    strip_terminator,
)
from b64filter.errors import LineCountMismatchError, PipeBrokenError
from b64filter.metrics_collector import MetricsCollector


class DocumentReassembler:
    """
    Rebuilds documents from the filter's output, one ledger entry at a time.

    The reassembler is the only reader of the filter's stdout. It trusts the
    filter to emit exactly one line per line received; if the filter
    withholds output it blocks, and if the output ends early or runs long
    the run fails with LineCountMismatchError.
    """

    def __init__(
        self,
        filter_output: BinaryIO,
        output: BinaryIO,
        ledger: CountLedger,
        metrics: Optional[MetricsCollector] = None,
        progress_every: int = 100,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the reassembler.

        Args:
            filter_output: Readable binary pipe from the filter's stdout
            output: Binary stream receiving one base64 line per document
            ledger: Ledger of per-document line counts
            metrics: Optional MetricsCollector; one is created if omitted
            progress_every: Log progress every N documents, 0 to disable
            logger: Optional AppLogger; defaults to the process logger
        """
        self._filter_output = filter_output
        self._output = output
        self._ledger = ledger
        self._metrics = metrics if metrics is not None else MetricsCollector()
        self._progress_every = progress_every
        self._logger = logger or get_default_logger()
        self._documents_written = 0

    @property
    def documents_written(self) -> int:
        return self._documents_written

    def read_lines(self, count: int) -> List[bytes]:
        """
        Read ``count`` physical lines from the filter, terminators removed.

        An unterminated fragment at end of output counts as the last line.

        Raises:
            LineCountMismatchError: If the output ends before ``count`` lines
            PipeBrokenError: If reading the pipe fails
        """
        lines = []
        while len(lines) < count:
            try:
                line = self._filter_output.readline()
            except (OSError, ValueError) as e:
                raise PipeBrokenError(f"error reading from filter: {e}") from e
            if not line:
                raise LineCountMismatchError(
                    f"expected {count} lines from filter, got {len(lines)}",
                    expected=count,
                    actual=len(lines),
                    document_index=self._documents_written,
                )
            lines.append(strip_terminator(line))
        return lines

    def write_document(self, count: int) -> None:
        """Read, rebuild, encode and emit the next document of ``count`` lines."""
        context = LogContext(
            component="DocumentReassembler",
            operation="write_document",
            document_index=self._documents_written,
        )
        self._logger.debug(
            f"processing {count} line document",
            context=context,
            ledger_depth=len(self._ledger),
        )

        document = join_lines(self.read_lines(count))
        try:
            self._output.write(encode_document(document))
            self._output.flush()
        except (OSError, ValueError) as e:
            raise PipeBrokenError(f"error writing {count} line document: {e}") from e

        self._documents_written += 1
        total = self._metrics.record_document_written(count)

        if self._progress_every > 0 and total % self._progress_every == 0:
            self._logger.info(
                f"written {total} docs, {self._metrics.lines_written} lines "
                f"in {self._metrics.elapsed():.3f}s",
                context=LogContext(component="DocumentReassembler", operation="progress"),
            )

    def check_trailing_output(self) -> None:
        """
        Fail if the filter produced output beyond what the ledger accounted for.

        Only called once the ledger is drained, when the filter's input is
        already closed, so reading to end of output cannot deadlock.
        """
        extra = 0
        while True:
            try:
                line = self._filter_output.readline()
            except (OSError, ValueError) as e:
                raise PipeBrokenError(f"error reading from filter: {e}") from e
            if not line:
                break
            extra += 1

        if extra:
            raise LineCountMismatchError(
                f"filter produced {extra} unexpected trailing line"
                f"{'' if extra == 1 else 's'}",
                expected=0,
                actual=extra,
                document_index=self._documents_written,
            )

    def run(self) -> int:
        """
        Reassemble documents until the ledger is closed and drained.

        Returns:
            The number of documents written
        """
        while True:
            count = self._ledger.get()
            if count is None:
                break
            self.write_document(count)

        self._logger.debug(
            "write queue finished",
            context=LogContext(component="DocumentReassembler", operation="run"),
            documents=self._documents_written,
        )
        self.check_trailing_output()
        return self._documents_written
