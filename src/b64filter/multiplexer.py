"""
Coordinator for the streaming document multiplexer.

DocumentMultiplexer wires the stages around one filter process:

    input -> DocumentDecoder -> DocumentChannel -> DocumentFeeder -> filter stdin
                                                        |
                                                   CountLedger
                                                        v
    output <- DocumentReassembler <--------------- filter stdout
    stderr <- ErrorDrain <------------------------ filter stderr

The decoder runs in a daemon thread, the reassembler and error drain in the
WorkerPool, and the feeder on the caller's thread. The first failure in any
stage aborts every other stage and is raised from ``run()``.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Optional

from b64filter.app_logger import AppLogger, LogContext, get_default_logger
from b64filter.count_ledger import CountLedger
from b64filter.document_decoder import DocumentChannel, DocumentDecoder
from b64filter.error_drain import ErrorDrain
from b64filter.errors import (
    B64FilterError,
    FilterExitError,
    LineCountMismatchError,
    PipeBrokenError,
)
from b64filter.feeder import DocumentFeeder
from b64filter.filter_config import FilterConfig
from b64filter.filter_process import FilterProcess
from b64filter.metrics_collector import MetricsCollector
from b64filter.reassembler import DocumentReassembler
from b64filter.worker_pool import WorkerPool

# Seconds to wait for a filter whose pipes have failed to report its exit
EXIT_GRACE_PERIOD = 1.0


class PipelineState(Enum):
    """Lifecycle of one run."""

    CREATED = "created"
    SPAWNED = "spawned"
    FEEDING = "feeding"
    DRAINING = "draining"
    REAPED = "reaped"
    FAILED = "failed"


@dataclass(frozen=True)
class FilterSummary:
    """Outcome of a successful run."""

    documents: int
    lines: int
    elapsed: float
    returncode: int


class DocumentMultiplexer:
    """
    Runs a line-oriented filter program over a stream of base64 documents.

    The stages communicate only through the document channel, the count
    ledger and the filter's pipes. The filter is reaped only after the
    reassembler has drained its output, since a filter blocked on a full
    output pipe never exits.
    """

    def __init__(
        self,
        config: FilterConfig,
        input_stream: BinaryIO,
        output_stream: BinaryIO,
        error_stream: BinaryIO,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the multiplexer.

        Args:
            config: Run configuration, including the filter command
            input_stream: Binary stream of base64 documents, one per line
            output_stream: Binary stream receiving the filtered documents
            error_stream: Binary stream receiving the filter's stderr
            logger: Optional AppLogger injected into every stage
        """
        self.config = config
        self._input = input_stream
        self._output = output_stream
        self._error_stream = error_stream
        self._logger = logger or get_default_logger()
        self._context = LogContext(component="DocumentMultiplexer")

        self.metrics = MetricsCollector()
        self._process = FilterProcess(config.command)
        self._ledger = CountLedger(config.ledger_capacity)
        self._channel = DocumentChannel(config.channel_size)

        self._state = PipelineState.CREATED
        self._state_lock = threading.Lock()
        self._failure: Optional[BaseException] = None

    @property
    def state(self) -> PipelineState:
        with self._state_lock:
            return self._state

    @property
    def ledger(self) -> CountLedger:
        return self._ledger

    @property
    def process(self) -> FilterProcess:
        return self._process

    def _set_state(self, state: PipelineState) -> None:
        with self._state_lock:
            if self._state is PipelineState.FAILED:
                return
            self._state = state
        self._logger.debug(
            f"pipeline {state.value}",
            context=LogContext(component=self._context.component, operation="state"),
        )

    def abort(self, error: BaseException) -> None:
        """
        Record the first failure and unblock every stage.

        The ledger is aborted (feeder and reassembler waits raise), the
        channel is cancelled (a feeder waiting for input raises) and the
        filter is killed (pipe reads hit end of file, writes fail).
        """
        error = self._explain_failure(error)
        with self._state_lock:
            if self._failure is not None:
                return
            self._failure = error
            self._state = PipelineState.FAILED

        self._logger.debug(
            f"aborting pipeline: {error}",
            context=LogContext(component=self._context.component, operation="abort"),
            error_type=type(error).__name__,
        )
        self._ledger.abort(error)
        self._channel.cancel(error)
        self._process.kill()

    def _explain_failure(self, error: BaseException) -> BaseException:
        """
        Prefer the filter's own exit status when it caused a pipe failure.

        A filter that exits early closes both pipes: the feeder's writes
        break and the reassembler's reads end short. Either symptom is
        reported as the FilterExitError of a filter that exited non-zero
        on its own, with the symptom as its cause.
        """
        if not isinstance(error, (LineCountMismatchError, PipeBrokenError)):
            return error
        with self._state_lock:
            if self._failure is not None:
                return error

        returncode = self._process.exit_status(timeout=EXIT_GRACE_PERIOD)
        if not returncode or self._process.killed:
            return error
        exit_error = FilterExitError(self._process.display_name, returncode)
        exit_error.__cause__ = error
        return exit_error

    def _raise_failure(self) -> None:
        with self._state_lock:
            failure = self._failure
        if failure is not None:
            raise failure

    def run(self) -> FilterSummary:
        """
        Filter every input document and reap the filter.

        Returns:
            FilterSummary with the number of documents and lines processed

        Raises:
            B64FilterError: The first fatal error of any stage
        """
        self._logger.debug(
            "starting filter",
            context=LogContext(component=self._context.component, operation="run"),
            command=self._process.display_name,
            ledger_capacity=self.config.ledger_capacity,
            channel_size=self.config.channel_size,
        )

        self._process.start()
        self.metrics.start_timer()
        pool = WorkerPool(max_workers=2, on_failure=self.abort, logger=self._logger)
        try:
            drain = ErrorDrain(
                self._process.stderr, self._error_stream, logger=self._logger
            )
            reassembler = DocumentReassembler(
                self._process.stdout,
                self._output,
                self._ledger,
                metrics=self.metrics,
                progress_every=self.config.progress_every,
                logger=self._logger,
            )
            drain_future = pool.submit_task(drain.run)
            reassembler_future = pool.submit_task(reassembler.run)
            self._set_state(PipelineState.SPAWNED)

            decoder = DocumentDecoder(self._input, logger=self._logger)
            decoder.start(self._channel)
            feeder = DocumentFeeder(
                self._process.stdin,
                self._ledger,
                metrics=self.metrics,
                logger=self._logger,
            )

            self._set_state(PipelineState.FEEDING)
            try:
                feeder.feed(self._channel)
            except Exception as e:
                self.abort(e)

            self._set_state(PipelineState.DRAINING)
            try:
                reassembler_future.result()
            except Exception as e:
                # The pool callback may not have run yet; abort is idempotent
                self.abort(e)
            self._raise_failure()

            try:
                returncode = self._process.wait()
            except B64FilterError as e:
                self.abort(e)
                raise
            drain_future.result()
            self._set_state(PipelineState.REAPED)
        finally:
            if self.state is PipelineState.FAILED:
                self._process.kill()
            pool.shutdown(wait=True)
            self._process.cleanup()

        summary = FilterSummary(
            documents=reassembler.documents_written,
            lines=self.metrics.lines_written,
            elapsed=self.metrics.elapsed(),
            returncode=returncode,
        )
        self._logger.info(
            f"processed {summary.documents} documents",
            context=LogContext(component=self._context.component, operation="run"),
        )
        if self.config.debug:
            self._logger.info(
                "run statistics",
                context=LogContext(component=self._context.component, operation="run"),
                max_ledger_depth=self._ledger.max_depth,
                **self.metrics.get_metrics(),
            )
        return summary
