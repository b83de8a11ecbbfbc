"""
Incremental decoding of the base64 input stream.

DocumentDecoder turns a binary stream of base64 lines into raw documents as
the lines arrive. DocumentChannel is the bounded hand-off between the
decoder thread and the feeder: documents in order, followed by exactly one
terminal marker (end of input or the decoder's failure).
"""

import queue
import threading
from typing import BinaryIO, Iterator, Optional

from b64filter.app_logger import AppLogger, LogContext, get_default_logger
from b64filter.document_codec import decode_document
from b64filter.errors import MalformedInputError, PipeBrokenError

_END = object()

PUT_POLL_INTERVAL = 0.1


class _Failure:
    """Terminal channel item carrying the producer's exception."""

    def __init__(self, error: BaseException):
        self.error = error


class DocumentChannel:
    """
    Bounded, ordered channel of decoded documents.

    The producer calls ``send`` for each document and then either
    ``finish`` or ``fail``. The consumer iterates the channel; a failure is
    re-raised in the consumer's thread. ``cancel`` lets a third party wake
    a consumer blocked on an empty channel, and releases a producer blocked
    on a full one.
    """

    def __init__(self, maxsize: int = 16):
        if maxsize < 1:
            raise ValueError(f"channel size must be positive, got {maxsize}")
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._cancelled: Optional[BaseException] = None

    def _put(self, item) -> bool:
        # Timed puts so a producer blocked on a full channel notices a cancel
        while self._cancelled is None:
            try:
                self._queue.put(item, timeout=PUT_POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def send(self, document: bytes) -> bool:
        """
        Queue a document, blocking while the channel is full.

        Returns:
            False if the channel was cancelled and the document dropped
        """
        return self._put(document)

    def finish(self) -> None:
        self._put(_END)

    def fail(self, error: BaseException) -> None:
        self._put(_Failure(error))

    def cancel(self, cause: BaseException) -> None:
        """Make the consumer raise ``cause`` instead of waiting for more input."""
        self._cancelled = cause
        try:
            self._queue.put_nowait(_Failure(cause))
        except queue.Full:
            # The consumer is not blocked and sees the flag on its next item
            pass

    def qsize(self) -> int:
        return self._queue.qsize()

    def __iter__(self) -> Iterator[bytes]:
        while True:
            item = self._queue.get()
            if self._cancelled is not None:
                raise self._cancelled
            if item is _END:
                return
            if isinstance(item, _Failure):
                raise item.error
            yield item


class DocumentDecoder:
    """Reads base64 lines from a binary stream and yields raw documents."""

    def __init__(self, stream: BinaryIO, logger: Optional[AppLogger] = None):
        """
        Initialise the decoder.

        Args:
            stream: Binary input stream, one base64 document per line
            logger: Optional AppLogger; defaults to the process logger
        """
        self._stream = stream
        self._logger = logger or get_default_logger()
        self._context = LogContext(component="DocumentDecoder")
        self._lines_read = 0

    @property
    def lines_read(self) -> int:
        return self._lines_read

    def documents(self) -> Iterator[bytes]:
        """
        Yield decoded documents in input order as their lines arrive.

        An empty line is the empty document. A final line without a
        terminator is decoded unless it is blank.

        Raises:
            MalformedInputError: If a line is not valid base64
            PipeBrokenError: If reading the input stream fails
        """
        while True:
            try:
                line = self._stream.readline()
            except OSError as e:
                raise PipeBrokenError(f"error reading input: {e}") from e

            if not line:
                break
            self._lines_read += 1

            if line.endswith(b"\n"):
                line = line[:-1]
            elif not line.strip():
                # Blank tail before end of input
                break

            try:
                yield decode_document(line)
            except ValueError as e:
                raise MalformedInputError(self._lines_read, str(e)) from e

        self._logger.debug(
            "finished reading input",
            context=LogContext(component=self._context.component, operation="documents"),
            lines=self._lines_read,
        )

    def pump(self, channel: DocumentChannel) -> None:
        """Decode the whole stream into ``channel``, ending with a terminal marker."""
        try:
            for document in self.documents():
                if not channel.send(document):
                    self._logger.debug(
                        "channel cancelled, decoder stopping",
                        context=LogContext(
                            component=self._context.component, operation="pump"
                        ),
                    )
                    return
        except Exception as e:
            # Handed to the consumer, which re-raises it
            self._logger.debug(
                f"decoder stopped: {e}",
                context=LogContext(component=self._context.component, operation="pump"),
            )
            channel.fail(e)
        else:
            channel.finish()

    def start(self, channel: DocumentChannel) -> threading.Thread:
        """
        Run ``pump`` in a daemon thread.

        The thread is a daemon because a read on the host's input cannot be
        interrupted; it must not hold the process open after a fatal error.
        """
        thread = threading.Thread(
            target=self.pump, args=(channel,), name="document-decoder", daemon=True
        )
        thread.start()
        return thread
