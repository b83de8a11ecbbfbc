"""
Error drain: copies the filter's stderr to our own, unbuffered.
"""

from typing import BinaryIO, Optional

from b64filter.app_logger import AppLogger, LogContext, get_default_logger

CHUNK_SIZE = 64 * 1024


class ErrorDrain:
    """
    Passes the filter's error stream through verbatim for its whole lifetime.

    Failures are logged and end the drain; they never fail the run.
    """

    def __init__(
        self,
        filter_errors: BinaryIO,
        destination: BinaryIO,
        logger: Optional[AppLogger] = None,
    ):
        self._source = filter_errors
        self._destination = destination
        self._logger = logger or get_default_logger()
        self._bytes_copied = 0

    @property
    def bytes_copied(self) -> int:
        return self._bytes_copied

    def _read_chunk(self) -> bytes:
        # read1 returns as soon as any bytes are available
        read1 = getattr(self._source, "read1", None)
        if read1 is not None:
            return read1(CHUNK_SIZE)
        return self._source.read(CHUNK_SIZE)

    def run(self) -> int:
        """
        Copy until the filter closes its error stream.

        Returns:
            The number of bytes copied
        """
        try:
            while True:
                chunk = self._read_chunk()
                if not chunk:
                    break
                self._destination.write(chunk)
                self._destination.flush()
                self._bytes_copied += len(chunk)
        except (OSError, ValueError) as e:
            self._logger.error(
                f"error processing standard error: {e}",
                context=LogContext(component="ErrorDrain", operation="run"),
                bytes_copied=self._bytes_copied,
            )
        return self._bytes_copied
