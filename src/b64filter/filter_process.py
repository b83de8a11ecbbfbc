"""
Filter subprocess resource management.

FilterProcess owns the external filter program: it starts it with three
binary pipes, exposes them to the pipeline stages, and handles killing,
reaping and cleanup.
"""

import shlex
import subprocess
import threading
from typing import BinaryIO, List, Optional, Sequence

from b64filter.errors import FilterExitError, FilterStartError


class FilterProcess:
    """
    Manages the lifetime of the filter program and its pipes.

    Key Features:
    -------------
    - One child process per run, started with stdin/stdout/stderr pipes
    - Idempotent kill for fail-fast aborts
    - Reaping that reports abnormal exits as FilterExitError
    - Thread-safe state transitions
    """

    def __init__(self, command: Sequence[str]):
        """
        Initialise the process resource.

        Args:
            command: Program and arguments of the filter

        Raises:
            ValueError: If command is empty
        """
        if not command:
            raise ValueError("filter command must not be empty")
        self._command: List[str] = list(command)
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._killed = False

    @property
    def command(self) -> List[str]:
        return list(self._command)

    @property
    def display_name(self) -> str:
        """The command as a shell-quoted string, for messages."""
        return shlex.join(self._command)

    def start(self) -> None:
        """
        Start the filter with all three standard streams piped.

        Raises:
            FilterStartError: If the program cannot be executed
            RuntimeError: If the process was already started
        """
        with self._lock:
            if self._process is not None:
                raise RuntimeError("filter process already started")
            try:
                self._process = subprocess.Popen(
                    self._command,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as e:
                raise FilterStartError(
                    f"error starting filter {self.display_name!r}: {e}"
                ) from e

    def _require(self) -> subprocess.Popen:
        if self._process is None:
            raise RuntimeError("filter process not started")
        return self._process

    @property
    def stdin(self) -> BinaryIO:
        return self._require().stdin

    @property
    def stdout(self) -> BinaryIO:
        return self._require().stdout

    @property
    def stderr(self) -> BinaryIO:
        return self._require().stderr

    @property
    def returncode(self) -> Optional[int]:
        with self._lock:
            return self._process.returncode if self._process else None

    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    @property
    def killed(self) -> bool:
        """True once kill() has signalled the filter."""
        with self._lock:
            return self._killed

    def kill(self) -> None:
        """Kill and reap the filter if it is still running; safe to call repeatedly."""
        with self._lock:
            if self._process is None or self._process.poll() is not None:
                return
            try:
                self._process.kill()
                self._killed = True
            except ProcessLookupError:
                # Exited between poll() and kill()
                pass
            self._process.wait()

    def exit_status(self, timeout: float) -> Optional[int]:
        """
        Wait up to ``timeout`` seconds for the filter to exit.

        Returns:
            The return code, or None if the filter is still running
        """
        try:
            return self._require().wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def wait(self, timeout: Optional[float] = None) -> int:
        """
        Reap the filter.

        Must only be called once the filter's output has been fully read;
        a filter blocked on a full output pipe never exits.

        Returns:
            The exit status, always 0

        Raises:
            FilterExitError: If the filter exited non-zero or on a signal
        """
        returncode = self._require().wait(timeout=timeout)
        if returncode != 0:
            raise FilterExitError(self.display_name, returncode)
        return returncode

    def cleanup(self) -> None:
        """Close any pipes still open and reap the process if it has exited."""
        with self._lock:
            process = self._process
        if process is None:
            return
        for stream in (process.stdin, process.stdout, process.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                # Flushing a pipe whose reader is gone
                pass
        process.poll()
