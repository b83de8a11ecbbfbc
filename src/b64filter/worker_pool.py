"""
Worker pool for the pipeline's concurrent stages.

This module provides the WorkerPool class which wraps ThreadPoolExecutor
with task tracking, failure callbacks and logged shutdown. The coordinator
runs the reassembler and the error drain in it.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Set

from b64filter.app_logger import AppLogger, LogContext, get_default_logger


class WorkerPool:
    """
    Thread pool that tracks its active stages and reports their failures.

    Key Features:
    -------------
    - Named worker threads for readable debug logs
    - A failure callback invoked once per task that raises
    - Graceful shutdown with proper resource cleanup
    """

    def __init__(
        self,
        max_workers: int = 2,
        on_failure: Optional[Callable[[BaseException], None]] = None,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the worker pool.

        Args:
            max_workers: Maximum number of worker threads
            on_failure: Called with the exception of any task that raises
            logger: Optional AppLogger for error reporting
        """
        self._on_failure = on_failure
        self._logger = logger or get_default_logger()
        self._context = LogContext(component="WorkerPool")

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="stage-worker"
        )

        self._active_futures: Set[Future] = set()
        self._futures_lock = threading.Lock()
        self._running = True

    def submit_task(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Submit a task to the worker pool.

        Args:
            fn: Function to execute
            *args: Positional arguments for the function
            **kwargs: Keyword arguments for the function

        Returns:
            Future representing the task execution

        Raises:
            RuntimeError: If the pool has been shut down
        """
        if not self._running:
            raise RuntimeError("worker pool is shut down")

        future = self._executor.submit(fn, *args, **kwargs)
        with self._futures_lock:
            self._active_futures.add(future)
            active_count = len(self._active_futures)

        self._logger.debug(
            "Task submitted to worker pool",
            context=LogContext(component=self._context.component, operation="submit_task"),
            task_name=getattr(fn, "__qualname__", str(fn)),
            active_tasks=active_count,
        )

        future.add_done_callback(self._task_completed_callback)
        return future

    def _task_completed_callback(self, future: Future) -> None:
        """Callback invoked when a task completes."""
        with self._futures_lock:
            self._active_futures.discard(future)

        if future.cancelled():
            return
        error = future.exception()
        if error is not None and self._on_failure is not None:
            self._on_failure(error)

    def get_active_count(self) -> int:
        with self._futures_lock:
            return len(self._active_futures)

    def shutdown(self, wait: bool = True) -> None:
        """
        Shut down the worker pool.

        Args:
            wait: Whether to wait for active tasks to complete
        """
        self._logger.debug(
            "Shutting down worker pool",
            context=LogContext(component=self._context.component, operation="shutdown"),
            active_tasks=self.get_active_count(),
            wait_for_completion=wait,
        )
        self._running = False
        try:
            self._executor.shutdown(wait=wait)
        finally:
            with self._futures_lock:
                self._active_futures.clear()
